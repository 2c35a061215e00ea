"""Validation tests for the stage, event and message contract models."""

from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from models.events import AiResponseEvent, ContentReadyEvent, EventProps, ProgressEvent, StageData, UIEvent
from models.messages import Message
from models.stages import (
    STAGE_ORDER,
    CodeFile,
    DeploymentInfo,
    Story,
    TestCase,
    WorkflowData,
    WorkflowStage,
    initial_stages,
    initial_workflow,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _stage(stage_id="story_generation", **kwargs) -> WorkflowStage:
    defaults = dict(id=stage_id, name="Analyze", description="Requirements")
    return WorkflowStage(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# Initial stage list
# ---------------------------------------------------------------------------

class TestInitialStages:
    def test_five_stages_in_pipeline_order(self):
        stages = initial_stages()
        assert [s.id for s in stages] == list(STAGE_ORDER)
        assert [s.name for s in stages] == ["Analyze", "Design", "Code", "Test", "Deploy"]

    def test_all_pending_and_empty(self):
        for stage in initial_stages():
            assert stage.status == "pending"
            assert stage.progress == 0
            assert stage.start_time is None
            assert stage.end_time is None
            assert stage.content is None

    def test_default_agent_names(self):
        assert initial_stages()[0].agent_name == "Story Writer"
        assert initial_stages()[-1].agent_name == "Deployment Manager"

    def test_initial_workflow(self):
        wf = initial_workflow()
        assert wf.current_stage == ""
        assert wf.overall_progress == 0
        assert len(wf.stages) == 5

    def test_each_call_returns_fresh_objects(self):
        assert initial_stages()[0] is not initial_stages()[0]


# ---------------------------------------------------------------------------
# WorkflowStage
# ---------------------------------------------------------------------------

class TestWorkflowStage:
    def test_progress_bounds(self):
        with pytest.raises(ValidationError):
            _stage(progress=101)
        with pytest.raises(ValidationError):
            _stage(progress=-1)

    def test_unknown_stage_id_rejected(self):
        with pytest.raises(ValidationError):
            _stage(stage_id="marketing")

    def test_naive_timestamps_become_utc(self):
        s = _stage(start_time=datetime(2026, 2, 9, 9, 0))
        assert s.start_time.tzinfo == timezone.utc

    def test_has_content_for_completed_stage(self):
        assert _stage(status="completed").has_content

    def test_has_content_for_payload(self):
        assert _stage(design_content="# Design").has_content
        assert not _stage().has_content

    def test_is_terminal(self):
        assert _stage(status="failed").is_terminal
        assert not _stage(status="active").is_terminal


# ---------------------------------------------------------------------------
# WorkflowData invariants
# ---------------------------------------------------------------------------

class TestWorkflowData:
    def test_two_active_stages_rejected(self):
        stages = initial_stages()
        stages[0] = stages[0].model_copy(update={"status": "active"})
        stages[1] = stages[1].model_copy(update={"status": "active"})
        with pytest.raises(ValidationError, match="more than one active stage"):
            WorkflowData(stages=stages)

    def test_duplicate_stage_ids_rejected(self):
        stages = initial_stages()
        with pytest.raises(ValidationError, match="duplicate stage ids"):
            WorkflowData(stages=[stages[0], stages[0]])

    def test_stage_lookup(self):
        wf = initial_workflow()
        assert wf.stage("testing").name == "Test"
        with pytest.raises(ValueError):
            wf.stage("marketing")

    def test_active_stage(self):
        stages = initial_stages()
        stages[2] = stages[2].model_copy(update={"status": "active"})
        assert WorkflowData(stages=stages).active_stage.id == "code_generation"
        assert initial_workflow().active_stage is None


# ---------------------------------------------------------------------------
# Payload items: camelCase wire keys
# ---------------------------------------------------------------------------

class TestPayloadItems:
    def test_story_from_wire_keys(self):
        story = Story.model_validate({
            "id": "story-1", "jiraId": "APEX-101", "title": "Login",
            "acceptanceCriteria": ["works"], "priority": "High", "storyPoints": 5,
        })
        assert story.jira_id == "APEX-101"
        assert story.acceptance_criteria == ["works"]
        assert story.story_points == 5

    def test_code_file_tree_is_recursive(self):
        tree = CodeFile.model_validate({
            "id": "d", "name": "src", "path": "/src", "type": "directory",
            "children": [{"id": "f", "name": "a.py", "path": "/src/a.py"}],
        })
        assert tree.children[0].name == "a.py"
        assert tree.children[0].type == "file"

    def test_labels_normalised_case_insensitively(self):
        story = Story.model_validate({"id": "s", "title": "T", "priority": "high"})
        assert story.priority == "High"
        case = TestCase.model_validate({"id": "t", "name": "n", "status": "PASS", "priority": "low"})
        assert (case.status, case.priority) == ("Pass", "Low")

    def test_unknown_label_kept_verbatim(self):
        assert Story.model_validate({"id": "s", "title": "T", "priority": "Critical"}).priority == "Critical"

    def test_deployment_info_defaults(self):
        info = DeploymentInfo()
        assert info.environment == "production"
        assert info.services == []


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class TestEvents:
    _adapter = TypeAdapter(UIEvent)

    def test_union_dispatches_on_name(self):
        assert isinstance(self._adapter.validate_python({"name": "progress"}), ProgressEvent)
        assert isinstance(self._adapter.validate_python({"name": "content_ready"}), ContentReadyEvent)
        assert isinstance(self._adapter.validate_python({"name": "ai_response"}), AiResponseEvent)

    def test_unknown_name_rejected(self):
        with pytest.raises(ValidationError):
            self._adapter.validate_python({"name": "heartbeat", "props": {}})

    def test_progress_is_clamped_and_rounded(self):
        assert EventProps(progress=140).progress == 100
        assert EventProps(progress=-5).progress == 0
        assert EventProps(progress=39.6).progress == 40

    def test_non_numeric_progress_treated_as_absent(self):
        assert EventProps(progress="half").progress is None
        assert EventProps(progress=True).progress is None

    def test_non_text_content_treated_as_absent(self):
        assert EventProps(content=[{"type": "text"}]).content is None

    def test_null_props_defaults(self):
        event = ProgressEvent.model_validate({"name": "progress", "props": None})
        assert event.agent_id is None

    def test_empty_agent_name_is_no_agent(self):
        assert ProgressEvent(props=EventProps(agent_name="")).agent_id is None

    def test_stage_data_wire_keys(self):
        data = StageData.model_validate({"designContent": "# D", "testCases": []})
        assert data.design_content == "# D"
        assert data.present_fields() == {"design_content": "# D", "test_cases": []}

    def test_stage_data_present_fields_skips_absent(self):
        assert StageData().present_fields() == {}


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class TestMessage:
    def test_assistant_role_normalised(self):
        assert Message(type="assistant", content="x").type == "ai"
        assert Message(type="user", content="x").type == "human"

    def test_text_only_for_string_content(self):
        assert Message(type="ai", content="hello").text == "hello"
        assert Message(type="ai", content=[{"type": "text", "text": "hi"}]).text is None

    def test_do_not_render_flag(self):
        assert Message(type="human", content="x", additional_kwargs={"do_not_render": True}).do_not_render
        assert not Message(type="human", content="x", additional_kwargs=None).do_not_render

    def test_role_key_accepted(self):
        assert Message.model_validate({"role": "assistant", "content": "x"}).type == "ai"
        assert Message.model_validate({"role": "tool", "content": "x"}).type == "tool"

    def test_other_kinds_pass_through(self):
        assert Message.model_validate({"id": "r", "type": "remove"}).type == "remove"

    def test_missing_speaker_rejected(self):
        with pytest.raises(ValidationError):
            Message.model_validate({"content": "x"})

    def test_extra_keys_kept(self):
        m = Message.model_validate({"type": "ai", "content": "x", "tool_calls": []})
        assert m.model_dump()["tool_calls"] == []
