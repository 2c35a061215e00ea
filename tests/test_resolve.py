"""Tests for the agent → stage lookup."""
import pytest

from pipeline.resolve import AGENT_STAGE_MAP, DEFAULT_STAGE, resolve


@pytest.mark.parametrize("agent, stage", [
    ("story_writer", "story_generation"),
    ("design_architect", "design_generation"),
    ("code_developer", "code_generation"),
    ("test_engineer", "testing"),
    ("deployment_manager", "deployment"),
    ("deployment_specialist", "deployment"),
    ("supervisor", "story_generation"),
])
def test_known_agents(agent, stage):
    assert resolve(agent) == stage


def test_lookup_is_case_insensitive():
    assert resolve("Code_Developer") == "code_generation"
    assert resolve("  TEST_ENGINEER ") == "testing"


def test_unknown_agent_falls_back_to_first_stage():
    assert DEFAULT_STAGE == "story_generation"
    assert resolve("marketing_bot") == "story_generation"


def test_every_mapped_stage_is_a_pipeline_stage():
    from models.stages import STAGE_ORDER
    assert set(AGENT_STAGE_MAP.values()) <= set(STAGE_ORDER)
