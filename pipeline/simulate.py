"""Deterministic demo event stream.

For each stage in pipeline order the simulator emits progress events at
0, 20, 40, 60, 80 and 100 percent, then one content_ready event carrying the
stage's canonical payload from `demo_payloads.yaml`. The sequence is the same
on every call, so it can seed regression tests of the state machine and the
aggregator without a live backend.
"""
import logging
from collections.abc import Sequence
from pathlib import Path

from models.events import ContentReadyEvent, EventProps, ProgressEvent, StageData
from models.stages import STAGE_ORDER

logger = logging.getLogger(__name__)

PROGRESS_STEPS = (0, 20, 40, 60, 80, 100)

DEMO_PAYLOADS_PATH = Path(__file__).with_name("demo_payloads.yaml")


def load_demo_payloads(path: Path = DEMO_PAYLOADS_PATH) -> dict:
    """Load the per-stage demo payloads. Raises FileNotFoundError if path does not exist."""
    import yaml  # lazy: only needed for the demo
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def simulate_events(
    stage_ids: Sequence[str] = STAGE_ORDER,
    payloads: dict | None = None,
) -> list[ProgressEvent | ContentReadyEvent]:
    if payloads is None:
        payloads = load_demo_payloads()

    events: list[ProgressEvent | ContentReadyEvent] = []
    for stage_id in stage_ids:
        demo = payloads[stage_id]
        agent, name = demo["agent"], demo["name"]

        for progress in PROGRESS_STEPS:
            events.append(ProgressEvent(
                id=f"demo-{stage_id}-progress-{progress}",
                props=EventProps(
                    agent_name=agent,
                    content=f"Processing {name} stage... {progress}% complete",
                    progress=progress,
                ),
            ))

        events.append(ContentReadyEvent(
            id=f"demo-{stage_id}-content-ready",
            props=EventProps(
                agent_name=agent,
                content=demo.get("content") or f"{name} stage completed successfully",
                stage_data=StageData.model_validate(demo.get("stage_data") or {}),
            ),
        ))

    logger.debug("Simulated %d events for %d stages", len(events), len(stage_ids))
    return events
