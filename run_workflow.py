#!/usr/bin/env python3
"""Replay an agent event stream through the workflow projection.

Usage:
    python run_workflow.py --demo                 # replay the built-in demo stream
    python run_workflow.py --demo --no-delay      # same, without pauses
    python run_workflow.py --events ui.jsonl      # replay recorded ui events (one JSON object per line)

The final WorkflowData is written to <output_dir>/workflow.json.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from models.stages import WorkflowData
from pipeline.manager import WorkflowManager
from settings import Settings

logger = logging.getLogger("run_workflow")


def _read_events(path: Path) -> list[dict]:
    events = []
    for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError as exc:
            logger.warning("Skipping line %d of %s: %s", line_no, path.name, exc)
    return events


def _log_summary(workflow: WorkflowData) -> None:
    for stage in workflow.stages:
        logger.info("  %-18s %-10s %3d%%  %s", stage.id, stage.status, stage.progress, stage.content or "")
    logger.info("  Current stage:    %s", workflow.current_stage or "-")
    logger.info("  Overall progress: %d%%", workflow.overall_progress)


def _write_artifact(workflow: WorkflowData, settings: Settings) -> Path:
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    settings.workflow_path.write_text(workflow.model_dump_json(indent=2), encoding="utf-8")
    return settings.workflow_path


async def _run(args: argparse.Namespace, settings: Settings) -> WorkflowData:
    manager = WorkflowManager(settings)
    try:
        if args.demo:
            logger.info("=== Replaying demo stream ===")
            return await manager.run_demo(delay=not args.no_delay)

        logger.info("=== Replaying %s ===", args.events)
        return manager.ingest_ui(_read_events(args.events))
    finally:
        await manager.aclose()


def main() -> None:
    parser = argparse.ArgumentParser()
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--demo", action="store_true", help="Replay the built-in demo event stream")
    source.add_argument("--events", type=Path, help="JSON-lines file of recorded ui events")
    parser.add_argument("--no-delay", action="store_true", dest="no_delay",
                        help="Replay the demo without pauses between events")
    args = parser.parse_args()

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    workflow = asyncio.run(_run(args, settings))
    _log_summary(workflow)
    output_path = _write_artifact(workflow, settings)

    logger.info("=== Done → %s ===", output_path)


if __name__ == "__main__":
    main()
