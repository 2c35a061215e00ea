"""Overall progress: one 0-100 number summarising all stages.

Each completed stage counts as one unit. Active stages contribute their mean
progress as a fraction of a unit, so the aggregate moves smoothly while a
stage is running instead of jumping only on completion:

    round(100 * (completed + active_count * mean_active / 100) / total)

Pending and failed stages contribute nothing.
"""
import math
from collections.abc import Sequence
from statistics import mean

from models.stages import WorkflowStage


def aggregate(stages: Sequence[WorkflowStage]) -> int:
    total = len(stages)
    if total == 0:
        return 0

    completed = sum(1 for s in stages if s.status == "completed")
    active_progress = [s.progress for s in stages if s.status == "active"]
    mean_active = mean(active_progress) if active_progress else 0

    units = completed + len(active_progress) * (mean_active / 100)
    return max(0, min(100, _round_half_up(100 * units / total)))


def _round_half_up(value: float) -> int:
    # round() would use banker's rounding: 12.5 → 12.
    return math.floor(value + 0.5)
