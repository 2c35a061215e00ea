from pathlib import Path

import pytest

from settings import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with no demo pauses and output under a temp directory."""
    return Settings(
        output_dir=tmp_path / "output",
        demo_step_delay_seconds=0.0,
        demo_stage_delay_seconds=0.0,
    )
