from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    tick_interval_seconds: float = 1.5
    tick_max_increment: int = 5
    tick_ceiling: int = 95
    progress_policy: Literal["last_write_wins", "monotonic"] = "last_write_wins"
    do_not_render_prefix: str = "do-not-render-"
    demo_step_delay_seconds: float = 0.2
    demo_stage_delay_seconds: float = 2.0
    output_dir: Path = Path("./output")
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SDLC_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("tick_interval_seconds")
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("tick_interval_seconds must be positive")
        return v

    @field_validator("tick_max_increment")
    @classmethod
    def increment_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("tick_max_increment must be at least 1")
        return v

    @field_validator("tick_ceiling")
    @classmethod
    def ceiling_must_be_percentage(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("tick_ceiling must be between 0 and 100")
        return v

    @field_validator("demo_step_delay_seconds", "demo_stage_delay_seconds")
    @classmethod
    def delay_must_not_be_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("demo delays must not be negative")
        return v

    @property
    def workflow_path(self) -> Path:
        return self.output_dir / "workflow.json"
