from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import computed_field
from pydantic import field_validator

from catalog_import_safety.data_models.import_config import ImportSafetyConfig
from catalog_import_safety.helpers.schedule import DEFAULT_CLEANUP_SCHEDULE
from catalog_import_safety.helpers.schedule import is_valid_schedule


class CleanupConfig(BaseModel):
    """Settings of the artifact cleanup service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifacts_path: Path = Path("/tmp/catalog-imports")
    retention_days: int = Field(7, gt=0)
    cleanup_schedule: str = DEFAULT_CLEANUP_SCHEDULE
    dry_run: bool = False

    @field_validator("cleanup_schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        if not is_valid_schedule(value):
            raise ValueError(f"Invalid cron expression: '{value}'")
        return value

    @classmethod
    def from_import_config(cls, config: ImportSafetyConfig) -> "CleanupConfig":
        return cls(
            artifacts_path=Path(config.artifacts.storage_path),
            retention_days=config.artifacts.retention_days,
            cleanup_schedule=config.artifacts.cleanup_schedule,
            dry_run=config.artifacts.cleanup_dry_run,
        )


class CleanupResult(BaseModel):
    """Outcome of a single cleanup pass. Informational only, never persisted."""

    model_config = ConfigDict(frozen=True)

    scanned: int = 0
    deleted: int = 0
    retained: int = 0
    errors: int = 0
    freed_space_mb: float = 0.0
    execution_time_ms: int = 0

    @computed_field
    @property
    def success_rate(self) -> Optional[float]:
        """Share of scanned directories handled without error, in percent."""
        if self.scanned == 0:
            return None
        return (self.deleted + self.retained) / self.scanned * 100


class CleanupStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_running: bool
    is_scheduled: bool
    config: CleanupConfig
