"""Limit and safety configuration for bulk catalog imports."""

from typing import Any
from typing import Literal
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from catalog_import_safety.errors import ConfigurationError
from catalog_import_safety.helpers.schedule import DEFAULT_CLEANUP_SCHEDULE
from catalog_import_safety.helpers.schedule import is_valid_schedule

MAX_FILE_SIZE_CEILING_MB = 500
MAX_ROWS_CEILING = 100_000

BYTES_PER_MB = 1024 * 1024


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ImportDefaults(_Section):
    """Behavioural defaults of an import run."""

    upsert_by: Literal["off", "handle", "sku"] = "off"
    variant_strategy: Literal["explicit", "default_type"] = "explicit"
    force_prune_missing_variants: bool = False
    image_strategy: Literal["replace", "append", "merge"] = "replace"
    dry_run: bool = False
    enable_exchange_rate_validation: bool = False
    exchange_rate_max_variation: float = Field(0.3, ge=0)  # 0.3 = 30%


class ImportLimits(_Section):
    """Hard ceilings checked before an import starts."""

    max_file_size_mb: int = Field(100, gt=0)
    max_rows: int = Field(10_000, gt=0)
    max_concurrent_imports: int = Field(1, gt=0)  # per admin user
    max_batch_size: int = Field(100, gt=0)
    max_variants_per_product: int = Field(100, gt=0)
    max_images_per_product: int = Field(20, gt=0)
    max_options_per_product: int = Field(3, gt=0)


class RateLimits(_Section):
    rows_per_second: int = Field(50, gt=0)
    image_checks_per_second: int = Field(5, gt=0)
    api_calls_per_second: int = Field(10, gt=0)
    enable_image_validation: bool = False  # network HEAD checks


class MemoryLimits(_Section):
    """Memory budget. Thresholds are fractions of max_memory_usage_mb."""

    max_memory_usage_mb: int = Field(512, gt=0)
    warning_threshold: float = Field(0.7, gt=0, lt=1)
    critical_threshold: float = Field(0.85, gt=0, lt=1)
    backpressure_threshold: float = Field(0.8, gt=0, lt=1)


class Timeouts(_Section):
    job_timeout_minutes: int = Field(60, gt=0)
    row_processing_timeout_ms: int = Field(5000, gt=0)
    image_check_timeout_ms: int = Field(3000, gt=0)
    db_transaction_timeout_ms: int = Field(30_000, gt=0)


class ArtifactSettings(_Section):
    """Where per-job artifacts live and how long they are kept."""

    retention_days: int = Field(7, gt=0)
    enable_annotated_xlsx: bool = True
    annotated_xlsx_max_size_mb: int = Field(50, gt=0)
    storage_path: str = "/tmp/catalog-imports"
    cleanup_schedule: str = DEFAULT_CLEANUP_SCHEDULE
    cleanup_dry_run: bool = False

    @field_validator("cleanup_schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        if not is_valid_schedule(value):
            raise ValueError(f"Invalid cron expression: '{value}'")
        return value


class FeatureToggles(_Section):
    enable_smart_mapping: bool = True
    enable_dependency_resolution: bool = True
    enable_checkpointing: bool = True
    enable_dlq: bool = True
    enable_telemetry: bool = True
    enable_pruning: bool = False  # master switch for every destructive prune


class LimitCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: Optional[str] = None


class PruneDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None


class PruneRequest(BaseModel):
    """
    A caller's request to prune catalog entities missing from an import file.

    prune_confirm_token has no default: whoever builds a request has to state
    whether a confirmation token was supplied, even if it is None.
    """

    model_config = ConfigDict(frozen=True)

    force_prune_missing_variants: bool = False
    dry_run: bool = False
    prune_confirm_token: Optional[str]


class MemoryStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    used_mb: float
    percentage: float
    is_warning: bool
    should_apply_backpressure: bool
    is_critical: bool


def describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    message = first["msg"].removeprefix("Value error, ")
    if location:
        return f"Invalid configuration at {location}: {message}"
    return f"Invalid configuration: {message}"


class ImportSafetyConfig(BaseModel):
    """
    Canonical, validated configuration of a bulk import.

    Construction either yields a fully valid object or raises ConfigurationError.
    Instances are frozen, build a new one to change behaviour.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    defaults: ImportDefaults = Field(default_factory=ImportDefaults)
    limits: ImportLimits = Field(default_factory=ImportLimits)
    rate_limits: RateLimits = Field(default_factory=RateLimits)
    memory: MemoryLimits = Field(default_factory=MemoryLimits)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    artifacts: ArtifactSettings = Field(default_factory=ArtifactSettings)
    features: FeatureToggles = Field(default_factory=FeatureToggles)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(describe_validation_error(e)) from e

    @model_validator(mode="after")
    def _check_invariants(self) -> "ImportSafetyConfig":
        # ConfigurationError is not a ValueError, so pydantic lets it through unwrapped
        if self.limits.max_file_size_mb > MAX_FILE_SIZE_CEILING_MB:
            raise ConfigurationError(f"Maximum file size cannot exceed {MAX_FILE_SIZE_CEILING_MB}MB")

        if self.limits.max_rows > MAX_ROWS_CEILING:
            raise ConfigurationError(f"Maximum rows cannot exceed {MAX_ROWS_CEILING:,}")

        if self.memory.warning_threshold >= self.memory.critical_threshold:
            raise ConfigurationError("Warning threshold must be less than critical threshold")

        if self.memory.backpressure_threshold > self.memory.critical_threshold:
            raise ConfigurationError("Backpressure threshold should not exceed critical threshold")

        if self.defaults.force_prune_missing_variants and not self.features.enable_pruning:
            raise ConfigurationError("Cannot force prune when pruning feature is disabled")

        return self

    def is_within_limits(self, file_size_bytes: int, row_count: int) -> LimitCheck:
        """
        Check an upload against the file size and row ceilings.

        Only the first violation is reported, file size is checked before rows.
        """
        if file_size_bytes > self.limits.max_file_size_mb * BYTES_PER_MB:
            return LimitCheck(valid=False, reason=f"File size exceeds maximum of {self.limits.max_file_size_mb}MB")

        if row_count > self.limits.max_rows:
            return LimitCheck(valid=False, reason=f"Row count exceeds maximum of {self.limits.max_rows}")

        return LimitCheck(valid=True)

    def is_product_within_limits(self, variant_count: int, image_count: int, option_count: int) -> LimitCheck:
        """Check one product row group against the per-product ceilings, variants first."""
        if variant_count > self.limits.max_variants_per_product:
            return LimitCheck(
                valid=False,
                reason=f"Variant count exceeds maximum of {self.limits.max_variants_per_product} per product",
            )

        if image_count > self.limits.max_images_per_product:
            return LimitCheck(
                valid=False,
                reason=f"Image count exceeds maximum of {self.limits.max_images_per_product} per product",
            )

        if option_count > self.limits.max_options_per_product:
            return LimitCheck(
                valid=False,
                reason=f"Option count exceeds maximum of {self.limits.max_options_per_product} per product",
            )

        return LimitCheck(valid=True)

    def is_pruning_allowed(self, request: PruneRequest) -> PruneDecision:
        """
        Decide whether a prune request may go ahead.

        The global switch wins over everything in the request. A destructive
        (non dry-run) forced prune additionally needs a confirmation token.
        Acting on the decision is up to the caller.
        """
        if not self.features.enable_pruning:
            return PruneDecision(allowed=False, reason="Pruning feature is globally disabled")

        if request.force_prune_missing_variants and not request.dry_run and not request.prune_confirm_token:
            return PruneDecision(allowed=False, reason="Missing confirmation token for pruning")

        return PruneDecision(allowed=True)

    def memory_status(self, used_mb: float) -> MemoryStatus:
        """Classify a memory reading against the configured thresholds."""
        percentage = used_mb / self.memory.max_memory_usage_mb

        return MemoryStatus(
            used_mb=used_mb,
            percentage=percentage,
            is_warning=percentage >= self.memory.warning_threshold,
            should_apply_backpressure=percentage >= self.memory.backpressure_threshold,
            is_critical=percentage >= self.memory.critical_threshold,
        )


DEFAULT_CONFIG: dict[str, dict[str, Any]] = ImportSafetyConfig().model_dump()
