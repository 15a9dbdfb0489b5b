"""Metrics emitted after each artifact cleanup pass.

The record shape is fixed here, the transport is up to whoever wires the
service: the default sink only logs, the Prometheus sink keeps one gauge per
field so the latest pass can be scraped.
"""

from typing import Optional
from typing import Protocol

from prometheus_client import CollectorRegistry
from prometheus_client import Gauge
from pydantic import BaseModel
from pydantic import ConfigDict

from catalog_import_safety.data_models.cleanup import CleanupResult
from catalog_import_safety.logger import LOGGING_PROVIDER

logger = LOGGING_PROVIDER.new_logger("catalog_import_safety.metrics")

METRIC_PREFIX = "artifact_cleanup"


class CleanupMetrics(BaseModel):
    """Per-pass metrics record."""

    model_config = ConfigDict(frozen=True)

    scanned: int
    deleted: int
    retained: int
    errors: int
    freed_space_mb: float
    execution_time_ms: int
    success_rate_percent: Optional[float]

    @classmethod
    def from_result(cls, result: CleanupResult) -> "CleanupMetrics":
        return cls(
            scanned=result.scanned,
            deleted=result.deleted,
            retained=result.retained,
            errors=result.errors,
            freed_space_mb=result.freed_space_mb,
            execution_time_ms=result.execution_time_ms,
            success_rate_percent=result.success_rate,
        )

    def as_flat_dict(self) -> dict[str, float | int | None]:
        """Keys in the dotted form most metric backends expect, e.g. artifact_cleanup.deleted."""
        return {f"{METRIC_PREFIX}.{k}": v for k, v in self.model_dump().items()}


class MetricsSink(Protocol):
    def emit(self, metrics: CleanupMetrics) -> None: ...


class LoggingMetricsSink:
    """Writes the metrics record to the log at debug level."""

    def emit(self, metrics: CleanupMetrics) -> None:
        logger.debug(f"Cleanup metrics: {metrics.as_flat_dict()}")


class PrometheusMetricsSink:
    """
    Publishes the latest pass as Prometheus gauges.

    A pass that scanned nothing has no success rate, its gauge is set to NaN.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        # a private registry per sink unless told otherwise, so several services do not clash
        self.registry = registry if registry is not None else CollectorRegistry()

        def gauge(suffix: str, documentation: str) -> Gauge:
            return Gauge(f"{METRIC_PREFIX}_{suffix}", documentation, registry=self.registry)

        self._gauges: dict[str, Gauge] = {
            "scanned": gauge("scanned", "Job directories inspected in the last pass"),
            "deleted": gauge("deleted", "Job directories deleted in the last pass"),
            "retained": gauge("retained", "Job directories kept in the last pass"),
            "errors": gauge("errors", "Job directories that failed in the last pass"),
            "freed_space_mb": gauge("freed_space_mb", "Disk space freed by the last pass in MB"),
            "execution_time_ms": gauge("duration_ms", "Wall-clock duration of the last pass in ms"),
            "success_rate_percent": gauge(
                "success_rate_percent", "Directories handled without error in the last pass (0-100)"
            ),
        }

    def emit(self, metrics: CleanupMetrics) -> None:
        for name, value in metrics.model_dump().items():
            self._gauges[name].set(float("nan") if value is None else value)


def emit_cleanup_metrics(result: CleanupResult, sinks: list[MetricsSink]) -> CleanupMetrics:
    """
    Send the metrics record of a pass to every sink.

    A failing sink is logged and skipped, metrics must never fail a cleanup pass.
    """
    metrics = CleanupMetrics.from_result(result)
    for sink in sinks:
        try:
            sink.emit(metrics)
        except Exception as e:
            logger.warning(f"Metrics sink {type(sink).__name__} failed: {e}", exc_info=True)
    return metrics
