"""Exception hierarchy for import safety configuration and artifact cleanup.

Pre-flight rejections (oversized files, refused pruning) are not exceptions; they
are returned as ``LimitCheck`` / ``PruneDecision`` values. Everything here is
either fatal to the caller (bad configuration, concurrent cleanup) or fatal to a
single cleanup pass.
"""

from typing import Optional

__all__ = [
    "CatalogImportError",
    "ConfigurationError",
    "CleanupError",
    "CleanupPassFailure",
    "CleanupInProgressError",
]


class CatalogImportError(RuntimeError):
    """Base exception for the import safety subsystem."""


class ConfigurationError(CatalogImportError):
    """Raised when an ImportSafetyConfig or CleanupConfig violates an invariant."""


class CleanupError(CatalogImportError):
    """Base exception for artifact cleanup failures."""


class CleanupPassFailure(CleanupError):
    """Raised when a whole cleanup pass cannot run, e.g. the artifacts root is missing."""

    def __init__(self, message: str, *, execution_time_ms: Optional[int] = None) -> None:
        super().__init__(message)
        self.execution_time_ms = execution_time_ms


class CleanupInProgressError(CleanupError):
    """Raised when cleanup() is called while another pass is still running."""
