import os
from typing import Any
from typing import Mapping

# API Configuration
API_PORT = int(os.getenv("PORT", 13676))

# Deployment tier: development, staging or production
DEPLOYMENT_ENV = os.getenv("DEPLOYMENT_ENV", "development")

# Path Configuration
LOG_DIR = os.getenv("LOG_DIR", None)

# Arm the cleanup schedule on startup even outside production
ARTIFACT_CLEANUP_AUTOSTART = os.getenv("ARTIFACT_CLEANUP_AUTOSTART", "false").lower() == "true"

PRODUCTION = "production"
STAGING = "staging"


def _is_true(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def get_environment_config(environ: Mapping[str, str] | None = None) -> dict[str, dict[str, Any]]:
    """
    Derive the environment layer of the import configuration.

    The tier overlay comes first, explicit variables are applied on top of it.
    Production is safe by default: dry runs, one import at a time, small ceilings
    and pruning off. Values are passed through as found, they are coerced and
    validated when the ImportSafetyConfig is constructed.

    Args:
        environ: Environment to read from. Defaults to os.environ.

    Returns:
        A partial config, keyed by section.
    """
    if environ is None:
        environ = os.environ

    tier = environ.get("DEPLOYMENT_ENV", "development").strip().lower()
    config: dict[str, dict[str, Any]] = {}

    if tier == PRODUCTION:
        config["defaults"] = {"dry_run": True, "force_prune_missing_variants": False}
        config["limits"] = {"max_concurrent_imports": 1, "max_file_size_mb": 50, "max_rows": 5000}
        config["features"] = {"enable_pruning": False}
    elif tier == STAGING:
        config["limits"] = {"max_file_size_mb": 200, "max_rows": 20000}

    if environ.get("IMPORT_MAX_FILE_SIZE_MB"):
        config.setdefault("limits", {})["max_file_size_mb"] = environ["IMPORT_MAX_FILE_SIZE_MB"]

    if environ.get("IMPORT_MAX_ROWS"):
        config.setdefault("limits", {})["max_rows"] = environ["IMPORT_MAX_ROWS"]

    if _is_true(environ.get("IMPORT_ENABLE_PRUNING")):
        config.setdefault("features", {})["enable_pruning"] = True

    if environ.get("ARTIFACTS_PATH"):
        config.setdefault("artifacts", {})["storage_path"] = environ["ARTIFACTS_PATH"]

    if environ.get("ARTIFACT_RETENTION_DAYS"):
        config.setdefault("artifacts", {})["retention_days"] = environ["ARTIFACT_RETENTION_DAYS"]

    if environ.get("ARTIFACT_CLEANUP_SCHEDULE"):
        config.setdefault("artifacts", {})["cleanup_schedule"] = environ["ARTIFACT_CLEANUP_SCHEDULE"]

    if _is_true(environ.get("ARTIFACT_CLEANUP_DRY_RUN")):
        config.setdefault("artifacts", {})["cleanup_dry_run"] = True

    return config
