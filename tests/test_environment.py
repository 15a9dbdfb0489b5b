"""
Environment Override Tests

The resolver only reads a mapping, so every case injects its own environment
instead of touching os.environ.
"""

from __future__ import annotations

import pytest

from catalog_import_safety.config import build_import_config
from catalog_import_safety.environment import get_environment_config
from catalog_import_safety.errors import ConfigurationError


def test_development_has_no_overlay():
    assert get_environment_config({}) == {}
    assert get_environment_config({"DEPLOYMENT_ENV": "development"}) == {}


def test_production_overlay_is_safe_by_default():
    overlay = get_environment_config({"DEPLOYMENT_ENV": "production"})

    assert overlay["defaults"] == {"dry_run": True, "force_prune_missing_variants": False}
    assert overlay["limits"] == {"max_concurrent_imports": 1, "max_file_size_mb": 50, "max_rows": 5000}
    assert overlay["features"] == {"enable_pruning": False}


def test_staging_overlay_raises_ceilings_only():
    overlay = get_environment_config({"DEPLOYMENT_ENV": "Staging"})

    assert overlay == {"limits": {"max_file_size_mb": 200, "max_rows": 20000}}


def test_explicit_variables_win_over_tier():
    overlay = get_environment_config(
        {
            "DEPLOYMENT_ENV": "production",
            "IMPORT_MAX_FILE_SIZE_MB": "75",
            "IMPORT_MAX_ROWS": "8000",
            "IMPORT_ENABLE_PRUNING": "TRUE",
        }
    )

    assert overlay["limits"]["max_file_size_mb"] == "75"
    assert overlay["limits"]["max_rows"] == "8000"
    assert overlay["limits"]["max_concurrent_imports"] == 1
    assert overlay["features"]["enable_pruning"] is True

    config = build_import_config(environment_overrides=overlay)
    assert config.limits.max_file_size_mb == 75
    assert config.limits.max_rows == 8000
    assert config.features.enable_pruning is True
    assert config.defaults.dry_run is True


def test_pruning_flag_needs_literal_true():
    assert get_environment_config({"IMPORT_ENABLE_PRUNING": "1"}) == {}
    assert get_environment_config({"IMPORT_ENABLE_PRUNING": "false"}) == {}


def test_artifact_variables():
    overlay = get_environment_config(
        {
            "ARTIFACTS_PATH": "/srv/imports",
            "ARTIFACT_RETENTION_DAYS": "14",
            "ARTIFACT_CLEANUP_DRY_RUN": "true",
            "ARTIFACT_CLEANUP_SCHEDULE": "30 3 * * *",
        }
    )

    config = build_import_config(environment_overrides=overlay)

    assert config.artifacts.storage_path == "/srv/imports"
    assert config.artifacts.retention_days == 14
    assert config.artifacts.cleanup_dry_run is True
    assert config.artifacts.cleanup_schedule == "30 3 * * *"


@pytest.mark.parametrize(
    "environ, message",
    [
        ({"IMPORT_MAX_ROWS": "lots"}, "limits.max_rows"),
        ({"IMPORT_MAX_FILE_SIZE_MB": "900"}, "Maximum file size cannot exceed 500MB"),
        ({"DEPLOYMENT_ENV": "staging", "IMPORT_MAX_ROWS": "250000"}, "Maximum rows cannot exceed 100,000"),
    ],
)
def test_bad_environment_values_fail_at_construction(environ, message):
    overlay = get_environment_config(environ)

    with pytest.raises(ConfigurationError, match=message):
        build_import_config(environment_overrides=overlay)
