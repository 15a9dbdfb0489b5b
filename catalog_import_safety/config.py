from typing import Any
from typing import Mapping

from catalog_import_safety.data_models.import_config import DEFAULT_CONFIG
from catalog_import_safety.data_models.import_config import ImportSafetyConfig
from catalog_import_safety.environment import get_environment_config
from catalog_import_safety.helpers.merge import merge_config_layers
from catalog_import_safety.logger import LOGGING_PROVIDER

logger = LOGGING_PROVIDER.new_logger("catalog_import_safety.config")


def build_import_config(
    overrides: Mapping[str, Any] | None = None,
    environment_overrides: Mapping[str, Any] | None = None,
) -> ImportSafetyConfig:
    """
    Build the canonical import config: defaults <- environment <- caller overrides.

    Args:
        overrides: Partial config from the caller, highest precedence.
        environment_overrides: Environment layer. Resolved from os.environ when None,
            pass {} to ignore the environment entirely.

    Returns:
        The validated config.

    Raises:
        ConfigurationError: if the merged config violates any invariant.
    """
    if environment_overrides is None:
        environment_overrides = get_environment_config()

    merged = merge_config_layers(DEFAULT_CONFIG, environment_overrides, overrides)
    config = ImportSafetyConfig(**merged)

    logger.debug(
        f"Import config built (max_file_size_mb={config.limits.max_file_size_mb}, "
        f"max_rows={config.limits.max_rows}, dry_run={config.defaults.dry_run}, "
        f"enable_pruning={config.features.enable_pruning})"
    )
    return config
