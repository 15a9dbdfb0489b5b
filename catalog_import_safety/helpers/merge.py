from typing import Any
from typing import Mapping

from catalog_import_safety.errors import ConfigurationError


def merge_config_layers(base: Mapping[str, Any], *layers: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """
    Merge partial configs onto a base config, section by section and field by field.

    Later layers win. A layer never replaces a whole section: fields it leaves out
    (or sets to None) keep the value from the layers beneath. None as a whole layer
    or as a section means "nothing to override". Inputs are not mutated.

    Args:
        base: Full config, keyed by section, e.g. DEFAULT_CONFIG.
        layers: Partial configs in ascending precedence, e.g. environment then caller.

    Returns:
        A new dict of new section dicts.
    """
    merged: dict[str, dict[str, Any]] = {section: dict(fields) for section, fields in base.items()}

    for layer in layers:
        if layer is None:
            continue

        for section, fields in layer.items():
            if fields is None:
                continue
            if not isinstance(fields, Mapping):
                raise ConfigurationError(
                    f"Override for section '{section}' must be a mapping, got {type(fields).__name__}"
                )

            # unknown sections are carried along so that validation can reject them
            target = merged.setdefault(section, {})
            target.update({k: v for k, v in fields.items() if v is not None})

    return merged
