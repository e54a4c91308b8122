"""YAML configuration loading.

Service configuration files are parsed with ``yaml.safe_load`` (no Python
object tags) and handed to the pydantic config models for validation by
[BaseService.from_yaml()][instances_api.core.base_service.BaseService.from_yaml].
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML mapping from ``config_path``.

    Returns:
        The parsed mapping, or ``{}`` for an empty file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the document is valid YAML but its top
            level is not a mapping.
        yaml.YAMLError: If the file is not valid YAML.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{config_path}: expected a mapping at the top level, got {type(data).__name__}"
        )
    return data
