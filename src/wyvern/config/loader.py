"""Loading of wyvern.yaml."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from wyvern.config.schema import WyvernConfig
from wyvern.errors import ConfigError

CONFIG_FILENAME = "wyvern.yaml"


def load_config(root: Path) -> WyvernConfig:
    """Load the configuration of the workspace at ``root``.

    A missing file yields the defaults.

    Args:
        root: Workspace root directory.

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the file is not valid YAML or violates the schema.
    """
    path = root / CONFIG_FILENAME
    if not path.is_file():
        return WyvernConfig()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", path=path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration: {e}", path=path) from e

    if raw is None:
        return WyvernConfig()
    if not isinstance(raw, dict):
        raise ConfigError("Configuration must be a mapping", path=path)

    try:
        return WyvernConfig.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {errors}", path=path) from e
