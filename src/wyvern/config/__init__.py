"""Configuration loading and schema."""

from wyvern.config.loader import CONFIG_FILENAME, load_config
from wyvern.config.schema import (
    PreReleaseCascade,
    PublishConfig,
    SelectionConfig,
    ToolchainConfig,
    VerifyConfig,
    WyvernConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "PreReleaseCascade",
    "PublishConfig",
    "SelectionConfig",
    "ToolchainConfig",
    "VerifyConfig",
    "WyvernConfig",
    "load_config",
]
