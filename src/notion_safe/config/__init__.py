"""Configuration: YAML rule file schema, loader, and starter template."""
from __future__ import annotations

from notion_safe.config.loader import (
    ConfigError,
    ConfigLoader,
    NotionSafeConfig,
    RuleConfig,
    default_config_path,
    get_notion_token,
    validate_config,
)
from notion_safe.config.templates import CONFIG_TEMPLATE, write_config_template

__all__ = [
    "CONFIG_TEMPLATE",
    "ConfigError",
    "ConfigLoader",
    "NotionSafeConfig",
    "RuleConfig",
    "default_config_path",
    "get_notion_token",
    "validate_config",
    "write_config_template",
]
