"""Rule configuration loader with Pydantic v2 validation.

Loads ``config.yaml`` into a typed :class:`NotionSafeConfig` and turns it
into the immutable :class:`~notion_safe.permissions.rules.RuleSet` the
engine consumes. Rule order in the file is preserved exactly.

Schema
------
::

    version: "1"
    default_permission: deny        # deny | read
    rules:
      - name: docs
        page_id: 1f2e3d4c-0000-0000-0000-00000000aaaa
        permissions: [page:read, block:read]
      - name: tasks
        database_id: 2a2b2c2d-0000-0000-0000-00000000bbbb
        permissions: [database:query, page:read, page:update]
        condition:
          property: Assignee
          type: people
          equals: 3c3c3c3c-0000-0000-0000-00000000cccc
    cache:
      ttl_seconds: 600
      max_depth: 10
    api:
      notion_version: "2022-06-28"
      timeout_seconds: 30
    audit:
      enabled: true
      log_path: ./notion_safe_audit.jsonl

The camelCase keys of older configs (``pageId``, ``databaseId``,
``defaultPermission``, ``writeCondition``) are accepted as aliases.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load(Path("config.yaml"))
>>> rule_set = config.to_rule_set()
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from notion_safe.permissions.identifiers import is_well_formed_id
from notion_safe.permissions.rules import (
    DatabaseScope,
    DefaultPolicy,
    GranularPermission,
    PageScope,
    PropertyType,
    Rule,
    RuleSet,
    WriteCondition,
)
from notion_safe.store.notion import (
    DEFAULT_BASE_URL,
    DEFAULT_NOTION_VERSION,
    DEFAULT_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NOTION_SAFE_CONFIG"
TOKEN_ENV_VAR = "NOTION_TOKEN"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "notion-safe" / "config.yaml"


class ConfigError(ValueError):
    """Raised when a configuration file is unreadable or invalid.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    issues:
        One ``location: message`` line per validation problem.
    """

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        issues: list[str] | None = None,
    ) -> None:
        self.config_path = config_path
        self.issues = issues or []
        prefix = f"[{config_path}] " if config_path else ""
        detail = "".join(f"\n  - {issue}" for issue in self.issues)
        super().__init__(f"{prefix}{message}{detail}")


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class ConditionConfig(BaseModel):
    """A write condition as written in the config file."""

    model_config = {"extra": "forbid"}

    property: str = Field(min_length=1)
    type: PropertyType
    equals: bool | str

    @model_validator(mode="after")
    def check_expected_type(self) -> ConditionConfig:
        if self.type == "checkbox" and not isinstance(self.equals, bool):
            raise ValueError("checkbox conditions require a boolean 'equals'")
        if self.type != "checkbox" and not isinstance(self.equals, str):
            raise ValueError(f"{self.type} conditions require a string 'equals'")
        return self

    def to_condition(self) -> WriteCondition:
        return WriteCondition(property=self.property, type=self.type, expected=self.equals)


class RuleConfig(BaseModel):
    """One rule entry. Exactly one of ``page_id`` / ``database_id`` is set."""

    model_config = {"extra": "allow"}

    name: str = Field(min_length=1)
    page_id: str | None = Field(
        default=None, validation_alias=AliasChoices("page_id", "pageId")
    )
    database_id: str | None = Field(
        default=None, validation_alias=AliasChoices("database_id", "databaseId")
    )
    permissions: list[GranularPermission] = Field(default_factory=list)
    condition: ConditionConfig | None = Field(
        default=None,
        validation_alias=AliasChoices("condition", "write_condition", "writeCondition"),
    )

    @field_validator("page_id", "database_id")
    @classmethod
    def validate_resource_id(cls, value: str | None) -> str | None:
        if value is not None and not is_well_formed_id(value):
            raise ValueError(f"'{value}' is not a valid Notion id (UUID expected)")
        return value

    @model_validator(mode="after")
    def check_single_scope(self) -> RuleConfig:
        if (self.page_id is None) == (self.database_id is None):
            raise ValueError("exactly one of page_id or database_id must be specified")
        return self

    def to_rule(self) -> Rule:
        scope = (
            PageScope(page_id=self.page_id)
            if self.page_id is not None
            else DatabaseScope(database_id=str(self.database_id))
        )
        return Rule(
            name=self.name,
            scope=scope,
            permissions=frozenset(self.permissions),
            condition=self.condition.to_condition() if self.condition else None,
        )


class CacheConfig(BaseModel):
    """Hierarchy cache and ancestry walk settings."""

    model_config = {"extra": "allow"}

    ttl_seconds: float = Field(default=600.0, gt=0)
    max_depth: int = Field(default=10, ge=1)


class ApiConfig(BaseModel):
    """Notion API connection settings."""

    model_config = {"extra": "allow"}

    base_url: str = Field(default=DEFAULT_BASE_URL)
    notion_version: str = Field(default=DEFAULT_NOTION_VERSION)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)


class AuditConfig(BaseModel):
    """Decision audit log settings."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path("./notion_safe_audit.jsonl"))


class NotionSafeConfig(BaseModel):
    """Top-level configuration schema."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    default_permission: Literal["deny", "read"] = Field(
        default="deny",
        validation_alias=AliasChoices("default_permission", "defaultPermission"),
    )
    rules: list[RuleConfig] = Field(default_factory=list)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: object) -> str:
        return str(value)

    def to_rule_set(self) -> RuleSet:
        """Build the immutable rule set, keeping the configured order."""
        return RuleSet(
            rules=tuple(rule.to_rule() for rule in self.rules),
            default_policy=DefaultPolicy(self.default_permission),
        )


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def default_config_path() -> Path:
    """Return ``$NOTION_SAFE_CONFIG`` or ``~/.config/notion-safe/config.yaml``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def get_notion_token() -> str:
    """Return the integration token from ``$NOTION_TOKEN``.

    Raises
    ------
    ConfigError
        When the variable is unset or empty.
    """
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if not token:
        raise ConfigError(f"{TOKEN_ENV_VAR} environment variable is not set.")
    return token


def _format_issues(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    ]


class ConfigLoader:
    """Loads and validates notion-safe YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load_string("rules: []")
    >>> config.default_permission
    'deny'
    """

    def load(self, config_path: str | Path) -> NotionSafeConfig:
        """Load and validate a YAML config file.

        Raises
        ------
        FileNotFoundError
            When the config file does not exist.
        ConfigError
            When the file cannot be read, parsed, or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                "Run 'notion-safe config init' to create a template."
            )
        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Failed to read config file: {exc}", str(config_path)) from exc

        config = self._validate(raw, str(config_path))
        logger.info(
            "Loaded %d rules from %s (default_permission=%s)",
            len(config.rules),
            config_path,
            config.default_permission,
        )
        return config

    def load_string(
        self, yaml_content: str, config_path: str | None = None
    ) -> NotionSafeConfig:
        """Load and validate a YAML string directly."""
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._validate(raw, config_path)

    def load_from_dict(
        self, raw: dict[str, object], config_path: str | None = None
    ) -> NotionSafeConfig:
        """Validate an already-parsed configuration mapping."""
        return self._validate(raw, config_path)

    def defaults(self) -> NotionSafeConfig:
        """Return a configuration with no rules and all defaults applied."""
        return NotionSafeConfig()

    def _validate(self, raw: object, config_path: str | None) -> NotionSafeConfig:
        if not isinstance(raw, dict):
            raise ConfigError("Config must be a YAML mapping.", config_path)
        try:
            return NotionSafeConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(
                "Invalid config file:", config_path, _format_issues(exc)
            ) from exc


def validate_config(config_path: str | Path | None = None) -> list[str]:
    """Return a list of problems with a config file; empty means valid."""
    path = Path(config_path) if config_path is not None else default_config_path()
    try:
        ConfigLoader().load(path)
    except FileNotFoundError:
        return [f"Config file not found: {path}"]
    except ConfigError as exc:
        return exc.issues or [str(exc)]
    return []
