"""notion-safe: rule-guarded Notion access for automated clients.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import notion_safe as ns
>>> ns.__version__
'0.1.0'
>>> engine = ns.PermissionEngine(ns.RuleSet(), store)
>>> decision = await engine.decide("1f2e3d4c-0000-0000-0000-00000000aaaa", "page:read")
>>> decision.allowed
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from notion_safe.permissions.engine import PermissionEngine
from notion_safe.permissions.hierarchy import HierarchyCache, HierarchyResolver, ParentPointer
from notion_safe.permissions.rules import (
    DatabaseScope,
    DecisionCode,
    DefaultPolicy,
    PageScope,
    PermissionDecision,
    Rule,
    RuleSet,
    WriteCondition,
)

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
from notion_safe.store.base import (
    PropertyValue,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
    StoreContractError,
)
from notion_safe.store.notion import NotionAPIError, NotionResourceStore

# ---------------------------------------------------------------------------
# Config, client, audit
# ---------------------------------------------------------------------------
from notion_safe.config.loader import ConfigError, ConfigLoader, NotionSafeConfig
from notion_safe.client import GuardedNotionClient, InvalidParentError, PermissionDeniedError
from notion_safe.audit.logger import AuditLogger

__all__ = [
    "__version__",
    # Permissions
    "DatabaseScope",
    "DecisionCode",
    "DefaultPolicy",
    "HierarchyCache",
    "HierarchyResolver",
    "PageScope",
    "ParentPointer",
    "PermissionDecision",
    "PermissionEngine",
    "Rule",
    "RuleSet",
    "WriteCondition",
    # Store
    "NotionAPIError",
    "NotionResourceStore",
    "PropertyValue",
    "ResourceKind",
    "ResourceNotFoundError",
    "ResourceStore",
    "ResourceStoreError",
    "StoreContractError",
    # Config, client, audit
    "AuditLogger",
    "ConfigError",
    "ConfigLoader",
    "GuardedNotionClient",
    "InvalidParentError",
    "NotionSafeConfig",
    "PermissionDeniedError",
]
