"""Permission evaluation engine for guarded Notion access.

Resolves whether a resource falls under a configured rule by walking the
remote parent hierarchy, decides whether the requested operation is
granted, and evaluates property conditions on write operations.

Example
-------
::

    from notion_safe.permissions import PermissionEngine, RuleSet

    engine = PermissionEngine(RuleSet(), store)
    decision = await engine.decide("b1", "block:read")
    assert not decision.allowed
"""
from __future__ import annotations

from notion_safe.permissions.conditions import ConditionEvaluator, PropertyMatcher
from notion_safe.permissions.engine import PermissionEngine
from notion_safe.permissions.hierarchy import (
    CacheEntry,
    HierarchyCache,
    HierarchyResolver,
    ParentPointer,
    decode_parent,
)
from notion_safe.permissions.identifiers import ids_match, normalize_id
from notion_safe.permissions.matcher import RuleMatcher
from notion_safe.permissions.rules import (
    KNOWN_PERMISSIONS,
    READ_OPERATIONS,
    WRITE_OPERATIONS,
    DatabaseScope,
    DecisionCode,
    DefaultPolicy,
    PageScope,
    PermissionDecision,
    Rule,
    RuleSet,
    WriteCondition,
)

__all__ = [
    # Engine
    "PermissionEngine",
    "RuleMatcher",
    "ConditionEvaluator",
    "PropertyMatcher",
    # Hierarchy
    "CacheEntry",
    "HierarchyCache",
    "HierarchyResolver",
    "ParentPointer",
    "decode_parent",
    # Identifiers
    "ids_match",
    "normalize_id",
    # Data model
    "KNOWN_PERMISSIONS",
    "READ_OPERATIONS",
    "WRITE_OPERATIONS",
    "DatabaseScope",
    "DecisionCode",
    "DefaultPolicy",
    "PageScope",
    "PermissionDecision",
    "Rule",
    "RuleSet",
    "WriteCondition",
]
