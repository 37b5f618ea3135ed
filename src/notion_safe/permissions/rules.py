"""Rule set data model for the permission engine.

A :class:`RuleSet` is an ordered, immutable sequence of :class:`Rule`
objects plus a :class:`DefaultPolicy`. Rules are evaluated in declaration
order and the first rule whose scope contains the target resource decides
the outcome. Rules are never merged.

Granular permissions:
- page:read, page:update, page:create
- database:read, database:query, database:create
- block:read, block:append, block:delete

Example
-------
::

    rule_set = RuleSet(
        rules=(
            Rule(
                name="docs",
                scope=PageScope(page_id="1f2e3d4c-0000-0000-0000-00000000aaaa"),
                permissions=frozenset({"page:read", "block:read"}),
            ),
        ),
        default_policy=DefaultPolicy.DENY,
    )
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

# ---------------------------------------------------------------------------
# Permission vocabulary
# ---------------------------------------------------------------------------

GranularPermission = Literal[
    "page:read",
    "page:update",
    "page:create",
    "database:read",
    "database:query",
    "database:create",
    "block:read",
    "block:append",
    "block:delete",
]

KNOWN_PERMISSIONS: frozenset[str] = frozenset(
    [
        "page:read",
        "page:update",
        "page:create",
        "database:read",
        "database:query",
        "database:create",
        "block:read",
        "block:append",
        "block:delete",
    ]
)

READ_OPERATIONS: frozenset[str] = frozenset(
    ["page:read", "database:read", "database:query", "block:read"]
)

# Operations with side effects; only these are gated by a rule condition.
WRITE_OPERATIONS: frozenset[str] = frozenset(
    ["page:update", "page:create", "database:create", "block:append", "block:delete"]
)

PropertyType = Literal["people", "select", "multi_select", "status", "checkbox"]

CONDITION_TYPES: frozenset[str] = frozenset(
    ["people", "select", "multi_select", "status", "checkbox"]
)


def is_read_operation(operation: str) -> bool:
    """Return True if *operation* is read-class."""
    return operation in READ_OPERATIONS


def is_write_operation(operation: str) -> bool:
    """Return True if *operation* is write-class."""
    return operation in WRITE_OPERATIONS


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageScope:
    """Anchor a rule to a page and everything beneath it."""

    page_id: str

    @property
    def anchor_id(self) -> str:
        return self.page_id


@dataclass(frozen=True)
class DatabaseScope:
    """Anchor a rule to a database and the pages filed directly in it."""

    database_id: str

    @property
    def anchor_id(self) -> str:
        return self.database_id


RuleScope = Union[PageScope, DatabaseScope]


# ---------------------------------------------------------------------------
# Condition and Rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WriteCondition:
    """Property predicate that gates write-class operations.

    Attributes
    ----------
    property:
        Name of the page property to inspect (e.g. ``"Assignee"``).
    type:
        Expected Notion property type. A property of any other type fails
        the condition.
    expected:
        Value to compare against: a user id for ``people``, an option name
        for ``select`` / ``multi_select`` / ``status``, a boolean for
        ``checkbox``.
    """

    property: str
    type: str
    expected: str | bool

    def describe(self) -> str:
        """Return a short human-readable form, e.g. ``Assignee must equal 'u-1'``."""
        return f"{self.property} must equal {self.expected!r}"


@dataclass(frozen=True)
class Rule:
    """A named scope, the permissions it grants, and an optional condition.

    Attributes
    ----------
    name:
        Rule name, used in decision reasons and audit records.
    scope:
        :class:`PageScope` or :class:`DatabaseScope`. ``None`` marks a
        malformed rule which never matches.
    permissions:
        Granted granular permissions.
    condition:
        Optional :class:`WriteCondition` applied to write-class operations.
    """

    name: str
    scope: RuleScope | None
    permissions: frozenset[str] = field(default_factory=frozenset)
    condition: WriteCondition | None = None

    def grants(self, operation: str) -> bool:
        """Return True if this rule grants *operation*."""
        return operation in self.permissions


# ---------------------------------------------------------------------------
# RuleSet
# ---------------------------------------------------------------------------


class DefaultPolicy(str, Enum):
    """Fallback applied when no rule matches a resource."""

    DENY = "deny"
    ALLOW_READ = "read"


@dataclass(frozen=True)
class RuleSet:
    """Ordered rules plus the default policy.

    The rule order is exactly the configured order. There is no mutation
    API; to reload, build a new RuleSet (and a new engine around it).
    """

    rules: tuple[Rule, ...] = ()
    default_policy: DefaultPolicy = DefaultPolicy.DENY

    def __post_init__(self) -> None:
        # Accept any sequence from callers but always store a tuple.
        object.__setattr__(self, "rules", tuple(self.rules))

    def __len__(self) -> int:
        return len(self.rules)

    def rule_named(self, name: str) -> Rule | None:
        """Return the first rule called *name*, if any."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None


# ---------------------------------------------------------------------------
# PermissionDecision
# ---------------------------------------------------------------------------


class DecisionCode(str, Enum):
    """Machine-readable outcome of a permission decision."""

    DEFAULT_READ = "default_read"
    DEFAULT_DENY = "default_deny"
    UNKNOWN_OPERATION = "unknown_operation"
    OPERATION_NOT_GRANTED = "operation_not_granted"
    CONDITION_NOT_MET = "condition_not_met"
    RULE_ALLOWED = "rule_allowed"


@dataclass(frozen=True)
class PermissionDecision:
    """Immutable result of a permission decision.

    Attributes
    ----------
    allowed:
        Whether the operation may be forwarded.
    reason:
        Human-readable explanation of the decision.
    code:
        :class:`DecisionCode` that distinguishes the outcome for audit
        tooling without parsing ``reason``.
    operation:
        The operation that was checked.
    resource_id:
        The resource the operation targets.
    matched_rule:
        The rule that decided the outcome, or ``None`` when the default
        policy applied.
    """

    allowed: bool
    reason: str
    code: DecisionCode
    operation: str
    resource_id: str
    matched_rule: Rule | None = None

    def __bool__(self) -> bool:
        """Return True if the operation is allowed."""
        return self.allowed

    @property
    def rule_name(self) -> str | None:
        return self.matched_rule.name if self.matched_rule else None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable summary for audit records."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "code": self.code.value,
            "operation": self.operation,
            "resource_id": self.resource_id,
            "rule": self.rule_name,
        }
