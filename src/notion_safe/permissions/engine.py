"""Permission decision engine.

:class:`PermissionEngine` is the entry point the command layer talks to.
For each ``(resource_id, operation)`` it finds the first matching rule,
checks that the rule grants the operation, evaluates the rule's write
condition for write-class operations, and falls back to the default
policy when no rule matches. Denials are ordinary results, never
exceptions.

Example
-------
::

    engine = PermissionEngine(rule_set, store)
    decision = await engine.decide("b1", "page:read")
    if not decision:
        print(decision.reason)
"""
from __future__ import annotations

import logging

from notion_safe.permissions.conditions import ConditionEvaluator
from notion_safe.permissions.hierarchy import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_MAX_DEPTH,
    HierarchyCache,
    HierarchyResolver,
)
from notion_safe.permissions.matcher import RuleMatcher
from notion_safe.permissions.rules import (
    KNOWN_PERMISSIONS,
    DecisionCode,
    DefaultPolicy,
    PermissionDecision,
    Rule,
    RuleSet,
    is_read_operation,
    is_write_operation,
)
from notion_safe.store.base import ResourceStore

logger = logging.getLogger(__name__)


class PermissionEngine:
    """Decides whether an operation on a resource may be forwarded.

    The engine owns its :class:`RuleSet` (read-only) and its hierarchy
    cache. To change rules, build a new engine.

    Parameters
    ----------
    rule_set:
        Ordered rules and the default policy.
    store:
        Remote store used for parent lookups and condition properties.
    cache_ttl:
        Lifetime in seconds of cached parent lookups. Ignored when
        ``cache`` is given.
    max_depth:
        Maximum number of parent hops when testing page-scope ancestry.
    cache:
        Optional cache to share between engines.
    """

    def __init__(
        self,
        rule_set: RuleSet,
        store: ResourceStore,
        *,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        max_depth: int = DEFAULT_MAX_DEPTH,
        cache: HierarchyCache | None = None,
    ) -> None:
        self._rule_set = rule_set
        self._resolver = HierarchyResolver(
            store, cache if cache is not None else HierarchyCache(ttl_seconds=cache_ttl)
        )
        self._matcher = RuleMatcher(self._resolver, max_depth=max_depth)
        self._conditions = ConditionEvaluator(store)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def decide(
        self,
        resource_id: str,
        operation: str,
        condition_target_id: str | None = None,
    ) -> PermissionDecision:
        """Decide whether *operation* on *resource_id* is allowed.

        Parameters
        ----------
        resource_id:
            The resource the operation targets. For creation operations
            this is the parent the new page is created under.
        operation:
            One of the nine granular permissions (e.g. ``"page:update"``).
        condition_target_id:
            Page whose properties a write condition is checked against.
            Defaults to ``resource_id``.

        Returns
        -------
        PermissionDecision
        """
        if operation not in KNOWN_PERMISSIONS:
            return self._finish(
                allowed=False,
                reason=f"Unknown operation '{operation}'",
                code=DecisionCode.UNKNOWN_OPERATION,
                operation=operation,
                resource_id=resource_id,
            )

        rule = await self._matcher.find_matching_rule(resource_id, self._rule_set.rules)
        if rule is None:
            return self._default_decision(resource_id, operation)

        if not rule.grants(operation):
            return self._finish(
                allowed=False,
                reason=f"Operation '{operation}' not allowed by rule '{rule.name}'",
                code=DecisionCode.OPERATION_NOT_GRANTED,
                operation=operation,
                resource_id=resource_id,
                rule=rule,
            )

        if is_write_operation(operation) and rule.condition is not None:
            target = condition_target_id or resource_id
            if not await self._conditions.evaluate(rule.condition, target):
                return self._finish(
                    allowed=False,
                    reason=(
                        f"Write condition not met: {rule.condition.property} "
                        f"must equal {rule.condition.expected!r}"
                    ),
                    code=DecisionCode.CONDITION_NOT_MET,
                    operation=operation,
                    resource_id=resource_id,
                    rule=rule,
                )

        return self._finish(
            allowed=True,
            reason=f"Allowed by rule '{rule.name}'",
            code=DecisionCode.RULE_ALLOWED,
            operation=operation,
            resource_id=resource_id,
            rule=rule,
        )

    def clear_cache(self) -> None:
        """Discard every cached parent lookup."""
        self._resolver.cache.clear()

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def resolver(self) -> HierarchyResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _default_decision(self, resource_id: str, operation: str) -> PermissionDecision:
        if (
            self._rule_set.default_policy is DefaultPolicy.ALLOW_READ
            and is_read_operation(operation)
        ):
            return self._finish(
                allowed=True,
                reason="Allowed by default read permission",
                code=DecisionCode.DEFAULT_READ,
                operation=operation,
                resource_id=resource_id,
            )
        return self._finish(
            allowed=False,
            reason="No matching rule, default deny",
            code=DecisionCode.DEFAULT_DENY,
            operation=operation,
            resource_id=resource_id,
        )

    @staticmethod
    def _finish(
        *,
        allowed: bool,
        reason: str,
        code: DecisionCode,
        operation: str,
        resource_id: str,
        rule: Rule | None = None,
    ) -> PermissionDecision:
        logger.debug(
            "Permission %s: op=%s resource=%s code=%s rule=%s",
            "ALLOW" if allowed else "DENY",
            operation,
            resource_id,
            code.value,
            rule.name if rule else None,
        )
        return PermissionDecision(
            allowed=allowed,
            reason=reason,
            code=code,
            operation=operation,
            resource_id=resource_id,
            matched_rule=rule,
        )
