"""First-match rule lookup.

:class:`RuleMatcher` walks the rules in declared order and returns the
first one whose scope contains the resource. Rules are never combined.

- Page scope: the resource is the page or any descendant within the
  ancestry depth bound.
- Database scope: the resource is the database itself, or its immediate
  parent is the database. Blocks nested inside those pages are not
  covered.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from notion_safe.permissions.hierarchy import DEFAULT_MAX_DEPTH, HierarchyResolver
from notion_safe.permissions.identifiers import ids_match
from notion_safe.permissions.rules import DatabaseScope, PageScope, Rule

logger = logging.getLogger(__name__)


class RuleMatcher:
    """Finds the first rule whose scope covers a resource.

    Parameters
    ----------
    resolver:
        Resolver used for parent and ancestry lookups.
    max_depth:
        Ancestry depth bound for page-scoped rules.
    """

    def __init__(
        self,
        resolver: HierarchyResolver,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._resolver = resolver
        self._max_depth = max_depth

    async def find_matching_rule(
        self, resource_id: str, rules: Iterable[Rule]
    ) -> Rule | None:
        """Return the first rule in *rules* that covers *resource_id*."""
        for rule in rules:
            if await self.rule_covers(rule, resource_id):
                logger.debug("Resource %s matched rule %r", resource_id, rule.name)
                return rule
        return None

    async def rule_covers(self, rule: Rule, resource_id: str) -> bool:
        """Return True if the scope of *rule* contains *resource_id*."""
        scope = rule.scope
        if isinstance(scope, (PageScope, DatabaseScope)) and not (
            isinstance(scope.anchor_id, str) and scope.anchor_id
        ):
            scope = None

        if isinstance(scope, PageScope):
            return await self._resolver.is_descendant_of(
                resource_id, scope.page_id, self._max_depth
            )
        if isinstance(scope, DatabaseScope):
            if ids_match(resource_id, scope.database_id):
                return True
            parent = await self._resolver.get_parent(resource_id)
            return parent is not None and ids_match(parent.parent_id, scope.database_id)

        logger.warning("Rule %r has no usable scope (%r); skipping", rule.name, scope)
        return False
