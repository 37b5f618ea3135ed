"""Shared fixtures: an in-memory, call-counting resource store."""
from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping

import pytest

from notion_safe.permissions.engine import PermissionEngine
from notion_safe.permissions.identifiers import normalize_id
from notion_safe.permissions.rules import DefaultPolicy, Rule, RuleSet
from notion_safe.store.base import (
    PropertyValue,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStoreError,
)

_PARENT_FIELD: dict[ResourceKind, str] = {
    ResourceKind.PAGE: "page_id",
    ResourceKind.BLOCK: "block_id",
    ResourceKind.DATABASE: "database_id",
}


class StubStore:
    """In-memory ResourceStore that records every remote call."""

    def __init__(self) -> None:
        self._nodes: dict[str, tuple[ResourceKind, Mapping[str, object]]] = {}
        self._properties: dict[str, dict[str, PropertyValue]] = {}
        self.failing: set[str] = set()
        self.parent_calls: list[tuple[ResourceKind, str]] = []
        self.property_calls: list[tuple[str, str]] = []

    # -- building the tree ------------------------------------------------

    def add(
        self,
        resource_id: str,
        kind: ResourceKind,
        parent_id: str | None = None,
        parent_kind: ResourceKind = ResourceKind.PAGE,
    ) -> None:
        if parent_id is None:
            payload: Mapping[str, object] = {"type": "workspace", "workspace": True}
        else:
            field = _PARENT_FIELD[parent_kind]
            payload = {"type": field, field: parent_id}
        self._nodes[normalize_id(resource_id)] = (kind, payload)

    def add_page(self, page_id: str, parent_id: str | None = None,
                 parent_kind: ResourceKind = ResourceKind.PAGE) -> None:
        self.add(page_id, ResourceKind.PAGE, parent_id, parent_kind)

    def add_block(self, block_id: str, parent_id: str,
                  parent_kind: ResourceKind = ResourceKind.PAGE) -> None:
        self.add(block_id, ResourceKind.BLOCK, parent_id, parent_kind)

    def add_database(self, database_id: str, parent_id: str | None = None) -> None:
        self.add(database_id, ResourceKind.DATABASE, parent_id, ResourceKind.PAGE)

    def set_property(self, page_id: str, name: str, prop_type: str, value: object) -> None:
        self._properties.setdefault(normalize_id(page_id), {})[name] = PropertyValue(
            type=prop_type, value=value
        )

    # -- ResourceStore protocol ---------------------------------------------

    async def fetch_parent(
        self, kind: ResourceKind, resource_id: str
    ) -> Mapping[str, object]:
        self.parent_calls.append((kind, resource_id))
        if resource_id in self.failing:
            raise ResourceStoreError(f"transient failure for {resource_id}")
        node = self._nodes.get(normalize_id(resource_id))
        if node is None or node[0] is not kind:
            raise ResourceNotFoundError(resource_id, kind)
        return node[1]

    async def fetch_property(self, page_id: str, property_name: str) -> PropertyValue | None:
        self.property_calls.append((page_id, property_name))
        if page_id in self.failing:
            raise ResourceStoreError(f"transient failure for {page_id}")
        if normalize_id(page_id) not in self._properties and normalize_id(page_id) not in self._nodes:
            raise ResourceNotFoundError(page_id, ResourceKind.PAGE)
        return self._properties.get(normalize_id(page_id), {}).get(property_name)

    # -- inspection -----------------------------------------------------------

    def lookups_for(self, resource_id: str) -> int:
        """Number of fetch_parent calls made for *resource_id* (any kind)."""
        counts = Counter(normalize_id(rid) for _, rid in self.parent_calls)
        return counts[normalize_id(resource_id)]


@pytest.fixture()
def store() -> StubStore:
    return StubStore()


@pytest.fixture()
def make_engine(store: StubStore) -> Callable[..., PermissionEngine]:
    """Factory: build an engine over the stub store from a list of rules."""

    def _make(
        rules: list[Rule] | None = None,
        default_policy: DefaultPolicy = DefaultPolicy.DENY,
        **kwargs: object,
    ) -> PermissionEngine:
        rule_set = RuleSet(rules=tuple(rules or ()), default_policy=default_policy)
        return PermissionEngine(rule_set, store, **kwargs)  # type: ignore[arg-type]

    return _make
