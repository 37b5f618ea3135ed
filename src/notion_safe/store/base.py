"""Remote resource store interface consumed by the permission engine.

The engine needs exactly two capabilities from the remote store:

- ``fetch_parent(kind, resource_id)``: the raw parent pointer of a
  resource retrieved as a given kind (page, block, database).
- ``fetch_property(page_id, property_name)``: a single page property,
  normalized into a :class:`PropertyValue`.

Any object implementing :class:`ResourceStore` can back the engine; the
production implementation is
:class:`~notion_safe.store.notion.NotionResourceStore`.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class ResourceKind(str, Enum):
    """Kinds of resources in the remote hierarchy."""

    PAGE = "page"
    BLOCK = "block"
    DATABASE = "database"


# The store cannot say what kind an id is, so lookups try each kind in
# this order and keep the first successful retrieval.
PROBE_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.PAGE,
    ResourceKind.BLOCK,
    ResourceKind.DATABASE,
)


@dataclass(frozen=True)
class PropertyValue:
    """A page property reduced to what condition matching needs.

    Attributes
    ----------
    type:
        Notion property type as reported by the store (``"people"``,
        ``"select"``, ...).
    value:
        ``people`` → tuple of user ids; ``select`` / ``status`` → option
        name or ``None``; ``multi_select`` → tuple of option names;
        ``checkbox`` → bool; anything else → the raw payload.
    """

    type: str
    value: object


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ResourceStoreError(Exception):
    """An expected remote failure: network error, HTTP error, bad payload.

    The permission engine always resolves these fail-closed.
    """


class ResourceNotFoundError(ResourceStoreError):
    """The resource does not exist or the integration cannot see it.

    Attributes
    ----------
    resource_id:
        The identifier that could not be retrieved.
    kind:
        The kind it was retrieved as, if known.
    """

    def __init__(self, resource_id: str, kind: ResourceKind | None = None) -> None:
        self.resource_id = resource_id
        self.kind = kind
        label = kind.value if kind else "resource"
        super().__init__(f"{label} {resource_id!r} not found or not accessible")


class StoreContractError(RuntimeError):
    """The store broke its interface contract (e.g. returned a non-mapping).

    Unlike :class:`ResourceStoreError` this is never swallowed by the
    engine and propagates to the caller.
    """


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ResourceStore(Protocol):
    """Async capabilities the permission engine consumes."""

    async def fetch_parent(
        self, kind: ResourceKind, resource_id: str
    ) -> Mapping[str, object]:
        """Return the raw parent pointer of *resource_id* retrieved as *kind*.

        Raises
        ------
        ResourceStoreError
            When the resource cannot be retrieved as *kind*.
        """
        ...

    async def fetch_property(
        self, page_id: str, property_name: str
    ) -> PropertyValue | None:
        """Return the named page property, or ``None`` when absent.

        Raises
        ------
        ResourceStoreError
            When the page cannot be retrieved.
        """
        ...
