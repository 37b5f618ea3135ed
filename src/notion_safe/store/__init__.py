"""Remote resource store: the engine-facing protocol and the Notion backend."""
from __future__ import annotations

from notion_safe.store.base import (
    PROBE_ORDER,
    PropertyValue,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
    StoreContractError,
)
from notion_safe.store.notion import NotionAPIError, NotionResourceStore

__all__ = [
    "PROBE_ORDER",
    "NotionAPIError",
    "NotionResourceStore",
    "PropertyValue",
    "ResourceKind",
    "ResourceNotFoundError",
    "ResourceStore",
    "ResourceStoreError",
    "StoreContractError",
]
