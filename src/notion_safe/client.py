"""Permission-guarded Notion client.

:class:`GuardedNotionClient` asks the :class:`PermissionEngine` before
every page, database, or block call and forwards the call to the
:class:`NotionResourceStore` only when the decision allows it. A denial
raises :class:`PermissionDeniedError` carrying the decision.

Operation mapping
-----------------
=========================  ================  ==========================
Method                     Permission        Checked resource
=========================  ================  ==========================
get_page                   page:read         page
create_page                page:create       parent page
create_page                database:create   parent database
update_page                page:update       page (condition: page)
get_database               database:read     database
query_database             database:query    database
create_database_page       database:create   database
get_block                  block:read        block
get_block_children         block:read        block
append_block_children      block:append      block
delete_block               block:delete      block
=========================  ================  ==========================

Creation is checked against the *parent*, because the new page does not
exist yet. A rule condition on a creation permission is therefore
evaluated against the parent's properties.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from notion_safe.permissions.engine import PermissionEngine
from notion_safe.permissions.rules import PermissionDecision
from notion_safe.store.notion import NotionResourceStore

if TYPE_CHECKING:
    from notion_safe.audit.logger import AuditLogger
    from notion_safe.config.loader import NotionSafeConfig

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when the engine denies an operation.

    Attributes
    ----------
    decision:
        The denying :class:`PermissionDecision`.
    """

    code = "PERMISSION_DENIED"

    def __init__(self, decision: PermissionDecision) -> None:
        self.decision = decision
        super().__init__(decision.reason)

    def to_dict(self) -> dict[str, object]:
        return {"error": self.decision.reason, "code": self.code}


class InvalidParentError(ValueError):
    """Raised when a page is created under something other than a page or database."""

    code = "INVALID_PARENT"

    def to_dict(self) -> dict[str, object]:
        return {"error": str(self), "code": self.code}


class GuardedNotionClient:
    """Notion client that enforces the configured rules.

    Parameters
    ----------
    engine:
        Engine that decides each operation.
    store:
        Store the allowed calls are forwarded to.
    audit_logger:
        Optional audit log; every decision is recorded when set.
    """

    def __init__(
        self,
        engine: PermissionEngine,
        store: NotionResourceStore,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._engine = engine
        self._store = store
        self._audit = audit_logger

    @classmethod
    def from_config(cls, config: NotionSafeConfig, token: str) -> GuardedNotionClient:
        """Build store, engine, and audit logger from a loaded config."""
        from notion_safe.audit.logger import AuditLogger

        store = NotionResourceStore(
            token,
            base_url=config.api.base_url,
            notion_version=config.api.notion_version,
            timeout_seconds=config.api.timeout_seconds,
        )
        engine = PermissionEngine(
            config.to_rule_set(),
            store,
            cache_ttl=config.cache.ttl_seconds,
            max_depth=config.cache.max_depth,
        )
        audit = AuditLogger(config.audit.log_path) if config.audit.enabled else None
        return cls(engine, store, audit_logger=audit)

    async def __aenter__(self) -> GuardedNotionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._store.aclose()

    @property
    def engine(self) -> PermissionEngine:
        return self._engine

    def clear_cache(self) -> None:
        """Discard cached parent lookups so external moves apply immediately."""
        self._engine.clear_cache()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    async def get_page(self, page_id: str) -> dict[str, object]:
        await self.ensure_permission(page_id, "page:read")
        return await self._store.retrieve_page(page_id)

    async def create_page(self, params: Mapping[str, object]) -> dict[str, object]:
        """Create a page; a database parent is checked like :meth:`create_database_page`."""
        parent = params.get("parent")
        parent_id: object = None
        operation = "page:create"
        if isinstance(parent, Mapping):
            parent_id = parent.get("page_id")
            if not parent_id:
                parent_id = parent.get("database_id")
                operation = "database:create"
        if not isinstance(parent_id, str) or not parent_id:
            raise InvalidParentError("Invalid parent type: expected page_id or database_id")

        await self.ensure_permission(parent_id, operation)
        return await self._store.create_page(params)

    async def update_page(
        self, page_id: str, properties: Mapping[str, object]
    ) -> dict[str, object]:
        await self.ensure_permission(page_id, "page:update", page_id)
        return await self._store.update_page(page_id, properties)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def get_database(self, database_id: str) -> dict[str, object]:
        await self.ensure_permission(database_id, "database:read")
        return await self._store.retrieve_database(database_id)

    async def query_database(
        self, database_id: str, params: Mapping[str, object] | None = None
    ) -> dict[str, object]:
        await self.ensure_permission(database_id, "database:query")
        return await self._store.query_database(database_id, params)

    async def create_database_page(
        self, database_id: str, properties: Mapping[str, object]
    ) -> dict[str, object]:
        await self.ensure_permission(database_id, "database:create")
        return await self._store.create_page(
            {"parent": {"database_id": database_id}, "properties": dict(properties)}
        )

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    async def get_block(self, block_id: str) -> dict[str, object]:
        await self.ensure_permission(block_id, "block:read")
        return await self._store.retrieve_block(block_id)

    async def get_block_children(
        self,
        block_id: str,
        start_cursor: str | None = None,
        page_size: int | None = None,
    ) -> dict[str, object]:
        await self.ensure_permission(block_id, "block:read")
        return await self._store.list_block_children(block_id, start_cursor, page_size)

    async def append_block_children(
        self, block_id: str, children: list[dict[str, object]]
    ) -> dict[str, object]:
        await self.ensure_permission(block_id, "block:append")
        return await self._store.append_block_children(block_id, children)

    async def delete_block(self, block_id: str) -> dict[str, object]:
        await self.ensure_permission(block_id, "block:delete")
        return await self._store.delete_block(block_id)

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    async def check_permission(
        self,
        resource_id: str,
        operation: str,
        condition_target_id: str | None = None,
    ) -> PermissionDecision:
        """Decide and audit *operation* on *resource_id* without raising."""
        decision = await self._engine.decide(resource_id, operation, condition_target_id)
        if self._audit is not None:
            self._audit.log_decision(decision)
        return decision

    async def ensure_permission(
        self,
        resource_id: str,
        operation: str,
        condition_target_id: str | None = None,
    ) -> PermissionDecision:
        """Return the allowing decision or raise :class:`PermissionDeniedError`."""
        decision = await self.check_permission(resource_id, operation, condition_target_id)
        if not decision.allowed:
            logger.info(
                "Denied %s on %s: %s", operation, resource_id, decision.reason
            )
            raise PermissionDeniedError(decision)
        return decision
