"""Notion REST API implementation of the resource store.

:class:`NotionResourceStore` wraps an :class:`httpx.AsyncClient` and
provides both the two lookups the permission engine needs
(``fetch_parent`` / ``fetch_property``) and the raw page, database and
block calls the guarded client forwards once a decision allows them.

Request timeouts are owned here; the permission engine has none.

Example
-------
::

    async with NotionResourceStore(token="secret_...") as store:
        page = await store.retrieve_page("1f2e3d4c-...")
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from notion_safe.store.base import (
    PropertyValue,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStoreError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT_SECONDS = 30.0

_RETRIEVE_PATHS: dict[ResourceKind, str] = {
    ResourceKind.PAGE: "/pages/{id}",
    ResourceKind.BLOCK: "/blocks/{id}",
    ResourceKind.DATABASE: "/databases/{id}",
}


class NotionAPIError(ResourceStoreError):
    """A non-success response from the Notion API.

    Attributes
    ----------
    status_code:
        HTTP status of the response.
    code:
        Notion error code (e.g. ``"validation_error"``), or ``"http_error"``
        when the body carried none.
    """

    def __init__(self, status_code: int, code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"Notion API error {status_code} ({code}): {message}")


# ---------------------------------------------------------------------------
# Property normalization
# ---------------------------------------------------------------------------


def _option_name(option: object) -> str | None:
    if isinstance(option, Mapping):
        name = option.get("name")
        return name if isinstance(name, str) else None
    return None


def normalize_property(payload: Mapping[str, object]) -> PropertyValue:
    """Reduce a raw Notion property object to a :class:`PropertyValue`."""
    prop_type = str(payload.get("type", ""))
    raw = payload.get(prop_type)

    match prop_type:
        case "people":
            people = raw if isinstance(raw, list) else []
            ids = tuple(
                str(person["id"])
                for person in people
                if isinstance(person, Mapping) and person.get("id")
            )
            return PropertyValue(type=prop_type, value=ids)
        case "select" | "status":
            return PropertyValue(type=prop_type, value=_option_name(raw))
        case "multi_select":
            options = raw if isinstance(raw, list) else []
            names = tuple(
                name for name in (_option_name(o) for o in options) if name is not None
            )
            return PropertyValue(type=prop_type, value=names)
        case "checkbox":
            return PropertyValue(type=prop_type, value=raw if isinstance(raw, bool) else None)
        case _:
            return PropertyValue(type=prop_type, value=raw)


# ---------------------------------------------------------------------------
# NotionResourceStore
# ---------------------------------------------------------------------------


class NotionResourceStore:
    """Async Notion API client implementing :class:`ResourceStore`.

    Parameters
    ----------
    token:
        Integration token sent as a bearer credential.
    base_url:
        API root. Default ``https://api.notion.com/v1``.
    notion_version:
        Value of the ``Notion-Version`` header.
    timeout_seconds:
        Per-request timeout.
    client:
        Optional pre-built :class:`httpx.AsyncClient` (used by tests with
        :class:`httpx.MockTransport`). Its base URL and headers are used
        as-is.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": notion_version,
                "Content-Type": "application/json",
            },
        )

    async def __aenter__(self) -> NotionResourceStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this store created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # ResourceStore protocol
    # ------------------------------------------------------------------

    async def fetch_parent(
        self, kind: ResourceKind, resource_id: str
    ) -> Mapping[str, object]:
        """Retrieve *resource_id* as *kind* and return its ``parent`` object."""
        resource = await self._request(
            "GET", _RETRIEVE_PATHS[kind].format(id=resource_id), kind=kind, resource_id=resource_id
        )
        parent = resource.get("parent")
        if not isinstance(parent, Mapping):
            # A retrievable resource without a parent object sits at the root.
            return {"type": "workspace", "workspace": True}
        return parent

    async def fetch_property(
        self, page_id: str, property_name: str
    ) -> PropertyValue | None:
        """Retrieve the page and return the named property, if present."""
        page = await self.retrieve_page(page_id)
        properties = page.get("properties")
        if not isinstance(properties, Mapping):
            return None
        prop = properties.get(property_name)
        if not isinstance(prop, Mapping):
            return None
        return normalize_property(prop)

    # ------------------------------------------------------------------
    # Forwarded API calls
    # ------------------------------------------------------------------

    async def retrieve_page(self, page_id: str) -> dict[str, object]:
        return await self._request(
            "GET", f"/pages/{page_id}", kind=ResourceKind.PAGE, resource_id=page_id
        )

    async def create_page(self, params: Mapping[str, object]) -> dict[str, object]:
        return await self._request("POST", "/pages", json=dict(params))

    async def update_page(
        self, page_id: str, properties: Mapping[str, object]
    ) -> dict[str, object]:
        return await self._request(
            "PATCH",
            f"/pages/{page_id}",
            json={"properties": dict(properties)},
            kind=ResourceKind.PAGE,
            resource_id=page_id,
        )

    async def retrieve_database(self, database_id: str) -> dict[str, object]:
        return await self._request(
            "GET",
            f"/databases/{database_id}",
            kind=ResourceKind.DATABASE,
            resource_id=database_id,
        )

    async def query_database(
        self, database_id: str, params: Mapping[str, object] | None = None
    ) -> dict[str, object]:
        return await self._request(
            "POST",
            f"/databases/{database_id}/query",
            json=dict(params or {}),
            kind=ResourceKind.DATABASE,
            resource_id=database_id,
        )

    async def retrieve_block(self, block_id: str) -> dict[str, object]:
        return await self._request(
            "GET", f"/blocks/{block_id}", kind=ResourceKind.BLOCK, resource_id=block_id
        )

    async def list_block_children(
        self,
        block_id: str,
        start_cursor: str | None = None,
        page_size: int | None = None,
    ) -> dict[str, object]:
        params: dict[str, object] = {}
        if start_cursor:
            params["start_cursor"] = start_cursor
        if page_size:
            params["page_size"] = page_size
        return await self._request(
            "GET",
            f"/blocks/{block_id}/children",
            params=params,
            kind=ResourceKind.BLOCK,
            resource_id=block_id,
        )

    async def append_block_children(
        self, block_id: str, children: list[dict[str, object]]
    ) -> dict[str, object]:
        return await self._request(
            "PATCH",
            f"/blocks/{block_id}/children",
            json={"children": children},
            kind=ResourceKind.BLOCK,
            resource_id=block_id,
        )

    async def delete_block(self, block_id: str) -> dict[str, object]:
        return await self._request(
            "DELETE", f"/blocks/{block_id}", kind=ResourceKind.BLOCK, resource_id=block_id
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, object] | None = None,
        params: dict[str, object] | None = None,
        kind: ResourceKind | None = None,
        resource_id: str | None = None,
    ) -> dict[str, object]:
        """Send one request and return the decoded JSON object body.

        Raises
        ------
        ResourceNotFoundError
            On HTTP 404.
        NotionAPIError
            On any other non-2xx status.
        ResourceStoreError
            On transport failures or a body that is not a JSON object.
        """
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise ResourceStoreError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 404 and resource_id is not None:
            raise ResourceNotFoundError(resource_id, kind)
        if response.is_error:
            code, message = _error_details(response)
            logger.debug("%s %s -> %d %s", method, path, response.status_code, code)
            raise NotionAPIError(response.status_code, code, message)

        try:
            body = response.json()
        except ValueError as exc:
            raise ResourceStoreError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ResourceStoreError(
                f"{method} {path} returned {type(body).__name__}, expected an object"
            )
        return body


def _error_details(response: httpx.Response) -> tuple[str, str]:
    try:
        body = response.json()
    except ValueError:
        return "http_error", response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("code", "http_error")), str(body.get("message", ""))
    return "http_error", str(body)
