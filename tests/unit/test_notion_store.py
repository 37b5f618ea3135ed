"""Tests for NotionResourceStore against an httpx.MockTransport."""
from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from notion_safe.permissions.hierarchy import HierarchyResolver, ParentPointer
from notion_safe.store.base import (
    PropertyValue,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
)
from notion_safe.store.notion import NotionAPIError, NotionResourceStore, normalize_property

Handler = Callable[[httpx.Request], httpx.Response]


def _store(handler: Handler) -> NotionResourceStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.notion.com/v1"
    )
    return NotionResourceStore("secret_test", client=client)


def _routes(table: dict[tuple[str, str], httpx.Response]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        response = table.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(
                404, json={"object": "error", "code": "object_not_found", "message": "nope"}
            )
        return response

    return handler


# ---------------------------------------------------------------------------
# normalize_property
# ---------------------------------------------------------------------------


class TestNormalizeProperty:
    def test_people(self) -> None:
        payload = {"type": "people", "people": [{"id": "u1"}, {"id": "u2"}, {"name": "x"}]}
        assert normalize_property(payload) == PropertyValue("people", ("u1", "u2"))

    def test_select(self) -> None:
        payload = {"type": "select", "select": {"name": "Doing"}}
        assert normalize_property(payload) == PropertyValue("select", "Doing")

    def test_unset_select(self) -> None:
        assert normalize_property({"type": "select", "select": None}).value is None

    def test_status(self) -> None:
        payload = {"type": "status", "status": {"name": "Done", "color": "green"}}
        assert normalize_property(payload).value == "Done"

    def test_multi_select(self) -> None:
        payload = {"type": "multi_select", "multi_select": [{"name": "a"}, {"name": "b"}]}
        assert normalize_property(payload).value == ("a", "b")

    def test_checkbox(self) -> None:
        assert normalize_property({"type": "checkbox", "checkbox": True}).value is True

    def test_checkbox_garbage_is_none(self) -> None:
        assert normalize_property({"type": "checkbox", "checkbox": "yes"}).value is None

    def test_other_type_passed_through(self) -> None:
        payload = {"type": "number", "number": 7}
        assert normalize_property(payload) == PropertyValue("number", 7)


# ---------------------------------------------------------------------------
# fetch_parent / fetch_property
# ---------------------------------------------------------------------------


class TestFetchParent:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(_store(_routes({})), ResourceStore)

    @pytest.mark.asyncio
    async def test_returns_parent_object(self) -> None:
        parent = {"type": "page_id", "page_id": "p1"}
        store = _store(
            _routes({("GET", "/v1/pages/p2"): httpx.Response(200, json={"parent": parent})})
        )
        assert await store.fetch_parent(ResourceKind.PAGE, "p2") == parent

    @pytest.mark.asyncio
    async def test_uses_kind_specific_path(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"parent": {"type": "workspace"}})

        store = _store(handler)
        for kind in ResourceKind:
            await store.fetch_parent(kind, "x")
        assert seen == ["/v1/pages/x", "/v1/blocks/x", "/v1/databases/x"]

    @pytest.mark.asyncio
    async def test_missing_parent_is_workspace(self) -> None:
        store = _store(_routes({("GET", "/v1/pages/p1"): httpx.Response(200, json={})}))
        parent = await store.fetch_parent(ResourceKind.PAGE, "p1")
        assert parent["type"] == "workspace"

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        store = _store(_routes({}))
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await store.fetch_parent(ResourceKind.BLOCK, "b1")
        assert exc_info.value.resource_id == "b1"
        assert exc_info.value.kind is ResourceKind.BLOCK

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        body = {"object": "error", "code": "internal_server_error", "message": "boom"}
        store = _store(
            _routes({("GET", "/v1/pages/p1"): httpx.Response(500, json=body)})
        )
        with pytest.raises(NotionAPIError) as exc_info:
            await store.fetch_parent(ResourceKind.PAGE, "p1")
        assert exc_info.value.status_code == 500
        assert exc_info.value.code == "internal_server_error"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        store = _store(
            _routes({("GET", "/v1/pages/p1"): httpx.Response(502, text="Bad Gateway")})
        )
        with pytest.raises(NotionAPIError) as exc_info:
            await store.fetch_parent(ResourceKind.PAGE, "p1")
        assert exc_info.value.code == "http_error"

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ResourceStoreError, match="failed"):
            await _store(handler).fetch_parent(ResourceKind.PAGE, "p1")

    @pytest.mark.asyncio
    async def test_non_object_body(self) -> None:
        store = _store(_routes({("GET", "/v1/pages/p1"): httpx.Response(200, json=[1])}))
        with pytest.raises(ResourceStoreError, match="expected an object"):
            await store.fetch_parent(ResourceKind.PAGE, "p1")


class TestFetchProperty:
    @pytest.mark.asyncio
    async def test_reads_named_property(self) -> None:
        page = {
            "properties": {
                "Assignee": {"type": "people", "people": [{"id": "u1"}]},
            }
        }
        store = _store(_routes({("GET", "/v1/pages/p1"): httpx.Response(200, json=page)}))
        assert await store.fetch_property("p1", "Assignee") == PropertyValue("people", ("u1",))

    @pytest.mark.asyncio
    async def test_absent_property(self) -> None:
        store = _store(
            _routes({("GET", "/v1/pages/p1"): httpx.Response(200, json={"properties": {}})})
        )
        assert await store.fetch_property("p1", "Assignee") is None


class TestWithResolver:
    @pytest.mark.asyncio
    async def test_block_resolved_after_page_probe_404(self) -> None:
        store = _store(
            _routes(
                {
                    ("GET", "/v1/blocks/b1"): httpx.Response(
                        200, json={"parent": {"type": "page_id", "page_id": "p1"}}
                    )
                }
            )
        )
        pointer = await HierarchyResolver(store).get_parent("b1")
        assert pointer == ParentPointer("p1", ResourceKind.PAGE)


# ---------------------------------------------------------------------------
# Forwarded calls
# ---------------------------------------------------------------------------


class TestForwardedCalls:
    @pytest.mark.asyncio
    async def test_update_page_sends_properties(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"object": "page"})

        await _store(handler).update_page("p1", {"Done": {"checkbox": True}})
        assert captured[0].method == "PATCH"
        assert json.loads(captured[0].content) == {"properties": {"Done": {"checkbox": True}}}

    @pytest.mark.asyncio
    async def test_list_children_passes_cursor(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"results": []})

        await _store(handler).list_block_children("b1", start_cursor="c1", page_size=10)
        params = captured[0].url.params
        assert params["start_cursor"] == "c1"
        assert params["page_size"] == "10"

    @pytest.mark.asyncio
    async def test_query_database_posts(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"results": []})

        await _store(handler).query_database("d1", {"page_size": 5})
        assert captured[0].method == "POST"
        assert captured[0].url.path == "/v1/databases/d1/query"

    @pytest.mark.asyncio
    async def test_default_headers(self) -> None:
        store = NotionResourceStore("secret_abc", notion_version="2022-06-28")
        try:
            headers = store._client.headers
            assert headers["Authorization"] == "Bearer secret_abc"
            assert headers["Notion-Version"] == "2022-06-28"
        finally:
            await store.aclose()
