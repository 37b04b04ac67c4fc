"""Tests for the HTTP remote store."""

import json

import httpx
import pytest

from pamsync.config import Settings
from pamsync.storage import HttpRemoteStore, collection_path

BASE = "https://sync.example.com"


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRemoteStore(BASE + "/", "tok-123", client=client)


class TestRequests:
    @pytest.mark.asyncio
    async def test_upsert_puts_document(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        store = _store(handler)
        await store.upsert_document("u1", "tasks", "abc", {"id": "abc", "title": "T"})

        assert seen["method"] == "PUT"
        assert seen["url"] == f"{BASE}/users/u1/tasks/abc"
        assert seen["auth"] == "Bearer tok-123"
        assert seen["body"] == {"id": "abc", "title": "T"}

    @pytest.mark.asyncio
    async def test_upsert_error_status_raises(self):
        store = _store(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await store.upsert_document("u1", "tasks", "abc", {})

    @pytest.mark.asyncio
    async def test_fetch_accepts_documents_envelope(self):
        docs = [{"id": "a"}, {"id": "b"}]
        store = _store(lambda request: httpx.Response(200, json={"documents": docs}))
        assert await store.fetch_all_documents("u1", "projects") == docs

    @pytest.mark.asyncio
    async def test_fetch_accepts_bare_list(self):
        store = _store(lambda request: httpx.Response(200, json=[{"id": "a"}]))
        assert await store.fetch_all_documents("u1", "projects") == [{"id": "a"}]

    @pytest.mark.asyncio
    async def test_fetch_rejects_other_shapes(self):
        store = _store(lambda request: httpx.Response(200, json={"documents": "nope"}))
        with pytest.raises(ValueError):
            await store.fetch_all_documents("u1", "projects")

    @pytest.mark.asyncio
    async def test_fetch_rejects_object_without_documents(self):
        store = _store(lambda request: httpx.Response(200, json={"items": [{"id": "a"}]}))
        with pytest.raises(ValueError):
            await store.fetch_all_documents("u1", "projects")

    @pytest.mark.asyncio
    async def test_delete_ignores_missing(self):
        store = _store(lambda request: httpx.Response(404))
        await store.delete_document("u1", "projects", "gone")

    @pytest.mark.asyncio
    async def test_delete_other_errors_raise(self):
        store = _store(lambda request: httpx.Response(403))
        with pytest.raises(httpx.HTTPStatusError):
            await store.delete_document("u1", "projects", "x")

    @pytest.mark.asyncio
    async def test_path_segments_are_quoted(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.raw_path.decode()
            return httpx.Response(200, json=[])

        await _store(handler).fetch_all_documents("a b", "tasks")
        assert seen["path"] == "/users/a%20b/tasks"

    @pytest.mark.asyncio
    async def test_timeout_propagates(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(httpx.ReadTimeout):
            await _store(handler).fetch_all_documents("u1", "tasks")


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_ok(self):
        store = _store(lambda request: httpx.Response(200))
        assert await store.health_check()

    @pytest.mark.asyncio
    async def test_health_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        assert not await _store(handler).health_check()


class TestConstruction:
    def test_requires_backend_url(self):
        with pytest.raises(ValueError):
            HttpRemoteStore("", "tok")

    def test_from_settings_without_credentials(self, tmp_path):
        with pytest.raises(ValueError):
            HttpRemoteStore.from_settings(Settings(data_dir=tmp_path))

    def test_from_settings(self, tmp_path):
        settings = Settings(
            data_dir=tmp_path, backend_url="https://api.example.com/", auth_token="t", request_timeout=3
        )
        store = HttpRemoteStore.from_settings(settings)
        assert store.backend_url == "https://api.example.com"

    @pytest.mark.asyncio
    async def test_async_context_closes_owned_client(self):
        async with HttpRemoteStore(BASE, "tok") as store:
            store._http()
        assert store._client is None


class TestCollectionPath:
    def test_path(self):
        assert collection_path("u1", "tasks") == "users/u1/tasks"

    @pytest.mark.parametrize("user_id", ["", "a/b"])
    def test_invalid_user(self, user_id):
        with pytest.raises(ValueError):
            collection_path(user_id, "tasks")
