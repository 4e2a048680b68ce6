"""Tests for chat_context.provider.ContextProvider."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from chat_context.context import ChatContext
from chat_context.errors import CorruptDocument, WriteFailure
from chat_context.provider import ContextProvider, normalize_entity_id
from chat_context.store.file_store import FileContextBackend
from chat_context.store.memory_store import MemoryContextBackend


@pytest.fixture
def backend(tmp_path):
    return FileContextBackend(tmp_path)


@pytest.fixture
def provider(backend):
    return ContextProvider(backend)


class TestNormalizeEntityId:
    def test_int_and_str_normalize_to_same_key(self):
        assert normalize_entity_id(42) == normalize_entity_id("42") == "42"

    @pytest.mark.parametrize("bad", [True, 4.2, None, ("a",)])
    def test_unsupported_types_raise(self, bad):
        with pytest.raises(TypeError):
            normalize_entity_id(bad)

    @pytest.mark.parametrize("bad", ["", ".", "..", "a/b", "..\\x"])
    def test_unsafe_ids_raise(self, bad):
        with pytest.raises(ValueError):
            normalize_entity_id(bad)


class TestGetOrCreate:
    async def test_creates_document_from_defaults(self, provider, backend, tmp_path):
        context = await provider.get_or_create(42, {"myVariable": "initial value"})
        assert isinstance(context, ChatContext)
        assert context.entity_id == "42"
        assert context.get("myVariable") == "initial value"
        assert (tmp_path / "42.json").exists()
        assert await backend.load("42") == {"myVariable": "initial value"}

    async def test_creates_empty_document_without_defaults(self, provider, backend):
        await provider.get_or_create("user-1")
        assert await backend.load("user-1") == {}

    async def test_defaults_are_copied(self, provider):
        defaults = {"a": 1}
        context = await provider.get_or_create(1, defaults)
        defaults["b"] = 2
        assert context.all() == {"a": 1}

    async def test_existing_document_wins_over_defaults(self, provider, backend):
        await backend.save("7", {"firstName": "Guido"})
        context = await provider.get_or_create(7, {"firstName": "Default", "extra": 1})
        assert context.all() == {"firstName": "Guido"}
        assert await backend.load("7") == {"firstName": "Guido"}

    async def test_cache_hit_returns_same_object_and_ignores_defaults(self, provider):
        first = await provider.get_or_create(42, {"a": 1})
        await first.set("b", 2)
        second = await provider.get_or_create("42", {"a": "ignored"})
        assert second is first
        assert second.all() == {"a": 1, "b": 2}

    async def test_corrupt_document_is_surfaced(self, provider, tmp_path):
        (tmp_path / "13.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(CorruptDocument):
            await provider.get_or_create(13, {"a": 1})
        assert provider.get(13) is None
        assert (tmp_path / "13.json").read_text(encoding="utf-8") == "{oops"

    async def test_failed_creation_releases_in_flight_marker(self, provider, tmp_path):
        (tmp_path / "13.json").write_text("{oops", encoding="utf-8")
        results = await asyncio.gather(
            provider.get_or_create(13),
            provider.get_or_create(13),
            return_exceptions=True,
        )
        assert all(isinstance(result, CorruptDocument) for result in results)
        assert provider._creating == {}
        assert provider._waiting == {}

        (tmp_path / "13.json").write_text("{\"a\": 1}", encoding="utf-8")
        context = await provider.get_or_create(13)
        assert context.all() == {"a": 1}
        assert provider._creating == {}

    async def test_nested_defaults_are_copied(self, provider, backend):
        defaults = {"profile": {"name": "Guido"}}
        context = await provider.get_or_create(3, defaults)
        defaults["profile"]["name"] = "Changed"
        assert context.get("profile") == {"name": "Guido"}
        assert await backend.load("3") == {"profile": {"name": "Guido"}}

    async def test_write_failure_is_surfaced_and_not_cached(self):
        backend = MemoryContextBackend()
        provider = ContextProvider(backend)
        with pytest.raises(WriteFailure):
            await provider.get_or_create(1, {"obj": object()})
        assert provider.get(1) is None

    async def test_concurrent_calls_share_one_context(self):
        backend = MemoryContextBackend()
        loads = []
        original_load = backend.load

        async def slow_load(entity_id):
            loads.append(entity_id)
            await asyncio.sleep(0.01)
            return await original_load(entity_id)

        backend.load = slow_load
        provider = ContextProvider(backend)
        first, second = await asyncio.gather(
            provider.get_or_create(5, {"a": 1}),
            provider.get_or_create(5, {"a": 2}),
        )
        assert first is second
        assert first.all() == {"a": 1}
        assert loads == ["5"]

    async def test_unrelated_ids_do_not_wait_on_each_other(self):
        backend = MemoryContextBackend()
        started = asyncio.Event()
        release = asyncio.Event()
        original_load = backend.load

        async def slow_load(entity_id):
            if entity_id == "slow":
                started.set()
                await release.wait()
            return await original_load(entity_id)

        backend.load = slow_load
        provider = ContextProvider(backend)
        slow = asyncio.ensure_future(provider.get_or_create("slow"))
        await started.wait()
        fast = await asyncio.wait_for(provider.get_or_create("fast"), timeout=1)
        assert fast.entity_id == "fast"
        assert not slow.done()
        release.set()
        assert (await slow).entity_id == "slow"


class TestGet:
    async def test_get_before_creation_returns_none(self, provider, backend):
        await backend.save("42", {"a": 1})
        assert provider.get(42) is None

    async def test_get_returns_cached_context(self, provider):
        context = await provider.get_or_create(42, {})
        assert provider.get(42) is context
        assert provider.get("42") is context


class TestLifecycle:
    async def test_delete_removes_cache_and_document(self, provider, backend, tmp_path):
        context = await provider.get_or_create(42, {"a": 1})
        await context.set("b", 2)
        await provider.delete(42)
        assert provider.get(42) is None
        assert not (tmp_path / "42.json").exists()

    async def test_delete_unknown_id_is_noop(self, provider):
        await provider.delete("nobody")  # Should not raise

    async def test_entity_ids_and_cached_ids(self, provider, backend):
        await backend.save("stored", {})
        await provider.get_or_create("b")
        await provider.get_or_create("a")
        assert await provider.entity_ids() == ["a", "b", "stored"]
        assert provider.cached_ids() == ["a", "b"]

    async def test_close_flushes_and_closes_backend(self):
        backend = MemoryContextBackend()
        backend.close = AsyncMock()
        provider = ContextProvider(backend)
        context = await provider.get_or_create(1)
        pending = asyncio.ensure_future(context.set("a", 1))
        await asyncio.sleep(0)
        await provider.close()
        await pending
        backend.close.assert_awaited_once()
        assert await backend.load("1") == {"a": 1}

    def test_backend_property(self, provider, backend):
        assert provider.backend is backend
