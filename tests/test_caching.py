"""Test caching."""
import asyncio

import fakeredis
import pytest

from kgpath import caching
from kgpath.ars import ARSClient
from kgpath.caching import (
    async_locking_cache,
    clear_cache,
    get_ars_message,
    save_ars_message,
)
from kgpath.config import settings


@pytest.fixture
def fake_redis(monkeypatch):
    """Redis clients backed by one in-memory server."""
    server = fakeredis.FakeServer()
    monkeypatch.setattr(
        caching.aioredis,
        "Redis",
        lambda connection_pool=None: fakeredis.FakeAsyncRedis(server=server),
    )
    return server


@pytest.mark.asyncio
async def test_batch_caching():
    """Repeated arguments are served from cache."""
    @async_locking_cache
    async def fetch(endpoint, ids):
        return f"{endpoint}:{','.join(ids)}"
    await fetch("efetch.fcgi", ["1", "2"])
    assert fetch.cache_info().hits == 0
    await fetch("efetch.fcgi", ["3"])
    assert fetch.cache_info().hits == 0
    assert await fetch("efetch.fcgi", ["1", "2"]) == "efetch.fcgi:1,2"
    assert fetch.cache_info().hits == 1


@pytest.mark.asyncio
async def test_cache_function_error():
    """Only coroutine functions can be cached."""
    with pytest.raises(ValueError):
        @async_locking_cache
        def fetch(ids):
            return ids


@pytest.mark.asyncio
async def test_caching_maxsize():
    """Least recently used entries are dropped."""
    async def fetch(ids):
        return ids
    fetch = async_locking_cache(fetch, maxsize=1)
    await fetch(["1"])
    await fetch(["2"])
    await fetch(["1"])
    assert fetch.cache_info().hits == 0
    await fetch(["1"])
    assert fetch.cache_info().hits == 1
    assert fetch.cache_info().currsize == 1


@pytest.mark.asyncio
async def test_concurrent_calls_share_task():
    """Identical concurrent calls run once."""
    calls = []

    @async_locking_cache
    async def fetch(ids):
        calls.append(ids)
        await asyncio.sleep(0.01)
        return ids

    results = await asyncio.gather(fetch(["1"]), fetch(["1"]), fetch(["2"]))
    assert results == [["1"], ["1"], ["2"]]
    assert calls == [["1"], ["2"]]


@pytest.mark.asyncio
async def test_failures_not_cached():
    """A failed call is retried next time."""
    attempts = []

    @async_locking_cache
    async def fetch(ids):
        attempts.append(ids)
        if len(attempts) == 1:
            raise RuntimeError("PubMed unavailable")
        return ids

    with pytest.raises(RuntimeError):
        await fetch(["1"])
    assert await fetch(["1"]) == ["1"]
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_ars_message_cache(fake_redis):
    """ARS messages round trip through Redis per environment."""
    message = {"fields": {"data": {"message": {"results": []}}}}
    assert await get_ars_message("prod", "abc") is None
    await save_ars_message("prod", "abc", message)
    assert await get_ars_message("prod", "abc") == message
    assert await get_ars_message("test", "abc") is None

    await clear_cache()
    assert await get_ars_message("prod", "abc") is None


@pytest.mark.asyncio
async def test_ars_client_uses_cache(fake_redis, monkeypatch, httpx_mock):
    """Cached messages are not fetched again."""
    monkeypatch.setattr(settings, "use_cache", True)
    message = {"fields": {"data": {"message": {"results": []}}}}
    await save_ars_message("dev", "abc", message)
    # no HTTP mock registered: a request would fail
    assert await ARSClient("dev").fetch_message("abc") == message


@pytest.mark.asyncio
async def test_redis_unavailable(monkeypatch):
    """Cache failures read as a miss."""
    def broken(connection_pool=None):
        raise ConnectionError("no redis")
    monkeypatch.setattr(caching.aioredis, "Redis", broken)
    assert await get_ars_message("prod", "abc") is None
    await save_ars_message("prod", "abc", {})
