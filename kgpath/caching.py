"""Caching."""

import asyncio
from collections import OrderedDict, namedtuple
from functools import wraps
import gzip
import json

import redis.asyncio as aioredis

from kgpath.config import settings


ars_redis_pool = aioredis.BlockingConnectionPool(
    host=settings.redis_host,
    port=settings.redis_port,
    db=0,
    password=settings.redis_password,
    max_connections=10,
    timeout=60,
)


def async_locking_cache(fcn, maxsize=128):
    """Cache decorator.

    Concurrent calls with the same arguments share one task. Calls that
    raise are dropped from the cache so they can be retried.

    Taken in part from:
    https://github.com/aio-libs/async-lru/blob/master/async_lru.py
    """
    if not asyncio.iscoroutinefunction(fcn):
        raise ValueError("Function is not asynchronous")

    @wraps(fcn)
    async def wrapper(*args, **kwargs):
        """Wrap function."""
        key = json.dumps((args, kwargs))
        task = wrapper.cache.get(key)
        if task is None:
            _cache_miss(key)
            task = wrapper.cache[key] = asyncio.ensure_future(fcn(*args, **kwargs))
        else:
            _cache_hit(key)
        if maxsize is not None and len(wrapper.cache) > maxsize:
            # remove least recently used
            wrapper.cache.popitem(last=False)
        try:
            return await task
        except Exception:
            if wrapper.cache.get(key) is task:
                del wrapper.cache[key]
            raise

    def cache_clear():
        wrapper.hits = wrapper.misses = 0
        wrapper.cache = OrderedDict()

    _Cache_Info = namedtuple("CacheInfo", ["hits", "misses", "maxsize", "currsize"])

    def cache_info():
        return _Cache_Info(wrapper.hits, wrapper.misses, maxsize, len(wrapper.cache))

    def _cache_touch(key):
        try:
            wrapper.cache.move_to_end(key)
        except KeyError:
            pass

    def _cache_hit(key):
        wrapper.hits += 1
        _cache_touch(key)

    def _cache_miss(key):
        wrapper.misses += 1
        _cache_touch(key)

    cache_clear()
    wrapper.cache_clear = cache_clear
    wrapper.cache_info = cache_info

    return wrapper


def _ars_key(environment, pk):
    return f"ars:{environment}:{pk}"


async def get_ars_message(environment, pk):
    """Get an ARS message from cache if saved."""
    try:
        client = aioredis.Redis(connection_pool=ars_redis_pool)
        response = await client.get(_ars_key(environment, pk))
        await client.aclose()
        if response is not None:
            response = json.loads(gzip.decompress(response))
    except Exception:
        # failed to get ars message
        response = None
    return response


async def save_ars_message(environment, pk, response):
    """Cache an ARS message."""
    try:
        client = aioredis.Redis(connection_pool=ars_redis_pool)
        await client.setex(
            _ars_key(environment, pk),
            settings.redis_expiration,
            gzip.compress(json.dumps(response).encode()),
        )
        await client.aclose()
    except Exception:
        # failed to save ars message
        pass


async def clear_cache():
    """Clear ARS message cache."""
    client = aioredis.Redis(connection_pool=ars_redis_pool)
    await client.flushdb()
    await client.aclose()
