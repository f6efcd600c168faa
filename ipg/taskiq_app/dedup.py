"""Redis-based locks that keep two workers off the same listing file."""

from __future__ import annotations

from time import monotonic

from redis.asyncio import Redis

from ipg.config import get_settings

_MEMORY_LOCKS: dict[str, float] = {}


def build_dedup_key(*, scope: str, task_name: str, fingerprint: str) -> str:
    return f"ipg:dedup:{scope}:{task_name}:{fingerprint}"


def build_zone_lock_key(*, task_name: str, zone_id: str, source: str) -> str:
    """Execution lock for one (zone, source) file."""

    return build_dedup_key(
        scope="execution", task_name=task_name, fingerprint=f"{zone_id}:{source}"
    )


def _redis_client() -> Redis:
    return Redis.from_url(
        get_settings().redis_url, encoding="utf-8", decode_responses=True
    )


def _acquire_memory_lock(key: str, ttl_seconds: int) -> bool:
    now = monotonic()
    for lock_key, expiry in list(_MEMORY_LOCKS.items()):
        if expiry <= now:
            del _MEMORY_LOCKS[lock_key]

    if key in _MEMORY_LOCKS:
        return False
    _MEMORY_LOCKS[key] = now + ttl_seconds
    return True


async def acquire_dedup_lock(key: str, ttl_seconds: int) -> bool:
    """SET NX EX on Redis, or an in-process lock table under TASKIQ_TESTING."""

    if get_settings().taskiq_testing:
        return _acquire_memory_lock(key, ttl_seconds)

    client = _redis_client()
    try:
        return bool(await client.set(key, "1", nx=True, ex=ttl_seconds))
    finally:
        await client.aclose()


async def release_dedup_lock(key: str) -> None:
    if get_settings().taskiq_testing:
        _MEMORY_LOCKS.pop(key, None)
        return

    client = _redis_client()
    try:
        await client.delete(key)
    finally:
        await client.aclose()
