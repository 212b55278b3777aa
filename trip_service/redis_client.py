import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import Request
from redis.exceptions import RedisError

from trip_service.exceptions import StorageError, TripBusy

logger = logging.getLogger(__name__)


def create_redis(url: str) -> aioredis.Redis:
    return aioredis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=100,
    )


async def close_redis(redis: aioredis.Redis | None) -> None:
    if redis is not None:
        await redis.aclose()


def get_redis(request: Request) -> aioredis.Redis:
    return request.app.state.redis


# ---------------------------------------------------------------------------
# Per-trip command lock
# ---------------------------------------------------------------------------

# Delete the key only while it still holds our token.
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def trip_lock_key(trip_id: str) -> str:
    return f"trip:{trip_id}:lock"


@asynccontextmanager
async def trip_lock(redis: aioredis.Redis, trip_id: str, ttl_seconds: int) -> AsyncIterator[str]:
    """
    Hold an exclusive NX lock on a trip for the duration of one command.

    Raises ``TripBusy`` if another command already holds it. The TTL bounds how
    long a crashed holder can block the trip.
    """
    key = trip_lock_key(trip_id)
    token = uuid.uuid4().hex
    try:
        acquired = await redis.set(key, token, nx=True, px=ttl_seconds * 1000)
    except RedisError as exc:
        logger.error("Lock store unavailable for trip=%s: %s", trip_id, exc)
        raise StorageError("Could not lock trip") from exc
    if not acquired:
        raise TripBusy(trip_id)

    try:
        yield token
    finally:
        try:
            release = redis.register_script(RELEASE_LOCK_SCRIPT)
            if not await release(keys=[key], args=[token]):
                logger.warning("Lock for trip=%s expired before release", trip_id)
        except RedisError as exc:
            logger.warning("Failed to release lock for trip=%s: %s", trip_id, exc)
