import json
from uuid import UUID

from loguru import logger
from redis.asyncio import Redis

from rentals.models import ItemType
from rentals.settings import REDIS_URL, SLOTS_TTL

_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _slots_key(item_type: ItemType, item_id: UUID) -> str:
    return f"slots:{item_type}:{item_id}"


async def get_slots_cache(item_type: ItemType, item_id: UUID) -> list | None:
    try:
        data = await get_redis().get(_slots_key(item_type, item_id))
        return json.loads(data) if data else None
    except Exception:
        logger.opt(exception=True).warning("Redis get failed, skipping slots cache")
        return None


async def set_slots_cache(item_type: ItemType, item_id: UUID, slots: list) -> None:
    try:
        await get_redis().setex(
            _slots_key(item_type, item_id), SLOTS_TTL, json.dumps(slots)
        )
    except Exception:
        logger.opt(exception=True).warning("Redis set failed, skipping slots cache")


async def invalidate_slots_cache(items: list[tuple[ItemType, UUID]]) -> None:
    if not items:
        return
    try:
        await get_redis().delete(*(_slots_key(t, i) for t, i in items))
    except Exception:
        logger.opt(exception=True).warning("Redis invalidate failed for slots cache")
