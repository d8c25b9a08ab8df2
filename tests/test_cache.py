"""Slot cache helpers; redis is replaced with an AsyncMock."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

from loguru import logger
from redis.exceptions import ConnectionError as RedisConnectionError

from rentals.cache import get_slots_cache, invalidate_slots_cache, set_slots_cache
from rentals.models import ItemType
from rentals.settings import SLOTS_TTL

from .factories import ACCESSORY_ID, COSTUME_ID, END, START

REDIS_PATH = "rentals.cache.get_redis"

SLOTS = [{"start_date": START.isoformat(), "end_date": END.isoformat()}]


def fake_redis(**methods) -> MagicMock:
    redis = MagicMock()
    for name, mock in methods.items():
        setattr(redis, name, mock)
    return redis


class TestGetSlotsCache:
    async def test_hit_decodes_json(self):
        redis = fake_redis(get=AsyncMock(return_value=json.dumps(SLOTS)))
        with patch(REDIS_PATH, return_value=redis):
            result = await get_slots_cache(ItemType.COSTUME, COSTUME_ID)
        assert result == SLOTS
        redis.get.assert_awaited_once_with(f"slots:costume:{COSTUME_ID}")

    async def test_miss_returns_none(self):
        redis = fake_redis(get=AsyncMock(return_value=None))
        with patch(REDIS_PATH, return_value=redis):
            assert await get_slots_cache(ItemType.COSTUME, COSTUME_ID) is None

    async def test_redis_down_is_a_miss(self):
        redis = fake_redis(get=AsyncMock(side_effect=RedisConnectionError("refused")))
        with patch(REDIS_PATH, return_value=redis):
            assert await get_slots_cache(ItemType.COSTUME, COSTUME_ID) is None


class TestSetSlotsCache:
    async def test_stores_with_ttl(self):
        redis = fake_redis(setex=AsyncMock())
        with patch(REDIS_PATH, return_value=redis):
            await set_slots_cache(ItemType.ACCESSORY, ACCESSORY_ID, SLOTS)
        redis.setex.assert_awaited_once_with(
            f"slots:accessory:{ACCESSORY_ID}", SLOTS_TTL, json.dumps(SLOTS)
        )

    async def test_redis_down_is_swallowed(self):
        redis = fake_redis(setex=AsyncMock(side_effect=RedisConnectionError("refused")))
        with patch(REDIS_PATH, return_value=redis):
            await set_slots_cache(ItemType.COSTUME, COSTUME_ID, SLOTS)


class TestInvalidateSlotsCache:
    async def test_deletes_every_key(self):
        redis = fake_redis(delete=AsyncMock())
        with patch(REDIS_PATH, return_value=redis):
            await invalidate_slots_cache(
                [(ItemType.COSTUME, COSTUME_ID), (ItemType.ACCESSORY, ACCESSORY_ID)]
            )
        redis.delete.assert_awaited_once_with(
            f"slots:costume:{COSTUME_ID}", f"slots:accessory:{ACCESSORY_ID}"
        )

    async def test_empty_list_does_not_touch_redis(self):
        with patch(REDIS_PATH) as get_redis:
            await invalidate_slots_cache([])
        get_redis.assert_not_called()

    async def test_redis_down_is_swallowed(self):
        redis = fake_redis(delete=AsyncMock(side_effect=RedisConnectionError("refused")))
        with patch(REDIS_PATH, return_value=redis):
            await invalidate_slots_cache([(ItemType.COSTUME, COSTUME_ID)])


class TestCacheFailureLogging:
    async def test_warning_carries_traceback(self):
        records = []
        handler_id = logger.add(lambda msg: records.append(msg.record), level="WARNING")
        redis = fake_redis(get=AsyncMock(side_effect=RedisConnectionError("refused")))
        try:
            with patch(REDIS_PATH, return_value=redis):
                await get_slots_cache(ItemType.COSTUME, COSTUME_ID)
        finally:
            logger.remove(handler_id)

        assert len(records) == 1
        assert records[0]["level"].name == "WARNING"
        assert records[0]["exception"] is not None
        assert records[0]["exception"].type is RedisConnectionError
