"""Redis connection management."""

from __future__ import annotations

import redis.asyncio as redis

from commentary.settings import Settings


def create_redis(settings: Settings) -> redis.Redis:
	return redis.from_url(settings.redis_url, decode_responses=True)


async def close_redis(client: redis.Redis | None) -> None:
	if client is not None:
		await client.aclose()
