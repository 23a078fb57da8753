"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncpg

from commentary.settings import Settings


async def create_pool(settings: Settings) -> asyncpg.pool.Pool:
	# Force 127.0.0.1 instead of localhost to avoid IPv6 resolution surprises
	dsn = settings.postgres_url.replace("localhost", "127.0.0.1")
	return await asyncpg.create_pool(
		dsn=dsn,
		min_size=settings.postgres_min_pool_size,
		max_size=settings.postgres_max_pool_size,
		command_timeout=settings.postgres_command_timeout,
	)


async def close_pool(pool: asyncpg.pool.Pool | None) -> None:
	if pool is not None:
		await pool.close()
