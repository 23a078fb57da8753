"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


async def _postgres_status(pool, timeout: float = 0.3) -> Dict[str, Any]:
	if pool is None:
		return {"ok": False, "error": "pool_unavailable"}
	try:
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Postgres readiness query failed", exc_info=True)
		return {"ok": False, "error": exc.__class__.__name__}
	return {"ok": True}


async def _redis_status(client, timeout: float = 0.2) -> Dict[str, Any]:
	if client is None:
		return {"ok": False, "error": "client_unavailable"}
	try:
		await asyncio.wait_for(client.ping(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return {"ok": False, "error": exc.__class__.__name__}
	return {"ok": True}


@router.get("/healthz")
async def health_live() -> dict[str, str]:
	return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request) -> Response:
	state = request.app.state
	postgres_state = await _postgres_status(getattr(state, "pool", None))
	redis_state = await _redis_status(getattr(state, "redis", None))
	ok = postgres_state["ok"] and redis_state["ok"]
	return JSONResponse(
		status_code=200 if ok else 503,
		content={"status": "ok" if ok else "degraded", "checks": {"postgres": postgres_state, "redis": redis_state}},
	)


@router.get("/metrics")
async def prometheus_metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
