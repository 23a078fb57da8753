"""Utilities for wiring comment workers into an event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from commentary.comments.workers.notification_worker import NotificationWorker

logger = logging.getLogger(__name__)


async def _run_forever(worker, delay: float) -> None:
    while True:
        try:
            await worker.run_once()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - keep polling after transient redis failures
            logger.exception("worker iteration failed", extra={"worker": type(worker).__name__})
        await asyncio.sleep(delay)


def spawn_workers(notification_worker: NotificationWorker, *, poll_interval: float = 0.5) -> Iterable[asyncio.Task]:
    """Create asyncio tasks for comment background workers."""

    return [
        asyncio.create_task(_run_forever(notification_worker, poll_interval), name="comments-notifications"),
    ]
