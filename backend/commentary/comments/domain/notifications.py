"""Detached hand-off of new-comment notifications.

The request path only enqueues a message on a Redis stream; delivery happens
in :mod:`commentary.comments.workers.notification_worker`. Neither step reports
back to the submitter.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from commentary.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "x:comments.notifications"


@dataclass(frozen=True)
class CommentNotification:
    domain: str
    path: str
    commenter_hex: str
    comment_hex: str
    parent_hex: str
    state: str

    def to_fields(self) -> dict[str, str]:
        fields = asdict(self)
        fields["ts"] = datetime.now(timezone.utc).isoformat()
        return fields

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "CommentNotification":
        return cls(
            domain=str(fields["domain"]),
            path=str(fields.get("path", "")),
            commenter_hex=str(fields["commenter_hex"]),
            comment_hex=str(fields["comment_hex"]),
            parent_hex=str(fields["parent_hex"]),
            state=str(fields["state"]),
        )


class NotificationDispatcher(Protocol):
    def notify(self, notification: CommentNotification) -> None:
        """Schedule delivery and return immediately."""
        ...


class RedisStreams(Protocol):
    async def xadd(self, name: str, fields: Mapping[str, Any], *args: Any, **kwargs: Any) -> Any:
        ...


class RedisStreamNotificationDispatcher:
    """Publishes notifications to a Redis stream from background tasks."""

    def __init__(self, redis: RedisStreams, *, stream_key: str = DEFAULT_STREAM, maxlen: int = 10000) -> None:
        self.redis = redis
        self.stream_key = stream_key
        self.maxlen = maxlen
        self._pending: set[asyncio.Task] = set()

    def notify(self, notification: CommentNotification) -> None:
        task = asyncio.create_task(self._publish(notification), name=f"comment-notify:{notification.comment_hex}")
        # The loop only keeps weak references to tasks.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, notification: CommentNotification) -> None:
        try:
            await self.redis.xadd(self.stream_key, notification.to_fields(), maxlen=self.maxlen, approximate=True)
        except Exception:  # noqa: BLE001 - outcome is never reported to the submitter
            obs_metrics.inc_notification("enqueue", "error")
            logger.exception(
                "failed to enqueue comment notification",
                extra={"comment_hex": notification.comment_hex, "domain": notification.domain},
            )
            return
        obs_metrics.inc_notification("enqueue", "ok")

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight publishes, used at shutdown."""
        if not self._pending:
            return
        _, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning("dropping %d undelivered comment notifications at shutdown", len(pending))
