"""Worker that turns new-comment events into moderator and reply emails."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from commentary.comments.domain.models import ANONYMOUS_COMMENTER, ROOT_PARENT, Domain, ModerationState
from commentary.comments.domain.notifications import DEFAULT_STREAM, CommentNotification
from commentary.comments.domain.repository import CommenterStore, CommentStore, DomainStore
from commentary.comments.infra.mailer import moderator_email, reply_email
from commentary.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class RedisStream(Protocol):
    async def xread(
        self,
        streams: Mapping[str, str],
        count: int,
        block: int,
    ) -> list[tuple[str, list[tuple[str, Mapping[Any, Any]]]]]:
        ...

    async def xdel(self, name: str, *ids: str) -> int:
        ...


class Mailer(Protocol):
    async def send(self, to_email: str, subject: str, body_html: str) -> bool:
        ...


def _should_notify_moderators(domain: Domain, state: str) -> bool:
    policy = domain.email_notification_policy
    if policy == "all":
        return True
    if policy == "pending-moderation":
        return state != ModerationState.APPROVED.value
    return False


@dataclass
class NotificationWorker:
    """Consumes the notifications stream and emails moderators and parent authors."""

    redis: RedisStream
    domains: DomainStore
    commenters: CommenterStore
    comments: CommentStore
    mailer: Mailer
    origin: str
    stream_key: str = DEFAULT_STREAM
    batch_size: int = 100
    block_ms: int = 5000
    # Entries are deleted once handled, so a restart resumes with whatever is left.
    last_id: str = "0-0"

    async def run_once(self) -> None:
        messages = await self.redis.xread({self.stream_key: self.last_id}, count=self.batch_size, block=self.block_ms)
        if not messages:
            return
        for _stream, entries in messages:
            for _entry_id, payload in entries:
                try:
                    notification = CommentNotification.from_fields(_decode(payload))
                except KeyError:
                    logger.warning("skipping malformed notification event", extra={"event": _decode(payload)})
                    obs_metrics.inc_notification("deliver", "malformed")
                    continue
                try:
                    await self.handle(notification)
                except Exception:  # noqa: BLE001 - one bad event must not stall the stream
                    obs_metrics.inc_notification("deliver", "error")
                    logger.exception(
                        "failed to deliver comment notification",
                        extra={"comment_hex": notification.comment_hex},
                    )
            self.last_id = entries[-1][0]
            await self.redis.xdel(self.stream_key, *[entry_id for entry_id, _payload in entries])

    async def handle(self, notification: CommentNotification) -> None:
        domain = await self.domains.get(notification.domain)
        comment = await self.comments.get(notification.comment_hex)
        if domain is None or comment is None:
            logger.debug("notification target vanished", extra={"comment_hex": notification.comment_hex})
            return

        author_name = "Anonymous"
        author_email = ""
        if notification.commenter_hex != ANONYMOUS_COMMENTER:
            author = await self.commenters.get_by_hex(notification.commenter_hex)
            if author is not None:
                author_name = author.name or author_name
                author_email = author.email

        if _should_notify_moderators(domain, notification.state):
            subject, body = moderator_email(
                origin=self.origin,
                domain=notification.domain,
                path=notification.path,
                author=author_name,
                html=comment.html,
                state=notification.state,
            )
            for moderator in domain.moderators:
                if author_email and moderator.email.lower() == author_email.lower():
                    continue
                await self._deliver("moderator", moderator.email, subject, body)

        if notification.state == ModerationState.APPROVED.value and notification.parent_hex != ROOT_PARENT:
            await self._notify_parent_author(notification, author_name, comment.html)

    async def _notify_parent_author(self, notification: CommentNotification, author_name: str, html: str) -> None:
        parent = await self.comments.get(notification.parent_hex)
        if parent is None or parent.commenter_hex in (ANONYMOUS_COMMENTER, notification.commenter_hex):
            return
        recipient = await self.commenters.get_by_hex(parent.commenter_hex)
        if recipient is None or not recipient.email:
            return
        subject, body = reply_email(
            domain=notification.domain,
            path=notification.path,
            author=author_name,
            html=html,
        )
        await self._deliver("reply", recipient.email, subject, body)

    async def _deliver(self, kind: str, to_email: str, subject: str, body: str) -> None:
        sent = await self.mailer.send(to_email, subject, body)
        obs_metrics.inc_notification(kind, "sent" if sent else "failed")


def _decode(payload: Mapping[Any, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in payload.items():
        decoded_key = key.decode("utf-8") if isinstance(key, (bytes, bytearray)) else str(key)
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        result[decoded_key] = value
    return result
