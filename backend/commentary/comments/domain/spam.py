"""Spam classification for submitted comments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx

from commentary.obs import metrics as obs_metrics
from commentary.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpamCandidate:
    """Everything the classifier sees about a submission."""

    domain: str
    ip: str
    user_agent: str
    name: str
    email: str
    link: str
    text: str


class SpamDetector(Protocol):
    """Interface for spam verdicts."""

    async def check(self, candidate: SpamCandidate) -> bool:
        ...


class NullSpamDetector:
    """Used when no classifier is configured; nothing is spam."""

    async def check(self, candidate: SpamCandidate) -> bool:
        obs_metrics.inc_spam_check("skipped")
        return False


@dataclass
class AkismetSpamDetector:
    """Akismet ``comment-check`` client.

    A classifier outage holds the comment for review: errors count as spam.
    """

    http: httpx.AsyncClient
    api_key: str = field(repr=False)
    request_timeout: float = 2.0

    @property
    def endpoint(self) -> str:
        return f"https://{self.api_key}.rest.akismet.com/1.1/comment-check"

    async def check(self, candidate: SpamCandidate) -> bool:
        form = {
            "blog": candidate.domain,
            "user_ip": candidate.ip,
            "user_agent": candidate.user_agent,
            "comment_type": "comment",
            "comment_author": candidate.name,
            "comment_author_email": candidate.email,
            "comment_author_url": candidate.link,
            "comment_content": candidate.text,
        }
        try:
            response = await self.http.post(self.endpoint, data=form, timeout=self.request_timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("cannot validate comment using Akismet: %s", exc.__class__.__name__)
            obs_metrics.inc_spam_check("error")
            return True
        body = response.text.strip().lower()
        if body not in {"true", "false"}:
            logger.error("unexpected Akismet response", extra={"debug_help": response.headers.get("X-akismet-debug-help")})
            obs_metrics.inc_spam_check("error")
            return True
        is_spam = body == "true"
        obs_metrics.inc_spam_check("spam" if is_spam else "ham")
        return is_spam


def build_spam_detector(settings: Settings, http: Optional[httpx.AsyncClient]) -> SpamDetector:
    if settings.akismet_key and http is not None:
        return AkismetSpamDetector(http=http, api_key=settings.akismet_key, request_timeout=settings.akismet_timeout_seconds)
    return NullSpamDetector()
