from __future__ import annotations

from urllib.parse import parse_qsl

import httpx
import pytest

from commentary.comments.domain.spam import (
	AkismetSpamDetector,
	NullSpamDetector,
	SpamCandidate,
	build_spam_detector,
)
from commentary.settings import Settings

CANDIDATE = SpamCandidate(
	domain="example.com",
	ip="203.0.113.7",
	user_agent="pytest",
	name="Member",
	email="member@example.com",
	link="",
	text="Buy now",
)


def _detector(handler) -> AkismetSpamDetector:
	return AkismetSpamDetector(http=httpx.AsyncClient(transport=httpx.MockTransport(handler)), api_key="k3y")


@pytest.mark.asyncio
@pytest.mark.parametrize(("body", "expected"), [("true", True), ("false", False)])
async def test_akismet_verdicts(body: str, expected: bool) -> None:
	seen = []

	def handler(request: httpx.Request) -> httpx.Response:
		seen.append(request)
		return httpx.Response(200, text=body)

	assert await _detector(handler).check(CANDIDATE) is expected
	request = seen[0]
	assert request.url.host == "k3y.rest.akismet.com"
	form = dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))
	assert form["blog"] == "example.com"
	assert form["user_ip"] == "203.0.113.7"
	assert form["comment_content"] == "Buy now"


@pytest.mark.asyncio
@pytest.mark.parametrize(
	"handler",
	[
		lambda request: httpx.Response(200, text="invalid"),
		lambda request: httpx.Response(503, text="false"),
	],
	ids=["unexpected-body", "server-error"],
)
async def test_akismet_problems_count_as_spam(handler) -> None:
	assert await _detector(handler).check(CANDIDATE) is True


@pytest.mark.asyncio
async def test_akismet_transport_error_counts_as_spam() -> None:
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ConnectError("unreachable", request=request)

	assert await _detector(handler).check(CANDIDATE) is True


@pytest.mark.asyncio
async def test_null_detector_passes_everything() -> None:
	assert await NullSpamDetector().check(CANDIDATE) is False


def test_builder_picks_detector_from_settings() -> None:
	http = httpx.AsyncClient()
	assert isinstance(build_spam_detector(Settings(obs_enabled=False), http), NullSpamDetector)
	assert isinstance(build_spam_detector(Settings(akismet_key="k3y", obs_enabled=False), http), AkismetSpamDetector)
