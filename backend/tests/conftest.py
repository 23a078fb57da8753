import hashlib
import hmac
import json
import sys
from pathlib import Path
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from commentary.comments.domain.markup import MarkdownRenderer
from commentary.comments.domain.models import Commenter, Domain, Moderator
from commentary.comments.domain.permissions import PermissionAuthorizer
from commentary.comments.domain.repository import (
	InMemoryCommenterStore,
	InMemoryCommentStore,
	InMemoryDomainStore,
	InMemoryPageStore,
)
from commentary.comments.domain.service import CommentSubmissionCoordinator
from commentary.settings import Settings

SHARED_SECRET = "8f1b2c3d4e5f60718293a4b5c6d7e8f90a1b2c3d4e5f60718293a4b5c6d7e8f9"
PARENT_APP_URL = "http://parent.test"
DOMAIN = "example.com"
MODERATOR_EMAIL = "mod@example.com"
MEMBER_EMAIL = "member@example.com"
MODERATOR_TOKEN = "modtoken"
MEMBER_TOKEN = "membertoken"


class StubPermissionService:
	"""Parent application stand-in that recomputes the HMAC on its own."""

	def __init__(self, secret_hex: str = SHARED_SECRET, *, allow: bool = True) -> None:
		self.key = bytes.fromhex(secret_hex)
		self.allow = allow
		self.requests: list[dict[str, str]] = []

	def __call__(self, request: httpx.Request) -> httpx.Response:
		form = dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))
		self.requests.append(form)
		signed = json.dumps(
			{
				"requester": form.get("requester", ""),
				"email": form.get("email", ""),
				"route": form.get("route", ""),
				"permKey": form.get("permKey", ""),
			},
			separators=(",", ":"),
			ensure_ascii=False,
		)
		for char in "<>&\u2028\u2029":
			signed = signed.replace(char, f"\\u{ord(char):04x}")
		expected = hmac.new(self.key, signed.encode("utf-8"), hashlib.sha256).hexdigest()
		if not hmac.compare_digest(expected, form.get("hmac", "")):
			return httpx.Response(200, json={"result": False, "error": "invalid hmac"})
		if not self.allow:
			return httpx.Response(200, json={"result": False, "error": "not allowed to comment"})
		return httpx.Response(200, json={"result": True, "error": None})


class StubSpamDetector:
	def __init__(self, verdict: bool = False) -> None:
		self.verdict = verdict
		self.candidates = []

	async def check(self, candidate) -> bool:
		self.candidates.append(candidate)
		return self.verdict


class RecordingDispatcher:
	def __init__(self) -> None:
		self.notifications = []

	def notify(self, notification) -> None:
		self.notifications.append(notification)


@pytest.fixture
def settings() -> Settings:
	return Settings(
		parent_app_url=PARENT_APP_URL,
		parent_app_api_secret=SHARED_SECRET,
		environment="test",
		obs_enabled=False,
	)


@pytest.fixture
def domains() -> InMemoryDomainStore:
	store = InMemoryDomainStore()
	store.put(Domain(domain=DOMAIN, moderators=[Moderator(email=MODERATOR_EMAIL)]))
	return store


@pytest.fixture
def commenters() -> InMemoryCommenterStore:
	store = InMemoryCommenterStore()
	store.put(
		Commenter(commenter_hex="a" * 64, name="Mod", email=MODERATOR_EMAIL, link="https://mod.example.com"),
		token=MODERATOR_TOKEN,
	)
	store.put(
		Commenter(commenter_hex="b" * 64, name="Member", email=MEMBER_EMAIL, link=""),
		token=MEMBER_TOKEN,
	)
	return store


@pytest.fixture
def pages() -> InMemoryPageStore:
	return InMemoryPageStore()


@pytest.fixture
def comments() -> InMemoryCommentStore:
	return InMemoryCommentStore()


@pytest.fixture
def spam() -> StubSpamDetector:
	return StubSpamDetector()


@pytest.fixture
def permission_service() -> StubPermissionService:
	return StubPermissionService()


@pytest_asyncio.fixture
async def parent_http(permission_service):
	async with httpx.AsyncClient(transport=httpx.MockTransport(permission_service)) as client:
		yield client


@pytest.fixture
def authorizer(settings, parent_http) -> PermissionAuthorizer:
	return PermissionAuthorizer.from_settings(settings, parent_http)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
	return RecordingDispatcher()


@pytest.fixture
def coordinator(pages, domains, commenters, comments, spam, authorizer, dispatcher) -> CommentSubmissionCoordinator:
	return CommentSubmissionCoordinator(
		pages=pages,
		domains=domains,
		commenters=commenters,
		comments=comments,
		spam=spam,
		renderer=MarkdownRenderer(),
		authorizer=authorizer,
		notifications=dispatcher,
	)


@pytest_asyncio.fixture
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	try:
		yield client
	finally:
		await client.flushall()
		await client.aclose()


@pytest_asyncio.fixture
async def api_client(settings, coordinator):
	from commentary.main import create_app

	app = create_app(settings, coordinator=coordinator)
	transport = httpx.ASGITransport(app=app)
	async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
