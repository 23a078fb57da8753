"""FastAPI application entrypoint.

Run with ``uvicorn commentary.main:create_app --factory``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from commentary import obs
from commentary.api import ops
from commentary.comments import router as comments_router
from commentary.comments import spawn_workers
from commentary.comments.domain.markup import MarkdownRenderer
from commentary.comments.domain.notifications import RedisStreamNotificationDispatcher
from commentary.comments.domain.permissions import PermissionAuthorizer
from commentary.comments.domain.service import CommentSubmissionCoordinator
from commentary.comments.domain.spam import build_spam_detector
from commentary.comments.infra.mailer import SmtpMailer
from commentary.comments.infra.postgres_repo import (
	PostgresCommenterStore,
	PostgresCommentStore,
	PostgresDomainStore,
	PostgresPageStore,
)
from commentary.comments.workers import NotificationWorker
from commentary.infra import postgres
from commentary.infra.redis import close_redis, create_redis
from commentary.settings import Settings, load_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if getattr(app.state, "coordinator", None) is not None:
		# Pre-wired (tests, embedding); nothing to open or close here.
		yield
		return

	settings: Settings = app.state.settings
	pool = await postgres.create_pool(settings)
	redis_client = create_redis(settings)
	http = httpx.AsyncClient(timeout=settings.permission_timeout_seconds)
	app.state.pool = pool
	app.state.redis = redis_client

	domains = PostgresDomainStore(pool)
	commenters = PostgresCommenterStore(pool)
	comments = PostgresCommentStore(pool)
	dispatcher: Optional[RedisStreamNotificationDispatcher] = None
	worker_tasks: list[asyncio.Task] = []
	if settings.smtp_configured():
		dispatcher = RedisStreamNotificationDispatcher(redis_client, stream_key=settings.notifications_stream)
		worker = NotificationWorker(
			redis=redis_client,
			domains=domains,
			commenters=commenters,
			comments=comments,
			mailer=SmtpMailer(settings),
			origin=settings.origin,
			stream_key=settings.notifications_stream,
		)
		worker_tasks.extend(spawn_workers(worker, poll_interval=settings.notifications_poll_interval))
	else:
		logger.info("SMTP not configured; comment notifications disabled")

	app.state.coordinator = CommentSubmissionCoordinator(
		pages=PostgresPageStore(pool),
		domains=domains,
		commenters=commenters,
		comments=comments,
		spam=build_spam_detector(settings, http),
		renderer=MarkdownRenderer(),
		authorizer=PermissionAuthorizer.from_settings(settings, http),
		notifications=dispatcher,
	)
	try:
		yield
	finally:
		for task in worker_tasks:
			task.cancel()
		if worker_tasks:
			await asyncio.gather(*worker_tasks, return_exceptions=True)
		if dispatcher is not None:
			await dispatcher.drain()
		app.state.coordinator = None
		await http.aclose()
		await close_redis(redis_client)
		await postgres.close_pool(pool)


def create_app(
	settings: Optional[Settings] = None,
	*,
	coordinator: Optional[CommentSubmissionCoordinator] = None,
) -> FastAPI:
	settings = settings or load_settings()
	app = FastAPI(title=settings.service_name, lifespan=lifespan)
	app.state.settings = settings
	app.state.coordinator = coordinator
	obs.init(app, settings)
	app.include_router(ops.router)
	app.include_router(comments_router)
	return app
