"""Comment submission: validation, moderation state, authorization, persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from commentary.comments.domain import identifiers
from commentary.comments.domain.exceptions import (
	CommentError,
	DomainFrozen,
	DomainNotFound,
	InternalError,
	MissingField,
	NoSuchToken,
	NotAuthorised,
	ThreadLocked,
)
from commentary.comments.domain.markup import MarkupRenderer
from commentary.comments.domain.models import (
	ANONYMOUS_ACTOR,
	ANONYMOUS_COMMENTER,
	Actor,
	Comment,
	Domain,
	ModerationState,
)
from commentary.comments.domain.notifications import CommentNotification, NotificationDispatcher
from commentary.comments.domain.permissions import Authorizer
from commentary.comments.domain.policy import PolicyFacts, decide_state
from commentary.comments.domain.repository import CommenterStore, CommentStore, DomainStore, PageStore, StoreError
from commentary.comments.domain.spam import SpamCandidate, SpamDetector
from commentary.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionRequest:
	commenter_token: str
	domain: str
	path: str
	parent_hex: str
	markdown: str


@dataclass(frozen=True)
class ClientInfo:
	ip: str = ""
	user_agent: str = ""


@dataclass(frozen=True)
class CreatedComment:
	comment_hex: str
	html: str


@dataclass(frozen=True)
class SubmissionResult:
	comment_hex: str
	state: ModerationState
	html: str


def strip_domain(domain: str) -> str:
	"""Reduce a site URL to its host key: ``https://example.com/a`` -> ``example.com``."""
	value = domain.strip()
	for prefix in ("https://", "http://"):
		if value.lower().startswith(prefix):
			value = value[len(prefix):]
			break
	return value.split("/", 1)[0]


def _require(*values: Optional[str]) -> None:
	if any(not value for value in values):
		raise MissingField()


class CommentSubmissionCoordinator:
	"""Runs one submission through every check before the single durable write."""

	def __init__(
		self,
		*,
		pages: PageStore,
		domains: DomainStore,
		commenters: CommenterStore,
		comments: CommentStore,
		spam: SpamDetector,
		renderer: MarkupRenderer,
		authorizer: Authorizer,
		notifications: Optional[NotificationDispatcher] = None,
	) -> None:
		self.pages = pages
		self.domains = domains
		self.commenters = commenters
		self.comments = comments
		self.spam = spam
		self.renderer = renderer
		self.authorizer = authorizer
		self.notifications = notifications

	async def submit(
		self,
		request: SubmissionRequest,
		client: ClientInfo,
		*,
		now: Optional[datetime] = None,
	) -> SubmissionResult:
		try:
			return await self._submit(request, client, now or datetime.now(timezone.utc))
		except CommentError as exc:
			obs_metrics.inc_submission_rejected(exc.kind, exc.reason)
			raise

	async def _submit(self, request: SubmissionRequest, client: ClientInfo, now: datetime) -> SubmissionResult:
		_require(request.commenter_token, request.domain, request.parent_hex, request.markdown)
		domain_key = strip_domain(request.domain)
		_require(domain_key)
		path = request.path or ""

		domain = await self._load_domain(domain_key)
		if domain.is_frozen:
			raise DomainFrozen()
		is_anonymous = request.commenter_token == ANONYMOUS_COMMENTER
		if is_anonymous and domain.require_identification:
			raise NotAuthorised()

		await self._check_page(domain_key, path)
		comment_hex = identifiers.random_hex()

		actor = ANONYMOUS_ACTOR if is_anonymous else await self._resolve_actor(request.commenter_token, domain)
		# A moderator's comment is approved whatever the classifier says.
		is_spam = False if actor.is_moderator else await self._check_spam(domain_key, client, actor, request.markdown)
		state = decide_state(
			PolicyFacts(
				is_anonymous=actor.is_anonymous,
				require_identification=domain.require_identification,
				is_moderator=actor.is_moderator,
				require_moderation=domain.require_moderation,
				moderate_all_anonymous=domain.moderate_all_anonymous,
				is_spam=is_spam,
			)
		)

		if actor.commenter is not None:
			await self.authorizer.authorize(email=actor.commenter.email, route=path)

		html = await self._store(
			comment_hex=comment_hex,
			commenter_hex=actor.commenter_hex,
			domain=domain_key,
			path=path,
			parent_hex=request.parent_hex,
			markdown=request.markdown,
			state=state,
			creation_date=now,
		)
		self._dispatch(
			CommentNotification(
				domain=domain_key,
				path=path,
				commenter_hex=actor.commenter_hex,
				comment_hex=comment_hex,
				parent_hex=request.parent_hex,
				state=state.value,
			)
		)
		return SubmissionResult(comment_hex=comment_hex, state=state, html=html)

	async def create_comment(
		self,
		*,
		commenter_hex: str,
		domain: str,
		path: str,
		parent_hex: str,
		markdown: str,
		state: ModerationState | str,
		creation_date: datetime,
	) -> CreatedComment:
		"""Store a comment whose state is already decided.

		``creation_date`` is taken as given so importers can backdate comments.
		"""
		state_value = state.value if isinstance(state, ModerationState) else state
		_require(commenter_hex, domain, parent_hex, markdown, state_value)
		try:
			resolved_state = ModerationState(state_value)
		except ValueError as exc:
			raise MissingField() from exc

		await self._check_page(domain, path or "")
		comment_hex = identifiers.random_hex()
		html = await self._store(
			comment_hex=comment_hex,
			commenter_hex=commenter_hex,
			domain=domain,
			path=path or "",
			parent_hex=parent_hex,
			markdown=markdown,
			state=resolved_state,
			creation_date=creation_date,
		)
		return CreatedComment(comment_hex=comment_hex, html=html)

	async def _load_domain(self, domain_key: str) -> Domain:
		try:
			domain = await self.domains.get(domain_key)
		except StoreError as exc:
			logger.error("cannot get domain: %s", exc)
			raise InternalError("domain_lookup_failed") from exc
		if domain is None:
			raise DomainNotFound()
		return domain

	async def _check_page(self, domain: str, path: str) -> None:
		try:
			page = await self.pages.get(domain, path)
		except StoreError as exc:
			logger.error("cannot get page attributes: %s", exc)
			raise InternalError("page_lookup_failed") from exc
		if page.is_locked:
			raise ThreadLocked()

	async def _resolve_actor(self, token: str, domain: Domain) -> Actor:
		try:
			commenter = await self.commenters.get_by_token(token)
		except StoreError as exc:
			logger.error("cannot get commenter by token: %s", exc)
			raise InternalError("commenter_lookup_failed") from exc
		if commenter is None:
			raise NoSuchToken()
		return Actor(commenter=commenter, is_moderator=domain.has_moderator(commenter.email))

	async def _check_spam(self, domain: str, client: ClientInfo, actor: Actor, text: str) -> bool:
		commenter = actor.commenter
		candidate = SpamCandidate(
			domain=domain,
			ip=client.ip,
			user_agent=client.user_agent,
			name=commenter.name if commenter else "",
			email=commenter.email if commenter else "",
			link=commenter.link if commenter else "",
			text=text,
		)
		return await self.spam.check(candidate)

	def _render(self, markdown: str) -> str:
		try:
			return self.renderer.render(markdown)
		except Exception as exc:
			logger.exception("cannot render comment markdown")
			raise InternalError("render_failed") from exc

	async def _store(
		self,
		*,
		comment_hex: str,
		commenter_hex: str,
		domain: str,
		path: str,
		parent_hex: str,
		markdown: str,
		state: ModerationState,
		creation_date: datetime,
	) -> str:
		html = self._render(markdown)
		comment = Comment(
			comment_hex=comment_hex,
			domain=domain,
			path=path,
			commenter_hex=commenter_hex,
			parent_hex=parent_hex,
			markdown=markdown,
			html=html,
			creation_date=creation_date,
			state=state,
		)
		try:
			await self.comments.insert(comment)
		except StoreError as exc:
			logger.error("cannot insert comment: %s", exc)
			raise InternalError("comment_insert_failed") from exc
		obs_metrics.inc_comment_created(state.value)

		try:
			await self.pages.ensure(domain, path)
		except StoreError as exc:
			# The comment stays; the missing page row is left for repair tooling.
			obs_metrics.inc_page_ensure_failure()
			logger.error(
				"page_ensure_failed",
				extra={"domain": domain, "path": path, "comment_hex": comment_hex, "error": str(exc)},
			)
		return html

	def _dispatch(self, notification: CommentNotification) -> None:
		if self.notifications is None:
			return
		try:
			self.notifications.notify(notification)
		except Exception:  # noqa: BLE001 - notification outcome never reaches the submitter
			obs_metrics.inc_notification("dispatch", "error")
			logger.exception("cannot dispatch comment notification", extra={"comment_hex": notification.comment_hex})
