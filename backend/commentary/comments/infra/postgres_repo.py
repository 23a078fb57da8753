"""asyncpg-backed stores for domains, commenters, pages and comments.

Table and column names are camelCase in SQL; unquoted identifiers are
folded to lower case by Postgres, so ``commentHex`` is stored as
``commenthex``.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from commentary.comments.domain.models import Comment, Commenter, Domain, Moderator, Page
from commentary.comments.domain.repository import StoreError

_STORE_FAILURES = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


@asynccontextmanager
async def _connection(pool: asyncpg.pool.Pool) -> AsyncIterator[asyncpg.Connection]:
	try:
		async with pool.acquire() as conn:
			yield conn
	except _STORE_FAILURES as exc:
		raise StoreError(f"{exc.__class__.__name__}: {exc}") from exc


class PostgresDomainStore:
	def __init__(self, pool: asyncpg.pool.Pool) -> None:
		self.pool = pool

	async def get(self, domain: str) -> Optional[Domain]:
		async with _connection(self.pool) as conn:
			record = await conn.fetchrow(
				"""
				SELECT domain, state, requireIdentification, requireModeration,
					moderateAllAnonymous, emailNotificationPolicy
				FROM domains
				WHERE domain = $1
				""",
				domain,
			)
			if record is None:
				return None
			moderators = await conn.fetch("SELECT email FROM moderators WHERE domain = $1", domain)
		return Domain(
			domain=record["domain"],
			state=record["state"],
			require_identification=record["requireidentification"],
			require_moderation=record["requiremoderation"],
			moderate_all_anonymous=record["moderateallanonymous"],
			email_notification_policy=record["emailnotificationpolicy"] or "pending-moderation",
			moderators=[Moderator(email=row["email"]) for row in moderators],
		)


class PostgresCommenterStore:
	def __init__(self, pool: asyncpg.pool.Pool) -> None:
		self.pool = pool

	async def get_by_token(self, token: str) -> Optional[Commenter]:
		async with _connection(self.pool) as conn:
			record = await conn.fetchrow(
				"""
				SELECT commenters.commenterHex, commenters.name, commenters.email, commenters.link
				FROM commenterSessions
				JOIN commenters ON commenterSessions.commenterHex = commenters.commenterHex
				WHERE commenterSessions.commenterToken = $1
				""",
				token,
			)
		return _to_commenter(record)

	async def get_by_hex(self, commenter_hex: str) -> Optional[Commenter]:
		async with _connection(self.pool) as conn:
			record = await conn.fetchrow(
				"SELECT commenterHex, name, email, link FROM commenters WHERE commenterHex = $1",
				commenter_hex,
			)
		return _to_commenter(record)


def _to_commenter(record: Optional[asyncpg.Record]) -> Optional[Commenter]:
	if record is None:
		return None
	return Commenter(
		commenter_hex=record["commenterhex"],
		name=record["name"] or "",
		email=record["email"] or "",
		link=record["link"] or "",
	)


class PostgresPageStore:
	def __init__(self, pool: asyncpg.pool.Pool) -> None:
		self.pool = pool

	async def get(self, domain: str, path: str) -> Page:
		async with _connection(self.pool) as conn:
			is_locked = await conn.fetchval(
				"SELECT isLocked FROM pages WHERE domain = $1 AND path = $2",
				domain,
				path,
			)
		return Page(domain=domain, path=path, is_locked=bool(is_locked))

	async def ensure(self, domain: str, path: str) -> None:
		async with _connection(self.pool) as conn:
			await conn.execute(
				"""
				INSERT INTO pages (domain, path)
				VALUES ($1, $2)
				ON CONFLICT DO NOTHING
				""",
				domain,
				path,
			)


class PostgresCommentStore:
	def __init__(self, pool: asyncpg.pool.Pool) -> None:
		self.pool = pool

	async def insert(self, comment: Comment) -> None:
		async with _connection(self.pool) as conn:
			await conn.execute(
				"""
				INSERT INTO comments (commentHex, domain, path, commenterHex, parentHex, markdown, html, creationDate, state)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
				""",
				comment.comment_hex,
				comment.domain,
				comment.path,
				comment.commenter_hex,
				comment.parent_hex,
				comment.markdown,
				comment.html,
				comment.creation_date,
				comment.state.value,
			)

	async def get(self, comment_hex: str) -> Optional[Comment]:
		async with _connection(self.pool) as conn:
			record = await conn.fetchrow(
				"""
				SELECT commentHex, domain, path, commenterHex, parentHex, markdown, html, creationDate, state
				FROM comments
				WHERE commentHex = $1
				""",
				comment_hex,
			)
		if record is None:
			return None
		return Comment(
			comment_hex=record["commenthex"],
			domain=record["domain"],
			path=record["path"],
			commenter_hex=record["commenterhex"],
			parent_hex=record["parenthex"],
			markdown=record["markdown"],
			html=record["html"],
			creation_date=record["creationdate"],
			state=record["state"],
		)
