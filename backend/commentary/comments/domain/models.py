"""Domain models for comment submission."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ANONYMOUS_COMMENTER = "anonymous"
ROOT_PARENT = "root"


class ModerationState(str, Enum):
	APPROVED = "approved"
	UNAPPROVED = "unapproved"
	FLAGGED = "flagged"


class Moderator(BaseModel):
	email: str

	model_config = ConfigDict(from_attributes=True)


class Domain(BaseModel):
	"""A site registered for comments, with its moderation knobs."""

	domain: str
	state: str = "unfrozen"
	require_identification: bool = False
	require_moderation: bool = False
	moderate_all_anonymous: bool = False
	# none | pending-moderation | all
	email_notification_policy: str = "pending-moderation"
	moderators: list[Moderator] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_frozen(self) -> bool:
		return self.state == "frozen"

	def has_moderator(self, email: str) -> bool:
		"""Local membership check against the already-loaded moderator list."""
		needle = email.strip().lower()
		if not needle:
			return False
		return any(mod.email.strip().lower() == needle for mod in self.moderators)


class Commenter(BaseModel):
	commenter_hex: str
	name: str = ""
	email: str = ""
	link: str = ""

	model_config = ConfigDict(from_attributes=True)


class Page(BaseModel):
	domain: str
	path: str = ""
	is_locked: bool = False

	model_config = ConfigDict(from_attributes=True)


class Comment(BaseModel):
	"""A persisted comment row."""

	comment_hex: str
	domain: str
	path: str
	commenter_hex: str
	parent_hex: str
	markdown: str
	html: str
	creation_date: datetime
	state: ModerationState

	model_config = ConfigDict(from_attributes=True)


class Actor(BaseModel):
	"""Submitting party: the anonymous sentinel or a resolved commenter."""

	commenter: Optional[Commenter] = None
	is_moderator: bool = False

	@property
	def is_anonymous(self) -> bool:
		return self.commenter is None

	@property
	def commenter_hex(self) -> str:
		return self.commenter.commenter_hex if self.commenter else ANONYMOUS_COMMENTER


ANONYMOUS_ACTOR = Actor()
