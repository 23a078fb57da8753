"""Request/response payloads for the comment endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CommentNewRequest(BaseModel):
	commenter_token: Optional[str] = Field(default=None, alias="commenterToken")
	domain: Optional[str] = None
	path: Optional[str] = None
	parent_hex: Optional[str] = Field(default=None, alias="parentHex")
	markdown: Optional[str] = None

	model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CommentNewResponse(BaseModel):
	success: bool = True
	comment_hex: str = Field(serialization_alias="commentHex")
	state: str
	html: str


class FailureResponse(BaseModel):
	success: bool = False
	message: str
