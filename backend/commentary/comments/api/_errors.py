"""Error translation helpers for the comments API."""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse

from commentary.comments.domain import exceptions
from commentary.comments.schemas import dto

logger = logging.getLogger(__name__)


def to_failure_response(exc: Exception) -> JSONResponse:
	"""Translate an exception into the in-body failure envelope (status stays 200)."""
	if isinstance(exc, exceptions.CommentError):
		message = exc.message
	else:
		logger.exception("unhandled error while creating comment")
		message = exceptions.InternalError.message
	return JSONResponse(content=dto.FailureResponse(message=message).model_dump())
