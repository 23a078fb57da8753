"""Custom exceptions for comment submission."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class CommentError(Exception):
	"""Base class for submission errors.

	``message`` is safe to show to the submitter; ``reason`` is a stable code
	used for metrics and logs.
	"""

	kind: str = "comment_error"
	status_code: int = status.HTTP_400_BAD_REQUEST
	reason: str = "comment_error"
	message: str = "Your comment could not be posted."

	def __init__(self, message: str | None = None) -> None:
		super().__init__(message or self.message)
		if message:
			self.message = message


class ValidationError(CommentError):
	"""Client supplied a missing or malformed field."""

	kind = "validation"
	status_code = _HTTP_422
	reason = "validation_error"


class MissingField(ValidationError):
	reason = "missing_field"
	message = "Missing field(s)."


class DomainNotFound(ValidationError):
	status_code = status.HTTP_404_NOT_FOUND
	reason = "no_such_domain"
	message = "This domain is not registered."


class StateError(CommentError):
	"""The target resource is in a state that forbids new comments."""

	kind = "state"
	status_code = status.HTTP_409_CONFLICT
	reason = "state_error"


class DomainFrozen(StateError):
	reason = "domain_frozen"
	message = "Cannot add a comment to a frozen domain. Please contact the domain owner."


class ThreadLocked(StateError):
	reason = "thread_locked"
	message = "This thread is locked. You cannot add new comments."


class AuthorizationError(CommentError):
	"""The actor is unknown or not allowed to comment."""

	kind = "authorization"
	status_code = status.HTTP_403_FORBIDDEN
	reason = "authorization_error"


class NotAuthorised(AuthorizationError):
	reason = "identification_required"
	message = "You're not authorised to do that."


class NoSuchToken(AuthorizationError):
	status_code = status.HTTP_401_UNAUTHORIZED
	reason = "no_such_token"
	message = "This session token is invalid."


class PermissionDenied(AuthorizationError):
	reason = "permission_denied"
	message = "permission denied"


class InternalError(CommentError):
	"""System-side failure; the public message never carries the cause."""

	kind = "internal"
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	reason = "internal_error"
	message = "Some internal error occurred."

	def __init__(self, reason: str | None = None) -> None:
		super().__init__()
		if reason:
			self.reason = reason
