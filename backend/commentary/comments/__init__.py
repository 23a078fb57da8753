"""Comment submission package exposed to the application."""

from commentary.comments.api import router
from commentary.comments.workers import spawn_workers

__all__ = ["router", "spawn_workers"]
