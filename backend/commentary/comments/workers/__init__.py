"""Background workers for the comments package."""

from commentary.comments.workers.notification_worker import NotificationWorker
from commentary.comments.workers.runner import spawn_workers

__all__ = ["NotificationWorker", "spawn_workers"]
