"""Background workers."""

from trackdeck.application.workers.notification_cleanup_worker import NotificationCleanupWorker

__all__ = ["NotificationCleanupWorker"]
