"""Notification Cleanup Worker - runs both notification sweeps on a schedule.

Hey future me - this worker is the "scheduled sweep" trigger source. Every
cleanup_interval_seconds it fires:

1. trigger_expiry_cleanup()          active → expired once the 7-day window is over
2. trigger_false_positive_cleanup()  active → retracted when the reason is gone

It goes through the SAME trigger surface as the API, acting as ADMIN. That means
it shares the job_locks keys with manual triggers: if a user clicked "clean up" a
second ago, this cycle just logs "already running" and moves on.
"""

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any

from trackdeck.application.services.tracking_service import TrackingService, TriggerStatus
from trackdeck.domain.entities import UserRole
from trackdeck.infrastructure.observability import log_worker_health

logger = logging.getLogger(__name__)


class NotificationCleanupWorker:
    """Periodically expires and retracts notifications.

    Lifecycle:
    - Created in main.py lifespan during app startup
    - Runs as asyncio task via start()
    - Stopped gracefully via stop() during shutdown
    """

    # Health line every N cycles
    HEALTH_LOG_EVERY = 10

    def __init__(self, tracking: TrackingService, check_interval: int = 3600) -> None:
        """Initialize the cleanup worker.

        Args:
            tracking: Trigger surface used to run the sweeps
            check_interval: Seconds between cycles (default: 3600)
        """
        self._tracking = tracking
        self._check_interval = check_interval
        self._running = False
        self._started_at: float | None = None
        self._stats: dict[str, Any] = {
            "cycles_completed": 0,
            "errors_total": 0,
            "total_expired": 0,
            "total_retracted": 0,
            "last_run_at": None,
        }

    async def start(self) -> None:
        """Start the worker. Runs until stop() is called."""
        self._running = True
        self._started_at = time.monotonic()
        logger.info(f"NotificationCleanupWorker started (check_interval={self._check_interval}s)")

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                # Log but don't crash - we'll try again next cycle
                self._stats["errors_total"] += 1
                logger.exception(f"NotificationCleanupWorker error: {e}")

            await asyncio.sleep(self._check_interval)

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("NotificationCleanupWorker stopping...")

    async def run_once(self) -> dict[str, int]:
        """Run one cleanup cycle.

        Returns:
            Counts per sweep for this cycle
        """
        expired = await self._tracking.trigger_expiry_cleanup(UserRole.ADMIN)
        retracted = await self._tracking.trigger_false_positive_cleanup(UserRole.ADMIN)

        for name, result in (("expiry", expired), ("false-positive", retracted)):
            if result.status is TriggerStatus.ALREADY_RUNNING:
                logger.info(f"Skipping {name} sweep this cycle: already running")
            elif not result.succeeded:
                self._stats["errors_total"] += 1
                logger.warning(f"{name} sweep {result.status.value}: {result.message}")

        self._stats["cycles_completed"] += 1
        self._stats["total_expired"] += expired.count
        self._stats["total_retracted"] += retracted.count
        self._stats["last_run_at"] = datetime.now(UTC)

        if self._stats["cycles_completed"] % self.HEALTH_LOG_EVERY == 0:
            log_worker_health(
                logger,
                "notification_cleanup",
                cycles_completed=self._stats["cycles_completed"],
                errors_total=self._stats["errors_total"],
                uptime_seconds=time.monotonic() - (self._started_at or time.monotonic()),
            )

        return {"expired": expired.count, "retracted": retracted.count}

    def get_stats(self) -> dict[str, Any]:
        """Get worker statistics."""
        return {
            **self._stats,
            "running": self._running,
            "check_interval": self._check_interval,
        }
