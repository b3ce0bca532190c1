"""At most one in-flight job per trigger key.

Hey future me - the guard lives in the SHARED job_locks table, not in process memory.
Two browser tabs, two uvicorn workers or two servers triggering "cleanup-expired" at the
same moment all race on the same primary key, and exactly one INSERT wins.

run_exclusive() never queues: if the key is taken it raises JobAlreadyRunningError right
away and the job is never started. The key is released in `finally`, so failures free it
too. If a process dies mid-job, its row goes stale after job_lock_ttl_seconds and the next
caller takes it over.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from trackdeck.domain.exceptions import JobAlreadyRunningError
from trackdeck.domain.ports import IJobLockRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TriggerKey:
    """Builders for trigger keys. Per-artist and global keys never collide."""

    ALL_ARTIST_STATS = "all-artist-stats"
    CLEANUP_EXPIRED = "cleanup-expired"
    CLEANUP_FALSE_POSITIVE = "cleanup-false-positive"
    RELEASE_CHECK_ALL = "release-check:all"
    GAME_CHECK_ALL = "game-check:all"

    @staticmethod
    def single_artist(artist_id: str) -> str:
        return f"single-artist:{artist_id}"

    @staticmethod
    def user_artist_stats(user_id: str) -> str:
        return f"user-artist-stats:{user_id}"

    @staticmethod
    def release_check_artist(artist_id: str) -> str:
        return f"release-check:artist:{artist_id}"

    @staticmethod
    def release_check_user(user_id: str) -> str:
        return f"release-check:user:{user_id}"

    @staticmethod
    def game_check(user_id: str | None) -> str:
        return f"game-check:{user_id}" if user_id else TriggerKey.GAME_CHECK_ALL


class UpdateCoordinator:
    """Runs jobs exclusively per trigger key."""

    def __init__(
        self,
        locks: IJobLockRepository,
        lock_ttl: timedelta = timedelta(seconds=900),
        owner: str | None = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            locks: Shared lock storage
            lock_ttl: Age after which a held key counts as abandoned
            owner: Identity written into lock rows (random per coordinator by default)
        """
        self._locks = locks
        self._lock_ttl = lock_ttl
        self._owner = owner or uuid.uuid4().hex

    async def run_exclusive(self, key: str, job: Callable[[], Awaitable[T]]) -> T:
        """Run job while holding key.

        Args:
            key: Trigger key (see TriggerKey)
            job: Zero-argument coroutine function; only called once the key is held

        Returns:
            Whatever job returns (exceptions propagate unchanged)

        Raises:
            JobAlreadyRunningError: Another job holds key; job was not started
        """
        now = datetime.now(UTC)
        # Per-run token: a run whose lock was taken over must not release the new holder
        token = f"{self._owner}:{uuid.uuid4().hex[:8]}"
        acquired = await self._locks.acquire(
            key, token, now=now, stale_before=now - self._lock_ttl
        )
        if not acquired:
            logger.info(f"Job '{key}' already running, rejecting trigger")
            raise JobAlreadyRunningError(key)

        try:
            return await job()
        finally:
            await self._locks.release(key, token)

    async def is_running(self, key: str) -> bool:
        return await self._locks.is_locked(key)
