"""Trigger surface for stats updates, release checks and notification cleanup.

Hey future me - EVERY mutating entry point goes through the same pipeline:

    RoleGate ──deny──► TriggerResult(DENIED)        nothing touched
       │
    UpdateCoordinator ──key taken──► TriggerResult(ALREADY_RUNNING)
       │
    one DB session (session_scope) + log_operation
       │
    commit ──► TriggerResult(SUCCESS, count)
    any error ──► rollback ──► TriggerResult(FAILED)

The four outcomes are distinct on purpose. The API maps them to 200/403/409/502 and
the cleanup worker just logs them. Trigger methods never raise. CRUD methods
(add/link/remove) raise domain exceptions instead, the API exception handlers map those.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from trackdeck.application.services.artist_stats_service import ArtistStatsService
from trackdeck.application.services.notification_lifecycle import NotificationLifecycleManager
from trackdeck.application.services.release_check_service import ReleaseCheckService
from trackdeck.application.services.release_detector import ReleaseDetector
from trackdeck.application.services.role_gate import RoleGate
from trackdeck.application.services.stats_aggregator import StatsAggregator
from trackdeck.application.services.update_coordinator import TriggerKey, UpdateCoordinator
from trackdeck.config import TrackingSettings
from trackdeck.domain.entities import (
    Artist,
    Game,
    GameReleaseStatus,
    Notification,
    NotificationCounts,
    NotificationState,
    Operation,
    Platform,
    PlatformArtistSummary,
    PlatformLink,
    StatsScope,
    SubjectType,
    UserRole,
)
from trackdeck.domain.exceptions import (
    EntityNotFoundException,
    ExternalServiceError,
    JobAlreadyRunningError,
    OperationDeniedError,
    ValidationException,
)
from trackdeck.domain.ports import IPlatformStatsSource
from trackdeck.domain.value_objects import ArtistId, GameId
from trackdeck.infrastructure.observability import log_operation
from trackdeck.infrastructure.persistence import (
    ArtistRepository,
    Database,
    GameRepository,
    JobLockRepository,
    NotificationRepository,
    ReleaseRepository,
    UserRoleRepository,
)

logger = logging.getLogger(__name__)


class TriggerStatus(str, Enum):
    """How a trigger resolved."""

    SUCCESS = "success"
    DENIED = "denied"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"


@dataclass(frozen=True)
class TriggerResult:
    """Outcome of a trigger: exactly one status, plus a count on success."""

    status: TriggerStatus
    count: int = 0
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is TriggerStatus.SUCCESS


@dataclass
class _JobContext:
    """Repositories and services bound to one job session."""

    artists: ArtistRepository
    releases: ReleaseRepository
    games: GameRepository
    notifications: NotificationRepository
    lifecycle: NotificationLifecycleManager
    stats: ArtistStatsService
    release_checks: ReleaseCheckService


JobWork = Callable[[_JobContext, datetime], Awaitable[int]]


class TrackingService:
    """Entry point for every tracking operation."""

    def __init__(
        self,
        database: Database,
        sources: dict[Platform, IPlatformStatsSource],
        settings: TrackingSettings | None = None,
        role_gate: RoleGate | None = None,
        coordinator: UpdateCoordinator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._database = database
        self._sources = sources
        self._settings = settings or TrackingSettings()
        self._gate = role_gate or RoleGate()
        self._coordinator = coordinator or UpdateCoordinator(
            JobLockRepository(database.session_factory),
            lock_ttl=timedelta(seconds=self._settings.job_lock_ttl_seconds),
        )
        self._clock = clock or (lambda: datetime.now(UTC))
        self._ttl = timedelta(days=self._settings.notification_ttl_days)
        self._aggregator = StatsAggregator(self._settings.popularity_precision)
        self._detector = ReleaseDetector(self._ttl)

    # =========================================================================
    # TRIGGERS (never raise, always resolve to a TriggerResult)
    # =========================================================================

    async def trigger_stats_update(
        self, role: UserRole | str | None, scope: StatsScope
    ) -> TriggerResult:
        """Refresh artist statistics for a scope."""
        if scope.kind == "artist" and scope.artist_id is not None:
            key = TriggerKey.single_artist(scope.artist_id.value)
        elif scope.kind == "user" and scope.user_id:
            key = TriggerKey.user_artist_stats(scope.user_id)
        else:
            key = TriggerKey.ALL_ARTIST_STATS

        async def work(ctx: _JobContext, now: datetime) -> int:
            return await ctx.stats.update(scope, now)

        return await self._run(
            role, Operation.TRIGGER_STATS_UPDATE, key, "stats_update", work, scope=scope.kind
        )

    async def trigger_release_check(
        self, role: UserRole | str | None, scope: StatsScope
    ) -> TriggerResult:
        """Check linked platforms for new releases (authorized like a stats update)."""
        if scope.kind == "artist" and scope.artist_id is not None:
            key = TriggerKey.release_check_artist(scope.artist_id.value)
        elif scope.kind == "user" and scope.user_id:
            key = TriggerKey.release_check_user(scope.user_id)
        else:
            key = TriggerKey.RELEASE_CHECK_ALL

        async def work(ctx: _JobContext, now: datetime) -> int:
            return await ctx.release_checks.check_artists(scope, now)

        return await self._run(
            role, Operation.TRIGGER_STATS_UPDATE, key, "release_check", work, scope=scope.kind
        )

    async def trigger_game_check(
        self, role: UserRole | str | None, user_id: str | None = None
    ) -> TriggerResult:
        """Notify about followed games that came out."""

        async def work(ctx: _JobContext, now: datetime) -> int:
            return await ctx.release_checks.check_games(user_id, now)

        return await self._run(
            role, Operation.TRIGGER_STATS_UPDATE, TriggerKey.game_check(user_id), "game_check", work
        )

    async def trigger_expiry_cleanup(self, role: UserRole | str | None) -> TriggerResult:
        """Expire notifications whose window elapsed."""

        async def work(ctx: _JobContext, now: datetime) -> int:
            return await ctx.lifecycle.sweep_expired(now)

        return await self._run(
            role, Operation.TRIGGER_CLEANUP, TriggerKey.CLEANUP_EXPIRED, "cleanup_expired", work
        )

    async def trigger_false_positive_cleanup(self, role: UserRole | str | None) -> TriggerResult:
        """Retract notifications whose reason no longer holds."""

        async def work(ctx: _JobContext, now: datetime) -> int:
            return await ctx.lifecycle.sweep_false_positives(now)

        return await self._run(
            role,
            Operation.TRIGGER_CLEANUP,
            TriggerKey.CLEANUP_FALSE_POSITIVE,
            "cleanup_false_positive",
            work,
        )

    async def _run(
        self,
        role: UserRole | str | None,
        operation: Operation,
        key: str,
        operation_name: str,
        work: JobWork,
        **context: str,
    ) -> TriggerResult:
        try:
            self._gate.require(role, operation)
        except OperationDeniedError as e:
            logger.info(f"{operation_name} denied: {e.message}")
            return TriggerResult(TriggerStatus.DENIED, message=e.message)

        async def job() -> int:
            async with log_operation(logger, operation_name, trigger_key=key, **context):
                async with self._database.session_scope() as session:
                    return await work(self._context(session), self._clock())

        try:
            count = await self._coordinator.run_exclusive(key, job)
        except JobAlreadyRunningError as e:
            return TriggerResult(TriggerStatus.ALREADY_RUNNING, message=e.message)
        except Exception as e:
            # log_operation already logged the traceback for job failures
            logger.warning(f"{operation_name} failed for '{key}': {e}")
            return TriggerResult(TriggerStatus.FAILED, message=str(e))

        return TriggerResult(TriggerStatus.SUCCESS, count=count)

    def _context(self, session: AsyncSession) -> _JobContext:
        artists = ArtistRepository(session)
        releases = ReleaseRepository(session)
        games = GameRepository(session)
        notifications = NotificationRepository(session)
        lifecycle = NotificationLifecycleManager(
            notifications, artists, releases, games, notification_ttl=self._ttl
        )
        return _JobContext(
            artists=artists,
            releases=releases,
            games=games,
            notifications=notifications,
            lifecycle=lifecycle,
            stats=ArtistStatsService(
                artists,
                self._sources,
                self._aggregator,
                batch_size=self._settings.stats_batch_size,
                stale_after=timedelta(minutes=self._settings.stats_stale_after_minutes),
            ),
            release_checks=ReleaseCheckService(
                artists, releases, games, notifications, self._sources, self._detector, lifecycle
            ),
        )

    # =========================================================================
    # ARTISTS & GAMES (raise domain exceptions)
    # =========================================================================

    async def add_artist(
        self,
        role: UserRole | str | None,
        user_id: str,
        name: str,
        links: list[PlatformLink],
    ) -> Artist:
        """Create a canonical artist from its first platform link(s)."""
        self._gate.require(role, Operation.ADD)
        if not links:
            raise ValidationException("An artist needs at least one platform link")
        try:
            artist = Artist(id=ArtistId.generate(), user_id=user_id, name=name)
        except ValueError as e:
            raise ValidationException(str(e)) from e
        for link in links:
            artist.link_platform(link)

        async with self._database.session_scope() as session:
            await ArtistRepository(session).add(artist)
        logger.info(f"Added artist {artist.name} ({artist.id.value}) for user {user_id}")
        return artist

    async def link_platform(
        self, role: UserRole | str | None, artist_id: ArtistId, link: PlatformLink
    ) -> Artist:
        """Link another platform profile to an artist."""
        self._gate.require(role, Operation.ADD)
        async with self._database.session_scope() as session:
            repo = ArtistRepository(session)
            artist = await repo.get_by_id(artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id.value)
            artist.link_platform(link)
            await repo.update(artist)
        return artist

    async def remove_artist(self, role: UserRole | str | None, artist_id: ArtistId) -> int:
        """Delete an artist with its releases and retract its active notifications.

        Returns:
            Number of notifications retracted
        """
        self._gate.require(role, Operation.REMOVE)
        async with self._database.session_scope() as session:
            ctx = self._context(session)
            await ctx.artists.delete(artist_id)
            retracted = await ctx.lifecycle.retract_for_subject(
                SubjectType.ARTIST, artist_id.value, self._clock()
            )
        logger.info(f"Removed artist {artist_id.value}, retracted {retracted} notifications")
        return retracted

    async def add_game(
        self,
        role: UserRole | str | None,
        user_id: str,
        name: str,
        platform: str = "steam",
        url: str | None = None,
        image_url: str | None = None,
        release_date: str | None = None,
        release_status: GameReleaseStatus = GameReleaseStatus.UNKNOWN,
    ) -> Game:
        """Follow a game."""
        self._gate.require(role, Operation.ADD)
        try:
            game = Game(
                id=GameId.generate(),
                user_id=user_id,
                name=name,
                platform=platform,
                url=url,
                image_url=image_url,
                release_date=release_date,
                release_status=release_status,
            )
        except ValueError as e:
            raise ValidationException(str(e)) from e

        async with self._database.session_scope() as session:
            await GameRepository(session).add(game)
        return game

    async def remove_game(self, role: UserRole | str | None, game_id: GameId) -> int:
        """Unfollow a game and retract its active notifications.

        Returns:
            Number of notifications retracted
        """
        self._gate.require(role, Operation.REMOVE)
        async with self._database.session_scope() as session:
            ctx = self._context(session)
            await ctx.games.delete(game_id)
            return await ctx.lifecycle.retract_for_subject(
                SubjectType.GAME, game_id.value, self._clock()
            )

    # =========================================================================
    # READS (no role needed)
    # =========================================================================

    async def list_artists(self, user_id: str) -> list[Artist]:
        async with self._database.session_scope() as session:
            return await ArtistRepository(session).list_by_user(user_id)

    async def get_artist(self, artist_id: ArtistId) -> Artist:
        async with self._database.session_scope() as session:
            artist = await ArtistRepository(session).get_by_id(artist_id)
        if artist is None:
            raise EntityNotFoundException("Artist", artist_id.value)
        return artist

    async def list_games(self, user_id: str) -> list[Game]:
        async with self._database.session_scope() as session:
            return await GameRepository(session).list_by_user(user_id)

    async def list_notifications(
        self,
        user_id: str,
        state: NotificationState | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        async with self._database.session_scope() as session:
            return await NotificationRepository(session).list_for_user(
                user_id, state=state, limit=limit, offset=offset
            )

    async def notification_counts(self, user_id: str) -> NotificationCounts:
        async with self._database.session_scope() as session:
            return await NotificationRepository(session).count_by_state(user_id)

    # =========================================================================
    # PLATFORM SEARCH
    # =========================================================================

    async def search_artists(
        self, query: str, platform: Platform | None = None
    ) -> list[PlatformArtistSummary]:
        """Search artists on one platform, or on every configured one.

        Platforms that fail are left out of the result. Hits keep platform order.
        """
        query = query.strip()
        if not query:
            raise ValidationException("Search query must not be empty")
        if platform is not None and platform not in self._sources:
            raise ValidationException(f"No source configured for platform {platform.value}")

        platforms = [platform] if platform is not None else list(self._sources)
        results = await asyncio.gather(*(self._search_one(p, query) for p in platforms))
        return [hit for hits in results for hit in hits]

    async def _search_one(self, platform: Platform, query: str) -> list[PlatformArtistSummary]:
        try:
            return await self._sources[platform].search_artists(query)
        except ExternalServiceError as e:
            logger.warning(f"Omitting {platform.value} from search for '{query}': {e}")
            return []

    # =========================================================================
    # USER ROLES
    # =========================================================================

    async def assign_role(
        self, role: UserRole | str | None, user_id: str, new_role: UserRole | str
    ) -> UserRole:
        """Set the role of a user. Admins only.

        Raises:
            OperationDeniedError: acting role may not manage roles
            ValidationException: empty user id or unrecognized target role
        """
        self._gate.require(role, Operation.MANAGE_ROLES)
        user_id = user_id.strip()
        if not user_id:
            raise ValidationException("User id must not be empty")
        target = UserRole.parse(new_role)
        if target is UserRole.UNKNOWN:
            raise ValidationException(f"Cannot assign role '{new_role}'")

        async with self._database.session_scope() as session:
            repo = UserRoleRepository(session)
            previous = await repo.get_role(user_id)
            await repo.set_role(user_id, target)
        logger.info(f"Role of user {user_id} changed from {previous.value} to {target.value}")
        return target

    async def list_users(
        self, role: UserRole | str | None, with_role: UserRole | None = None
    ) -> list[tuple[str, UserRole]]:
        """Users known to the role table, e.g. everyone still PENDING. Admins only."""
        self._gate.require(role, Operation.MANAGE_ROLES)
        async with self._database.session_scope() as session:
            return await UserRoleRepository(session).list_users(with_role)

    async def ensure_admin(self, user_id: str) -> bool:
        """Make user_id an admin unless it already is. Used for the startup bootstrap.

        Returns:
            True if the role was written
        """
        async with self._database.session_scope() as session:
            repo = UserRoleRepository(session)
            if await repo.get_role(user_id) is UserRole.ADMIN:
                return False
            await repo.set_role(user_id, UserRole.ADMIN)
        logger.warning(f"Bootstrapped user {user_id} as admin")
        return True
