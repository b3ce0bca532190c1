"""Repository implementations for domain entities."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trackdeck.domain.entities import (
    Artist,
    Game,
    GameReleaseStatus,
    Notification,
    NotificationCounts,
    NotificationState,
    Platform,
    PlatformLink,
    PlatformStat,
    Release,
    SubjectType,
    UserRole,
)
from trackdeck.domain.exceptions import EntityNotFoundException
from trackdeck.domain.ports import (
    IArtistRepository,
    IGameRepository,
    IJobLockRepository,
    INotificationRepository,
    IReleaseRepository,
    IUserRoleRepository,
)
from trackdeck.domain.value_objects import ArtistId, GameId, NotificationId, ReleaseId

from .models import (
    ArtistModel,
    GameModel,
    JobLockModel,
    NotificationModel,
    ReleaseModel,
    UserRoleModel,
    ensure_utc_aware,
)

logger = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    return ensure_utc_aware(dt) if dt is not None else None


class ArtistRepository(IArtistRepository):
    """SQLAlchemy implementation of Artist repository."""

    # Hey future me, repositories get the session injected and NEVER commit. The caller's
    # session_scope() commits the whole unit of work at once, or rolls it back - that's
    # what makes a failed stats job leave no partial state behind.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, artist: Artist) -> None:
        """Add a new artist."""
        model = ArtistModel(id=artist.id.value, created_at=artist.created_at)
        self._apply(model, artist)
        self.session.add(model)

    async def update(self, artist: Artist) -> None:
        """Update an existing artist."""
        model = await self.session.get(ArtistModel, artist.id.value)
        if not model:
            raise EntityNotFoundException("Artist", artist.id.value)
        self._apply(model, artist)

    async def delete(self, artist_id: ArtistId) -> None:
        """Delete an artist. Releases go with it (ON DELETE CASCADE)."""
        stmt = delete(ArtistModel).where(ArtistModel.id == artist_id.value)
        result = await self.session.execute(stmt)
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise EntityNotFoundException("Artist", artist_id.value)

    async def get_by_id(self, artist_id: ArtistId) -> Artist | None:
        """Get an artist by ID."""
        model = await self.session.get(ArtistModel, artist_id.value)
        return self._to_entity(model) if model else None

    async def list_by_user(self, user_id: str, limit: int | None = None) -> list[Artist]:
        """List the artists followed by a user, oldest first."""
        stmt = (
            select(ArtistModel)
            .where(ArtistModel.user_id == user_id)
            .order_by(ArtistModel.created_at, ArtistModel.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_all(self, limit: int | None = None) -> list[Artist]:
        """List every artist."""
        stmt = select(ArtistModel).order_by(ArtistModel.created_at, ArtistModel.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    # Yo, "stale" = never updated OR last updated before the cutoff. Never-updated artists
    # come first so freshly linked artists get numbers on the very next run.
    async def list_stale(self, updated_before: datetime, limit: int) -> list[Artist]:
        """List artists whose stats need refreshing."""
        stmt = (
            select(ArtistModel)
            .where(
                or_(
                    ArtistModel.last_stats_update.is_(None),
                    ArtistModel.last_stats_update < updated_before,
                )
            )
            .order_by(ArtistModel.last_stats_update.asc().nulls_first(), ArtistModel.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _apply(model: ArtistModel, artist: Artist) -> None:
        model.user_id = artist.user_id
        model.name = artist.name
        model.links = [
            {"platform": link.platform.value, "platform_id": link.platform_id, "url": link.url}
            for link in artist.links
        ]
        model.platform_stats = [stat.to_dict() for stat in artist.platform_stats]
        model.total_followers = artist.total_followers
        model.average_popularity = artist.average_popularity
        model.image_url = artist.image_url
        model.genres = list(artist.genres)
        model.last_release = artist.last_release
        model.last_stats_update = artist.last_stats_update
        model.updated_at = artist.updated_at

    @staticmethod
    def _to_entity(model: ArtistModel) -> Artist:
        return Artist(
            id=ArtistId.from_string(model.id),
            user_id=model.user_id,
            name=model.name,
            links=[
                PlatformLink(
                    platform=Platform(link["platform"]),
                    platform_id=link["platform_id"],
                    url=link.get("url"),
                )
                for link in (model.links or [])
            ],
            platform_stats=[PlatformStat.from_dict(stat) for stat in (model.platform_stats or [])],
            total_followers=model.total_followers or 0,
            average_popularity=model.average_popularity,
            image_url=model.image_url,
            genres=list(model.genres or []),
            last_release=_aware(model.last_release),
            last_stats_update=_aware(model.last_stats_update),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )


class ReleaseRepository(IReleaseRepository):
    """SQLAlchemy implementation of Release repository."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, release: Release) -> None:
        model = ReleaseModel(
            id=release.id.value,
            artist_id=release.artist_id.value,
            platform=release.platform.value,
            native_id=release.native_id,
            native_key=release.native_key,
            created_at=release.created_at,
        )
        self._apply(model, release)
        self.session.add(model)

    async def update(self, release: Release) -> None:
        model = await self.session.get(ReleaseModel, release.id.value)
        if not model:
            raise EntityNotFoundException("Release", release.id.value)
        self._apply(model, release)

    async def get_by_id(self, release_id: ReleaseId) -> Release | None:
        model = await self.session.get(ReleaseModel, release_id.value)
        return self._to_entity(model) if model else None

    async def list_for_artist(self, artist_id: ArtistId) -> list[Release]:
        stmt = (
            select(ReleaseModel)
            .where(ReleaseModel.artist_id == artist_id.value)
            .order_by(ReleaseModel.release_date.desc(), ReleaseModel.native_key)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _apply(model: ReleaseModel, release: Release) -> None:
        model.name = release.name
        model.release_type = release.release_type
        model.release_date = release.release_date
        model.total_tracks = release.total_tracks
        model.popularity = release.popularity
        model.url = release.url
        model.image_url = release.image_url
        model.updated_at = release.updated_at

    @staticmethod
    def _to_entity(model: ReleaseModel) -> Release:
        return Release(
            id=ReleaseId.from_string(model.id),
            artist_id=ArtistId.from_string(model.artist_id),
            platform=Platform(model.platform),
            native_id=model.native_id,
            name=model.name,
            release_type=model.release_type,
            release_date=model.release_date,
            total_tracks=model.total_tracks,
            popularity=model.popularity,
            url=model.url,
            image_url=model.image_url,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )


class GameRepository(IGameRepository):
    """SQLAlchemy implementation of Game repository."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, game: Game) -> None:
        model = GameModel(id=game.id.value, created_at=game.created_at)
        self._apply(model, game)
        self.session.add(model)

    async def update(self, game: Game) -> None:
        model = await self.session.get(GameModel, game.id.value)
        if not model:
            raise EntityNotFoundException("Game", game.id.value)
        self._apply(model, game)

    async def get_by_id(self, game_id: GameId) -> Game | None:
        model = await self.session.get(GameModel, game_id.value)
        return self._to_entity(model) if model else None

    async def delete(self, game_id: GameId) -> None:
        result = await self.session.execute(delete(GameModel).where(GameModel.id == game_id.value))
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise EntityNotFoundException("Game", game_id.value)

    async def list_by_user(self, user_id: str | None = None) -> list[Game]:
        stmt = select(GameModel).order_by(GameModel.created_at, GameModel.id)
        if user_id is not None:
            stmt = stmt.where(GameModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _apply(model: GameModel, game: Game) -> None:
        model.user_id = game.user_id
        model.name = game.name
        model.platform = game.platform
        model.url = game.url
        model.image_url = game.image_url
        model.release_date = game.release_date
        model.release_status = game.release_status.value
        model.updated_at = game.updated_at

    @staticmethod
    def _to_entity(model: GameModel) -> Game:
        try:
            status = GameReleaseStatus(model.release_status)
        except ValueError:
            status = GameReleaseStatus.UNKNOWN
        return Game(
            id=GameId.from_string(model.id),
            user_id=model.user_id,
            name=model.name,
            platform=model.platform,
            url=model.url,
            image_url=model.image_url,
            release_date=model.release_date,
            release_status=status,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )


class NotificationRepository(INotificationRepository):
    """SQLAlchemy implementation of Notification repository."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, notification: Notification) -> None:
        self.session.add(
            NotificationModel(
                id=notification.id.value,
                user_id=notification.user_id,
                subject_type=notification.subject_type.value,
                subject_id=notification.subject_id,
                release_key=notification.release_key,
                release_id=notification.release_id,
                title=notification.title,
                description=notification.description,
                platform_url=notification.platform_url,
                image_url=notification.image_url,
                state=notification.state.value,
                created_at=notification.created_at,
                expires_at=notification.expires_at,
                state_changed_at=notification.state_changed_at,
                retraction_reason=notification.retraction_reason,
            )
        )

    async def get_by_id(self, notification_id: NotificationId) -> Notification | None:
        model = await self.session.get(NotificationModel, notification_id.value)
        return self._to_entity(model) if model else None

    async def list_active(self) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.state == NotificationState.ACTIVE.value)
            .order_by(NotificationModel.created_at, NotificationModel.id)
        )
        return await self._fetch(stmt)

    async def list_active_due(self, now: datetime) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(
                NotificationModel.state == NotificationState.ACTIVE.value,
                NotificationModel.expires_at <= now,
            )
            .order_by(NotificationModel.expires_at, NotificationModel.id)
        )
        return await self._fetch(stmt)

    async def list_active_for_subject(
        self, subject_type: SubjectType, subject_id: str
    ) -> list[Notification]:
        stmt = select(NotificationModel).where(
            NotificationModel.state == NotificationState.ACTIVE.value,
            NotificationModel.subject_type == subject_type.value,
            NotificationModel.subject_id == subject_id,
        )
        return await self._fetch(stmt)

    async def exists_for(
        self, subject_type: SubjectType, subject_id: str, release_key: str
    ) -> bool:
        stmt = select(func.count(NotificationModel.id)).where(
            NotificationModel.subject_type == subject_type.value,
            NotificationModel.subject_id == subject_id,
            NotificationModel.release_key == release_key,
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def notified_release_keys(self, subject_type: SubjectType, subject_id: str) -> set[str]:
        stmt = (
            select(NotificationModel.release_key)
            .where(
                NotificationModel.subject_type == subject_type.value,
                NotificationModel.subject_id == subject_id,
            )
            .distinct()
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    # Hey future me - the WHERE state='active' guard is what keeps transitions forward-only
    # even when two sweeps race: the second UPDATE matches zero rows and we report False.
    async def save_transition(self, notification: Notification) -> bool:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification.id.value,
                NotificationModel.state == NotificationState.ACTIVE.value,
            )
            .values(
                state=notification.state.value,
                state_changed_at=notification.state_changed_at,
                retraction_reason=notification.retraction_reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_for_user(
        self,
        user_id: str,
        state: NotificationState | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if state is not None:
            stmt = stmt.where(NotificationModel.state == state.value)
        stmt = (
            stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.id)
            .limit(limit)
            .offset(offset)
        )
        return await self._fetch(stmt)

    async def count_by_state(self, user_id: str | None = None) -> NotificationCounts:
        stmt = select(NotificationModel.state, func.count(NotificationModel.id)).group_by(
            NotificationModel.state
        )
        if user_id is not None:
            stmt = stmt.where(NotificationModel.user_id == user_id)
        result = await self.session.execute(stmt)
        counts: dict[str, int] = {state: count for state, count in result.all()}
        return NotificationCounts(
            active=counts.get(NotificationState.ACTIVE.value, 0),
            expired=counts.get(NotificationState.EXPIRED.value, 0),
            retracted=counts.get(NotificationState.RETRACTED.value, 0),
        )

    async def _fetch(self, stmt: Any) -> list[Notification]:
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=NotificationId.from_string(model.id),
            user_id=model.user_id,
            subject_type=SubjectType(model.subject_type),
            subject_id=model.subject_id,
            release_key=model.release_key,
            release_id=model.release_id,
            title=model.title,
            description=model.description,
            platform_url=model.platform_url,
            image_url=model.image_url,
            state=NotificationState(model.state),
            created_at=ensure_utc_aware(model.created_at),
            expires_at=ensure_utc_aware(model.expires_at),
            state_changed_at=_aware(model.state_changed_at),
            retraction_reason=model.retraction_reason,
        )


class UserRoleRepository(IUserRoleRepository):
    """SQLAlchemy implementation of user role storage."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_role(self, user_id: str | None) -> UserRole:
        if not user_id:
            return UserRole.UNKNOWN
        model = await self.session.get(UserRoleModel, user_id)
        if model is None:
            return UserRole.UNKNOWN
        return UserRole.parse(model.role)

    async def set_role(self, user_id: str, role: UserRole) -> None:
        model = await self.session.get(UserRoleModel, user_id)
        if model is None:
            self.session.add(UserRoleModel(user_id=user_id, role=role.value))
        else:
            model.role = role.value

    async def list_users(self, role: UserRole | None = None) -> list[tuple[str, UserRole]]:
        stmt = select(UserRoleModel).order_by(UserRoleModel.user_id)
        if role is not None:
            stmt = stmt.where(UserRoleModel.role == role.value)
        result = await self.session.execute(stmt)
        return [(m.user_id, UserRole.parse(m.role)) for m in result.scalars().all()]


# Listen up, JobLockRepository is the ONE repository that owns its sessions! Acquire and
# release must be committed IMMEDIATELY and independently of the job's own transaction -
# otherwise other instances wouldn't see the lock until the job commits (way too late).
class JobLockRepository(IJobLockRepository):
    """Shared exclusivity table backed by the job_locks table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def acquire(self, key: str, owner: str, now: datetime, stale_before: datetime) -> bool:
        async with self._session_factory() as session:
            existing = await session.get(JobLockModel, key)
            if existing is not None:
                if ensure_utc_aware(existing.acquired_at) >= stale_before:
                    return False
                # Abandoned by a crashed instance. Conditional delete so only one taker wins.
                logger.warning(
                    f"Taking over abandoned job lock '{key}' (held by {existing.owner} "
                    f"since {existing.acquired_at})"
                )
                session.expunge(existing)
                await session.execute(
                    delete(JobLockModel)
                    .where(
                        JobLockModel.key == key,
                        JobLockModel.acquired_at < stale_before,
                    )
                    .execution_options(synchronize_session=False)
                )
            session.add(JobLockModel(key=key, owner=owner, acquired_at=now))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

    async def release(self, key: str, owner: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(JobLockModel).where(JobLockModel.key == key, JobLockModel.owner == owner)
            )
            await session.commit()

    async def is_locked(self, key: str) -> bool:
        async with self._session_factory() as session:
            return await session.get(JobLockModel, key) is not None
