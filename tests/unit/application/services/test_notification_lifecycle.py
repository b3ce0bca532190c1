"""Tests for NotificationLifecycleManager against a real SQLite store."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from trackdeck.application.services import NotificationLifecycleManager
from trackdeck.application.services.notification_lifecycle import (
    REASON_GAME_NOT_RELEASED,
    REASON_RELEASE_NOT_NEW,
    REASON_RELEASE_REMOVED,
    REASON_SUBJECT_REMOVED,
)
from trackdeck.domain.entities import (
    Artist,
    Game,
    GameReleaseStatus,
    Notification,
    NotificationState,
    Platform,
    PlatformLink,
    PlatformRelease,
    Release,
    SubjectType,
)
from trackdeck.domain.value_objects import ArtistId, GameId, NotificationId
from trackdeck.infrastructure.persistence import (
    ArtistRepository,
    Database,
    GameRepository,
    NotificationRepository,
    ReleaseRepository,
)
from trackdeck.infrastructure.persistence.models import ReleaseModel


def _manager(session: AsyncSession) -> NotificationLifecycleManager:
    return NotificationLifecycleManager(
        NotificationRepository(session),
        ArtistRepository(session),
        ReleaseRepository(session),
        GameRepository(session),
    )


async def _state(db: Database, notification: Notification) -> Notification:
    async with db.session_scope() as session:
        stored = await NotificationRepository(session).get_by_id(
            NotificationId.from_string(notification.id.value)
        )
    assert stored is not None
    return stored


async def _seed_artist_release(
    db: Database, now: datetime, release_date: str = "2025-06-14"
) -> tuple[Artist, Release, Notification]:
    """Artist with one release and one active notification created a day ago."""
    artist = Artist(id=ArtistId.generate(), user_id="user-1", name="Caribou")
    artist.link_platform(PlatformLink(Platform.SPOTIFY, "sp-caribou"))
    release = Release.from_report(
        artist.id,
        PlatformRelease(
            platform=Platform.SPOTIFY, native_id="r1", name="Honey", release_date=release_date
        ),
        now - timedelta(days=1),
    )
    notification = Notification.create(
        user_id=artist.user_id,
        subject_type=SubjectType.ARTIST,
        subject_id=artist.id.value,
        release_key=release.native_key,
        release_id=release.id.value,
        title=release.name,
        now=now - timedelta(days=1),
    )
    async with db.session_scope() as session:
        await ArtistRepository(session).add(artist)
        await ReleaseRepository(session).add(release)
        await NotificationRepository(session).add(notification)
    return artist, release, notification


async def _seed_game(
    db: Database, now: datetime, status: GameReleaseStatus, release_date: str
) -> tuple[Game, Notification]:
    game = Game(
        id=GameId.generate(),
        user_id="user-1",
        name="Balatro",
        release_status=status,
        release_date=release_date,
    )
    notification = Notification.create(
        user_id=game.user_id,
        subject_type=SubjectType.GAME,
        subject_id=game.id.value,
        release_key=game.release_key,
        title=game.name,
        now=now - timedelta(days=1),
    )
    async with db.session_scope() as session:
        await GameRepository(session).add(game)
        await NotificationRepository(session).add(notification)
    return game, notification


class TestSweepExpired:
    """Test the time-based sweep."""

    async def test_expires_only_due_notifications(self, db: Database, now: datetime) -> None:
        _, _, fresh = await _seed_artist_release(db, now)
        old = Notification.create(
            user_id="user-1",
            subject_type=SubjectType.GAME,
            subject_id=GameId.generate().value,
            release_key="game:x",
            title="Old",
            now=now - timedelta(days=8),
        )
        async with db.session_scope() as session:
            await NotificationRepository(session).add(old)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_expired(now)

        assert count == 1
        assert (await _state(db, old)).state is NotificationState.EXPIRED
        assert (await _state(db, fresh)).state is NotificationState.ACTIVE

    async def test_sweep_is_idempotent(self, db: Database, now: datetime) -> None:
        _, _, notification = await _seed_artist_release(db, now)
        later = now + timedelta(days=10)

        async with db.session_scope() as session:
            first = await _manager(session).sweep_expired(later)
        async with db.session_scope() as session:
            second = await _manager(session).sweep_expired(later)

        assert (first, second) == (1, 0)
        stored = await _state(db, notification)
        assert stored.state is NotificationState.EXPIRED
        assert stored.state_changed_at == later

    async def test_retracted_notifications_are_not_expired(
        self, db: Database, now: datetime
    ) -> None:
        artist, _, notification = await _seed_artist_release(db, now)
        async with db.session_scope() as session:
            await _manager(session).retract_for_subject(SubjectType.ARTIST, artist.id.value, now)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_expired(now + timedelta(days=30))

        assert count == 0
        assert (await _state(db, notification)).state is NotificationState.RETRACTED


class TestSweepFalsePositives:
    """Test the logic-based sweep."""

    async def test_valid_notifications_survive(self, db: Database, now: datetime) -> None:
        _, _, notification = await _seed_artist_release(db, now)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(now)

        assert count == 0
        assert (await _state(db, notification)).state is NotificationState.ACTIVE

    async def test_removed_artist(self, db: Database, now: datetime) -> None:
        artist, _, notification = await _seed_artist_release(db, now)
        async with db.session_scope() as session:
            await ArtistRepository(session).delete(artist.id)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(now)

        assert count == 1
        stored = await _state(db, notification)
        assert stored.state is NotificationState.RETRACTED
        assert stored.retraction_reason == REASON_SUBJECT_REMOVED

    async def test_removed_release(self, db: Database, now: datetime) -> None:
        _, release, notification = await _seed_artist_release(db, now)
        async with db.session_scope() as session:
            await session.execute(delete(ReleaseModel).where(ReleaseModel.id == release.id.value))

        async with db.session_scope() as session:
            await _manager(session).sweep_false_positives(now)

        assert (await _state(db, notification)).retraction_reason == REASON_RELEASE_REMOVED

    async def test_corrected_release_date(self, db: Database, now: datetime) -> None:
        """Platform corrected the date to an old one: it was never news."""
        _, release, notification = await _seed_artist_release(db, now)
        release.release_date = "2016-09-01"
        async with db.session_scope() as session:
            await ReleaseRepository(session).update(release)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(now)

        assert count == 1
        assert (await _state(db, notification)).retraction_reason == REASON_RELEASE_NOT_NEW

    async def test_release_pushed_to_future(self, db: Database, now: datetime) -> None:
        _, release, notification = await _seed_artist_release(db, now)
        release.release_date = "2025-09-01"
        async with db.session_scope() as session:
            await ReleaseRepository(session).update(release)

        async with db.session_scope() as session:
            await _manager(session).sweep_false_positives(now)

        assert (await _state(db, notification)).state is NotificationState.RETRACTED

    async def test_game_back_to_coming_soon(self, db: Database, now: datetime) -> None:
        game, notification = await _seed_game(db, now, GameReleaseStatus.RELEASED, "2025-06-13")
        game.release_status = GameReleaseStatus.COMING_SOON
        async with db.session_scope() as session:
            await GameRepository(session).update(game)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(now)

        assert count == 1
        assert (await _state(db, notification)).retraction_reason == REASON_GAME_NOT_RELEASED

    async def test_released_game_survives(self, db: Database, now: datetime) -> None:
        _, notification = await _seed_game(db, now, GameReleaseStatus.RELEASED, "2025-06-13")

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(now)

        assert count == 0
        assert (await _state(db, notification)).state is NotificationState.ACTIVE

    async def test_expired_notifications_are_never_touched(
        self, db: Database, now: datetime
    ) -> None:
        artist, _, notification = await _seed_artist_release(db, now)
        later = now + timedelta(days=10)
        async with db.session_scope() as session:
            await _manager(session).sweep_expired(later)
        async with db.session_scope() as session:
            await ArtistRepository(session).delete(artist.id)

        async with db.session_scope() as session:
            count = await _manager(session).sweep_false_positives(later)

        assert count == 0
        assert (await _state(db, notification)).state is NotificationState.EXPIRED

    async def test_sweep_is_idempotent(self, db: Database, now: datetime) -> None:
        artist, _, _ = await _seed_artist_release(db, now)
        async with db.session_scope() as session:
            await ArtistRepository(session).delete(artist.id)

        async with db.session_scope() as session:
            first = await _manager(session).sweep_false_positives(now)
        async with db.session_scope() as session:
            second = await _manager(session).sweep_false_positives(now)

        assert (first, second) == (1, 0)


class TestRetractForSubject:
    """Test retract_for_subject() and racing transitions."""

    async def test_retracts_all_active_of_subject(self, db: Database, now: datetime) -> None:
        artist, _, notification = await _seed_artist_release(db, now)
        _, other = await _seed_game(db, now, GameReleaseStatus.RELEASED, "2025-06-13")

        async with db.session_scope() as session:
            count = await _manager(session).retract_for_subject(
                SubjectType.ARTIST, artist.id.value, now
            )

        assert count == 1
        assert (await _state(db, notification)).retraction_reason == REASON_SUBJECT_REMOVED
        assert (await _state(db, other)).state is NotificationState.ACTIVE

    async def test_losing_writer_is_not_counted(self, db: Database, now: datetime) -> None:
        """Two sweeps load the same active row; only the first UPDATE wins."""
        _, _, notification = await _seed_artist_release(db, now)
        later = now + timedelta(days=10)

        stale_copy = await _state(db, notification)
        async with db.session_scope() as session:
            assert await _manager(session).sweep_expired(later) == 1

        stale_copy.retract(later, "race")
        async with db.session_scope() as session:
            assert await NotificationRepository(session).save_transition(stale_copy) is False

        assert (await _state(db, notification)).state is NotificationState.EXPIRED


class TestPublish:
    """Test publish()."""

    async def test_publish_counts(self, db: Database, now: datetime) -> None:
        notifications = [
            Notification.create(
                user_id="user-1",
                subject_type=SubjectType.GAME,
                subject_id=GameId.generate().value,
                release_key=f"game:{i}",
                title=f"Game {i}",
                now=now,
            )
            for i in range(3)
        ]
        async with db.session_scope() as session:
            assert await _manager(session).publish(notifications) == 3
        async with db.session_scope() as session:
            counts = await NotificationRepository(session).count_by_state("user-1")
        assert counts.active == 3


class TestInvalidationReason:
    """Test invalidation_reason() on malformed rows."""

    @pytest.mark.parametrize("subject_id", ["not-a-uuid", ""])
    async def test_malformed_subject_counts_as_removed(
        self, db: Database, now: datetime, subject_id: str
    ) -> None:
        notification = Notification.create(
            user_id="user-1",
            subject_type=SubjectType.ARTIST,
            subject_id=subject_id,
            release_key="spotify:x",
            title="Ghost",
            now=now,
        )
        async with db.session_scope() as session:
            reason = await _manager(session).invalidation_reason(notification, now)
        assert reason == REASON_SUBJECT_REMOVED
