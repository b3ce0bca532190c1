"""Tests for the SQLAlchemy repositories."""

from datetime import datetime, timedelta

import pytest

from trackdeck.domain.entities import (
    Artist,
    Game,
    GameReleaseStatus,
    Notification,
    NotificationState,
    Platform,
    PlatformLink,
    PlatformRelease,
    PlatformStat,
    Release,
    SubjectType,
    UserRole,
)
from trackdeck.domain.exceptions import EntityNotFoundException
from trackdeck.domain.value_objects import ArtistId, GameId
from trackdeck.infrastructure.persistence import (
    ArtistRepository,
    Database,
    GameRepository,
    NotificationRepository,
    ReleaseRepository,
    UserRoleRepository,
)
from trackdeck.infrastructure.persistence.models import GameModel


def _artist(name: str = "Moderat", user_id: str = "user-1") -> Artist:
    artist = Artist(id=ArtistId.generate(), user_id=user_id, name=name)
    artist.link_platform(PlatformLink(Platform.SPOTIFY, f"sp-{name}", "https://open.spotify.com"))
    return artist


class TestArtistRepository:
    """Test ArtistRepository."""

    async def test_roundtrip_keeps_links_and_stats(self, db: Database, now: datetime) -> None:
        artist = _artist()
        artist.platform_stats = [
            PlatformStat(Platform.SPOTIFY, followers=10, popularity=55.0),
            PlatformStat(Platform.DEEZER, available=False),
        ]
        artist.last_stats_update = now
        async with db.session_scope() as session:
            await ArtistRepository(session).add(artist)

        async with db.session_scope() as session:
            stored = await ArtistRepository(session).get_by_id(artist.id)

        assert stored is not None
        assert stored.links == artist.links
        assert stored.platform_stats == artist.platform_stats
        assert stored.last_stats_update == now

    async def test_update_missing_raises(self, db: Database) -> None:
        async with db.session_scope() as session:
            with pytest.raises(EntityNotFoundException):
                await ArtistRepository(session).update(_artist())

    async def test_list_stale_orders_never_updated_first(
        self, db: Database, now: datetime
    ) -> None:
        fresh, old, never = _artist("Fresh"), _artist("Old"), _artist("Never")
        fresh.last_stats_update = now - timedelta(minutes=5)
        old.last_stats_update = now - timedelta(days=2)
        async with db.session_scope() as session:
            repo = ArtistRepository(session)
            for artist in (fresh, old, never):
                await repo.add(artist)

        async with db.session_scope() as session:
            stale = await ArtistRepository(session).list_stale(now - timedelta(hours=1), limit=10)

        assert [a.name for a in stale] == ["Never", "Old"]

    async def test_list_by_user(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = ArtistRepository(session)
            await repo.add(_artist("Mine"))
            await repo.add(_artist("Theirs", user_id="user-2"))

        async with db.session_scope() as session:
            mine = await ArtistRepository(session).list_by_user("user-1")
        assert [a.name for a in mine] == ["Mine"]

    async def test_delete_cascades_to_releases(self, db: Database, now: datetime) -> None:
        artist = _artist()
        release = Release.from_report(
            artist.id, PlatformRelease(Platform.SPOTIFY, "r1", "Lost"), now
        )
        async with db.session_scope() as session:
            await ArtistRepository(session).add(artist)
        async with db.session_scope() as session:
            await ReleaseRepository(session).add(release)

        async with db.session_scope() as session:
            await ArtistRepository(session).delete(artist.id)

        async with db.session_scope() as session:
            assert await ReleaseRepository(session).get_by_id(release.id) is None

    async def test_delete_missing_raises(self, db: Database) -> None:
        async with db.session_scope() as session:
            with pytest.raises(EntityNotFoundException):
                await ArtistRepository(session).delete(ArtistId.generate())


class TestNotificationRepository:
    """Test NotificationRepository."""

    def _notification(self, now: datetime, key: str = "spotify:r1") -> Notification:
        return Notification.create(
            user_id="user-1",
            subject_type=SubjectType.ARTIST,
            subject_id="a1",
            release_key=key,
            title="Title",
            now=now,
        )

    async def test_save_transition_is_conditional(self, db: Database, now: datetime) -> None:
        notification = self._notification(now)
        async with db.session_scope() as session:
            await NotificationRepository(session).add(notification)

        notification.retract(now, "first")
        async with db.session_scope() as session:
            assert await NotificationRepository(session).save_transition(notification) is True
            # Already terminal in storage: nothing to update
            assert await NotificationRepository(session).save_transition(notification) is False

    async def test_notified_keys_include_every_state(self, db: Database, now: datetime) -> None:
        active = self._notification(now, "spotify:a")
        retracted = self._notification(now, "spotify:b")
        retracted.retract(now, "gone")
        async with db.session_scope() as session:
            repo = NotificationRepository(session)
            await repo.add(active)
            await repo.add(retracted)

        async with db.session_scope() as session:
            repo = NotificationRepository(session)
            keys = await repo.notified_release_keys(SubjectType.ARTIST, "a1")
            exists = await repo.exists_for(SubjectType.ARTIST, "a1", "spotify:b")

        assert keys == {"spotify:a", "spotify:b"}
        assert exists is True

    async def test_list_for_user_and_counts(self, db: Database, now: datetime) -> None:
        older = self._notification(now - timedelta(days=1), "spotify:old")
        newer = self._notification(now, "spotify:new")
        older.retract(now, "gone")
        async with db.session_scope() as session:
            repo = NotificationRepository(session)
            await repo.add(older)
            await repo.add(newer)

        async with db.session_scope() as session:
            repo = NotificationRepository(session)
            everything = await repo.list_for_user("user-1")
            active = await repo.list_for_user("user-1", state=NotificationState.ACTIVE)
            counts = await repo.count_by_state("user-1")

        assert [n.release_key for n in everything] == ["spotify:new", "spotify:old"]
        assert [n.release_key for n in active] == ["spotify:new"]
        assert (counts.active, counts.expired, counts.retracted) == (1, 0, 1)

    async def test_list_active_due(self, db: Database, now: datetime) -> None:
        due = self._notification(now - timedelta(days=7), "spotify:due")
        async with db.session_scope() as session:
            repo = NotificationRepository(session)
            await repo.add(due)
            await repo.add(self._notification(now, "spotify:fresh"))

        async with db.session_scope() as session:
            result = await NotificationRepository(session).list_active_due(now)
        assert [n.release_key for n in result] == ["spotify:due"]


class TestGameRepository:
    """Test GameRepository."""

    async def test_unknown_status_falls_back(self, db: Database) -> None:
        game = Game(id=GameId.generate(), user_id="user-1", name="Tunic")
        async with db.session_scope() as session:
            await GameRepository(session).add(game)
            await session.flush()
            model = await session.get(GameModel, game.id.value)
            assert model is not None
            model.release_status = "early_access"

        async with db.session_scope() as session:
            stored = await GameRepository(session).get_by_id(game.id)
        assert stored is not None
        assert stored.release_status is GameReleaseStatus.UNKNOWN

    async def test_list_all_users(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = GameRepository(session)
            await repo.add(Game(id=GameId.generate(), user_id="user-1", name="A"))
            await repo.add(Game(id=GameId.generate(), user_id="user-2", name="B"))

        async with db.session_scope() as session:
            repo = GameRepository(session)
            assert len(await repo.list_by_user()) == 2
            assert len(await repo.list_by_user("user-2")) == 1


class TestUserRoleRepository:
    """Test UserRoleRepository."""

    async def test_missing_user_is_unknown(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = UserRoleRepository(session)
            assert await repo.get_role("ghost") is UserRole.UNKNOWN
            assert await repo.get_role(None) is UserRole.UNKNOWN

    async def test_set_and_update_role(self, db: Database) -> None:
        async with db.session_scope() as session:
            await UserRoleRepository(session).set_role("u1", UserRole.PENDING)
        async with db.session_scope() as session:
            await UserRoleRepository(session).set_role("u1", UserRole.EDITOR)
        async with db.session_scope() as session:
            assert await UserRoleRepository(session).get_role("u1") is UserRole.EDITOR

    async def test_list_users_filtered_by_role(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = UserRoleRepository(session)
            await repo.set_role("u2", UserRole.PENDING)
            await repo.set_role("u1", UserRole.EDITOR)

        async with db.session_scope() as session:
            repo = UserRoleRepository(session)
            everyone = await repo.list_users()
            pending = await repo.list_users(UserRole.PENDING)

        assert everyone == [("u1", UserRole.EDITOR), ("u2", UserRole.PENDING)]
        assert pending == [("u2", UserRole.PENDING)]
