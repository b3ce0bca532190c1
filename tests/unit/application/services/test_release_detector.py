"""Tests for ReleaseDetector."""

from datetime import UTC, datetime, timedelta

import pytest

from trackdeck.application.services import ReleaseDetector
from trackdeck.domain.entities import (
    Artist,
    Game,
    GameReleaseStatus,
    Platform,
    PlatformRelease,
    Release,
    SubjectType,
)
from trackdeck.domain.value_objects import ArtistId, GameId

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def _reported(native_id: str, release_date: str | None, name: str = "Album") -> PlatformRelease:
    return PlatformRelease(
        platform=Platform.SPOTIFY, native_id=native_id, name=name, release_date=release_date
    )


@pytest.fixture
def artist() -> Artist:
    return Artist(id=ArtistId.generate(), user_id="user-1", name="Four Tet")


@pytest.fixture
def detector() -> ReleaseDetector:
    return ReleaseDetector()


class TestDetectNew:
    """Test detect_new()."""

    def test_unknown_recent_release_creates_release_and_notification(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        result = detector.detect_new(artist, [], [_reported("r1", "2025-06-14")], NOW)

        assert len(result.new_releases) == 1
        assert len(result.notifications) == 1
        notification = result.notifications[0]
        assert notification.subject_type is SubjectType.ARTIST
        assert notification.subject_id == artist.id.value
        assert notification.release_key == "spotify:r1"
        assert notification.release_id == result.new_releases[0].id.value
        assert notification.user_id == "user-1"
        assert notification.expires_at == NOW + timedelta(days=7)

    def test_back_catalog_is_stored_without_notifications(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        """Linking an artist must not flood the user with old releases."""
        result = detector.detect_new(
            artist, [], [_reported("old1", "2015-01-01"), _reported("old2", "2019-05-03")], NOW
        )
        assert len(result.new_releases) == 2
        assert result.notifications == []

    def test_future_and_undated_releases_never_notify(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        result = detector.detect_new(
            artist, [], [_reported("soon", "2025-07-01"), _reported("tbd", None)], NOW
        )
        assert len(result.new_releases) == 2
        assert result.notifications == []

    def test_duplicate_keys_collapse(self, detector: ReleaseDetector, artist: Artist) -> None:
        result = detector.detect_new(
            artist,
            [],
            [_reported("r1", "2025-06-14", "A"), _reported("r1", "2025-06-14", "A (dup)")],
            NOW,
        )
        assert len(result.new_releases) == 1
        assert len(result.notifications) == 1

    def test_processing_order_newest_first_undated_last(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        result = detector.detect_new(
            artist,
            [],
            [
                _reported("b", "2025-06-10"),
                _reported("undated", None),
                _reported("a", "2025-06-14"),
                _reported("c", "2025-06-10"),
            ],
            NOW,
        )
        assert [r.native_id for r in result.new_releases] == ["a", "b", "c", "undated"]

    def test_known_release_is_updated_not_renotified(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        known = Release.from_report(artist.id, _reported("r1", "2025-06-14"), NOW)
        result = detector.detect_new(
            artist,
            [known],
            [_reported("r1", "2025-06-14", "Album (Deluxe)")],
            NOW,
            notified_keys={"spotify:r1"},
        )
        assert result.new_releases == []
        assert result.updated_releases == [known]
        assert known.name == "Album (Deluxe)"
        assert result.notifications == []

    def test_unchanged_known_release_is_not_updated(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        known = Release.from_report(artist.id, _reported("r1", "2020-01-01"), NOW)
        result = detector.detect_new(artist, [known], [_reported("r1", "2020-01-01")], NOW)
        assert result.updated_releases == []
        assert result.notifications == []

    def test_pre_announced_release_notifies_on_release_day(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        """Stored while still in the future, never notified → notify once it's out."""
        announced = NOW - timedelta(days=20)
        known = Release.from_report(artist.id, _reported("r1", "2025-06-15"), announced)

        result = detector.detect_new(artist, [known], [_reported("r1", "2025-06-15")], NOW)

        assert result.new_releases == []
        assert len(result.notifications) == 1
        assert result.notifications[0].release_id == known.id.value

    def test_retracted_or_expired_key_is_not_renotified(
        self, detector: ReleaseDetector, artist: Artist
    ) -> None:
        result = detector.detect_new(
            artist, [], [_reported("r1", "2025-06-14")], NOW, notified_keys={"spotify:r1"}
        )
        assert len(result.new_releases) == 1
        assert result.notifications == []

    def test_custom_ttl(self, artist: Artist) -> None:
        detector = ReleaseDetector(notification_ttl=timedelta(days=2))
        result = detector.detect_new(
            artist, [], [_reported("r1", "2025-06-14"), _reported("r2", "2025-06-10")], NOW
        )
        assert [n.release_key for n in result.notifications] == ["spotify:r1"]
        assert result.notifications[0].expires_at == NOW + timedelta(days=2)


class TestDetectGameRelease:
    """Test detect_game_release()."""

    def _game(self, status: GameReleaseStatus, release_date: str | None) -> Game:
        return Game(
            id=GameId.generate(),
            user_id="user-1",
            name="Hades II",
            url="https://store.example/hades2",
            release_status=status,
            release_date=release_date,
        )

    def test_released_game_notifies(self, detector: ReleaseDetector) -> None:
        game = self._game(GameReleaseStatus.RELEASED, "2025-06-12")
        notification = detector.detect_game_release(game, already_notified=False, now=NOW)

        assert notification is not None
        assert notification.subject_type is SubjectType.GAME
        assert notification.release_key == f"game:{game.id.value}"
        assert notification.platform_url == game.url

    def test_already_notified_game_is_skipped(self, detector: ReleaseDetector) -> None:
        game = self._game(GameReleaseStatus.RELEASED, "2025-06-12")
        assert detector.detect_game_release(game, already_notified=True, now=NOW) is None

    @pytest.mark.parametrize(
        ("status", "release_date"),
        [
            (GameReleaseStatus.COMING_SOON, "2025-06-12"),
            (GameReleaseStatus.RELEASED, "Coming soon"),
            (GameReleaseStatus.RELEASED, "2025-08-01"),
            (GameReleaseStatus.RELEASED, "2018-02-01"),
        ],
    )
    def test_not_news(
        self, detector: ReleaseDetector, status: GameReleaseStatus, release_date: str
    ) -> None:
        game = self._game(status, release_date)
        assert detector.detect_game_release(game, already_notified=False, now=NOW) is None
