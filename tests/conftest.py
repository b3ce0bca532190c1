"""Shared test fixtures."""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from trackdeck.config import Settings
from trackdeck.domain.entities import (
    Platform,
    PlatformArtistDetail,
    PlatformArtistSummary,
    PlatformRelease,
    UserRole,
)
from trackdeck.domain.exceptions import ExternalServiceError
from trackdeck.domain.ports import IPlatformStatsSource
from trackdeck.infrastructure.persistence import Database, UserRoleRepository
from trackdeck.main import create_app

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


class FakePlatformSource(IPlatformStatsSource):
    """In-memory platform with scriptable answers.

    Set details[platform_id] / releases[platform_id] / search_hits to control responses.
    Put a platform_id (or a search query) into failing to make every call for it raise.
    """

    def __init__(self, platform: Platform) -> None:
        self._platform = platform
        self.details: dict[str, PlatformArtistDetail] = {}
        self.releases: dict[str, list[PlatformRelease]] = {}
        self.failing: set[str] = set()
        self.search_hits: list[PlatformArtistSummary] = []
        self.calls: list[tuple[str, str]] = []

    @property
    def platform(self) -> Platform:
        return self._platform

    def _check(self, method: str, platform_id: str) -> None:
        self.calls.append((method, platform_id))
        if platform_id in self.failing:
            raise ExternalServiceError(
                f"{self._platform.value} unavailable", service=self._platform.value
            )

    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        self._check("search", query)
        return list(self.search_hits)

    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        self._check("details", platform_id)
        return self.details.get(
            platform_id, PlatformArtistDetail(platform=self._platform, platform_id=platform_id)
        )

    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        self._check("releases", platform_id)
        return list(self.releases.get(platform_id, []))


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'trackdeck-test.db'}"},
        observability={"log_level": "DEBUG"},
        tracking={"cleanup_worker_enabled": False},
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def session(db: Database):  # type: ignore[no-untyped-def]
    async with db.session_scope() as session:
        yield session


@pytest.fixture
def platform_sources() -> dict[Platform, FakePlatformSource]:
    return {platform: FakePlatformSource(platform) for platform in Platform}


async def seed_role(db: Database, user_id: str, role: UserRole) -> None:
    async with db.session_scope() as session:
        await UserRoleRepository(session).set_role(user_id, role)


@pytest.fixture
def client(
    settings: Settings,
    platform_sources: dict[Platform, FakePlatformSource],
    seeded_roles: dict[str, UserRole],
) -> Iterator[TestClient]:
    """Test client with the lifespan running (tables created, no cleanup worker)."""
    app = create_app(settings, platform_sources=platform_sources)  # type: ignore[arg-type]
    with TestClient(app) as test_client:
        yield test_client


ROLES = {
    "admin-1": UserRole.ADMIN,
    "editor-1": UserRole.EDITOR,
    "viewer-1": UserRole.VIEWER,
    "pending-1": UserRole.PENDING,
}


def run_with_db(settings: Settings, work: Callable[[Database], Awaitable[Any]]) -> Any:
    """Run async setup code against the test database from a sync test.

    Hey future me - TestClient runs the app on its own event loop in another thread.
    Sync integration tests use this to seed rows with a separate engine on the same file.
    """

    async def _run() -> Any:
        database = Database(settings)
        try:
            await database.create_tables()
            return await work(database)
        finally:
            await database.close()

    return asyncio.run(_run())


@pytest.fixture
def seeded_roles(settings: Settings) -> dict[str, UserRole]:
    async def _seed(database: Database) -> None:
        for user_id, role in ROLES.items():
            await seed_role(database, user_id, role)

    run_with_db(settings, _seed)
    return ROLES


@pytest.fixture
def db_runner(settings: Settings) -> Callable[[Callable[[Database], Awaitable[Any]]], Any]:
    """run_with_db bound to the test settings, for sync tests."""
    return lambda work: run_with_db(settings, work)
