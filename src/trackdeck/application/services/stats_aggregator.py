"""Merge per-platform artist statistics into one canonical record.

Hey future me - this is a PURE function over its input. No I/O, no clock, no
logging of business events. Rules:

- total_followers = sum of every PRESENT followers value. Absent counts as 0.
- average_popularity = mean over the records that HAVE a popularity, rounded
  half-up to display precision. No popularity anywhere → None. Never 0!
  Zero popularity and unknown popularity are different facts.
- Garbage (strings, bools, negatives, NaN) counts as absent instead of raising.
  Platforms change their payloads without telling us.
"""

import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from trackdeck.domain.entities import (
    AggregatedArtistStats,
    Platform,
    PlatformArtistDetail,
    PlatformStat,
)


def _clean_number(value: Any) -> float | None:
    # bool is an int subclass - True must not count as 1 follower
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return float(value)


def _clean_followers(value: Any) -> int | None:
    number = _clean_number(value)
    return int(number) if number is not None else None


class StatsAggregator:
    """Computes AggregatedArtistStats from platform detail records."""

    def __init__(self, popularity_precision: int = 0) -> None:
        """Initialize aggregator.

        Args:
            popularity_precision: Decimal digits kept on average_popularity
        """
        self._quantum = Decimal(1).scaleb(-popularity_precision)

    def aggregate(
        self,
        details: Iterable[PlatformArtistDetail],
        unavailable: Iterable[Platform] = (),
    ) -> AggregatedArtistStats:
        """Aggregate detail records of ONE logical artist.

        Args:
            details: Records fetched successfully (failed fetches are omitted)
            unavailable: Linked platforms whose fetch failed; they appear in
                platform_stats as available=False without numbers

        Returns:
            AggregatedArtistStats, (0, None) for empty input
        """
        total_followers = 0
        popularities: list[float] = []
        platform_stats: list[PlatformStat] = []

        for detail in details:
            followers = _clean_followers(detail.followers)
            popularity = _clean_number(detail.popularity)
            if followers is not None:
                total_followers += followers
            if popularity is not None:
                popularities.append(popularity)
            platform_stats.append(
                PlatformStat(platform=detail.platform, followers=followers, popularity=popularity)
            )

        reported = {stat.platform for stat in platform_stats}
        for platform in unavailable:
            if platform not in reported:
                platform_stats.append(PlatformStat(platform=platform, available=False))

        # Sorted so the stored set doesn't depend on the order platforms answered in
        platform_stats.sort(key=lambda stat: (stat.platform.value, not stat.available))

        return AggregatedArtistStats(
            total_followers=total_followers,
            average_popularity=self._mean(popularities),
            platform_stats=tuple(platform_stats),
        )

    def _mean(self, values: list[float]) -> float | None:
        if not values:
            return None
        # fsum is exact, so the mean doesn't wobble with input order
        mean = math.fsum(values) / len(values)
        return float(Decimal(repr(mean)).quantize(self._quantum, rounding=ROUND_HALF_UP))
