"""Release date parsing.

Hey future me - platforms hand us release dates in every shape imaginable:
Spotify says "2024-03-01", "2024-03" or "2024" (release_date_precision), SoundCloud
sends full ISO timestamps, storefronts send "12 Mar, 2025", "Coming soon", "TBD" or
"Q3 2026". We only ever need to answer two questions:

1. Is this a CONCRETE date? (placeholders like "TBD" or quarters are not)
2. Has it already happened?

Month/year precision dates are pinned to the first day of the period.
"""

import re
from datetime import date, datetime, timedelta

_ISO_DAY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_ISO_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_YEAR = re.compile(r"^(\d{4})$")

# Storefront formats (Steam, RAWG, ...)
_TEXT_FORMATS = (
    "%d %b, %Y",
    "%b %d, %Y",
    "%d %B, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


def parse_release_date(value: str | None) -> date | None:
    """Parse a platform release date into a date.

    Args:
        value: Raw release date string from a platform

    Returns:
        The parsed date, or None for missing values and placeholders
        ("TBD", "Coming soon", "Q1 2026", ...)
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    try:
        match = _ISO_DAY.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)
        match = _ISO_MONTH.match(text)
        if match:
            return date(int(match.group(1)), int(match.group(2)), 1)
        match = _YEAR.match(text)
        if match:
            return date(int(match.group(1)), 1, 1)
    except ValueError:
        return None

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def is_concrete_past_date(value: str | None, now: datetime) -> bool:
    """Check that value is a real release date on or before now."""
    parsed = parse_release_date(value)
    return parsed is not None and parsed <= now.date()


# Hey future me - "recent" is what keeps a freshly linked artist from flooding the user with
# their whole back catalog. Only releases dated inside the window before `now` are news.
def is_recent_release(value: str | None, now: datetime, window: timedelta) -> bool:
    """Check that value is a concrete date within [now - window, now]."""
    parsed = parse_release_date(value)
    if parsed is None:
        return False
    return (now - window).date() <= parsed <= now.date()
