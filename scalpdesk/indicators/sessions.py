from __future__ import annotations

from datetime import datetime, timezone

ASIA = "Asia"
LONDON = "London"
NEW_YORK = "New York"
OVERLAP = "Overlap"
CLOSED = "Closed"

# UTC hour ranges, [start, end)
ASIA_HOURS = (0, 8)
LONDON_HOURS = (7, 16)
NEW_YORK_HOURS = (12, 21)


def _within(hour: int, hours: tuple) -> bool:
    return hours[0] <= hour < hours[1]


def classify_session(hour_utc: int) -> str:
    """Map a UTC hour to Asia / London / New York / Overlap / Closed."""
    in_asia = _within(hour_utc, ASIA_HOURS)
    in_london = _within(hour_utc, LONDON_HOURS)
    in_new_york = _within(hour_utc, NEW_YORK_HOURS)

    if in_london and in_new_york:
        return OVERLAP
    if in_asia and in_london:
        return OVERLAP
    if in_new_york:
        return NEW_YORK
    if in_london:
        return LONDON
    if in_asia:
        return ASIA
    return CLOSED


def session_for(ts: datetime) -> str:
    return classify_session(ts.astimezone(timezone.utc).hour)
