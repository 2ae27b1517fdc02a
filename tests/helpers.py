"""
Builders for listing test data.
"""
from datetime import date, datetime, timedelta, timezone

from mitv_epg.services.listing_types import RawEntry


DAY = date(2025, 10, 9)
NEXT_DAY = DAY + timedelta(days=1)
DAY_AFTER = DAY + timedelta(days=2)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant on the given day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def entries(day: date, *rows: tuple) -> list[RawEntry]:
    """Build raw entries from (time, title[, description]) tuples."""
    return [
        RawEntry(
            local_time=row[0],
            title=row[1],
            source_date=day,
            description=row[2] if len(row) > 2 else "",
        )
        for row in rows
    ]
