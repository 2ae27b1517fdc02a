"""
Date and Time utilities

This module handles wall-clock parsing, zoned date/time combination,
broadcast-day cutoff instants and XMLTV time formatting.
Centralizes all time arithmetic so listing days are interpreted consistently.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import re

from mitv_epg.exceptions import MalformedEntryError

logger = logging.getLogger(__name__)

XMLTV_TIME_FORMAT = "%Y%m%d%H%M%S %z"

_WALL_CLOCK_RE = re.compile(r"^\s*(\d{1,2})\s*[:hH.]\s*(\d{2})\s*$")


def resolve_zone(name: str) -> tzinfo:
    """
    Resolve a zone name to a tzinfo

    Args:
        name: IANA timezone name or 'UTC'

    Returns:
        tzinfo instance

    Raises:
        ValueError: If the zone is unknown
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Invalid timezone: {name}") from e


def parse_wall_clock(text: str) -> time:
    """
    Parse a scraped wall-clock string like '23:30' into a time

    Args:
        text: Raw time text from the listing

    Returns:
        Naive time with hour and minute set

    Raises:
        MalformedEntryError: If the text is not an HH:MM pair
    """
    match = _WALL_CLOCK_RE.match(text or "")
    if not match:
        raise MalformedEntryError(f"Unparseable listing time: '{text}'")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise MalformedEntryError(f"Listing time out of range: '{text}'")

    return time(hour, minute)


def combine_local(day: date, wall_clock: time, site_tz: tzinfo = timezone.utc) -> datetime:
    """
    Combine a site-local calendar day and wall-clock time into a UTC instant

    Args:
        day: Calendar day in site time
        wall_clock: Wall-clock time in site time
        site_tz: Zone the listing is published in

    Returns:
        Timezone-aware datetime in UTC, second precision
    """
    local = datetime.combine(day, wall_clock).replace(tzinfo=site_tz)
    return local.astimezone(timezone.utc).replace(microsecond=0)


def cutoff_instant(day: date, cutoff_hour: int, site_tz: tzinfo = timezone.utc) -> datetime:
    """Instant at which the broadcast day handover happens on the given calendar day."""
    return combine_local(day, time(cutoff_hour, 0), site_tz)


def listing_dates(today: date, start_offset_days: int, end_offset_days: int) -> list[date]:
    """
    Calendar days covered by a grab, inclusive on both ends

    Args:
        today: Reference day
        start_offset_days: Offset of the first day (e.g. -1 for yesterday)
        end_offset_days: Offset of the last day

    Returns:
        Chronologically ordered list of days
    """
    return [
        today + timedelta(days=offset)
        for offset in range(start_offset_days, end_offset_days + 1)
    ]


def site_today(site_tz: tzinfo = timezone.utc) -> date:
    """Current calendar day in the listing site's zone"""
    return datetime.now(timezone.utc).astimezone(site_tz).date()


def format_xmltv_time(value: datetime, target_tz: tzinfo = timezone.utc) -> str:
    """
    Render an instant in XMLTV format

    Args:
        value: Timezone-aware datetime
        target_tz: Zone whose offset is written

    Returns:
        String like '20251009233000 +0000'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(target_tz).strftime(XMLTV_TIME_FORMAT)
