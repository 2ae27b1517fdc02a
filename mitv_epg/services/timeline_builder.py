"""
Timeline Builder

Turns one day's raw listing into absolute-time programmes. Each entry ends
where the next one starts; the last entry stays open until the following
day's listing is known.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta, timezone, tzinfo
import logging

from mitv_epg.exceptions import MalformedEntryError
from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_types import DaySchedule, OpenProgram, Program, RawEntry
from mitv_epg.utils.timezone import combine_local, parse_wall_clock


logger = logging.getLogger(__name__)

MIDNIGHT_DROP = timedelta(hours=12)


def build_day(
    channel_id: str,
    day: date,
    entries: Sequence[RawEntry],
    *,
    site_tz: tzinfo = timezone.utc,
) -> DaySchedule:
    """
    Build the programme schedule for a single listing day

    Wall-clock times are read in publication order. A drop of more than
    twelve hours from the latest time seen (evening to early morning) means
    the listing has crossed midnight and the following entries land on the
    next calendar day; a smaller step backwards is an entry published out of
    order and is left to the sort.

    Args:
        channel_id: XMLTV id of the channel
        day: Listing date the entries were published under
        entries: Raw entries in publication order
        site_tz: Zone the wall-clock times are expressed in

    Returns:
        DaySchedule with closed programmes, the open tail, and any
        malformed-entry diagnostics
    """
    diagnostics: list[Diagnostic] = []
    timed: list[tuple[datetime, RawEntry]] = []

    day_offset = 0
    previous: time | None = None
    for entry in entries:
        try:
            wall_clock = _parse_entry(entry)
        except MalformedEntryError as exc:
            diagnostics.append(
                record(logger, DiagnosticKind.MALFORMED_ENTRY, channel_id, str(exc), day)
            )
            continue

        if previous is not None and _crosses_midnight(previous, wall_clock):
            day_offset += 1
            previous = wall_clock
        elif previous is None or wall_clock > previous:
            previous = wall_clock

        start = combine_local(entry.source_date + timedelta(days=day_offset), wall_clock, site_tz)
        timed.append((start, entry))

    if not timed:
        logger.debug("[%s] Empty listing for %s", channel_id, day.isoformat())
        return DaySchedule(day=day, diagnostics=tuple(diagnostics))

    timed.sort(key=lambda item: item[0])

    programs = [
        Program(
            start=start,
            end=timed[index + 1][0],
            title=entry.title.strip(),
            channel_id=channel_id,
            broadcast_day=day,
            description=(entry.description or "").strip(),
        )
        for index, (start, entry) in enumerate(timed[:-1])
    ]

    last_start, last_entry = timed[-1]
    tail = OpenProgram(
        start=last_start,
        title=last_entry.title.strip(),
        channel_id=channel_id,
        broadcast_day=day,
        description=(last_entry.description or "").strip(),
    )

    logger.debug(
        "[%s] Built %s programmes for %s (%s crossing(s) of midnight)",
        channel_id,
        len(programs) + 1,
        day.isoformat(),
        day_offset,
    )
    return DaySchedule(
        day=day,
        programs=tuple(programs),
        tail=tail,
        diagnostics=tuple(diagnostics),
    )


def _crosses_midnight(previous: time, wall_clock: time) -> bool:
    drop = timedelta(hours=previous.hour - wall_clock.hour, minutes=previous.minute - wall_clock.minute)
    return drop > MIDNIGHT_DROP


def _parse_entry(entry: RawEntry) -> time:
    if not entry.title or not entry.title.strip():
        raise MalformedEntryError(f"Entry at '{entry.local_time}' has no title")
    return parse_wall_clock(entry.local_time)
