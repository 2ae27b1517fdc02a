"""
Boundary Resolver

Reconciles two adjacent listing days into one continuous timeline.

A listing published under day D runs past midnight until the cutoff hour
on D+1. The resolver closes D's open tail with the first start of D+1,
drops (and reports) D+1 entries already covered by D, and attributes every
programme of D to a broadcast day by comparing it with the cutoff instant:
programmes ending by the cutoff stay on D, programmes starting at or after
it move to D+1, and programmes crossing it are split into a continuation
pair.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
import logging

from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_types import CutoffPolicy, DaySchedule, Program
from mitv_epg.utils.timezone import cutoff_instant


logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DURATION = timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Two-day sliding window; following is None when D+1's listing is absent."""
    current: DaySchedule
    following: DaySchedule | None

    @property
    def next_day(self) -> date:
        return self.current.day + timedelta(days=1)


@dataclass(frozen=True, slots=True)
class Resolution:
    programs: tuple[Program, ...]
    following: DaySchedule | None
    boundary: datetime
    superseded: int = 0
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


def resolve_window(
    window: DayWindow,
    policy: CutoffPolicy,
    *,
    fallback_duration: timedelta = DEFAULT_FALLBACK_DURATION,
) -> Resolution:
    """
    Resolve the current day of a window against the day that follows it

    Args:
        window: Current day schedule plus the following one (or None)
        policy: Cutoff hour and site zone
        fallback_duration: Length given to a tail that cannot be closed

    Returns:
        Resolution with the current day's settled programmes and the
        following day trimmed of entries the current day already covers
    """
    current = window.current
    channel_id = _channel_of(window)
    boundary = cutoff_instant(window.next_day, policy.cutoff_hour, policy.site_tz)
    diagnostics: list[Diagnostic] = []

    programs = list(current.programs)
    covered_until: datetime | None = None
    repeats_tail = False
    if current.tail is not None:
        successor = _successor_start(window)
        if successor is not None:
            programs.append(current.tail.close(successor))
            covered_until = successor
        else:
            # nothing in the following day starts after the tail
            covered_until = current.tail.start
            repeats_tail = True
            programs.append(
                current.tail.close(current.tail.start + fallback_duration, estimated=True)
            )
            reason = (
                "listing unavailable"
                if window.following is None
                else "listing has no entry after the last programme"
            )
            diagnostics.append(
                record(
                    logger,
                    DiagnosticKind.PARTIAL_TIMELINE,
                    channel_id,
                    f"Next day {window.next_day.isoformat()} {reason}; "
                    f"'{current.tail.title}' ends after fallback of "
                    f"{int(fallback_duration.total_seconds() // 60)} min",
                    current.day,
                )
            )

    following = window.following
    superseded = 0
    if following is not None and covered_until is not None:
        following, superseded = trim_covered(following, covered_until, inclusive=repeats_tail)
        if superseded:
            diagnostics.append(
                record(
                    logger,
                    DiagnosticKind.TIMELINE_REPAIRED,
                    channel_id,
                    f"{superseded} entr(y/ies) already listed by {current.day.isoformat()} "
                    f"up to {covered_until.isoformat()} superseded",
                    window.next_day,
                )
            )

    settled: list[Program] = []
    for program in programs:
        settled.extend(classify(program, boundary, current.day, window.next_day))

    return Resolution(
        programs=tuple(settled),
        following=following,
        boundary=boundary,
        superseded=superseded,
        diagnostics=tuple(diagnostics),
    )


def classify(program: Program, boundary: datetime, day: date, next_day: date) -> list[Program]:
    """
    Attribute a programme to a broadcast day relative to the cutoff instant

    The three cases are mutually exclusive; a start exactly at the cutoff
    belongs to the next day.
    """
    if program.estimated_end:
        return [program]

    if program.start >= boundary:
        if program.broadcast_day == next_day:
            return [program]
        return [replace(program, broadcast_day=next_day)]

    if program.end <= boundary:
        if program.broadcast_day == day:
            return [program]
        return [replace(program, broadcast_day=day)]

    return [
        replace(program, end=boundary, broadcast_day=day),
        replace(program, start=boundary, broadcast_day=next_day),
    ]


def trim_covered(
    schedule: DaySchedule,
    covered_until: datetime,
    *,
    inclusive: bool = False,
) -> tuple[DaySchedule, int]:
    """
    Remove entries of a day that start before an instant already covered

    Closed entries that reach past the instant keep their remainder. The open
    tail has no known end, so a covered tail is dropped rather than moved.
    With inclusive=True an entry starting exactly at the instant counts as
    covered too.

    Returns:
        Tuple of (trimmed schedule, number of entries dropped or truncated)
    """
    def covered(start: datetime) -> bool:
        return start <= covered_until if inclusive else start < covered_until

    touched = 0
    programs: list[Program] = []
    for program in schedule.programs:
        if not covered(program.start):
            programs.append(program)
        elif program.end > covered_until:
            programs.append(replace(program, start=covered_until))
            touched += 1
        else:
            touched += 1

    tail = schedule.tail
    if tail is not None and covered(tail.start):
        tail = None
        touched += 1

    if not touched:
        return schedule, 0
    return replace(schedule, programs=tuple(programs), tail=tail), touched


def _successor_start(window: DayWindow) -> datetime | None:
    """First start of the following day strictly after the current tail's start."""
    if window.following is None or window.current.tail is None:
        return None
    tail_start = window.current.tail.start
    candidates = [start for start in window.following.starts() if start > tail_start]
    return min(candidates) if candidates else None


def _channel_of(window: DayWindow) -> str:
    for schedule in (window.current, window.following):
        if schedule is None:
            continue
        if schedule.tail is not None:
            return schedule.tail.channel_id
        if schedule.programs:
            return schedule.programs[0].channel_id
    return "unknown"
