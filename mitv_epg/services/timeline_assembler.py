"""
Timeline Assembler

Owns one channel's timeline while its listing days arrive. Days are added
in chronological order; each new day resolves the previously pending one,
and the finished timeline is validated and frozen.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
import logging

from mitv_epg.services.boundary_resolver import (
    DEFAULT_FALLBACK_DURATION,
    DayWindow,
    resolve_window,
)
from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_types import ChannelTimeline, CutoffPolicy, DaySchedule, Program, RawEntry
from mitv_epg.services.timeline_builder import build_day
from mitv_epg.services.timeline_validator import DEFAULT_GAP_WARNING, validate_timeline


logger = logging.getLogger(__name__)


class TimelineAssembler:
    """Incrementally builds a ChannelTimeline from consecutive listing days."""

    def __init__(
        self,
        channel_id: str,
        policy: CutoffPolicy,
        *,
        fallback_duration: timedelta = DEFAULT_FALLBACK_DURATION,
        gap_warning: timedelta = DEFAULT_GAP_WARNING,
    ) -> None:
        self.channel_id = channel_id
        self.policy = policy
        self.fallback_duration = fallback_duration
        self.gap_warning = gap_warning

        self._programs: list[Program] = []
        self._diagnostics: list[Diagnostic] = []
        self._pending: DaySchedule | None = None
        self._last_day: date | None = None
        self._closed = False

    def add_day(
        self,
        day: date,
        entries: Sequence[RawEntry] | None,
        *,
        lookahead: bool = False,
    ) -> None:
        """
        Merge the listing of the next consecutive day

        Args:
            day: Listing date; must follow the previously added day
            entries: Raw entries, or None when the listing is absent
            lookahead: Only use this day to close the previous day's tail;
                its own programmes are not emitted

        Raises:
            RuntimeError: If the assembler was already finished
            ValueError: If the day is not the next consecutive day
        """
        if self._closed:
            raise RuntimeError(f"Timeline for {self.channel_id} is already finalized")
        if self._last_day is not None and day != self._last_day + timedelta(days=1):
            raise ValueError(
                f"Listing days must be consecutive: got {day.isoformat()} after "
                f"{self._last_day.isoformat()}"
            )
        self._last_day = day

        schedule: DaySchedule | None = None
        if entries is None:
            if not lookahead:
                self._diagnostics.append(record(
                    logger,
                    DiagnosticKind.PARTIAL_TIMELINE,
                    self.channel_id,
                    "Listing could not be fetched",
                    day,
                ))
        else:
            schedule = build_day(self.channel_id, day, entries, site_tz=self.policy.site_tz)
            self._diagnostics.extend(schedule.diagnostics)

        if self._pending is not None:
            schedule = self._resolve(self._pending, schedule)
        self._pending = schedule

        if lookahead:
            self._pending = None
            self._closed = True

    def finish(self) -> ChannelTimeline:
        """Resolve whatever is still pending, validate, and freeze the timeline."""
        if self._pending is not None:
            self._resolve(self._pending, None)
            self._pending = None
        self._closed = True

        result = validate_timeline(
            self._programs,
            self.channel_id,
            gap_warning=self.gap_warning,
        )
        timeline = ChannelTimeline(
            channel_id=self.channel_id,
            programs=result.programs,
            diagnostics=tuple(self._diagnostics) + result.diagnostics,
        )
        logger.debug(
            "[%s] Timeline finalized: %s programmes, partial=%s, repaired=%s",
            self.channel_id,
            len(timeline.programs),
            timeline.partial,
            timeline.repaired,
        )
        return timeline

    def _resolve(self, current: DaySchedule, following: DaySchedule | None) -> DaySchedule | None:
        resolution = resolve_window(
            DayWindow(current=current, following=following),
            self.policy,
            fallback_duration=self.fallback_duration,
        )
        self._programs.extend(resolution.programs)
        self._diagnostics.extend(resolution.diagnostics)
        return resolution.following


def assemble_timeline(
    channel_id: str,
    listings: Sequence[tuple[date, Sequence[RawEntry] | None]],
    policy: CutoffPolicy,
    *,
    lookahead: tuple[date, Sequence[RawEntry] | None] | None = None,
    fallback_duration: timedelta = DEFAULT_FALLBACK_DURATION,
    gap_warning: timedelta = DEFAULT_GAP_WARNING,
) -> ChannelTimeline:
    """Assemble a channel timeline from already fetched listings in one call."""
    assembler = TimelineAssembler(
        channel_id,
        policy,
        fallback_duration=fallback_duration,
        gap_warning=gap_warning,
    )
    for day, entries in listings:
        assembler.add_day(day, entries)
    if lookahead is not None:
        assembler.add_day(lookahead[0], lookahead[1], lookahead=True)
    return assembler.finish()
