"""
Shared dataclasses used across the listing normalization pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo

from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind


@dataclass(frozen=True, slots=True)
class RawEntry:
    """One on-air change event as published by the listing site."""
    local_time: str
    title: str
    source_date: date
    description: str = ""


@dataclass(frozen=True, slots=True)
class ChannelEntry:
    """Channel registry row."""
    channel_id: str
    channel_ref: str
    display_name: str


@dataclass(frozen=True, slots=True)
class CutoffPolicy:
    """Broadcast-day cutoff, read as a wall-clock hour in the site's zone."""
    cutoff_hour: int
    site_tz: tzinfo = timezone.utc

    def __post_init__(self) -> None:
        if not 0 <= self.cutoff_hour <= 23:
            raise ValueError(f"cutoff_hour must be in [0, 23], got {self.cutoff_hour}")


@dataclass(frozen=True, slots=True)
class Program:
    """Programme with absolute UTC start/end."""
    start: datetime
    end: datetime
    title: str
    channel_id: str
    broadcast_day: date
    description: str = ""
    estimated_end: bool = False

    @property
    def is_degenerate(self) -> bool:
        return self.start >= self.end


@dataclass(frozen=True, slots=True)
class OpenProgram:
    """Last entry of a day listing whose end is not known yet."""
    start: datetime
    title: str
    channel_id: str
    broadcast_day: date
    description: str = ""

    def close(self, end: datetime, *, estimated: bool = False) -> Program:
        return Program(
            start=self.start,
            end=end,
            title=self.title,
            channel_id=self.channel_id,
            broadcast_day=self.broadcast_day,
            description=self.description,
            estimated_end=estimated,
        )


@dataclass(frozen=True, slots=True)
class DaySchedule:
    """Builder output for one listing day."""
    day: date
    programs: tuple[Program, ...] = ()
    tail: OpenProgram | None = None
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.programs and self.tail is None

    def starts(self) -> list[datetime]:
        """Start instants of every entry, the open tail included."""
        starts = [program.start for program in self.programs]
        if self.tail is not None:
            starts.append(self.tail.start)
        return starts


@dataclass(frozen=True, slots=True)
class ChannelTimeline:
    """Finalized, validated timeline for one channel."""
    channel_id: str
    programs: tuple[Program, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def partial(self) -> bool:
        return any(d.kind is DiagnosticKind.PARTIAL_TIMELINE for d in self.diagnostics)

    @property
    def repaired(self) -> bool:
        return any(d.kind is DiagnosticKind.TIMELINE_REPAIRED for d in self.diagnostics)


__all__ = [
    "RawEntry",
    "ChannelEntry",
    "CutoffPolicy",
    "Program",
    "OpenProgram",
    "DaySchedule",
    "ChannelTimeline",
]
