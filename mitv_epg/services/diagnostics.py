"""
Channel-scoped diagnostics recorded while normalizing listings.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging


class DiagnosticKind(str, Enum):
    MALFORMED_ENTRY = "malformed_entry"
    PARTIAL_TIMELINE = "partial_timeline"
    TIMELINE_REPAIRED = "timeline_repaired"
    COVERAGE_GAP = "coverage_gap"
    CHANNEL_FAILED = "channel_failed"


_LOG_LEVELS = {
    DiagnosticKind.MALFORMED_ENTRY: logging.WARNING,
    DiagnosticKind.PARTIAL_TIMELINE: logging.WARNING,
    DiagnosticKind.TIMELINE_REPAIRED: logging.INFO,
    DiagnosticKind.COVERAGE_GAP: logging.WARNING,
    DiagnosticKind.CHANNEL_FAILED: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class Diagnostic:
    kind: DiagnosticKind
    channel_id: str
    message: str
    day: date | None = None

    def to_dict(self) -> dict:
        payload = {
            "kind": self.kind.value,
            "channel_id": self.channel_id,
            "message": self.message,
        }
        if self.day is not None:
            payload["day"] = self.day.isoformat()
        return payload


def record(
    logger: logging.Logger,
    kind: DiagnosticKind,
    channel_id: str,
    message: str,
    day: date | None = None,
) -> Diagnostic:
    """Create a diagnostic and log it at the level matching its kind."""
    logger.log(
        _LOG_LEVELS[kind],
        "[%s] %s%s: %s",
        channel_id,
        kind.value,
        f" ({day.isoformat()})" if day else "",
        message,
    )
    return Diagnostic(kind=kind, channel_id=channel_id, message=message, day=day)


__all__ = ["Diagnostic", "DiagnosticKind", "record"]
