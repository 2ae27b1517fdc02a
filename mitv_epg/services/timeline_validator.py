"""
Timeline Validator

Checks a channel timeline for ordering, overlap, zero-length programmes and
coverage gaps, and repairs the hard violations so the output stays
well-formed even when upstream data is inconsistent.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
import logging

from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_types import Program


logger = logging.getLogger(__name__)

DEFAULT_GAP_WARNING = timedelta(hours=3)


class ViolationKind(str, Enum):
    ORDERING = "ordering"
    OVERLAP = "overlap"
    DEGENERATE = "degenerate"
    COVERAGE_GAP = "coverage_gap"

    @property
    def is_hard(self) -> bool:
        return self is not ViolationKind.COVERAGE_GAP


@dataclass(frozen=True, slots=True)
class Violation:
    kind: ViolationKind
    index: int
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    programs: tuple[Program, ...]
    diagnostics: tuple[Diagnostic, ...]


def check_timeline(
    programs: Sequence[Program],
    *,
    gap_warning: timedelta = DEFAULT_GAP_WARNING,
) -> list[Violation]:
    """
    Report every violation without changing anything

    Args:
        programs: Timeline in its current order
        gap_warning: Gaps longer than this are reported as coverage gaps

    Returns:
        List of violations; index refers to the later programme of a pair
    """
    violations: list[Violation] = []

    for index, program in enumerate(programs):
        if program.is_degenerate:
            violations.append(Violation(
                ViolationKind.DEGENERATE,
                index,
                f"'{program.title}' has start {program.start.isoformat()} >= end {program.end.isoformat()}",
            ))

    for index in range(1, len(programs)):
        previous, program = programs[index - 1], programs[index]
        if program.start < previous.start:
            violations.append(Violation(
                ViolationKind.ORDERING,
                index,
                f"'{program.title}' at {program.start.isoformat()} listed after "
                f"'{previous.title}' at {previous.start.isoformat()}",
            ))
        elif program.start < previous.end:
            violations.append(Violation(
                ViolationKind.OVERLAP,
                index,
                f"'{program.title}' starts {program.start.isoformat()} before "
                f"'{previous.title}' ends {previous.end.isoformat()}",
            ))
        elif program.start - previous.end > gap_warning:
            violations.append(Violation(
                ViolationKind.COVERAGE_GAP,
                index,
                f"No programme between {previous.end.isoformat()} and {program.start.isoformat()}",
            ))

    return violations


def validate_timeline(
    programs: Sequence[Program],
    channel_id: str,
    *,
    gap_warning: timedelta = DEFAULT_GAP_WARNING,
) -> ValidationResult:
    """
    Validate and repair a channel timeline

    Zero-length programmes are dropped, the timeline is sorted by start, and
    a programme overlapping its predecessor has its start moved to the
    predecessor's end (it is dropped when nothing remains). Gaps longer than
    gap_warning are only reported.

    Args:
        programs: Resolved programmes for the whole date window
        channel_id: Channel the timeline belongs to
        gap_warning: Coverage gap threshold

    Returns:
        ValidationResult with the repaired programmes and diagnostics
    """
    diagnostics: list[Diagnostic] = []

    ordered = sorted(programs, key=lambda program: program.start)
    if ordered != list(programs):
        diagnostics.append(record(
            logger,
            DiagnosticKind.TIMELINE_REPAIRED,
            channel_id,
            f"{ViolationKind.ORDERING.value}: programmes re-sorted by start",
        ))

    repaired: list[Program] = []
    for program in ordered:
        if program.is_degenerate:
            diagnostics.append(record(
                logger,
                DiagnosticKind.TIMELINE_REPAIRED,
                channel_id,
                f"{ViolationKind.DEGENERATE.value}: dropped zero-length '{program.title}' "
                f"at {program.start.isoformat()}",
                program.broadcast_day,
            ))
            continue

        if repaired and program.start < repaired[-1].end:
            previous = repaired[-1]
            if program.end <= previous.end:
                diagnostics.append(record(
                    logger,
                    DiagnosticKind.TIMELINE_REPAIRED,
                    channel_id,
                    f"{ViolationKind.OVERLAP.value}: dropped '{program.title}' "
                    f"at {program.start.isoformat()}, fully covered by '{previous.title}'",
                    program.broadcast_day,
                ))
                continue

            diagnostics.append(record(
                logger,
                DiagnosticKind.TIMELINE_REPAIRED,
                channel_id,
                f"{ViolationKind.OVERLAP.value}: '{program.title}' start moved from "
                f"{program.start.isoformat()} to {previous.end.isoformat()}",
                program.broadcast_day,
            ))
            program = replace(program, start=previous.end)

        repaired.append(program)

    for violation in check_timeline(repaired, gap_warning=gap_warning):
        if violation.kind is ViolationKind.COVERAGE_GAP:
            diagnostics.append(record(
                logger,
                DiagnosticKind.COVERAGE_GAP,
                channel_id,
                violation.message,
                repaired[violation.index].broadcast_day,
            ))

    return ValidationResult(programs=tuple(repaired), diagnostics=tuple(diagnostics))
