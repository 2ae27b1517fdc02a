"""
Tests for resolving adjacent listing days around the cutoff hour.
"""
from datetime import timedelta

import pytest

from mitv_epg.services.boundary_resolver import DayWindow, resolve_window, trim_covered
from mitv_epg.services.diagnostics import DiagnosticKind
from mitv_epg.services.listing_types import CutoffPolicy, DaySchedule
from mitv_epg.services.timeline_builder import build_day
from tests.helpers import DAY, NEXT_DAY, at, entries


def window(today_rows, next_rows) -> DayWindow:
    current = build_day("X", DAY, entries(DAY, *today_rows))
    following = None if next_rows is None else build_day("X", NEXT_DAY, entries(NEXT_DAY, *next_rows))
    return DayWindow(current=current, following=following)


def spans(programs):
    return [(p.title, p.start, p.end, p.broadcast_day) for p in programs]


class TestTailClosure:

    def test_tail_closed_by_next_day_first_start(self):
        resolution = resolve_window(
            window([("20:00", "News")], [("06:00", "Breakfast"), ("09:00", "Talk")]),
            CutoffPolicy(cutoff_hour=6),
        )

        assert spans(resolution.programs) == [("News", at(DAY, 20), at(NEXT_DAY, 6), DAY)]
        assert resolution.diagnostics == ()

    def test_closure_is_exact_even_when_split(self, policy):
        resolution = resolve_window(
            window([("23:00", "Film")], [("06:00", "Breakfast")]),
            policy,
        )

        assert resolution.programs[-1].end == at(NEXT_DAY, 6)
        assert resolution.programs[0].start == at(DAY, 23)

    def test_following_schedule_passed_on_untouched(self, policy):
        current_window = window([("20:00", "News")], [("06:00", "Breakfast"), ("09:00", "Talk")])

        resolution = resolve_window(current_window, policy)

        assert resolution.following == current_window.following
        assert resolution.superseded == 0


class TestCutoffClassification:

    def test_program_ending_before_cutoff_stays(self, policy):
        resolution = resolve_window(
            window([("23:30", "A"), ("01:00", "B"), ("02:30", "C")], [("03:00", "D")]),
            policy,
        )

        assert spans(resolution.programs) == [
            ("A", at(DAY, 23, 30), at(NEXT_DAY, 1), DAY),
            ("B", at(NEXT_DAY, 1), at(NEXT_DAY, 2, 30), DAY),
            ("C", at(NEXT_DAY, 2, 30), at(NEXT_DAY, 3), DAY),
        ]

    def test_straddling_program_split_into_continuation_pair(self, policy):
        resolution = resolve_window(
            window([("22:00", "Show"), ("02:00", "Late Movie", "A classic")], [("04:00", "Morning")]),
            policy,
        )

        movie = [p for p in resolution.programs if p.title == "Late Movie"]
        assert spans(movie) == [
            ("Late Movie", at(NEXT_DAY, 2), at(NEXT_DAY, 3), DAY),
            ("Late Movie", at(NEXT_DAY, 3), at(NEXT_DAY, 4), NEXT_DAY),
        ]
        assert movie[0].end == movie[1].start
        assert movie[0].description == movie[1].description == "A classic"
        assert movie[0].channel_id == movie[1].channel_id == "X"

    def test_program_starting_exactly_at_cutoff_relocated_not_split(self, policy):
        resolution = resolve_window(
            window([("22:00", "Show"), ("03:00", "Early"), ("04:00", "Earlier")], [("05:00", "Morning")]),
            policy,
        )

        assert spans(resolution.programs) == [
            ("Show", at(DAY, 22), at(NEXT_DAY, 3), DAY),
            ("Early", at(NEXT_DAY, 3), at(NEXT_DAY, 4), NEXT_DAY),
            ("Earlier", at(NEXT_DAY, 4), at(NEXT_DAY, 5), NEXT_DAY),
        ]
        assert resolution.boundary == at(NEXT_DAY, 3)

    def test_classification_is_total_and_disjoint(self, policy):
        resolution = resolve_window(
            window(
                [("18:00", "A"), ("23:00", "B"), ("02:00", "C"), ("03:15", "D"), ("03:30", "E")],
                [("04:00", "F")],
            ),
            policy,
        )

        programs = resolution.programs
        assert [p.title for p in programs] == ["A", "B", "C", "C", "D", "E"]
        for previous, program in zip(programs, programs[1:]):
            assert previous.end == program.start
        assert programs[0].start == at(DAY, 18)
        assert programs[-1].end == at(NEXT_DAY, 4)


class TestMissingNextDay:

    def test_fallback_duration_and_partial_diagnostic(self, policy):
        resolution = resolve_window(
            window([("22:00", "Show"), ("23:00", "Late")], None),
            policy,
            fallback_duration=timedelta(minutes=45),
        )

        late = resolution.programs[-1]
        assert late.end == late.start + timedelta(minutes=45)
        assert late.estimated_end
        assert resolution.following is None
        assert [d.kind for d in resolution.diagnostics] == [DiagnosticKind.PARTIAL_TIMELINE]
        assert resolution.diagnostics[0].day == DAY

    def test_unresolved_tail_is_not_split(self, policy):
        resolution = resolve_window(window([("23:00", "Show"), ("02:30", "Night")], None), policy)

        night = [p for p in resolution.programs if p.title == "Night"]
        assert len(night) == 1
        assert night[0].start == at(NEXT_DAY, 2, 30)
        assert night[0].end == at(NEXT_DAY, 3, 30)
        assert night[0].broadcast_day == DAY

    def test_empty_next_day_falls_back(self, policy):
        resolution = resolve_window(window([("22:00", "Show")], []), policy)

        assert resolution.programs[-1].end == at(DAY, 23)
        assert resolution.diagnostics[0].kind is DiagnosticKind.PARTIAL_TIMELINE

    def test_empty_current_day(self, policy):
        current_window = window([], [("06:00", "Breakfast")])

        resolution = resolve_window(current_window, policy)

        assert resolution.programs == ()
        assert resolution.following == current_window.following
        assert resolution.diagnostics == ()


class TestOverlappingListings:

    def test_next_day_entries_covered_by_overnight_listing_are_superseded(self, policy):
        resolution = resolve_window(
            window(
                [("22:00", "Show"), ("01:00", "Night")],
                [("00:00", "Night (repeat listing)"), ("01:00", "Night"), ("03:00", "Dawn"), ("05:00", "Morning")],
            ),
            policy,
        )

        assert resolution.programs[-1].title == "Night"
        assert resolution.programs[-1].end == at(NEXT_DAY, 3)
        assert resolution.superseded == 2
        assert [p.title for p in resolution.following.programs] == ["Dawn"]
        assert resolution.following.tail.title == "Morning"
        assert [d.kind for d in resolution.diagnostics] == [DiagnosticKind.TIMELINE_REPAIRED]
        assert resolution.diagnostics[0].day == NEXT_DAY

    def test_repeated_overnight_block_never_moves_next_day_tail(self, policy):
        resolution = resolve_window(
            window(
                [("22:00", "Show"), ("01:00", "Night")],
                [("00:00", "Show (repeat listing)"), ("01:00", "Night")],
            ),
            policy,
        )

        night = resolution.programs[-1]
        assert night.estimated_end
        assert (night.start, night.end) == (at(NEXT_DAY, 1), at(NEXT_DAY, 2))
        assert resolution.following.programs == ()
        assert resolution.following.tail is None
        assert resolution.superseded == 2
        assert [d.kind for d in resolution.diagnostics] == [
            DiagnosticKind.PARTIAL_TIMELINE,
            DiagnosticKind.TIMELINE_REPAIRED,
        ]

    def test_trim_keeps_remainder_of_program_reaching_past_cover(self):
        schedule = build_day("X", NEXT_DAY, entries(NEXT_DAY, ("00:00", "Long"), ("04:00", "Next"), ("06:00", "Tail")))

        trimmed, touched = trim_covered(schedule, at(NEXT_DAY, 2))

        assert touched == 1
        assert trimmed.programs[0].start == at(NEXT_DAY, 2)
        assert trimmed.programs[0].end == at(NEXT_DAY, 4)

    def test_trim_drops_covered_tail_instead_of_moving_it(self):
        schedule = build_day("X", NEXT_DAY, entries(NEXT_DAY, ("00:00", "Early"), ("01:00", "Tail")))

        trimmed, touched = trim_covered(schedule, at(NEXT_DAY, 2))

        assert touched == 2
        assert trimmed.programs == ()
        assert trimmed.tail is None

    def test_inclusive_trim_covers_entry_at_the_instant(self):
        schedule = build_day("X", NEXT_DAY, entries(NEXT_DAY, ("01:00", "Tail")))

        assert trim_covered(schedule, at(NEXT_DAY, 1))[1] == 0
        assert trim_covered(schedule, at(NEXT_DAY, 1), inclusive=True)[0].tail is None

    def test_trim_without_overlap_returns_same_schedule(self):
        schedule = build_day("X", NEXT_DAY, entries(NEXT_DAY, ("04:00", "Next")))

        trimmed, touched = trim_covered(schedule, at(NEXT_DAY, 3))

        assert trimmed is schedule
        assert touched == 0


class TestIdempotence:

    @pytest.mark.parametrize("today_rows, next_rows", [
        ([("23:30", "A"), ("01:00", "B"), ("02:30", "C")], [("03:00", "D"), ("05:00", "E")]),
        ([("22:00", "Show"), ("02:00", "Late Movie")], [("04:00", "Morning")]),
        ([("22:00", "Show"), ("03:00", "Early"), ("04:00", "Earlier")], [("05:00", "Morning")]),
        ([("22:00", "Show"), ("01:00", "Night")], [("00:00", "Dup"), ("01:00", "Night"), ("03:00", "Dawn")]),
        ([("23:00", "Show"), ("02:30", "Night")], None),
    ])
    def test_resolving_twice_changes_nothing(self, policy, today_rows, next_rows):
        first = resolve_window(window(today_rows, next_rows), policy)

        second = resolve_window(
            DayWindow(
                current=DaySchedule(day=DAY, programs=first.programs),
                following=first.following,
            ),
            policy,
        )

        assert second.programs == first.programs
        assert second.following == first.following
        assert second.superseded == 0
