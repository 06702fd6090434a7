"""Tests for penalty resolution and combination."""

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from award_engine.calculators.penalty_resolver import (
    PenaltyResolver,
    combined_multiplier,
    component_name,
    window_overlaps,
)
from award_engine.calculators.types import (
    DayType,
    EmploymentType,
    LoadingType,
    PenaltyRule,
    PenaltyType,
    ShiftSegment,
)

MONDAY = date(2025, 7, 7)
SUNDAY = date(2025, 7, 6)


def segment(
    day: date,
    start: time,
    end: time,
    day_type: DayType = DayType.WEEKDAY,
    employment_type: EmploymentType = EmploymentType.FULL_TIME,
) -> ShiftSegment:
    seg_end = datetime.combine(day, end)
    if end <= start:
        seg_end += timedelta(days=1)
    return ShiftSegment(
        start=datetime.combine(day, start),
        end=seg_end,
        day_type=day_type,
        employment_type=employment_type,
    )


SUNDAY_RULE = PenaltyRule(rule_id="sun", penalty_type=PenaltyType.SUNDAY, multiplier=Decimal("1.75"))
SATURDAY_RULE = PenaltyRule(rule_id="sat", penalty_type=PenaltyType.SATURDAY, multiplier=Decimal("1.5"))
PH_RULE = PenaltyRule(
    rule_id="ph", penalty_type=PenaltyType.PUBLIC_HOLIDAY, multiplier=Decimal("2.5")
)
EVENING_RULE = PenaltyRule(
    rule_id="eve",
    penalty_type=PenaltyType.EVENING,
    multiplier=Decimal("1.1"),
    time_start=time(18),
    time_end=time(21),
    day_types=frozenset({DayType.WEEKDAY}),
)
NIGHT_RULE = PenaltyRule(
    rule_id="night",
    penalty_type=PenaltyType.NIGHT,
    multiplier=Decimal("1.15"),
    time_start=time(21),
    time_end=time(6),
)


@pytest.fixture
def resolver() -> PenaltyResolver:
    return PenaltyResolver()


class TestWindowOverlap:
    """Time window matching."""

    def test_window_inside_day(self):
        assert window_overlaps(EVENING_RULE, segment(MONDAY, time(18), time(20)))
        assert not window_overlaps(EVENING_RULE, segment(MONDAY, time(15), time(18)))

    def test_wrapping_window_matches_both_sides_of_midnight(self):
        assert window_overlaps(NIGHT_RULE, segment(MONDAY, time(22), time(0)))
        assert window_overlaps(NIGHT_RULE, segment(MONDAY, time(0), time(2)))
        assert not window_overlaps(NIGHT_RULE, segment(MONDAY, time(6), time(18)))

    def test_rule_without_window_always_overlaps(self):
        assert window_overlaps(SUNDAY_RULE, segment(SUNDAY, time(9), time(13), DayType.SUNDAY))


class TestPenaltyResolver:
    """Rule selection per segment."""

    def test_no_penalty_on_ordinary_weekday(self, resolver):
        matches = resolver.resolve_penalties(
            segment(MONDAY, time(9), time(15)), [SUNDAY_RULE, EVENING_RULE]
        )

        assert matches == []
        assert combined_multiplier(matches) == Decimal("1")
        assert component_name(matches) == "ordinary"

    def test_day_rule_matches_its_day(self, resolver):
        matches = resolver.resolve_penalties(
            segment(SUNDAY, time(9), time(13), DayType.SUNDAY),
            [SATURDAY_RULE, SUNDAY_RULE],
        )

        assert matches == [SUNDAY_RULE]

    def test_day_type_gating_on_time_rules(self, resolver):
        matches = resolver.resolve_penalties(
            segment(SUNDAY, time(18), time(20), DayType.SUNDAY),
            [SUNDAY_RULE, EVENING_RULE],
        )

        assert matches == [SUNDAY_RULE]

    def test_highest_replace_multiplier_wins(self, resolver):
        matches = resolver.resolve_penalties(
            segment(MONDAY, time(22), time(0)),
            [replace(EVENING_RULE, time_end=time(23)), NIGHT_RULE],
        )

        assert [m.rule_id for m in matches] == ["night"]
        assert combined_multiplier(matches) == Decimal("1.15")

    def test_day_rules_are_mutually_exclusive(self, resolver):
        # A public holiday falling on a Sunday gets one day penalty only
        compound_ph = PenaltyRule(
            rule_id="ph-any",
            penalty_type=PenaltyType.PUBLIC_HOLIDAY,
            multiplier=Decimal("2.5"),
            loading_type=LoadingType.COMPOUND,
        )
        matches = resolver.resolve_penalties(
            segment(SUNDAY, time(9), time(13), DayType.PUBLIC_HOLIDAY),
            [SUNDAY_RULE, PH_RULE, compound_ph],
        )

        assert len(matches) == 1
        assert matches[0].penalty_type == PenaltyType.PUBLIC_HOLIDAY

    def test_compound_rule_multiplies_on_top(self, resolver):
        night_compound = PenaltyRule(
            rule_id="night-c",
            penalty_type=PenaltyType.NIGHT,
            multiplier=Decimal("1.15"),
            loading_type=LoadingType.COMPOUND,
            time_start=time(21),
            time_end=time(6),
        )
        matches = resolver.resolve_penalties(
            segment(SUNDAY, time(22), time(0), DayType.SUNDAY),
            [SUNDAY_RULE, night_compound],
        )

        assert [m.rule_id for m in matches] == ["sun", "night-c"]
        assert combined_multiplier(matches) == Decimal("2.0125")
        assert component_name(matches) == "sunday+night"

    def test_employment_type_filter(self, resolver):
        casual_sunday = PenaltyRule(
            rule_id="sun-cas",
            penalty_type=PenaltyType.SUNDAY,
            multiplier=Decimal("2.0"),
            employment_type=EmploymentType.CASUAL,
        )
        rules = [SUNDAY_RULE, casual_sunday]

        permanent = resolver.resolve_penalties(
            segment(SUNDAY, time(9), time(13), DayType.SUNDAY), rules
        )
        casual = resolver.resolve_penalties(
            segment(SUNDAY, time(9), time(13), DayType.SUNDAY, EmploymentType.CASUAL), rules
        )

        assert [m.rule_id for m in permanent] == ["sun"]
        assert [m.rule_id for m in casual] == ["sun-cas"]

    def test_tie_broken_by_priority_then_narrower_window(self, resolver):
        wide = PenaltyRule(
            rule_id="wide",
            penalty_type=PenaltyType.EVENING,
            multiplier=Decimal("1.1"),
            time_start=time(18),
            time_end=time(23),
        )
        narrow = PenaltyRule(
            rule_id="narrow",
            penalty_type=PenaltyType.EVENING,
            multiplier=Decimal("1.1"),
            time_start=time(19),
            time_end=time(21),
        )
        preferred = PenaltyRule(
            rule_id="preferred",
            penalty_type=PenaltyType.EVENING,
            multiplier=Decimal("1.1"),
            time_start=time(18),
            time_end=time(23),
            priority=5,
        )
        seg = segment(MONDAY, time(19), time(20))

        assert resolver.resolve_penalties(seg, [wide, narrow])[0].rule_id == "narrow"
        assert resolver.resolve_penalties(seg, [wide, narrow, preferred])[0].rule_id == "preferred"

    def test_rule_outside_effective_dates_ignored(self, resolver):
        future = PenaltyRule(
            rule_id="sun-2026",
            penalty_type=PenaltyType.SUNDAY,
            multiplier=Decimal("2.0"),
            effective_from=date(2026, 1, 1),
        )

        matches = resolver.resolve_penalties(
            segment(SUNDAY, time(9), time(13), DayType.SUNDAY), [SUNDAY_RULE, future]
        )

        assert [m.rule_id for m in matches] == ["sun"]
