"""Penalty rule matching and combination."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import time
from decimal import Decimal

from award_engine.calculators.types import LoadingType, PenaltyRule, ShiftSegment

logger = logging.getLogger(__name__)

_MINUTES_PER_DAY = 24 * 60


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _segment_window(segment: ShiftSegment) -> tuple[int, int]:
    """Segment as minutes from its start midnight; end may be 1440."""
    start = _minutes(segment.time_start)
    end = _minutes(segment.time_end)
    if end <= start:
        end += _MINUTES_PER_DAY
    return start, end


def window_overlaps(rule: PenaltyRule, segment: ShiftSegment) -> bool:
    """Whether a rule's time window overlaps the segment.

    Windows with time_end <= time_start wrap midnight (e.g. 22:00-06:00).
    """
    if not rule.has_window:
        return True
    seg_start, seg_end = _segment_window(segment)
    rule_start = _minutes(rule.time_start)
    rule_end = _minutes(rule.time_end)

    if rule_end > rule_start:
        intervals = [(rule_start, rule_end)]
    else:
        intervals = [(0, rule_end), (rule_start, _MINUTES_PER_DAY)]

    return any(start < seg_end and seg_start < end for start, end in intervals)


class PenaltyResolver:
    """Resolves which penalties apply to a pre-split shift segment.

    Combination policy:
    - day-based penalties (Saturday/Sunday/public holiday) are mutually
      exclusive; only the highest multiplier survives
    - among REPLACE rules the highest multiplier wins, then higher
      priority, then the narrower time window
    - COMPOUND rules multiply on top of the winning REPLACE multiplier
    """

    def resolve_penalties(
        self,
        segment: ShiftSegment,
        rules: Iterable[PenaltyRule],
    ) -> list[PenaltyRule]:
        """Return the applicable rules: winning replace rule first, then compounds."""
        on = segment.calendar_date
        candidates: list[PenaltyRule] = []

        for rule in rules:
            if not rule.in_effect(on):
                continue
            if rule.employment_type is not None and rule.employment_type != segment.employment_type:
                continue
            if rule.penalty_type.is_day_based:
                if rule.penalty_type.day_type != segment.day_type:
                    continue
            elif rule.day_types and segment.day_type not in rule.day_types:
                continue
            if not window_overlaps(rule, segment):
                continue
            candidates.append(rule)

        day_rules = [r for r in candidates if r.penalty_type.is_day_based]
        if len(day_rules) > 1:
            keep = max(day_rules, key=self._replace_rank)
            candidates = [r for r in candidates if not r.penalty_type.is_day_based or r is keep]

        replace_rules = [r for r in candidates if r.loading_type == LoadingType.REPLACE]
        compound_rules = [r for r in candidates if r.loading_type == LoadingType.COMPOUND]

        matches: list[PenaltyRule] = []
        if replace_rules:
            matches.append(max(replace_rules, key=self._replace_rank))
        matches.extend(compound_rules)

        logger.debug(
            "Penalties for %s %s-%s: %s",
            segment.day_type.value,
            segment.time_start,
            segment.time_end,
            [r.rule_id for r in matches],
        )
        return matches

    @staticmethod
    def _replace_rank(rule: PenaltyRule) -> tuple[Decimal, int, int]:
        # Narrower window ranks higher, hence the negation
        return (rule.multiplier, rule.priority, -rule.window_minutes)


def combined_multiplier(matches: Sequence[PenaltyRule]) -> Decimal:
    """Effective multiplier of resolved penalties (1 when none apply)."""
    multiplier = Decimal("1")
    for rule in matches:
        if rule.loading_type == LoadingType.REPLACE:
            multiplier = rule.multiplier
    for rule in matches:
        if rule.loading_type == LoadingType.COMPOUND:
            multiplier *= rule.multiplier
    return multiplier


def component_name(matches: Sequence[PenaltyRule]) -> str:
    """Line item component for a set of resolved penalties."""
    if not matches:
        return "ordinary"
    return "+".join(rule.penalty_type.value for rule in matches)
