"""Overtime allocation across daily and weekly thresholds."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from award_engine.calculators.types import DailyAllocation, OvertimeRule
from award_engine.exceptions import ValidationError

HOURS_PRECISION = Decimal("0.0001")
ZERO = Decimal("0")


class OvertimeAllocator:
    """Splits worked hours into ordinary, tier-1 and tier-2 overtime.

    An hour is overtime if either the daily or the weekly threshold says so.
    Days are processed in order; only ordinary hours count towards the
    weekly threshold, so an hour is never classified as overtime twice.
    Of each day's overtime the first ``tier1_hours`` are tier-1 and the
    remainder tier-2.
    """

    def allocate_overtime(
        self,
        daily_hours: Sequence[Decimal],
        weekly_total: Decimal | None,
        rule: OvertimeRule,
    ) -> list[DailyAllocation]:
        """Allocate a week's hours.

        Args:
            daily_hours: Worked hours per day, in day order
            weekly_total: Hours worked in the week so far, including these
                days. Any excess over sum(daily_hours) is ordinary time
                worked before the first listed day. None means sum(daily_hours).
            rule: Thresholds and tiering for the employee's employment type

        Raises:
            ValidationError: On negative hours or a weekly total smaller
                than the listed days
        """
        hours = [Decimal(h).quantize(HOURS_PRECISION) for h in daily_hours]
        if any(h < 0 for h in hours):
            raise ValidationError("Daily hours cannot be negative", daily_hours=[str(h) for h in hours])

        listed = sum(hours, ZERO)
        if weekly_total is None:
            weekly_total = listed
        weekly_total = Decimal(weekly_total).quantize(HOURS_PRECISION)
        if weekly_total < listed:
            raise ValidationError(
                f"Weekly total {weekly_total} is less than the sum of daily hours {listed}",
                weekly_total=str(weekly_total),
                daily_total=str(listed),
            )

        weekly_ordinary = weekly_total - listed
        allocations: list[DailyAllocation] = []

        for day in hours:
            daily_ordinary = min(day, rule.daily_threshold)
            weekly_room = max(ZERO, rule.weekly_threshold - weekly_ordinary)
            ordinary = min(daily_ordinary, weekly_room)
            overtime = day - ordinary

            tier1 = min(overtime, rule.tier1_hours)
            tier2 = overtime - tier1

            weekly_ordinary += ordinary
            allocations.append(DailyAllocation(ordinary=ordinary, tier1=tier1, tier2=tier2))

        return allocations
