"""Back pay for retrospective award rate increases."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from award_engine.calculators.engine import ShiftPayCalculator
from award_engine.calculators.line_builder import LineItemBuilder
from award_engine.calculators.types import PayBreakdown, RateOverride, Shift, StaffContext
from award_engine.services.reconciliation import group_by_week
from award_engine.snapshot import AwardSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackPayAdjustment:
    """One shift priced under the original and the revised award."""

    shift_id: str
    original: PayBreakdown
    revised: PayBreakdown

    @property
    def adjustment(self) -> Decimal:
        return self.revised.total - self.original.total


@dataclass(frozen=True)
class BackPayReport:
    staff_id: str
    adjustments: tuple[BackPayAdjustment, ...]

    @property
    def total_original(self) -> Decimal:
        return LineItemBuilder.round_to_cents(
            sum((a.original.total for a in self.adjustments), Decimal("0"))
        )

    @property
    def total_revised(self) -> Decimal:
        return LineItemBuilder.round_to_cents(
            sum((a.revised.total for a in self.adjustments), Decimal("0"))
        )

    @property
    def total_adjustment(self) -> Decimal:
        return self.total_revised - self.total_original

    @property
    def affected_shift_ids(self) -> list[str]:
        return [a.shift_id for a in self.adjustments if a.adjustment]


class BackPayCalculator:
    """Reprices already-paid shifts after a retrospective rate change.

    Each pay week is calculated twice, once per snapshot, so overtime and
    weekly allowances are allocated the same way under both.
    """

    def __init__(self, calculator: ShiftPayCalculator | None = None):
        self.calculator = calculator or ShiftPayCalculator()

    def calculate_back_pay(
        self,
        shifts: Sequence[Shift],
        staff: StaffContext,
        original: AwardSnapshot,
        revised: AwardSnapshot,
        overrides: Sequence[RateOverride] = (),
    ) -> BackPayReport:
        adjustments: list[BackPayAdjustment] = []
        for week in group_by_week(shifts, self.calculator.settings.week_start):
            before = self.calculator.calculate_period_pay(week, staff, original, overrides)
            after = self.calculator.calculate_period_pay(week, staff, revised, overrides)
            adjustments.extend(
                BackPayAdjustment(shift_id=old.shift_id, original=old, revised=new)
                for old, new in zip(before.breakdowns, after.breakdowns)
            )

        report = BackPayReport(staff_id=staff.staff_id, adjustments=tuple(adjustments))
        logger.info(
            "Back pay for staff %s: %d shift(s), adjustment %s",
            staff.staff_id,
            len(report.affected_shift_ids),
            report.total_adjustment,
        )
        return report
