"""Award entitlement reconciliation for salaried staff."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal

from award_engine.calculators.engine import ShiftPayCalculator
from award_engine.calculators.line_builder import LineItemBuilder
from award_engine.calculators.types import PayBreakdown, Shift, StaffContext
from award_engine.exceptions import ValidationError
from award_engine.snapshot import AwardSnapshot

logger = logging.getLogger(__name__)


def week_starting(on: date, week_start: int) -> date:
    """First day of the pay week containing ``on`` (0 = Monday)."""
    return on - timedelta(days=(on.weekday() - week_start) % 7)


def group_by_week(shifts: Sequence[Shift], week_start: int) -> list[list[Shift]]:
    """Group shifts into pay weeks by work date, earliest week first."""
    weeks: dict[date, list[Shift]] = {}
    for shift in sorted(shifts, key=lambda s: s.start):
        weeks.setdefault(week_starting(shift.work_date, week_start), []).append(shift)
    return [weeks[key] for key in sorted(weeks)]


@dataclass(frozen=True)
class ReconciliationReport:
    """Outcome of comparing salary paid with award entitlement.

    A shortfall is reported for human remediation; nothing is paid
    automatically.
    """

    staff_id: str
    entitlement: Decimal
    salary_paid: Decimal
    absorbed_amount: Decimal
    shortfall: Decimal
    detail: tuple[PayBreakdown, ...]

    @property
    def better_off(self) -> bool:
        """True if the salary covers the award entitlement."""
        return self.shortfall == 0


class ReconciliationEngine:
    """Prices a period's shifts at the award floor and compares with salary."""

    def __init__(self, calculator: ShiftPayCalculator | None = None):
        self.calculator = calculator or ShiftPayCalculator()

    def reconcile(
        self,
        salary_paid: Decimal,
        period_shifts: Sequence[Shift],
        staff: StaffContext,
        snapshot: AwardSnapshot,
        absorbed_amount: Decimal = Decimal("0"),
    ) -> ReconciliationReport:
        """Compare salary paid for a period with the award entitlement.

        Args:
            salary_paid: Salary actually paid for the period
            period_shifts: Every shift worked in the period
            staff: Staff member; any override is ignored
            snapshot: Award configuration for the period
            absorbed_amount: Part of the salary already credited against
                absorbed overtime or penalties elsewhere

        Raises:
            ValidationError: On negative amounts, or absorption above salary
        """
        salary_paid = Decimal(salary_paid)
        absorbed_amount = Decimal(absorbed_amount)
        if salary_paid < 0 or absorbed_amount < 0:
            raise ValidationError(
                "Salary and absorbed amount cannot be negative",
                staff_id=staff.staff_id,
                salary_paid=str(salary_paid),
                absorbed_amount=str(absorbed_amount),
            )
        if absorbed_amount > salary_paid:
            raise ValidationError(
                f"Absorbed amount {absorbed_amount} exceeds salary paid {salary_paid}",
                staff_id=staff.staff_id,
            )

        # The entitlement is the award floor, so overrides never apply
        floor_staff = replace(staff, override_id=None)
        detail: list[PayBreakdown] = []
        for week in group_by_week(period_shifts, self.calculator.settings.week_start):
            result = self.calculator.calculate_period_pay(week, floor_staff, snapshot)
            detail.extend(result.breakdowns)

        entitlement = LineItemBuilder.round_to_cents(
            sum((b.total for b in detail), Decimal("0"))
        )
        creditable = salary_paid - absorbed_amount
        shortfall = LineItemBuilder.round_to_cents(max(Decimal("0"), entitlement - creditable))

        if shortfall:
            logger.info(
                "Staff %s award shortfall %s (entitlement %s, salary %s, absorbed %s)",
                staff.staff_id,
                shortfall,
                entitlement,
                salary_paid,
                absorbed_amount,
            )
        else:
            logger.info(
                "Staff %s salary covers award entitlement %s", staff.staff_id, entitlement
            )

        return ReconciliationReport(
            staff_id=staff.staff_id,
            entitlement=entitlement,
            salary_paid=salary_paid,
            absorbed_amount=absorbed_amount,
            shortfall=shortfall,
            detail=tuple(detail),
        )


def reconcile(
    salary_paid: Decimal,
    period_shifts: Sequence[Shift],
    staff: StaffContext,
    snapshot: AwardSnapshot,
    absorbed_amount: Decimal = Decimal("0"),
) -> ReconciliationReport:
    """Reconcile with a default engine."""
    return ReconciliationEngine().reconcile(
        salary_paid, period_shifts, staff, snapshot, absorbed_amount
    )
