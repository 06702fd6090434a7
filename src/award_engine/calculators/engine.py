"""Shift pay calculation engine - main orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from award_engine.calculators.allowance_evaluator import AllowanceEvaluator
from award_engine.calculators.line_builder import LineItemBuilder
from award_engine.calculators.overtime_allocator import HOURS_PRECISION, OvertimeAllocator
from award_engine.calculators.override_applier import (
    ActiveOverrides,
    OverrideApplier,
    select_overrides,
)
from award_engine.calculators.penalty_resolver import (
    PenaltyResolver,
    combined_multiplier,
    component_name,
)
from award_engine.calculators.rate_resolver import RateNotFoundError
from award_engine.calculators.segmentation import (
    hours_to_seconds,
    max_gap_hours,
    seconds_to_hours,
    segment_shift,
    worked_intervals,
)
from award_engine.calculators.types import (
    AllowanceContext,
    AllowanceFrequency,
    AllowanceTriggerType,
    AppliedAllowance,
    BreakdownLine,
    DailyAllocation,
    PayBreakdown,
    RateOverride,
    Shift,
    ShiftSegment,
    StaffContext,
)
from award_engine.config import Settings, get_settings
from award_engine.exceptions import ValidationError

if TYPE_CHECKING:
    from award_engine.snapshot import AwardSnapshot

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")


@dataclass(frozen=True)
class PricedSegment:
    """A segment with its resolved ordinary rate."""

    shift_index: int
    segment: ShiftSegment
    base_rate: Decimal  # After any override
    casual_loading: Decimal
    multiplier: Decimal
    rate: Decimal
    component: str
    rule_ids: tuple[str, ...]
    absorbed_overtime_hours: Decimal


@dataclass
class _Accumulator:
    """Seconds worked per (component, rate) for one shift."""

    seconds: dict[tuple[str, Decimal], int] = field(default_factory=dict)
    rule_ids: dict[tuple[str, Decimal], list[str]] = field(default_factory=dict)
    explanations: dict[tuple[str, Decimal], str] = field(default_factory=dict)

    def add(
        self,
        component: str,
        rate: Decimal,
        seconds: int,
        rule_ids: Iterable[str],
        explanation: str,
    ) -> None:
        if seconds <= 0:
            return
        key = (component, rate)
        self.seconds[key] = self.seconds.get(key, 0) + seconds
        ids = self.rule_ids.setdefault(key, [])
        ids.extend(r for r in rule_ids if r not in ids)
        self.explanations.setdefault(key, explanation)

    def lines(self) -> list[BreakdownLine]:
        return [
            LineItemBuilder.create_time_line(
                component=component,
                hours=seconds_to_hours(seconds),
                rate=rate,
                rule_ids=self.rule_ids[(component, rate)],
                explanation=self.explanations[(component, rate)],
            )
            for (component, rate), seconds in self.seconds.items()
        ]


@dataclass(frozen=True)
class PeriodPayResult:
    """Result of calculating one staff member's shifts for one week."""

    staff_id: str
    breakdowns: tuple[PayBreakdown, ...]
    allocations: tuple[tuple[date, DailyAllocation], ...]

    @property
    def total(self) -> Decimal:
        return LineItemBuilder.round_to_cents(
            sum((b.total for b in self.breakdowns), Decimal("0"))
        )


class ShiftPayCalculator:
    """Award pay calculation engine.

    Calculation pipeline (stable order per period):
    1) Segment each shift at midnight, penalty window edges and
       allowance duration thresholds; drop unpaid breaks
    2) Resolve base rate, overrides and penalties per segment
    3) Compose rate = base * (penalty multiplier + casual loading)
    4) Aggregate hours per work day and allocate overtime; overtime hours
       are taken from the end of each day and repriced at tier rates
    5) Apply overtime absorption from an above-award override
    6) Evaluate allowances once per shift, de-duplicating daily and
       weekly claims across the period
    7) Emit one immutable PayBreakdown per shift

    Every step is a pure function of the inputs; configuration errors
    propagate immediately and no partial result is returned.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.penalty_resolver = PenaltyResolver()
        self.overtime_allocator = OvertimeAllocator()
        self.allowance_evaluator = AllowanceEvaluator(
            self.settings.default_split_shift_gap_hours, self.settings.rate_precision
        )

    def calculate_shift_pay(
        self,
        shift: Shift,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride] = (),
        as_of_date: date | None = None,
        prior_weekly_hours: Decimal = Decimal("0"),
    ) -> PayBreakdown:
        """Calculate pay for a single shift."""
        result = self.calculate_period_pay(
            [shift],
            staff,
            snapshot,
            overrides,
            as_of_date=as_of_date,
            prior_weekly_hours=prior_weekly_hours,
        )
        return result.breakdowns[0]

    def calculate_period_pay(
        self,
        shifts: Sequence[Shift],
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride] = (),
        as_of_date: date | None = None,
        prior_weekly_hours: Decimal = Decimal("0"),
    ) -> PeriodPayResult:
        """Calculate pay for one week of shifts.

        Args:
            shifts: Shifts in the week (any order, must not overlap)
            staff: Staff member the shifts belong to
            snapshot: Award configuration for the whole calculation
            overrides: Candidate overrides; those active for the staff
                member on each segment's date apply
            as_of_date: Rate lookup date; defaults to each segment's date
            prior_weekly_hours: Ordinary hours already worked this week

        Raises:
            ConfigurationError: Missing rate or malformed rule
            BelowAwardFloorError: Active override below the award
            ValidationError: Malformed shift input
        """
        if not shifts:
            raise ValidationError("At least one shift is required", staff_id=staff.staff_id)

        ordered = sorted(shifts, key=lambda s: s.start)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                raise ValidationError(
                    f"Shifts {previous.shift_id} and {current.shift_id} overlap",
                    staff_id=staff.staff_id,
                    shift_ids=[previous.shift_id, current.shift_id],
                )

        classification = snapshot.classification(staff.classification_id)
        if staff.employment_type not in classification.employment_types:
            raise ValidationError(
                f"Classification {classification.classification_id} does not allow "
                f"{staff.employment_type.value} employment",
                staff_id=staff.staff_id,
                classification_id=classification.classification_id,
            )

        overtime_rule = snapshot.overtime_rule_for(staff.employment_type)
        applier = OverrideApplier(snapshot.award.ordinary_weekly_hours)
        duration_thresholds = [
            self.allowance_evaluator.hours_threshold(rule)
            for rule in snapshot.allowance_rules
            if rule.trigger_type == AllowanceTriggerType.SHIFT_DURATION
        ]

        # 1-3) Segment and price every shift
        priced: list[list[PricedSegment]] = []
        for index, shift in enumerate(ordered):
            segments = segment_shift(
                shift,
                snapshot.award,
                snapshot.penalty_rules,
                staff.employment_type,
                duration_thresholds,
            )
            priced.append(
                [
                    self._price_segment(index, seg, staff, snapshot, overrides, applier, as_of_date)
                    for seg in segments
                ]
            )

        # 4) Daily aggregation by work day
        days: list[date] = []
        day_seconds: dict[date, int] = {}
        for shift, segments in zip(ordered, priced):
            if shift.work_date not in day_seconds:
                days.append(shift.work_date)
                day_seconds[shift.work_date] = 0
            day_seconds[shift.work_date] += sum(p.segment.seconds for p in segments)

        daily_hours = [
            seconds_to_hours(day_seconds[d]).quantize(HOURS_PRECISION) for d in days
        ]
        if prior_weekly_hours < 0:
            raise ValidationError(
                "Prior weekly hours cannot be negative",
                prior_weekly_hours=str(prior_weekly_hours),
            )
        allocations = self.overtime_allocator.allocate_overtime(
            daily_hours,
            Decimal(prior_weekly_hours) + sum(daily_hours, Decimal("0")),
            overtime_rule,
        )

        accumulators = [_Accumulator() for _ in ordered]
        overtime_seconds = [0 for _ in ordered]
        absorption_used = 0

        for work_date, allocation in zip(days, allocations):
            # Overtime is the last time worked in the day
            total_seconds = day_seconds[work_date]
            tier2_left = min(hours_to_seconds(allocation.tier2), total_seconds)
            tier1_left = min(hours_to_seconds(allocation.tier1), total_seconds - tier2_left)
            ordinary_left = total_seconds - tier1_left - tier2_left

            day_pieces = [
                p
                for shift, segments in zip(ordered, priced)
                if shift.work_date == work_date
                for p in segments
            ]
            for piece in day_pieces:
                remaining = piece.segment.seconds
                acc = accumulators[piece.shift_index]

                take = min(remaining, ordinary_left)
                acc.add(piece.component, piece.rate, take, piece.rule_ids, self._explain(piece))
                ordinary_left -= take
                remaining -= take

                for tier, tier_left in ((1, tier1_left), (2, tier2_left)):
                    take = min(remaining, tier_left)
                    if take <= 0:
                        continue
                    if tier == 1:
                        tier1_left -= take
                    else:
                        tier2_left -= take
                    remaining -= take
                    overtime_seconds[piece.shift_index] += take

                    # 5) Absorbed overtime keeps its ordinary rate
                    budget = hours_to_seconds(piece.absorbed_overtime_hours) - absorption_used
                    absorbed = max(0, min(take, budget))
                    if absorbed:
                        absorption_used += absorbed
                        acc.add(
                            "overtime_absorbed",
                            piece.rate,
                            absorbed,
                            piece.rule_ids,
                            f"Overtime absorbed by package, paid at {piece.component} rate",
                        )
                    if take - absorbed:
                        multipliers = overtime_rule.multipliers_for(piece.segment.day_type)
                        rate = self._overtime_rate(piece, multipliers[tier - 1])
                        acc.add(
                            f"overtime_tier{tier}",
                            rate,
                            take - absorbed,
                            (),
                            f"Tier {tier} overtime on {piece.segment.day_type.value}",
                        )

        # 6-7) Allowances and breakdowns
        claimed: set[tuple[str, Any]] = set()
        breakdowns: list[PayBreakdown] = []
        for index, shift in enumerate(ordered):
            lines = accumulators[index].lines()
            worked_hours = seconds_to_hours(sum(p.segment.seconds for p in priced[index]))
            on = as_of_date or shift.work_date
            context = AllowanceContext(
                worked_hours=worked_hours,
                overtime_hours=seconds_to_hours(overtime_seconds[index]),
                max_gap_hours=max_gap_hours(worked_intervals(shift)),
                day_types=frozenset(p.segment.day_type for p in priced[index]),
                work_dates=(shift.work_date,),
                employment_type=staff.employment_type,
                as_of_date=on,
                **self._event_facts(shift, staff, snapshot, overrides, applier, on, worked_hours),
            )
            applied = self.allowance_evaluator.evaluate_allowances(
                context, staff, snapshot.allowance_rules
            )
            for allowance in self._deduplicate(applied, shift, claimed):
                lines.append(LineItemBuilder.create_allowance_line(allowance))

            breakdowns.append(self._build_breakdown(shift, staff, snapshot, overrides, lines, as_of_date))

        logger.debug(
            "Calculated %d shift(s) for staff %s: %s",
            len(breakdowns),
            staff.staff_id,
            [str(b.total) for b in breakdowns],
        )
        return PeriodPayResult(
            staff_id=staff.staff_id,
            breakdowns=tuple(breakdowns),
            allocations=tuple(zip(days, allocations)),
        )

    def _price_segment(
        self,
        index: int,
        segment: ShiftSegment,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride],
        applier: OverrideApplier,
        as_of_date: date | None,
    ) -> PricedSegment:
        on = as_of_date or segment.calendar_date
        base_rate, loading, active = self._base_rate(on, staff, snapshot, overrides, applier)

        matches = self.penalty_resolver.resolve_penalties(segment, snapshot.penalty_rules)
        absorption = active.absorption
        if absorption is not None and absorption.penalty_types:
            matches = [m for m in matches if m.penalty_type not in absorption.penalty_types]

        multiplier = combined_multiplier(matches)
        return PricedSegment(
            shift_index=index,
            segment=segment,
            base_rate=base_rate,
            casual_loading=loading,
            multiplier=multiplier,
            rate=self._quantize_rate(base_rate * (multiplier + loading)),
            component=component_name(matches),
            rule_ids=tuple(m.rule_id for m in matches),
            absorbed_overtime_hours=absorption.overtime_hours if absorption else Decimal("0"),
        )

    def _base_rate(
        self,
        on: date,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride],
        applier: OverrideApplier,
    ) -> tuple[Decimal, Decimal, ActiveOverrides]:
        """Hourly base after any override, and the casual loading, on a date."""
        pay_rate = snapshot.rates.resolve_rate(staff.classification_id, staff.rate_type, on)

        active = select_overrides(overrides, staff.staff_id, on, staff.override_id)
        self._validate_override_floor(active, staff, snapshot, applier)
        base_rate = applier.apply_override(pay_rate.hourly_rate, active.rate)

        loading = Decimal("0")
        if staff.is_casual:
            loading = applier.apply_casual_loading(snapshot.award.casual_loading, active.loading)
        return base_rate, loading, active

    def _event_facts(
        self,
        shift: Shift,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride],
        applier: OverrideApplier,
        on: date,
        worked_hours: Decimal,
    ) -> dict[str, Decimal]:
        """Allowance facts for recall, sleepover disturbance, higher duties and travel."""
        base_rate, loading, _ = self._base_rate(on, staff, snapshot, overrides, applier)
        ordinary_rate = self._quantize_rate(base_rate * (1 + loading))
        facts = {
            "ordinary_rate": ordinary_rate,
            "recall_hours": Decimal(shift.recall_minutes) / MINUTES_PER_HOUR,
            "disturbance_hours": Decimal(shift.disturbance_minutes) / MINUTES_PER_HOUR,
            "travel_km": shift.travel_km,
        }

        duties = shift.higher_duties
        if duties is None:
            return facts
        hours = worked_hours if duties.hours is None else duties.hours
        if not 0 <= hours <= worked_hours:
            raise ValidationError(
                f"Higher duties hours {hours} outside worked time of shift {shift.shift_id}",
                shift_id=shift.shift_id,
                staff_id=staff.staff_id,
                classification_id=duties.classification_id,
            )
        snapshot.classification(duties.classification_id)
        higher = snapshot.rates.resolve_rate(duties.classification_id, staff.rate_type, on)
        higher_rate = self._quantize_rate(higher.hourly_rate * (1 + loading))
        facts["higher_duties_hours"] = hours
        facts["higher_duties_rate"] = max(Decimal("0"), higher_rate - ordinary_rate)
        return facts

    @staticmethod
    def _validate_override_floor(
        active: ActiveOverrides,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        applier: OverrideApplier,
    ) -> None:
        """An override must also clear the award floor on its own start date."""
        if active.rate is None:
            return
        try:
            floor = snapshot.rates.resolve_rate(
                staff.classification_id, staff.rate_type, active.rate.effective_from
            )
        except RateNotFoundError as e:
            raise ValidationError(
                f"Override {active.rate.override_id} starts before any award rate "
                f"for classification {staff.classification_id}",
                override_id=active.rate.override_id,
                staff_id=staff.staff_id,
                classification_id=staff.classification_id,
                effective_from=active.rate.effective_from.isoformat(),
            ) from e
        applier.apply_override(floor.hourly_rate, active.rate)

    def _overtime_rate(self, piece: PricedSegment, tier_multiplier: Decimal) -> Decimal:
        return self._quantize_rate(piece.base_rate * (tier_multiplier + piece.casual_loading))

    def _quantize_rate(self, rate: Decimal) -> Decimal:
        return rate.quantize(self.settings.rate_precision, rounding=ROUND_HALF_UP)

    @staticmethod
    def _explain(piece: PricedSegment) -> str:
        text = f"{piece.component}: base {piece.base_rate} x {piece.multiplier}"
        if piece.casual_loading:
            text += f" + casual loading {piece.casual_loading}"
        return text

    @staticmethod
    def _deduplicate(
        applied: list[AppliedAllowance],
        shift: Shift,
        claimed: set[tuple[str, Any]],
    ) -> list[AppliedAllowance]:
        """Drop daily and weekly allowances already paid earlier in the period."""
        kept: list[AppliedAllowance] = []
        for allowance in applied:
            frequency = allowance.rule.frequency
            if frequency == AllowanceFrequency.PER_DAY:
                key: tuple[str, Any] = (allowance.rule.rule_id, shift.work_date)
            elif frequency == AllowanceFrequency.PER_WEEK:
                key = (allowance.rule.rule_id, "week")
            else:
                kept.append(allowance)
                continue
            if key in claimed:
                continue
            claimed.add(key)
            kept.append(allowance)
        return kept

    def _build_breakdown(
        self,
        shift: Shift,
        staff: StaffContext,
        snapshot: AwardSnapshot,
        overrides: Sequence[RateOverride],
        lines: list[BreakdownLine],
        as_of_date: date | None,
    ) -> PayBreakdown:
        inputs_data = {
            "shift": {
                "shift_id": shift.shift_id,
                "start": shift.start.isoformat(),
                "end": shift.end.isoformat(),
                "breaks": [
                    [b.start.isoformat(), b.end.isoformat(), b.paid] for b in shift.breaks
                ],
                "recall_minutes": shift.recall_minutes,
                "disturbance_minutes": shift.disturbance_minutes,
                "higher_duties": (
                    [shift.higher_duties.classification_id, shift.higher_duties.hours]
                    if shift.higher_duties
                    else None
                ),
                "travel_km": str(shift.travel_km),
            },
            "staff": {
                "staff_id": staff.staff_id,
                "classification_id": staff.classification_id,
                "employment_type": staff.employment_type.value,
                "rate_type": staff.rate_type.value,
                "qualifications": sorted(staff.qualifications),
                "designations": sorted(staff.designations),
            },
            "overrides": sorted(
                f"{o.override_id}:{o.override_type.value}:{o.value}"
                for o in overrides
                if o.staff_id == staff.staff_id
            ),
            "as_of_date": as_of_date.isoformat() if as_of_date else None,
        }
        rules_data = {
            "manifest": snapshot.rules_manifest(),
            "used": sorted({rule_id for line in lines for rule_id in line.rule_ids}),
        }
        inputs_fingerprint = LineItemBuilder.compute_fingerprint(inputs_data)
        rules_fingerprint = LineItemBuilder.compute_fingerprint(rules_data)

        return PayBreakdown(
            shift_id=shift.shift_id,
            staff_id=staff.staff_id,
            lines=tuple(lines),
            total=LineItemBuilder.calculate_total(lines),
            calculation_id=LineItemBuilder.generate_calculation_id(
                shift.shift_id,
                staff.staff_id,
                self.settings.engine_version,
                inputs_fingerprint,
                rules_fingerprint,
            ),
            inputs_fingerprint=inputs_fingerprint,
            rules_fingerprint=rules_fingerprint,
        )
