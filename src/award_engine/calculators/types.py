"""Type definitions for the award calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any


class EmploymentType(str, Enum):
    """Employment basis."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CASUAL = "casual"


class DayType(str, Enum):
    """Day classification for penalty purposes."""

    WEEKDAY = "weekday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    PUBLIC_HOLIDAY = "public_holiday"


class PenaltyType(str, Enum):
    """Penalty rule types."""

    SATURDAY = "saturday"
    SUNDAY = "sunday"
    PUBLIC_HOLIDAY = "public_holiday"
    EVENING = "evening"
    NIGHT = "night"
    EARLY_MORNING = "early_morning"

    @property
    def day_type(self) -> DayType | None:
        """Day type this penalty is keyed on, or None for time-based penalties."""
        return _DAY_PENALTIES.get(self)

    @property
    def is_day_based(self) -> bool:
        return self in _DAY_PENALTIES


_DAY_PENALTIES: dict[PenaltyType, DayType] = {
    PenaltyType.SATURDAY: DayType.SATURDAY,
    PenaltyType.SUNDAY: DayType.SUNDAY,
    PenaltyType.PUBLIC_HOLIDAY: DayType.PUBLIC_HOLIDAY,
}


class LoadingType(str, Enum):
    """How a penalty multiplier combines with others."""

    REPLACE = "replace"
    COMPOUND = "compound"


class RateType(str, Enum):
    """Pay rate table a classification rate belongs to."""

    ORDINARY = "ordinary"
    JUNIOR = "junior"
    APPRENTICE = "apprentice"


class AllowanceTriggerType(str, Enum):
    """Conditions that trigger an allowance."""

    SHIFT_DURATION = "shift_duration"
    QUALIFICATION = "qualification"
    DESIGNATION = "designation"
    SPLIT_SHIFT = "split_shift"
    OVERTIME_DURATION = "overtime_duration"
    DAY_TYPE = "day_type"
    RECALL = "recall"  # Recalled to work while on call
    SLEEPOVER_DISTURBANCE = "sleepover_disturbance"
    HIGHER_DUTIES = "higher_duties"
    TRAVEL = "travel"


class AllowanceFrequency(str, Enum):
    """How often an allowance is paid."""

    PER_SHIFT = "per_shift"
    PER_HOUR = "per_hour"
    PER_DAY = "per_day"
    PER_WEEK = "per_week"
    PER_KILOMETRE = "per_km"


class OverrideType(str, Enum):
    """Custom rate override kinds."""

    HOURLY_RATE = "hourly_rate"
    ANNUAL_SALARY = "annual_salary"
    CASUAL_LOADING = "casual_loading"


# =============================================================================
# Configuration value objects (read-only per calculation)
# =============================================================================


@dataclass(frozen=True)
class Award:
    """A Modern Award version."""

    award_id: str
    name: str
    industry: str
    version: str
    effective_from: date
    casual_loading: Decimal = Decimal("0.25")  # Fraction of base, e.g. 0.25
    ordinary_weekly_hours: Decimal = Decimal("38")
    public_holidays: frozenset[date] = frozenset()
    time_boundaries: tuple[time, ...] = ()  # Extra segmentation points

    def day_type(self, on: date) -> DayType:
        """Classify a calendar date. Public holidays take precedence."""
        if on in self.public_holidays:
            return DayType.PUBLIC_HOLIDAY
        weekday = on.weekday()
        if weekday == 5:
            return DayType.SATURDAY
        if weekday == 6:
            return DayType.SUNDAY
        return DayType.WEEKDAY


@dataclass(frozen=True)
class Classification:
    """A pay grade within an award."""

    classification_id: str
    award_id: str
    level: str
    name: str = ""
    employment_types: frozenset[EmploymentType] = frozenset(EmploymentType)
    qualifications: frozenset[str] = frozenset()


@dataclass(frozen=True)
class PayRate:
    """One effective-dated version of a classification rate.

    The interval is half-open: [effective_from, effective_to).
    """

    classification_id: str
    rate_type: RateType
    hourly_rate: Decimal
    effective_from: date
    effective_to: date | None = None  # None = current
    version: str = ""

    def contains(self, as_of_date: date) -> bool:
        if as_of_date < self.effective_from:
            return False
        return self.effective_to is None or as_of_date < self.effective_to


def _in_effect(effective_from: date | None, effective_to: date | None, on: date) -> bool:
    if effective_from is not None and on < effective_from:
        return False
    return effective_to is None or on < effective_to


@dataclass(frozen=True)
class PenaltyRule:
    """A day-type or time-of-day penalty."""

    rule_id: str
    penalty_type: PenaltyType
    multiplier: Decimal
    loading_type: LoadingType = LoadingType.REPLACE
    employment_type: EmploymentType | None = None  # None = all
    time_start: time | None = None
    time_end: time | None = None  # May be earlier than time_start (wraps midnight)
    day_types: frozenset[DayType] = frozenset()  # Empty = any day
    priority: int = 0
    effective_from: date | None = None
    effective_to: date | None = None

    def in_effect(self, on: date) -> bool:
        return _in_effect(self.effective_from, self.effective_to, on)

    @property
    def has_window(self) -> bool:
        return self.time_start is not None and self.time_end is not None

    @property
    def window_minutes(self) -> int:
        """Length of the time window; full day when unbounded."""
        if not self.has_window:
            return 24 * 60
        start = self.time_start.hour * 60 + self.time_start.minute
        end = self.time_end.hour * 60 + self.time_end.minute
        if end <= start:
            end += 24 * 60
        return end - start


@dataclass(frozen=True)
class OvertimeRule:
    """Overtime thresholds and tier multipliers for one employment type."""

    daily_threshold: Decimal = Decimal("8")
    weekly_threshold: Decimal = Decimal("38")
    tier1_hours: Decimal = Decimal("2")
    tier1_multiplier: Decimal = Decimal("1.5")
    tier2_multiplier: Decimal = Decimal("2.0")
    # day_type -> (tier1, tier2), e.g. Sunday overtime paid at double time
    day_type_multipliers: dict[DayType, tuple[Decimal, Decimal]] = field(default_factory=dict)

    def multipliers_for(self, day_type: DayType) -> tuple[Decimal, Decimal]:
        return self.day_type_multipliers.get(
            day_type, (self.tier1_multiplier, self.tier2_multiplier)
        )


@dataclass(frozen=True)
class AllowanceRule:
    """A conditional allowance."""

    rule_id: str
    code: str
    name: str
    trigger_type: AllowanceTriggerType
    amount: Decimal
    frequency: AllowanceFrequency = AllowanceFrequency.PER_SHIFT
    trigger_threshold: str | None = None  # Hours, qualification code, designation or day type
    stackable: bool = True
    priority: int = 0
    exclusion_group: str | None = None
    employment_type: EmploymentType | None = None
    effective_from: date | None = None
    effective_to: date | None = None
    # Per-hour allowances paid as a multiple of the ordinary rate, with a
    # minimum number of paid hours (e.g. recall: 2h at 150%)
    rate_multiplier: Decimal | None = None
    minimum_hours: Decimal = Decimal("0")

    def in_effect(self, on: date) -> bool:
        return _in_effect(self.effective_from, self.effective_to, on)


@dataclass(frozen=True)
class AbsorptionTerms:
    """What an above-award package already pays for."""

    overtime_hours: Decimal = Decimal("0")  # First N overtime hours per period
    penalty_types: frozenset[PenaltyType] = frozenset()


@dataclass(frozen=True)
class RateOverride:
    """An approved custom rate for one staff member."""

    override_id: str
    staff_id: str
    override_type: OverrideType
    value: Decimal
    effective_from: date
    approved_by: str
    approved_at: datetime
    effective_to: date | None = None
    absorption: AbsorptionTerms | None = None
    reason: str = ""

    def is_active_on(self, on: date) -> bool:
        return _in_effect(self.effective_from, self.effective_to, on)


# =============================================================================
# Calculation inputs
# =============================================================================


@dataclass(frozen=True)
class Break:
    """A break within a shift. Unpaid breaks are removed from worked time."""

    start: datetime
    end: datetime
    paid: bool = False


@dataclass(frozen=True)
class HigherDuties:
    """Time worked at a higher classification during a shift."""

    classification_id: str
    hours: Decimal | None = None  # None = the whole worked time


@dataclass(frozen=True)
class Shift:
    """A rostered or worked shift.

    Recall and sleepover disturbance time is paid through allowances only;
    it is not part of the worked time between start and end.
    """

    shift_id: str
    start: datetime
    end: datetime
    breaks: tuple[Break, ...] = ()
    recall_minutes: int = 0
    disturbance_minutes: int = 0
    higher_duties: HigherDuties | None = None
    travel_km: Decimal = Decimal("0")

    @property
    def work_date(self) -> date:
        """Date the shift is attributed to for daily overtime."""
        return self.start.date()


@dataclass(frozen=True)
class StaffContext:
    """Staff attributes relevant to pay."""

    staff_id: str
    classification_id: str
    employment_type: EmploymentType
    rate_type: RateType = RateType.ORDINARY
    qualifications: frozenset[str] = frozenset()
    designations: frozenset[str] = frozenset()
    override_id: str | None = None

    @property
    def is_casual(self) -> bool:
        return self.employment_type == EmploymentType.CASUAL


# =============================================================================
# Intermediate results
# =============================================================================


@dataclass(frozen=True)
class ShiftSegment:
    """Contiguous worked interval sharing one day type and one time band."""

    start: datetime
    end: datetime
    day_type: DayType
    employment_type: EmploymentType

    @property
    def calendar_date(self) -> date:
        return self.start.date()

    @property
    def time_start(self) -> time:
        return self.start.time()

    @property
    def time_end(self) -> time:
        return self.end.time()

    @property
    def seconds(self) -> int:
        return int((self.end - self.start).total_seconds())


@dataclass(frozen=True)
class DailyAllocation:
    """Worked hours of one day split into ordinary and overtime tiers."""

    ordinary: Decimal
    tier1: Decimal
    tier2: Decimal

    @property
    def overtime(self) -> Decimal:
        return self.tier1 + self.tier2

    @property
    def total(self) -> Decimal:
        return self.ordinary + self.tier1 + self.tier2


@dataclass(frozen=True)
class AllowanceContext:
    """Whole-shift facts an allowance trigger is tested against."""

    worked_hours: Decimal
    overtime_hours: Decimal
    max_gap_hours: Decimal  # Longest unpaid gap between worked segments on one day
    day_types: frozenset[DayType]
    work_dates: tuple[date, ...]
    employment_type: EmploymentType
    as_of_date: date
    ordinary_rate: Decimal = Decimal("0")  # Base after override, with casual loading
    recall_hours: Decimal = Decimal("0")
    disturbance_hours: Decimal = Decimal("0")
    higher_duties_hours: Decimal = Decimal("0")
    higher_duties_rate: Decimal = Decimal("0")  # Hourly difference to the higher classification
    travel_km: Decimal = Decimal("0")


@dataclass(frozen=True)
class AppliedAllowance:
    """An allowance that survived stacking and exclusion."""

    rule: AllowanceRule
    quantity: Decimal
    amount: Decimal  # Unrounded
    unit_rate: Decimal | None = None  # None = rule.amount


@dataclass(frozen=True)
class BreakdownLine:
    """An itemized pay line."""

    component: str
    hours: Decimal
    rate: Decimal
    amount: Decimal
    rule_ids: tuple[str, ...] = ()
    explanation: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "component": self.component,
            "hours": str(self.hours),
            "rate": str(self.rate),
            "amount": str(self.amount),
            "rule_ids": sorted(self.rule_ids),
        }


@dataclass(frozen=True)
class PayBreakdown:
    """Immutable itemized result of one calculation."""

    shift_id: str
    staff_id: str
    lines: tuple[BreakdownLine, ...]
    total: Decimal
    calculation_id: str
    inputs_fingerprint: str
    rules_fingerprint: str

    def hours_for(self, component: str) -> Decimal:
        return sum((l.hours for l in self.lines if l.component == component), Decimal("0"))

    def amount_for(self, component: str) -> Decimal:
        return sum((l.amount for l in self.lines if l.component == component), Decimal("0"))
