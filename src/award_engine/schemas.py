"""Pydantic schemas for configuration input and breakdown export."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from award_engine.calculators.types import (
    AllowanceFrequency,
    AllowanceTriggerType,
    DayType,
    EmploymentType,
    LoadingType,
    OverrideType,
    PenaltyType,
    RateType,
)


# ============================================================================
# Configuration schemas
# ============================================================================


class AwardSchema(BaseModel):
    """Award header."""

    award_id: str
    name: str
    industry: str = "general"
    version: str
    effective_from: date
    casual_loading: Decimal | None = None  # None = engine default
    ordinary_weekly_hours: Decimal = Decimal("38")
    public_holidays: list[date] = Field(default_factory=list)
    time_boundaries: list[time] = Field(default_factory=list)

    @field_validator("casual_loading")
    @classmethod
    def loading_not_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("casual_loading cannot be negative")
        return v


class ClassificationSchema(BaseModel):
    """Classification within the award."""

    classification_id: str
    level: str
    name: str = ""
    employment_types: list[EmploymentType] = Field(default_factory=lambda: list(EmploymentType))
    qualifications: list[str] = Field(default_factory=list)


class PayRateSchema(BaseModel):
    """One rate version."""

    classification_id: str
    rate_type: RateType = RateType.ORDINARY
    hourly_rate: Decimal = Field(gt=0)
    effective_from: date
    effective_to: date | None = None
    version: str = ""


class PenaltyRuleSchema(BaseModel):
    """Penalty rule definition."""

    rule_id: str
    penalty_type: PenaltyType
    multiplier: Decimal = Field(ge=1)
    loading_type: LoadingType = LoadingType.REPLACE
    employment_type: EmploymentType | None = None
    time_start: time | None = None
    time_end: time | None = None
    day_types: list[DayType] = Field(default_factory=list)
    priority: int = 0
    effective_from: date | None = None
    effective_to: date | None = None

    @model_validator(mode="after")
    def window_complete(self) -> PenaltyRuleSchema:
        if (self.time_start is None) != (self.time_end is None):
            raise ValueError("time_start and time_end must be given together")
        if self.time_start is None and not self.penalty_type.is_day_based:
            raise ValueError(f"{self.penalty_type.value} penalty requires a time window")
        return self


class OvertimeRuleSchema(BaseModel):
    """Overtime thresholds and tiers."""

    daily_threshold: Decimal = Field(default=Decimal("8"), ge=0)
    weekly_threshold: Decimal = Field(default=Decimal("38"), ge=0)
    tier1_hours: Decimal = Field(default=Decimal("2"), ge=0)
    tier1_multiplier: Decimal = Field(default=Decimal("1.5"), ge=1)
    tier2_multiplier: Decimal = Field(default=Decimal("2.0"), ge=1)
    day_type_multipliers: dict[DayType, tuple[Decimal, Decimal]] = Field(default_factory=dict)


class AllowanceRuleSchema(BaseModel):
    """Allowance rule definition."""

    rule_id: str
    code: str
    name: str
    trigger_type: AllowanceTriggerType
    trigger_threshold: str | None = None
    amount: Decimal = Field(ge=0)
    frequency: AllowanceFrequency = AllowanceFrequency.PER_SHIFT
    stackable: bool = True
    priority: int = 0
    exclusion_group: str | None = None
    employment_type: EmploymentType | None = None
    effective_from: date | None = None
    effective_to: date | None = None
    rate_multiplier: Decimal | None = Field(default=None, gt=0)
    minimum_hours: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("trigger_threshold", mode="before")
    @classmethod
    def threshold_as_text(cls, v: object) -> object:
        if isinstance(v, (int, float, Decimal)):
            return str(v)
        return v

    @model_validator(mode="after")
    def pricing_matches_frequency(self) -> AllowanceRuleSchema:
        per_hour = self.frequency == AllowanceFrequency.PER_HOUR
        if (self.rate_multiplier is not None or self.minimum_hours) and not per_hour:
            raise ValueError("rate_multiplier and minimum_hours require per_hour frequency")
        if (
            self.frequency == AllowanceFrequency.PER_KILOMETRE
            and self.trigger_type != AllowanceTriggerType.TRAVEL
        ):
            raise ValueError("per_km frequency requires a travel trigger")
        return self


class AwardSnapshotSchema(BaseModel):
    """Everything needed to calculate pay under one award version."""

    award: AwardSchema
    classifications: list[ClassificationSchema]
    pay_rates: list[PayRateSchema]
    penalty_rules: list[PenaltyRuleSchema] = Field(default_factory=list)
    allowance_rules: list[AllowanceRuleSchema] = Field(default_factory=list)
    overtime: OvertimeRuleSchema = Field(default_factory=OvertimeRuleSchema)
    overtime_by_employment_type: dict[EmploymentType, OvertimeRuleSchema] = Field(
        default_factory=dict
    )


class AbsorptionSchema(BaseModel):
    """Absorption clause of an override."""

    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)
    penalty_types: list[PenaltyType] = Field(default_factory=list)


class RateOverrideSchema(BaseModel):
    """Approved custom rate override."""

    override_id: str
    staff_id: str
    override_type: OverrideType
    value: Decimal = Field(gt=0)
    effective_from: date
    effective_to: date | None = None
    absorption: AbsorptionSchema | None = None
    reason: str = ""
    approved_by: str
    approved_at: datetime


# ============================================================================
# Output schemas
# ============================================================================


class BreakdownLineSchema(BaseModel):
    """Serialized breakdown line."""

    model_config = ConfigDict(from_attributes=True)

    component: str
    hours: Decimal
    rate: Decimal
    amount: Decimal
    rule_ids: list[str]
    explanation: str | None = None


class PayBreakdownSchema(BaseModel):
    """Serialized pay breakdown for audit and payroll export."""

    model_config = ConfigDict(from_attributes=True)

    shift_id: str
    staff_id: str
    lines: list[BreakdownLineSchema]
    total: Decimal
    calculation_id: str
    inputs_fingerprint: str
    rules_fingerprint: str


class ReconciliationReportSchema(BaseModel):
    """Serialized reconciliation report."""

    model_config = ConfigDict(from_attributes=True)

    staff_id: str
    entitlement: Decimal
    salary_paid: Decimal
    absorbed_amount: Decimal
    shortfall: Decimal
    detail: list[PayBreakdownSchema]
