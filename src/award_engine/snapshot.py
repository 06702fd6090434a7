"""Immutable award configuration snapshots.

A snapshot is loaded once per calculation batch and shared read-only by
every calculation in it, so one batch never straddles two rule versions.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pydantic

from award_engine.calculators.rate_resolver import RateRepository
from award_engine.calculators.types import (
    AbsorptionTerms,
    AllowanceRule,
    Award,
    Classification,
    EmploymentType,
    OvertimeRule,
    PayRate,
    PenaltyRule,
    RateOverride,
)
from award_engine.config import get_settings
from award_engine.exceptions import ClassificationNotFoundError, ConfigurationError
from award_engine.schemas import (
    AwardSnapshotSchema,
    OvertimeRuleSchema,
    RateOverrideSchema,
)


@dataclass(frozen=True)
class AwardSnapshot:
    """Award, classifications, rates and rules as one consistent version."""

    award: Award
    classifications: dict[str, Classification]
    rates: RateRepository
    penalty_rules: tuple[PenaltyRule, ...] = ()
    allowance_rules: tuple[AllowanceRule, ...] = ()
    overtime_rules: dict[EmploymentType, OvertimeRule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for rule in self.penalty_rules:
            if rule.multiplier < 1:
                raise ConfigurationError(
                    f"Penalty rule {rule.rule_id} multiplier {rule.multiplier} is below 1.0",
                    rule_id=rule.rule_id,
                )
        self.rates.validate_current()

    def classification(self, classification_id: str) -> Classification:
        try:
            return self.classifications[classification_id]
        except KeyError:
            raise ClassificationNotFoundError(classification_id, self.award.award_id) from None

    def overtime_rule_for(self, employment_type: EmploymentType) -> OvertimeRule:
        try:
            return self.overtime_rules[employment_type]
        except KeyError:
            raise ConfigurationError(
                f"No overtime rule for {employment_type.value} employees in award "
                f"{self.award.award_id}",
                award_id=self.award.award_id,
                employment_type=employment_type.value,
            ) from None

    def rules_manifest(self) -> dict[str, Any]:
        """Identifiers of every rule in the snapshot, for fingerprinting."""
        return {
            "award_id": self.award.award_id,
            "award_version": self.award.version,
            "rates": sorted(
                f"{r.classification_id}:{r.rate_type.value}:{r.effective_from}:{r.hourly_rate}"
                for r in self.rates
            ),
            "penalty_rules": sorted(r.rule_id for r in self.penalty_rules),
            "allowance_rules": sorted(r.rule_id for r in self.allowance_rules),
        }


def _overtime_rule(schema: OvertimeRuleSchema) -> OvertimeRule:
    return OvertimeRule(
        daily_threshold=schema.daily_threshold,
        weekly_threshold=schema.weekly_threshold,
        tier1_hours=schema.tier1_hours,
        tier1_multiplier=schema.tier1_multiplier,
        tier2_multiplier=schema.tier2_multiplier,
        day_type_multipliers=dict(schema.day_type_multipliers),
    )


def load_snapshot(data: Mapping[str, Any]) -> AwardSnapshot:
    """Build a snapshot from plain configuration data.

    Raises:
        ConfigurationError: If the data fails validation
    """
    try:
        schema = AwardSnapshotSchema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigurationError(
            f"Invalid award configuration: {e.error_count()} error(s)",
            errors=e.errors(include_url=False),
        ) from e

    settings = get_settings()
    a = schema.award
    award = Award(
        award_id=a.award_id,
        name=a.name,
        industry=a.industry,
        version=a.version,
        effective_from=a.effective_from,
        casual_loading=(
            a.casual_loading if a.casual_loading is not None else settings.default_casual_loading
        ),
        ordinary_weekly_hours=a.ordinary_weekly_hours,
        public_holidays=frozenset(a.public_holidays),
        time_boundaries=tuple(sorted(set(a.time_boundaries))),
    )

    classifications = {
        c.classification_id: Classification(
            classification_id=c.classification_id,
            award_id=award.award_id,
            level=c.level,
            name=c.name,
            employment_types=frozenset(c.employment_types),
            qualifications=frozenset(c.qualifications),
        )
        for c in schema.classifications
    }

    rates = RateRepository(
        PayRate(
            classification_id=r.classification_id,
            rate_type=r.rate_type,
            hourly_rate=r.hourly_rate,
            effective_from=r.effective_from,
            effective_to=r.effective_to,
            version=r.version,
        )
        for r in schema.pay_rates
    )
    unknown = {r.classification_id for r in rates} - set(classifications)
    if unknown:
        raise ConfigurationError(
            f"Pay rates reference unknown classifications: {sorted(unknown)}",
            classification_ids=sorted(unknown),
        )

    penalty_rules = tuple(
        PenaltyRule(
            rule_id=p.rule_id,
            penalty_type=p.penalty_type,
            multiplier=p.multiplier,
            loading_type=p.loading_type,
            employment_type=p.employment_type,
            time_start=p.time_start,
            time_end=p.time_end,
            day_types=frozenset(p.day_types),
            priority=p.priority,
            effective_from=p.effective_from,
            effective_to=p.effective_to,
        )
        for p in schema.penalty_rules
    )
    allowance_rules = tuple(
        AllowanceRule(
            rule_id=r.rule_id,
            code=r.code,
            name=r.name,
            trigger_type=r.trigger_type,
            trigger_threshold=r.trigger_threshold,
            amount=r.amount,
            frequency=r.frequency,
            stackable=r.stackable,
            priority=r.priority,
            exclusion_group=r.exclusion_group,
            employment_type=r.employment_type,
            effective_from=r.effective_from,
            effective_to=r.effective_to,
            rate_multiplier=r.rate_multiplier,
            minimum_hours=r.minimum_hours,
        )
        for r in schema.allowance_rules
    )
    _check_unique("penalty rule", (p.rule_id for p in penalty_rules))
    _check_unique("allowance rule", (r.rule_id for r in allowance_rules))

    overtime_rules = {
        employment_type: _overtime_rule(
            schema.overtime_by_employment_type.get(employment_type, schema.overtime)
        )
        for employment_type in EmploymentType
    }

    return AwardSnapshot(
        award=award,
        classifications=classifications,
        rates=rates,
        penalty_rules=penalty_rules,
        allowance_rules=allowance_rules,
        overtime_rules=overtime_rules,
    )


def load_snapshot_file(path: str | Path) -> AwardSnapshot:
    """Load a snapshot from a JSON file."""
    with open(path, encoding="utf-8") as f:
        return load_snapshot(json.load(f))


def load_overrides(data: Iterable[Mapping[str, Any]]) -> list[RateOverride]:
    """Build rate overrides from plain data.

    Raises:
        ConfigurationError: If any override fails validation
    """
    overrides: list[RateOverride] = []
    for item in data:
        try:
            o = RateOverrideSchema.model_validate(item)
        except pydantic.ValidationError as e:
            raise ConfigurationError(
                f"Invalid rate override: {e.error_count()} error(s)",
                errors=e.errors(include_url=False),
            ) from e
        absorption = None
        if o.absorption is not None:
            absorption = AbsorptionTerms(
                overtime_hours=o.absorption.overtime_hours,
                penalty_types=frozenset(o.absorption.penalty_types),
            )
        overrides.append(
            RateOverride(
                override_id=o.override_id,
                staff_id=o.staff_id,
                override_type=o.override_type,
                value=o.value,
                effective_from=o.effective_from,
                effective_to=o.effective_to,
                absorption=absorption,
                reason=o.reason,
                approved_by=o.approved_by,
                approved_at=o.approved_at,
            )
        )
    return overrides


def _check_unique(kind: str, ids: Iterable[str]) -> None:
    seen: set[str] = set()
    for rule_id in ids:
        if rule_id in seen:
            raise ConfigurationError(f"Duplicate {kind} id {rule_id}", rule_id=rule_id)
        seen.add(rule_id)
