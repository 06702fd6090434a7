"""Custom rate override application with award-floor validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from award_engine.calculators.types import AbsorptionTerms, OverrideType, RateOverride
from award_engine.exceptions import BelowAwardFloorError, ValidationError

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = Decimal("52")
HOURLY_PRECISION = Decimal("0.0001")


class OverrideApplier:
    """Applies approved overrides. Never clamps to the floor.

    Rules:
    - HOURLY_RATE replaces the base hourly rate
    - ANNUAL_SALARY replaces it with value / (ordinary weekly hours * 52)
    - CASUAL_LOADING replaces the award casual loading fraction
    Each must be at or above its award counterpart or BelowAwardFloorError
    is raised.
    """

    def __init__(self, ordinary_weekly_hours: Decimal = Decimal("38")):
        self.ordinary_weekly_hours = ordinary_weekly_hours

    def annual_to_hourly(self, annual: Decimal) -> Decimal:
        hourly = annual / (self.ordinary_weekly_hours * WEEKS_PER_YEAR)
        return hourly.quantize(HOURLY_PRECISION, rounding=ROUND_HALF_UP)

    def apply_override(self, resolved_rate: Decimal, override: RateOverride | None) -> Decimal:
        """Return the hourly base rate after an override.

        Args:
            resolved_rate: Award base hourly rate (the floor)
            override: Active override, or None

        Raises:
            BelowAwardFloorError: If the override pays less than the award
        """
        if override is None or override.override_type == OverrideType.CASUAL_LOADING:
            return resolved_rate

        if override.override_type == OverrideType.HOURLY_RATE:
            final_rate = override.value
            if final_rate < resolved_rate:
                raise BelowAwardFloorError(
                    override.override_id,
                    override.value,
                    resolved_rate,
                    staff_id=override.staff_id,
                    override_type=override.override_type.value,
                )
        elif override.override_type == OverrideType.ANNUAL_SALARY:
            floor = resolved_rate * self.ordinary_weekly_hours * WEEKS_PER_YEAR
            if override.value < floor:
                raise BelowAwardFloorError(
                    override.override_id,
                    override.value,
                    floor,
                    staff_id=override.staff_id,
                    override_type=override.override_type.value,
                )
            final_rate = self.annual_to_hourly(override.value)
        else:
            raise ValidationError(
                f"Unsupported override type {override.override_type}",
                override_id=override.override_id,
            )

        logger.debug(
            "Override %s: %s -> %s", override.override_id, resolved_rate, final_rate
        )
        return final_rate

    def apply_casual_loading(self, award_loading: Decimal, override: RateOverride | None) -> Decimal:
        """Return the casual loading fraction after an override."""
        if override is None or override.override_type != OverrideType.CASUAL_LOADING:
            return award_loading
        if override.value < award_loading:
            raise BelowAwardFloorError(
                override.override_id,
                override.value,
                award_loading,
                staff_id=override.staff_id,
                override_type=override.override_type.value,
            )
        return override.value


@dataclass(frozen=True)
class ActiveOverrides:
    """Overrides in force for one staff member on one date."""

    rate: RateOverride | None = None
    loading: RateOverride | None = None

    @property
    def absorption(self) -> AbsorptionTerms | None:
        if self.rate is not None and self.rate.absorption is not None:
            return self.rate.absorption
        return self.loading.absorption if self.loading is not None else None

    @property
    def override_ids(self) -> list[str]:
        return [o.override_id for o in (self.rate, self.loading) if o is not None]


def select_overrides(
    overrides: Iterable[RateOverride],
    staff_id: str,
    on: date,
    override_id: str | None = None,
) -> ActiveOverrides:
    """Pick the overrides active for a staff member on a date.

    Raises:
        ValidationError: If more than one rate override is active
    """
    active = [
        o
        for o in overrides
        if o.staff_id == staff_id
        and o.is_active_on(on)
        and (override_id is None or o.override_id == override_id)
    ]
    rates = [o for o in active if o.override_type != OverrideType.CASUAL_LOADING]
    loadings = [o for o in active if o.override_type == OverrideType.CASUAL_LOADING]

    if len(rates) > 1 or len(loadings) > 1:
        raise ValidationError(
            f"Ambiguous overrides for staff {staff_id} on {on}",
            staff_id=staff_id,
            date=on.isoformat(),
            override_ids=[o.override_id for o in active],
        )
    return ActiveOverrides(
        rate=rates[0] if rates else None,
        loading=loadings[0] if loadings else None,
    )
