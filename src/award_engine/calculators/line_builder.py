"""Breakdown line builder with deterministic hashing for audit."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from award_engine.calculators.types import AppliedAllowance, BreakdownLine


class LineItemBuilder:
    """Builds breakdown lines and fingerprints.

    Precision:
    - hours and rates carried at 4 decimals
    - amounts rounded to cents (half up) only when a line is emitted
    - the total is the sum of the rounded line amounts
    """

    PRECISION = Decimal("0.0001")  # 4 decimal places for hours and rates
    OUTPUT_PRECISION = Decimal("0.01")  # 2 decimal places for currency

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_hours(hours: Decimal) -> Decimal:
        return hours.quantize(LineItemBuilder.PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: BreakdownLine) -> str:
        """Compute deterministic hash for a line item."""
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_time_line(
        component: str,
        hours: Decimal,
        rate: Decimal,
        rule_ids: Iterable[str] = (),
        explanation: str | None = None,
    ) -> BreakdownLine:
        """Create an hours-times-rate line."""
        return BreakdownLine(
            component=component,
            hours=LineItemBuilder.round_hours(hours),
            rate=rate.quantize(LineItemBuilder.PRECISION, rounding=ROUND_HALF_UP),
            amount=LineItemBuilder.round_to_cents(hours * rate),
            rule_ids=tuple(rule_ids),
            explanation=explanation,
        )

    @staticmethod
    def create_allowance_line(applied: AppliedAllowance) -> BreakdownLine:
        """Create an allowance line (quantity reported in the hours column)."""
        rule = applied.rule
        unit_rate = rule.amount if applied.unit_rate is None else applied.unit_rate
        return BreakdownLine(
            component=f"allowance:{rule.code}",
            hours=LineItemBuilder.round_hours(applied.quantity),
            rate=unit_rate.quantize(LineItemBuilder.PRECISION, rounding=ROUND_HALF_UP),
            amount=LineItemBuilder.round_to_cents(applied.amount),
            rule_ids=(rule.rule_id,),
            explanation=f"{rule.name}: {applied.quantity} x {unit_rate} ({rule.frequency.value})",
        )

    @staticmethod
    def calculate_total(lines: Iterable[BreakdownLine]) -> Decimal:
        """Sum of line amounts, in cents."""
        total = Decimal("0")
        for line in lines:
            total += line.amount
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def sum_by_component(lines: Iterable[BreakdownLine]) -> dict[str, Decimal]:
        """Sum line amounts by component."""
        totals: dict[str, Decimal] = {}
        for line in lines:
            totals[line.component] = totals.get(line.component, Decimal("0")) + line.amount
        return totals

    @staticmethod
    def compute_fingerprint(data: Any) -> str:
        """Fingerprint of calculation inputs or rules used."""
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def generate_calculation_id(
        shift_id: str,
        staff_id: str,
        engine_version: str,
        inputs_fingerprint: str,
        rules_fingerprint: str,
    ) -> str:
        """Generate deterministic calculation ID."""
        data = {
            "shift_id": shift_id,
            "staff_id": staff_id,
            "engine_version": engine_version,
            "inputs_fingerprint": inputs_fingerprint,
            "rules_fingerprint": rules_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
