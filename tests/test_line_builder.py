"""Tests for line item builder."""

from datetime import date
from decimal import Decimal

from award_engine.calculators.line_builder import LineItemBuilder
from award_engine.calculators.types import (
    AllowanceFrequency,
    AllowanceRule,
    AllowanceTriggerType,
    AppliedAllowance,
)


class TestLineItemBuilder:
    """Test line item builder functionality."""

    def test_round_to_cents(self):
        """Test rounding to 2 decimal places."""
        assert LineItemBuilder.round_to_cents(Decimal("10.124")) == Decimal("10.12")

        # Half-up rounding
        assert LineItemBuilder.round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert LineItemBuilder.round_to_cents(Decimal("10.135")) == Decimal("10.14")

    def test_round_hours(self):
        assert LineItemBuilder.round_hours(Decimal("7.33333")) == Decimal("7.3333")
        assert LineItemBuilder.round_hours(Decimal("0.00005")) == Decimal("0.0001")

    def test_create_time_line(self):
        line = LineItemBuilder.create_time_line(
            component="sunday",
            hours=Decimal("7.5"),
            rate=Decimal("50.28"),
            rule_ids=["pen-sun"],
            explanation="Sunday penalty",
        )

        assert line.component == "sunday"
        assert line.hours == Decimal("7.5000")
        assert line.rate == Decimal("50.2800")
        assert line.amount == Decimal("377.10")
        assert line.rule_ids == ("pen-sun",)

    def test_time_line_amount_uses_unrounded_hours(self):
        # 20 minutes at $28.73
        line = LineItemBuilder.create_time_line("ordinary", Decimal(1200) / Decimal(3600), Decimal("28.73"))

        assert line.hours == Decimal("0.3333")
        assert line.amount == Decimal("9.58")

    def test_create_allowance_line(self):
        rule = AllowanceRule(
            rule_id="alw-edl",
            code="EDLEAD",
            name="Educational leader",
            trigger_type=AllowanceTriggerType.DESIGNATION,
            trigger_threshold="educational_leader",
            amount=Decimal("0.85"),
            frequency=AllowanceFrequency.PER_HOUR,
        )
        applied = AppliedAllowance(rule=rule, quantity=Decimal("7.5"), amount=Decimal("6.375"))

        line = LineItemBuilder.create_allowance_line(applied)

        assert line.component == "allowance:EDLEAD"
        assert line.hours == Decimal("7.5000")
        assert line.amount == Decimal("6.38")
        assert line.rule_ids == ("alw-edl",)

    def test_calculate_total(self):
        lines = [
            LineItemBuilder.create_time_line("ordinary", Decimal("6"), Decimal("28.73")),
            LineItemBuilder.create_time_line("evening", Decimal("2"), Decimal("31.60")),
        ]

        assert LineItemBuilder.calculate_total(lines) == Decimal("235.58")

    def test_sum_by_component(self):
        lines = [
            LineItemBuilder.create_time_line("ordinary", Decimal("6"), Decimal("28.73")),
            LineItemBuilder.create_time_line("ordinary", Decimal("1"), Decimal("30.00")),
            LineItemBuilder.create_time_line("evening", Decimal("2"), Decimal("31.60")),
        ]

        totals = LineItemBuilder.sum_by_component(lines)

        assert totals == {"ordinary": Decimal("202.38"), "evening": Decimal("63.20")}

    def test_compute_line_hash_deterministic(self):
        """Test that line hash is deterministic."""
        line1 = LineItemBuilder.create_time_line(
            "sunday", Decimal("7.5"), Decimal("50.28"), rule_ids=["b", "a"]
        )
        line2 = LineItemBuilder.create_time_line(
            "sunday", Decimal("7.5"), Decimal("50.28"), rule_ids=["a", "b"]
        )

        assert LineItemBuilder.compute_line_hash(line1) == LineItemBuilder.compute_line_hash(line2)

    def test_compute_line_hash_differs_by_rate(self):
        line1 = LineItemBuilder.create_time_line("ordinary", Decimal("1"), Decimal("28.73"))
        line2 = LineItemBuilder.create_time_line("ordinary", Decimal("1"), Decimal("29.59"))

        assert LineItemBuilder.compute_line_hash(line1) != LineItemBuilder.compute_line_hash(line2)


class TestFingerprints:
    """Fingerprints and calculation ids."""

    def test_fingerprint_is_key_order_independent(self):
        fp1 = LineItemBuilder.compute_fingerprint({"a": 1, "b": date(2025, 7, 7)})
        fp2 = LineItemBuilder.compute_fingerprint({"b": date(2025, 7, 7), "a": 1})

        assert fp1 == fp2
        assert len(fp1) == 32

    def test_same_inputs_produce_same_id(self):
        args = ("s1", "staff-1", "1.0.0", "inputs", "rules")

        assert LineItemBuilder.generate_calculation_id(*args) == LineItemBuilder.generate_calculation_id(*args)

    def test_engine_version_affects_id(self):
        id1 = LineItemBuilder.generate_calculation_id("s1", "staff-1", "1.0.0", "inputs", "rules")
        id2 = LineItemBuilder.generate_calculation_id("s1", "staff-1", "1.0.1", "inputs", "rules")

        assert id1 != id2
