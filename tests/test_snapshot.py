"""Tests for award snapshot loading and export schemas."""

import json
from datetime import date
from decimal import Decimal

import pytest

from award_engine.calculators.types import EmploymentType, OverrideType, PenaltyType, RateType
from award_engine.exceptions import ClassificationNotFoundError, ConfigurationError
from award_engine.schemas import PayBreakdownSchema
from award_engine.snapshot import load_overrides, load_snapshot, load_snapshot_file
from conftest import MONDAY, at, make_shift


class TestLoadSnapshot:
    """Building snapshots from plain data."""

    def test_loads_award_and_rules(self, snapshot):
        assert snapshot.award.award_id == "MA000120"
        assert snapshot.award.casual_loading == Decimal("0.25")
        assert date(2025, 12, 25) in snapshot.award.public_holidays
        assert len(snapshot.penalty_rules) == 6
        assert {r.code for r in snapshot.allowance_rules} == {"SPLIT", "MEAL", "FIRSTAID"}

    def test_rates_resolvable(self, snapshot):
        rate = snapshot.rates.resolve_rate("L3.1", RateType.ORDINARY, MONDAY)

        assert rate.hourly_rate == Decimal("28.73")

    def test_overtime_rule_per_employment_type(self, snapshot):
        assert snapshot.overtime_rule_for(EmploymentType.CASUAL).daily_threshold == Decimal("10")
        full_time = snapshot.overtime_rule_for(EmploymentType.FULL_TIME)
        assert full_time.daily_threshold == Decimal("8")
        assert full_time.day_type_multipliers

    def test_missing_casual_loading_uses_default(self, snapshot_data):
        del snapshot_data["award"]["casual_loading"]

        snapshot = load_snapshot(snapshot_data)

        assert snapshot.award.casual_loading == Decimal("0.25")

    def test_unknown_classification_lookup(self, snapshot):
        with pytest.raises(ClassificationNotFoundError) as exc_info:
            snapshot.classification("L9.9")

        assert exc_info.value.context["award_id"] == "MA000120"

    def test_rules_manifest_lists_rule_ids(self, snapshot):
        manifest = snapshot.rules_manifest()

        assert manifest["award_version"] == "2024.1"
        assert "pen-sun" in manifest["penalty_rules"]


class TestInvalidConfiguration:
    """Schema and invariant failures become ConfigurationError."""

    def test_penalty_multiplier_below_one(self, snapshot_data):
        snapshot_data["penalty_rules"][0]["multiplier"] = "0.9"

        with pytest.raises(ConfigurationError) as exc_info:
            load_snapshot(snapshot_data)

        assert exc_info.value.context["errors"]

    def test_time_penalty_without_window(self, snapshot_data):
        snapshot_data["penalty_rules"].append(
            {"rule_id": "pen-bad", "penalty_type": "evening", "multiplier": "1.1"}
        )

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_overlapping_rates(self, snapshot_data):
        snapshot_data["pay_rates"].append(
            {"classification_id": "L3.1", "hourly_rate": "29.59", "effective_from": "2025-07-01"}
        )

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_rate_for_unknown_classification(self, snapshot_data):
        snapshot_data["pay_rates"].append(
            {"classification_id": "L9.9", "hourly_rate": "40.00", "effective_from": "2024-07-01"}
        )

        with pytest.raises(ConfigurationError) as exc_info:
            load_snapshot(snapshot_data)

        assert exc_info.value.context["classification_ids"] == ["L9.9"]

    def test_duplicate_rule_ids(self, snapshot_data):
        snapshot_data["penalty_rules"].append(dict(snapshot_data["penalty_rules"][0]))

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_no_current_rate(self, snapshot_data):
        snapshot_data["pay_rates"][0]["effective_to"] = "2025-07-01"

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_rate_multiplier_requires_per_hour(self, snapshot_data):
        snapshot_data["allowance_rules"].append(
            {
                "rule_id": "alw-recall",
                "code": "RECALL",
                "name": "Recall",
                "trigger_type": "recall",
                "amount": "0",
                "rate_multiplier": "1.5",
            }
        )

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_per_km_requires_travel_trigger(self, snapshot_data):
        snapshot_data["allowance_rules"].append(
            {
                "rule_id": "alw-km",
                "code": "KM",
                "name": "Vehicle",
                "trigger_type": "shift_duration",
                "trigger_threshold": "0",
                "amount": "0.96",
                "frequency": "per_km",
            }
        )

        with pytest.raises(ConfigurationError):
            load_snapshot(snapshot_data)

    def test_event_allowance_fields_loaded(self, snapshot_data):
        snapshot_data["allowance_rules"].append(
            {
                "rule_id": "alw-recall",
                "code": "RECALL",
                "name": "Recall",
                "trigger_type": "recall",
                "amount": "0",
                "frequency": "per_hour",
                "rate_multiplier": "1.5",
                "minimum_hours": "2",
            }
        )

        rule = load_snapshot(snapshot_data).allowance_rules[-1]

        assert rule.rate_multiplier == Decimal("1.5")
        assert rule.minimum_hours == Decimal("2")


class TestFilesAndOverrides:
    """Loading from JSON files and override data."""

    def test_load_snapshot_file(self, tmp_path, snapshot_data):
        path = tmp_path / "award.json"
        path.write_text(json.dumps(snapshot_data), encoding="utf-8")

        snapshot = load_snapshot_file(path)

        assert snapshot.award.name == "Children's Services Award 2010"

    def test_load_overrides(self):
        [override] = load_overrides(
            [
                {
                    "override_id": "ovr-1",
                    "staff_id": "staff-1",
                    "override_type": "hourly_rate",
                    "value": "32.00",
                    "effective_from": "2025-07-01",
                    "approved_by": "manager-1",
                    "approved_at": "2025-06-20T09:00:00",
                    "absorption": {"overtime_hours": "2", "penalty_types": ["evening"]},
                }
            ]
        )

        assert override.override_type == OverrideType.HOURLY_RATE
        assert override.value == Decimal("32.00")
        assert override.absorption.penalty_types == frozenset({PenaltyType.EVENING})

    def test_override_without_approval_rejected(self):
        with pytest.raises(ConfigurationError):
            load_overrides(
                [
                    {
                        "override_id": "ovr-1",
                        "staff_id": "staff-1",
                        "override_type": "hourly_rate",
                        "value": "32.00",
                        "effective_from": "2025-07-01",
                    }
                ]
            )


class TestBreakdownExport:
    """Serializing breakdowns for audit."""

    def test_breakdown_schema_from_attributes(self, calculator, snapshot, full_time_staff):
        breakdown = calculator.calculate_shift_pay(
            make_shift("s1", at(MONDAY, 9), at(MONDAY, 15)), full_time_staff, snapshot
        )

        schema = PayBreakdownSchema.model_validate(breakdown)
        exported = json.loads(schema.model_dump_json())

        assert exported["total"] == "172.38"
        assert exported["lines"][0]["component"] == "ordinary"
        assert exported["calculation_id"] == breakdown.calculation_id
