"""Pytest fixtures for award engine tests."""

from __future__ import annotations

import copy
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pytest

from award_engine.calculators.engine import ShiftPayCalculator
from award_engine.calculators.types import (
    Break,
    EmploymentType,
    Shift,
    StaffContext,
)
from award_engine.config import Settings
from award_engine.snapshot import AwardSnapshot, load_snapshot

# Children's Services Award, Level 3.1, FWC 2024 rate
LEVEL_3_1_RATE = Decimal("28.73")

SNAPSHOT_DATA: dict[str, Any] = {
    "award": {
        "award_id": "MA000120",
        "name": "Children's Services Award 2010",
        "industry": "childcare",
        "version": "2024.1",
        "effective_from": "2024-07-01",
        "casual_loading": "0.25",
        "ordinary_weekly_hours": "38",
        "public_holidays": ["2025-12-25", "2025-12-26"],
    },
    "classifications": [
        {
            "classification_id": "L3.1",
            "level": "3.1",
            "name": "Children's services employee level 3.1",
        },
        {
            "classification_id": "L6.1",
            "level": "6.1",
            "name": "Director",
            "employment_types": ["full_time", "part_time"],
        },
    ],
    "pay_rates": [
        {
            "classification_id": "L3.1",
            "hourly_rate": "28.73",
            "effective_from": "2024-07-01",
            "version": "FWC-2024",
        },
        {
            "classification_id": "L6.1",
            "hourly_rate": "36.53",
            "effective_from": "2024-07-01",
            "version": "FWC-2024",
        },
    ],
    "penalty_rules": [
        {"rule_id": "pen-sat", "penalty_type": "saturday", "multiplier": "1.5"},
        {"rule_id": "pen-sun", "penalty_type": "sunday", "multiplier": "1.75"},
        {
            "rule_id": "pen-sun-casual",
            "penalty_type": "sunday",
            "multiplier": "2.0",
            "employment_type": "casual",
        },
        {"rule_id": "pen-ph", "penalty_type": "public_holiday", "multiplier": "2.5"},
        {
            "rule_id": "pen-evening",
            "penalty_type": "evening",
            "multiplier": "1.1",
            "time_start": "18:00",
            "time_end": "21:00",
            "day_types": ["weekday"],
        },
        {
            "rule_id": "pen-night",
            "penalty_type": "night",
            "multiplier": "1.15",
            "time_start": "21:00",
            "time_end": "06:00",
            "day_types": ["weekday"],
        },
    ],
    "allowance_rules": [
        {
            "rule_id": "alw-split",
            "code": "SPLIT",
            "name": "Split shift allowance",
            "trigger_type": "split_shift",
            "trigger_threshold": "1",
            "amount": "12.50",
        },
        {
            "rule_id": "alw-meal",
            "code": "MEAL",
            "name": "Overtime meal allowance",
            "trigger_type": "overtime_duration",
            "trigger_threshold": "1.5",
            "amount": "16.62",
        },
        {
            "rule_id": "alw-firstaid",
            "code": "FIRSTAID",
            "name": "First aid allowance",
            "trigger_type": "qualification",
            "trigger_threshold": "first_aid",
            "amount": "17.12",
            "frequency": "per_week",
        },
    ],
    "overtime": {
        "daily_threshold": "8",
        "weekly_threshold": "38",
        "tier1_hours": "2",
        "tier1_multiplier": "1.5",
        "tier2_multiplier": "2.0",
        "day_type_multipliers": {
            "sunday": ["2.0", "2.0"],
            "public_holiday": ["2.5", "2.5"],
        },
    },
    "overtime_by_employment_type": {
        "casual": {"daily_threshold": "10", "weekly_threshold": "38"},
    },
}

# 2025-07-05 is a Saturday
SATURDAY = date(2025, 7, 5)
SUNDAY = date(2025, 7, 6)
MONDAY = date(2025, 7, 7)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def make_shift(
    shift_id: str,
    start: datetime,
    end: datetime,
    breaks: list[tuple[datetime, datetime]] | None = None,
) -> Shift:
    return Shift(
        shift_id=shift_id,
        start=start,
        end=end,
        breaks=tuple(Break(start=s, end=e) for s, e in (breaks or [])),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        engine_version="1.0.0-test",
        default_casual_loading=Decimal("0.25"),
        rate_precision=Decimal("0.01"),
        default_split_shift_gap_hours=Decimal("1"),
        bulk_max_workers=2,
        bulk_executor="thread",
        week_start=0,
    )


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    return copy.deepcopy(SNAPSHOT_DATA)


@pytest.fixture
def snapshot(snapshot_data) -> AwardSnapshot:
    return load_snapshot(snapshot_data)


@pytest.fixture
def calculator(settings) -> ShiftPayCalculator:
    return ShiftPayCalculator(settings)


@pytest.fixture
def full_time_staff() -> StaffContext:
    return StaffContext(
        staff_id="staff-ft",
        classification_id="L3.1",
        employment_type=EmploymentType.FULL_TIME,
    )


@pytest.fixture
def casual_staff() -> StaffContext:
    return StaffContext(
        staff_id="staff-cas",
        classification_id="L3.1",
        employment_type=EmploymentType.CASUAL,
    )
