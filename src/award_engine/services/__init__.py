"""Award engine services."""

from award_engine.services.back_pay import BackPayAdjustment, BackPayCalculator, BackPayReport
from award_engine.services.bulk import PayJob, simulate_bulk
from award_engine.services.reconciliation import (
    ReconciliationEngine,
    ReconciliationReport,
    reconcile,
)

__all__ = [
    "BackPayAdjustment",
    "BackPayCalculator",
    "BackPayReport",
    "PayJob",
    "simulate_bulk",
    "ReconciliationEngine",
    "ReconciliationReport",
    "reconcile",
]
