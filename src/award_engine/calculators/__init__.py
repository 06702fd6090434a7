"""Award pay calculation engine."""

from award_engine.calculators.allowance_evaluator import AllowanceEvaluator
from award_engine.calculators.engine import PeriodPayResult, ShiftPayCalculator
from award_engine.calculators.line_builder import LineItemBuilder
from award_engine.calculators.override_applier import OverrideApplier
from award_engine.calculators.overtime_allocator import OvertimeAllocator
from award_engine.calculators.penalty_resolver import PenaltyResolver
from award_engine.calculators.rate_resolver import RateNotFoundError, RateRepository

__all__ = [
    "ShiftPayCalculator",
    "PeriodPayResult",
    "AllowanceEvaluator",
    "LineItemBuilder",
    "OverrideApplier",
    "OvertimeAllocator",
    "PenaltyResolver",
    "RateNotFoundError",
    "RateRepository",
]
