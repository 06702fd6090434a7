"""Award pay-rate calculation engine for Australian Modern Awards."""

from award_engine.calculators import ShiftPayCalculator
from award_engine.snapshot import AwardSnapshot, load_overrides, load_snapshot, load_snapshot_file

__version__ = "1.0.0"

__all__ = [
    "ShiftPayCalculator",
    "AwardSnapshot",
    "load_overrides",
    "load_snapshot",
    "load_snapshot_file",
]
