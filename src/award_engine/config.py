"""Configuration management for the award engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Engine settings loaded from environment."""

    engine_version: str
    default_casual_loading: Decimal
    rate_precision: Decimal
    default_split_shift_gap_hours: Decimal
    bulk_max_workers: int
    bulk_executor: str
    week_start: int

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            default_casual_loading=Decimal(os.getenv("DEFAULT_CASUAL_LOADING", "0.25")),
            rate_precision=Decimal(os.getenv("RATE_PRECISION", "0.01")),
            default_split_shift_gap_hours=Decimal(
                os.getenv("DEFAULT_SPLIT_SHIFT_GAP_HOURS", "1")
            ),
            bulk_max_workers=int(os.getenv("BULK_MAX_WORKERS", str(os.cpu_count() or 4))),
            bulk_executor=os.getenv("BULK_EXECUTOR", "process").lower(),
            week_start=int(os.getenv("WEEK_START", "0")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
