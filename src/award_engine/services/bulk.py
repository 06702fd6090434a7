"""Bulk pay simulation over a worker pool."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial

from award_engine.calculators.engine import PeriodPayResult, ShiftPayCalculator
from award_engine.calculators.types import RateOverride, Shift, StaffContext
from award_engine.config import Settings, get_settings
from award_engine.exceptions import ConfigurationError
from award_engine.snapshot import AwardSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayJob:
    """One staff member's week of shifts."""

    staff: StaffContext
    shifts: tuple[Shift, ...]
    overrides: tuple[RateOverride, ...] = ()


def _run_job(snapshot: AwardSnapshot, settings: Settings, job: PayJob) -> PeriodPayResult:
    calculator = ShiftPayCalculator(settings)
    return calculator.calculate_period_pay(job.shifts, job.staff, snapshot, job.overrides)


def _make_executor(kind: str, max_workers: int) -> Executor:
    if kind == "process":
        return ProcessPoolExecutor(max_workers=max_workers)
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=max_workers)
    raise ConfigurationError(f"Unknown bulk executor {kind!r}", executor=kind)


def simulate_bulk(
    jobs: Sequence[PayJob],
    snapshot: AwardSnapshot,
    max_workers: int | None = None,
    executor: str | None = None,
    settings: Settings | None = None,
) -> list[PeriodPayResult]:
    """Calculate many independent jobs against one snapshot.

    Results are returned in job order. The first failing job aborts the
    batch and its error is re-raised.
    """
    settings = settings or get_settings()
    kind = (executor or settings.bulk_executor).lower()
    workers = max_workers or settings.bulk_max_workers
    if not jobs:
        return []

    run = partial(_run_job, snapshot, settings)
    results: list[PeriodPayResult] = []
    with _make_executor(kind, workers) as pool:
        outcomes = pool.map(run, jobs)
        for job in jobs:
            try:
                results.append(next(outcomes))
            except Exception:
                logger.exception(
                    "Bulk job for staff %s failed; aborting batch of %d",
                    job.staff.staff_id,
                    len(jobs),
                )
                pool.shutdown(cancel_futures=True)
                raise

    logger.debug("Simulated %d job(s) with %s executor", len(results), kind)
    return results
