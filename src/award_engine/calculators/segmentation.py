"""Shift segmentation at day-type, time-of-day and duration boundaries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta
from decimal import Decimal

from award_engine.calculators.types import (
    Award,
    EmploymentType,
    PenaltyRule,
    Shift,
    ShiftSegment,
)
from award_engine.exceptions import ValidationError

SECONDS_PER_HOUR = Decimal("3600")

Interval = tuple[datetime, datetime]


def seconds_to_hours(seconds: int) -> Decimal:
    return Decimal(seconds) / SECONDS_PER_HOUR


def hours_to_seconds(hours: Decimal) -> int:
    return int((hours * SECONDS_PER_HOUR).to_integral_value())


def validate_shift(shift: Shift) -> None:
    """Reject malformed shifts before any pricing happens."""
    if (shift.start.tzinfo is None) != (shift.end.tzinfo is None):
        raise ValidationError(
            f"Shift {shift.shift_id} mixes naive and aware datetimes",
            shift_id=shift.shift_id,
        )
    if shift.end <= shift.start:
        raise ValidationError(
            f"Shift {shift.shift_id} ends at or before it starts",
            shift_id=shift.shift_id,
            start=shift.start.isoformat(),
            end=shift.end.isoformat(),
        )
    if shift.recall_minutes < 0 or shift.disturbance_minutes < 0 or shift.travel_km < 0:
        raise ValidationError(
            f"Shift {shift.shift_id} has negative recall, disturbance or travel",
            shift_id=shift.shift_id,
        )

    previous_end: datetime | None = None
    for brk in sorted(shift.breaks, key=lambda b: b.start):
        if brk.end <= brk.start or brk.start < shift.start or brk.end > shift.end:
            raise ValidationError(
                f"Break {brk.start}-{brk.end} is not within shift {shift.shift_id}",
                shift_id=shift.shift_id,
                break_start=brk.start.isoformat(),
                break_end=brk.end.isoformat(),
            )
        if previous_end is not None and brk.start < previous_end:
            raise ValidationError(
                f"Breaks overlap in shift {shift.shift_id}",
                shift_id=shift.shift_id,
            )
        previous_end = brk.end


def worked_intervals(shift: Shift) -> list[Interval]:
    """Shift time minus unpaid breaks, in order."""
    intervals: list[Interval] = []
    cursor = shift.start
    for brk in sorted(shift.breaks, key=lambda b: b.start):
        if brk.paid:
            continue
        if brk.start > cursor:
            intervals.append((cursor, brk.start))
        cursor = max(cursor, brk.end)
    if shift.end > cursor:
        intervals.append((cursor, shift.end))
    return intervals


def max_gap_hours(intervals: list[Interval]) -> Decimal:
    """Longest unworked gap between consecutive intervals on the same day."""
    longest = 0
    for (_, prev_end), (next_start, _) in zip(intervals, intervals[1:]):
        if prev_end.date() != next_start.date():
            continue
        longest = max(longest, int((next_start - prev_end).total_seconds()))
    return seconds_to_hours(longest)


def boundary_times(rules: Iterable[PenaltyRule], award: Award) -> list[time]:
    """Time-of-day cut points used by penalty windows and the award."""
    points: set[time] = set(award.time_boundaries)
    for rule in rules:
        if rule.has_window:
            points.add(rule.time_start)
            points.add(rule.time_end)
    points.discard(time(0, 0))  # midnight is always a cut
    return sorted(points)


def _cut_points(start: datetime, end: datetime, times: list[time]) -> list[datetime]:
    points: list[datetime] = []
    day = start.replace(hour=0, minute=0, second=0, microsecond=0)
    while day < end:
        candidates = [day] + [datetime.combine(day.date(), t, tzinfo=day.tzinfo) for t in times]
        points.extend(p for p in candidates if start < p < end)
        day += timedelta(days=1)
    return sorted(set(points))


def _duration_points(intervals: list[Interval], thresholds: Iterable[Decimal]) -> list[datetime]:
    """Instants at which cumulative worked time reaches each threshold."""
    points: list[datetime] = []
    for threshold in thresholds:
        remaining = hours_to_seconds(threshold)
        if remaining <= 0:
            continue
        for start, end in intervals:
            length = int((end - start).total_seconds())
            if remaining < length:
                points.append(start + timedelta(seconds=remaining))
                break
            remaining -= length
    return points


def segment_shift(
    shift: Shift,
    award: Award,
    penalty_rules: Iterable[PenaltyRule],
    employment_type: EmploymentType,
    duration_thresholds: Iterable[Decimal] = (),
) -> list[ShiftSegment]:
    """Split a shift's worked time into single day-type, single time-band segments.

    Cuts are made at every midnight, every penalty window edge, every
    award time boundary and every worked-duration threshold.

    Raises:
        ValidationError: If the shift or its breaks are malformed
    """
    validate_shift(shift)
    times = boundary_times(penalty_rules, award)
    intervals = worked_intervals(shift)
    duration_cuts = _duration_points(intervals, duration_thresholds)

    segments: list[ShiftSegment] = []
    for start, end in intervals:
        cuts = _cut_points(start, end, times)
        cuts.extend(p for p in duration_cuts if start < p < end)
        edges = [start] + sorted(set(cuts)) + [end]
        for seg_start, seg_end in zip(edges, edges[1:]):
            segments.append(
                ShiftSegment(
                    start=seg_start,
                    end=seg_end,
                    day_type=award.day_type(seg_start.date()),
                    employment_type=employment_type,
                )
            )
    return segments
