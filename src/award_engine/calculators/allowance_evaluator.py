"""Allowance trigger evaluation with stacking and mutual exclusion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from award_engine.calculators.types import (
    AllowanceContext,
    AllowanceFrequency,
    AllowanceRule,
    AllowanceTriggerType,
    AppliedAllowance,
    DayType,
    StaffContext,
)
from award_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Non-stackable rules without an explicit group compete with each other
DEFAULT_EXCLUSION_GROUP = "__non_stackable__"


class AllowanceEvaluator:
    """Evaluates allowance rules once per shift.

    Matching rules are partitioned into stackable (all kept) and
    non-stackable. Non-stackable matches are sorted by
    (exclusion group, priority desc, amount desc, code) and folded,
    keeping the first per group.

    Per-hour allowances for recall, sleepover disturbance and higher duties
    are paid over the event hours rather than the worked hours, raised to
    the rule's minimum_hours. A rate_multiplier prices the hour at a
    multiple of the ordinary rate instead of the fixed amount.
    """

    def __init__(
        self,
        default_split_gap_hours: Decimal = Decimal("1"),
        rate_precision: Decimal = Decimal("0.01"),
    ):
        self.default_split_gap_hours = default_split_gap_hours
        self.rate_precision = rate_precision

    def evaluate_allowances(
        self,
        context: AllowanceContext,
        staff: StaffContext,
        rules: Iterable[AllowanceRule],
    ) -> list[AppliedAllowance]:
        """Return the allowances payable for one shift, in rule order."""
        rules = list(rules)
        matched = [rule for rule in rules if self._matches(rule, context, staff)]

        stackable = [rule for rule in matched if rule.stackable]
        exclusive = sorted(
            (rule for rule in matched if not rule.stackable),
            key=lambda r: (r.exclusion_group or DEFAULT_EXCLUSION_GROUP, -r.priority, -r.amount, r.code),
        )

        winners: dict[str, AllowanceRule] = {}
        for rule in exclusive:
            winners.setdefault(rule.exclusion_group or DEFAULT_EXCLUSION_GROUP, rule)

        kept = {id(rule) for rule in stackable} | {id(rule) for rule in winners.values()}
        applied = [self._apply(rule, context) for rule in rules if id(rule) in kept]

        logger.debug(
            "Allowances matched=%s applied=%s",
            [r.code for r in matched],
            [a.rule.code for a in applied],
        )
        return applied

    def _matches(
        self,
        rule: AllowanceRule,
        context: AllowanceContext,
        staff: StaffContext,
    ) -> bool:
        if not rule.in_effect(context.as_of_date):
            return False
        if rule.employment_type is not None and rule.employment_type != context.employment_type:
            return False

        trigger = rule.trigger_type
        if trigger == AllowanceTriggerType.SHIFT_DURATION:
            return context.worked_hours >= self.hours_threshold(rule)
        if trigger == AllowanceTriggerType.QUALIFICATION:
            return self._text_threshold(rule) in staff.qualifications
        if trigger == AllowanceTriggerType.DESIGNATION:
            return self._text_threshold(rule) in staff.designations
        if trigger == AllowanceTriggerType.SPLIT_SHIFT:
            threshold = (
                self.hours_threshold(rule)
                if rule.trigger_threshold is not None
                else self.default_split_gap_hours
            )
            return context.max_gap_hours > threshold
        if trigger == AllowanceTriggerType.OVERTIME_DURATION:
            return context.overtime_hours > 0 and context.overtime_hours >= self.hours_threshold(rule)
        if trigger == AllowanceTriggerType.DAY_TYPE:
            try:
                day_type = DayType(self._text_threshold(rule))
            except ValueError as e:
                raise ConfigurationError(
                    f"Allowance {rule.rule_id} has unknown day type {rule.trigger_threshold!r}",
                    rule_id=rule.rule_id,
                ) from e
            return day_type in context.day_types
        if trigger == AllowanceTriggerType.RECALL:
            return context.recall_hours > 0
        if trigger == AllowanceTriggerType.SLEEPOVER_DISTURBANCE:
            return context.disturbance_hours > 0
        if trigger == AllowanceTriggerType.HIGHER_DUTIES:
            return context.higher_duties_hours > 0
        if trigger == AllowanceTriggerType.TRAVEL:
            return context.travel_km > 0

        raise ConfigurationError(
            f"Unsupported allowance trigger {trigger}", rule_id=rule.rule_id
        )

    @staticmethod
    def hours_threshold(rule: AllowanceRule) -> Decimal:
        try:
            return Decimal(rule.trigger_threshold or "0")
        except InvalidOperation as e:
            raise ConfigurationError(
                f"Allowance {rule.rule_id} threshold {rule.trigger_threshold!r} is not a number of hours",
                rule_id=rule.rule_id,
            ) from e

    @staticmethod
    def _text_threshold(rule: AllowanceRule) -> str:
        if not rule.trigger_threshold:
            raise ConfigurationError(
                f"Allowance {rule.rule_id} requires a trigger threshold",
                rule_id=rule.rule_id,
            )
        return rule.trigger_threshold

    def _apply(self, rule: AllowanceRule, context: AllowanceContext) -> AppliedAllowance:
        frequency = rule.frequency
        if frequency == AllowanceFrequency.PER_HOUR:
            quantity = max(self._paid_hours(rule, context), rule.minimum_hours)
        elif frequency == AllowanceFrequency.PER_DAY:
            quantity = Decimal(len(context.work_dates))
        elif frequency == AllowanceFrequency.PER_KILOMETRE:
            quantity = context.travel_km
        else:
            # PER_SHIFT and PER_WEEK are paid once; the calculator
            # de-duplicates weekly claims across a period
            quantity = Decimal("1")

        unit_rate = rule.amount
        if rule.rate_multiplier is not None:
            unit_rate = (context.ordinary_rate * rule.rate_multiplier).quantize(
                self.rate_precision, rounding=ROUND_HALF_UP
            )
        elif rule.trigger_type == AllowanceTriggerType.HIGHER_DUTIES and not rule.amount:
            # No fixed amount: pay the difference to the higher classification
            unit_rate = context.higher_duties_rate

        return AppliedAllowance(
            rule=rule, quantity=quantity, amount=unit_rate * quantity, unit_rate=unit_rate
        )

    @staticmethod
    def _paid_hours(rule: AllowanceRule, context: AllowanceContext) -> Decimal:
        trigger = rule.trigger_type
        if trigger == AllowanceTriggerType.RECALL:
            return context.recall_hours
        if trigger == AllowanceTriggerType.SLEEPOVER_DISTURBANCE:
            return context.disturbance_hours
        if trigger == AllowanceTriggerType.HIGHER_DUTIES:
            return context.higher_duties_hours
        return context.worked_hours
