"""
ConditionEvaluator - rule checks for dialogue choices and gated actions.

Provides:
- compare_values(): the shared operator table
- ConditionEvaluator.evaluate(): type dispatch, negation, fail-closed errors
- An optional handler for ``custom`` conditions (extension point)

A rule that raises never unlocks content: any error evaluates to False.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .types import ConditionOperator, ConditionType, DialogueCondition, VariableContext, utcnow
from .variables import MISSING, lookup

logger = logging.getLogger(__name__)

CustomConditionHandler = Callable[[DialogueCondition, VariableContext], bool]


def _numeric(value: Any) -> Any:
    return 0 if value is None else value


def compare_values(actual: Any, expected: Any, operator: ConditionOperator | str) -> bool:
    """
    Apply ``operator`` to (actual, expected).

    greater_than / less_than treat None as 0. has / not_has only test
    whether ``actual`` is None. in / not_in require ``expected`` to be a
    list; anything else is False. Unknown operators are False.
    """
    try:
        op = ConditionOperator(operator)
    except ValueError:
        return False

    if op is ConditionOperator.EQUALS:
        return actual == expected
    if op is ConditionOperator.NOT_EQUALS:
        return actual != expected
    if op is ConditionOperator.GREATER_THAN:
        return _numeric(actual) > _numeric(expected)
    if op is ConditionOperator.LESS_THAN:
        return _numeric(actual) < _numeric(expected)
    if op is ConditionOperator.HAS:
        return actual is not None
    if op is ConditionOperator.NOT_HAS:
        return actual is None
    if op is ConditionOperator.IN:
        return isinstance(expected, (list, tuple)) and actual in expected
    if op is ConditionOperator.NOT_IN:
        return isinstance(expected, (list, tuple)) and actual not in expected
    return False


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"cannot interpret {value!r} as a point in time")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class ConditionEvaluator:
    """
    Evaluates DialogueConditions against a VariableContext.

    Args:
        rng: Zero-argument callable returning a float in [0, 1); used by
            ``random`` conditions.
        clock: Returns "now" for ``time`` conditions.
        custom_handler: Called for ``custom`` conditions. Without one they
            evaluate to False.
    """

    def __init__(
        self,
        rng: Callable[[], float] = random.random,
        clock: Callable[[], datetime] = utcnow,
        custom_handler: Optional[CustomConditionHandler] = None,
    ) -> None:
        self.rng = rng
        self.clock = clock
        self.custom_handler = custom_handler

    def evaluate(self, condition: DialogueCondition, context: VariableContext) -> bool:
        try:
            result = self._dispatch(condition, context)
        except Exception:
            logger.exception(
                "Error evaluating %s condition on %r", condition.type.value, condition.target
            )
            return False
        return (not result) if condition.negate else result

    def _dispatch(self, condition: DialogueCondition, context: VariableContext) -> bool:
        ctype = condition.type
        op = condition.operator
        target = condition.target
        value = condition.value
        player = context.player

        if ctype is ConditionType.VARIABLE:
            return compare_values(context.conversation.variables.get(target), value, op)

        if ctype is ConditionType.FLAG:
            has_flag = target in player.flags
            return has_flag if op is ConditionOperator.HAS else not has_flag

        if ctype is ConditionType.ITEM:
            if op is ConditionOperator.HAS:
                return target in player.inventory
            if op is ConditionOperator.NOT_HAS:
                return target not in player.inventory
            quantity = sum(1 for item in player.inventory if item == target)
            return compare_values(quantity, value, op)

        if ctype is ConditionType.QUEST:
            quest = player.quests.get(target)
            if not quest:
                return op in (ConditionOperator.NOT_HAS, ConditionOperator.NOT_EQUALS)
            status = lookup(quest, "status")
            return compare_values(None if status is MISSING else status, value, op)

        if ctype is ConditionType.STAT:
            return compare_values(player.stats.get(target), value, op)

        if ctype is ConditionType.SKILL:
            return compare_values(player.skills.get(target) or 0, value, op)

        if ctype is ConditionType.LEVEL:
            return compare_values(player.level, value, op)

        if ctype is ConditionType.TIME:
            elapsed = (self.clock() - _as_datetime(value)).total_seconds()
            return compare_values(elapsed, 0, op)

        if ctype is ConditionType.RANDOM:
            threshold = 0.5 if value is None else float(value)
            return self.rng() < threshold

        if ctype is ConditionType.CUSTOM:
            if self.custom_handler is None:
                logger.warning("No handler registered for custom condition %r", target)
                return False
            return bool(self.custom_handler(condition, context))

        logger.warning("Unknown condition type: %s", ctype)
        return False
