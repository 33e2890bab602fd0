"""
ActionExecutor - side effects triggered by dialogue nodes and choices.

Provides:
- InventoryPort / QuestPort: the game hooks item and quest actions call
- LoggingGameHooks: default hooks that only log
- ActionExecutor.execute(): one action, never raises
- ActionExecutor.execute_all(): a list, each gated by its own condition

Flags and conversation variables are mutated in place on the context, so
changes land on the player's own flag list and the conversation state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Protocol

from .types import ActionType, DialogueAction, DialogueEventTypes, VariableContext

if TYPE_CHECKING:
    from ..events import EventDispatcher
    from .conditions import ConditionEvaluator

logger = logging.getLogger(__name__)

CustomActionHandler = Callable[[DialogueAction, VariableContext], Any]


class InventoryPort(Protocol):
    def give_item(self, player_id: str, item_id: str, quantity: int) -> Any: ...

    def take_item(self, player_id: str, item_id: str, quantity: int) -> Any: ...


class QuestPort(Protocol):
    def start_quest(self, player_id: str, quest_id: str) -> Any: ...

    def complete_quest(self, player_id: str, quest_id: str) -> Any: ...


class LoggingGameHooks:
    """Inventory and quest hooks that record the request and change nothing."""

    def give_item(self, player_id: str, item_id: str, quantity: int) -> None:
        logger.info("Giving %d x %s to player %s", quantity, item_id, player_id)

    def take_item(self, player_id: str, item_id: str, quantity: int) -> None:
        logger.info("Taking %d x %s from player %s", quantity, item_id, player_id)

    def start_quest(self, player_id: str, quest_id: str) -> None:
        logger.info("Starting quest %s for player %s", quest_id, player_id)

    def complete_quest(self, player_id: str, quest_id: str) -> None:
        logger.info("Completing quest %s for player %s", quest_id, player_id)


async def _maybe_await(result: Any) -> Any:
    if hasattr(result, "__await__"):
        return await result
    return result


def _quantity(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 1
    return int(value)


class ActionExecutor:
    """
    Runs DialogueActions against a VariableContext.

    Uses:
    - events: emits ``dialogue.action.executed`` before each action
    - inventory / quests: game hooks (LoggingGameHooks by default)
    - custom_handler: provider extension point for ``custom`` actions
    """

    def __init__(
        self,
        events: Optional["EventDispatcher"] = None,
        inventory: Optional[InventoryPort] = None,
        quests: Optional[QuestPort] = None,
        custom_handler: Optional[CustomActionHandler] = None,
    ) -> None:
        hooks = LoggingGameHooks()
        self.events = events
        self.inventory: InventoryPort = inventory or hooks
        self.quests: QuestPort = quests or hooks
        self.custom_handler = custom_handler

    async def execute(self, action: DialogueAction, context: VariableContext) -> None:
        """Run one action. Errors are logged and swallowed."""
        try:
            if self.events is not None:
                self.events.emit(
                    DialogueEventTypes.ACTION_EXECUTED,
                    context.conversation.id,
                    context.player.id,
                    {"action": action.model_dump(mode="json"), "npc_id": context.npc.id},
                )
            await self._dispatch(action, context)
        except Exception:
            logger.exception(
                "Error executing %s action in conversation %s",
                action.type.value,
                context.conversation.id,
            )

    async def execute_all(
        self,
        actions: Iterable[DialogueAction],
        context: VariableContext,
        evaluator: "ConditionEvaluator",
    ) -> list[DialogueAction]:
        """
        Run actions in order, skipping any whose own condition is false.

        Returns:
            The actions that ran.
        """
        executed = []
        for action in actions:
            if action.condition is not None and not evaluator.evaluate(action.condition, context):
                continue
            await self.execute(action, context)
            executed.append(action)
        return executed

    async def _dispatch(self, action: DialogueAction, context: VariableContext) -> None:
        atype = action.type
        target = action.target
        player_id = context.player.id

        if atype is ActionType.SET_VARIABLE:
            context.conversation.variables[target] = action.value

        elif atype is ActionType.GIVE_ITEM:
            await _maybe_await(self.inventory.give_item(player_id, target, _quantity(action.value)))

        elif atype is ActionType.TAKE_ITEM:
            await _maybe_await(self.inventory.take_item(player_id, target, _quantity(action.value)))

        elif atype is ActionType.ADD_FLAG:
            if target not in context.player.flags:
                context.player.flags.append(target)

        elif atype is ActionType.REMOVE_FLAG:
            if target in context.player.flags:
                context.player.flags.remove(target)

        elif atype is ActionType.START_QUEST:
            await _maybe_await(self.quests.start_quest(player_id, target))

        elif atype is ActionType.COMPLETE_QUEST:
            await _maybe_await(self.quests.complete_quest(player_id, target))

        elif atype is ActionType.CUSTOM:
            if self.custom_handler is None:
                logger.warning("No handler registered for custom action %r", target)
                return
            await _maybe_await(self.custom_handler(action, context))

        else:
            logger.warning("Unknown action type: %s", atype)
