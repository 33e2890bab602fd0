"""
Unit tests for the dialogue ActionExecutor.

Tests each action type, condition gating, event emission, and that a
failing action never interrupts the conversation.
"""

import pytest

from parley.engine.systems.dialogue.actions import ActionExecutor
from parley.engine.systems.dialogue.conditions import ConditionEvaluator
from parley.engine.systems.dialogue.types import (
    ConversationContext,
    DialogueAction,
    DialogueEventTypes,
    NpcContext,
    PlayerContext,
    VariableContext,
    WorldContext,
)
from parley.engine.systems.events import EventDispatcher


class RecordingHooks:
    """Inventory/quest hooks that remember every call."""

    def __init__(self):
        self.calls = []

    def give_item(self, player_id, item_id, quantity):
        self.calls.append(("give", player_id, item_id, quantity))

    def take_item(self, player_id, item_id, quantity):
        self.calls.append(("take", player_id, item_id, quantity))

    async def start_quest(self, player_id, quest_id):
        self.calls.append(("start", player_id, quest_id))

    async def complete_quest(self, player_id, quest_id):
        self.calls.append(("complete", player_id, quest_id))


def act(type_, target="", value=None, condition=None) -> DialogueAction:
    return DialogueAction(type=type_, target=target, value=value, condition=condition)


@pytest.fixture
def flags():
    return ["old_flag"]


@pytest.fixture
def ctx(flags):
    return VariableContext(
        player=PlayerContext(id="p1", level=3, flags=flags),
        npc=NpcContext(id="n1"),
        conversation=ConversationContext(id="conv_1", variables={}),
        world=WorldContext(),
    )


@pytest.fixture
def hooks():
    return RecordingHooks()


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def executor(events, hooks):
    return ActionExecutor(events=events, inventory=hooks, quests=hooks)


# ============================================================================
# Action types
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_set_variable(executor, ctx):
    await executor.execute(act("set_variable", "mood", "grumpy"), ctx)
    assert ctx.conversation.variables == {"mood": "grumpy"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_flags_change_the_players_own_list(executor, ctx, flags):
    await executor.execute(act("add_flag", "met_npc"), ctx)
    await executor.execute(act("add_flag", "met_npc"), ctx)
    await executor.execute(act("remove_flag", "old_flag"), ctx)
    await executor.execute(act("remove_flag", "never_set"), ctx)
    assert flags == ["met_npc"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_item_actions_call_inventory_hooks(executor, ctx, hooks):
    await executor.execute(act("give_item", "sword"), ctx)
    await executor.execute(act("take_item", "coin", 3), ctx)
    assert hooks.calls == [("give", "p1", "sword", 1), ("take", "p1", "coin", 3)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_quest_actions_await_async_hooks(executor, ctx, hooks):
    await executor.execute(act("start_quest", "rats"), ctx)
    await executor.execute(act("complete_quest", "rats"), ctx)
    assert hooks.calls == [("start", "p1", "rats"), ("complete", "p1", "rats")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_custom_action_without_handler_is_a_no_op(ctx, caplog):
    executor = ActionExecutor()
    await executor.execute(act("custom", "fireworks"), ctx)
    assert "No handler registered" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_custom_action_handler(ctx):
    seen = []

    async def handler(action, context):
        seen.append((action.target, context.player.id))

    await ActionExecutor(custom_handler=handler).execute(act("custom", "fireworks"), ctx)
    assert seen == [("fireworks", "p1")]


# ============================================================================
# Failure handling and events
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failing_action_is_swallowed(ctx, caplog):
    class BrokenHooks(RecordingHooks):
        def give_item(self, player_id, item_id, quantity):
            raise RuntimeError("inventory offline")

    executor = ActionExecutor(inventory=BrokenHooks())
    await executor.execute(act("give_item", "sword"), ctx)
    await executor.execute(act("take_item", "coin", "many"), ctx)
    assert "Error executing give_item" in caplog.text
    assert "Error executing take_item" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_action_emits_event(executor, ctx, events):
    await executor.execute(act("set_variable", "x", 1), ctx)

    [event] = events.recent(DialogueEventTypes.ACTION_EXECUTED)
    assert event["conversation_id"] == "conv_1"
    assert event["player_id"] == "p1"
    assert event["payload"]["npc_id"] == "n1"
    assert event["payload"]["action"]["type"] == "set_variable"
    assert event["payload"]["action"]["target"] == "x"


# ============================================================================
# execute_all()
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_execute_all_skips_actions_whose_condition_fails(executor, ctx, hooks):
    level_gate = {"type": "level", "operator": "greater_than", "value": 5}
    actions = [
        act("set_variable", "first", 1),
        act("give_item", "crown", condition=level_gate),
        act("add_flag", "after"),
    ]

    executed = await executor.execute_all(actions, ctx, ConditionEvaluator())

    assert [a.target for a in executed] == ["first", "after"]
    assert hooks.calls == []
    assert ctx.conversation.variables["first"] == 1
    assert "after" in ctx.player.flags


@pytest.mark.unit
@pytest.mark.asyncio
async def test_execute_all_continues_after_a_failure(ctx):
    class BrokenHooks(RecordingHooks):
        def take_item(self, player_id, item_id, quantity):
            raise RuntimeError("no such item")

    executor = ActionExecutor(inventory=BrokenHooks())
    actions = [act("take_item", "ghost"), act("set_variable", "reached", True)]

    executed = await executor.execute_all(actions, ctx, ConditionEvaluator())

    assert len(executed) == 2
    assert ctx.conversation.variables["reached"] is True
