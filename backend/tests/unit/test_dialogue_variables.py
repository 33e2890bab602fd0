"""
Unit tests for template variable resolution.

Tests dotted-path lookup through the typed variable context and the
keep-the-placeholder policy for anything unresolvable.
"""

import pytest

from parley.engine.systems.dialogue.types import (
    ConversationContext,
    NpcContext,
    PlayerContext,
    VariableContext,
    WorldContext,
)
from parley.engine.systems.dialogue.variables import MISSING, lookup, resolve


@pytest.fixture
def ctx():
    return VariableContext(
        player=PlayerContext(
            id="p1",
            name="Alice",
            level=7,
            stats={"strength": 12, "title": None},
            inventory=["sword", "potion"],
            flags=["brave"],
            currency={"gold": 30},
        ),
        npc=NpcContext(id="n1", name="Mira"),
        conversation=ConversationContext(variables={"price": 10, "vip": True, "ratio": 2.0}),
        world=WorldContext(global_flags={"festival": "spring"}),
    )


# ============================================================================
# resolve()
# ============================================================================


@pytest.mark.unit
def test_resolve_player_level(ctx):
    assert resolve("{{player.level}}", ctx) == "7"


@pytest.mark.unit
def test_missing_path_left_unchanged(ctx):
    assert resolve("{{missing.path}}", ctx) == "{{missing.path}}"


@pytest.mark.unit
def test_multiple_placeholders_and_whitespace(ctx):
    text = "Hi {{ player.name }}, I'm {{npc.name}}. That's {{conversation.variables.price}} gold."
    assert resolve(text, ctx) == "Hi Alice, I'm Mira. That's 10 gold."


@pytest.mark.unit
def test_nested_mapping_and_sequence_index(ctx):
    assert resolve("{{player.stats.strength}}", ctx) == "12"
    assert resolve("{{player.inventory.1}}", ctx) == "potion"
    assert resolve("{{player.currency.gold}}", ctx) == "30"
    assert resolve("{{world.global_flags.festival}}", ctx) == "spring"


@pytest.mark.unit
def test_out_of_range_and_non_indexable_segments(ctx):
    assert resolve("{{player.inventory.5}}", ctx) == "{{player.inventory.5}}"
    assert resolve("{{player.inventory.first}}", ctx) == "{{player.inventory.first}}"
    assert resolve("{{player.level.value}}", ctx) == "{{player.level.value}}"
    assert resolve("{{player.name.upper}}", ctx) == "{{player.name.upper}}"


@pytest.mark.unit
def test_none_value_keeps_placeholder(ctx):
    assert resolve("{{player.stats.title}}", ctx) == "{{player.stats.title}}"


@pytest.mark.unit
def test_booleans_and_whole_floats_render(ctx):
    assert resolve("{{conversation.variables.vip}}", ctx) == "true"
    assert resolve("{{conversation.variables.ratio}}", ctx) == "2"


@pytest.mark.unit
def test_text_without_placeholders_untouched(ctx):
    assert resolve("Plain text {not a template}", ctx) == "Plain text {not a template}"
    assert resolve("", ctx) == ""


@pytest.mark.unit
def test_empty_placeholder_kept(ctx):
    assert resolve("{{}}", ctx) == "{{}}"


# ============================================================================
# lookup() / VariableContext.get()
# ============================================================================


@pytest.mark.unit
def test_lookup_only_follows_declared_fields(ctx):
    assert lookup(ctx, "player.__class__") is MISSING
    assert lookup(ctx, "player.id") == "p1"


@pytest.mark.unit
def test_context_get_with_default(ctx):
    assert ctx.get("player.level") == 7
    assert ctx.get("player.nothing", "fallback") == "fallback"
    assert ctx.get("conversation.variables.price") == 10
