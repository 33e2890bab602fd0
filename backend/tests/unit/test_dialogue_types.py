"""
Unit tests for dialogue data types and configuration.
"""

import json
from datetime import date, datetime, timezone

import pytest
import yaml

from parley.engine.systems.dialogue import DialogueConfig
from parley.engine.systems.dialogue.errors import (
    CapacityError,
    DialogueError,
    NotFoundError,
)
from parley.engine.systems.dialogue.types import ConversationState, DialogueTree
from tests.fixtures.dialogue_samples import VALID_TREE_YAML, gated_tree

# ============================================================================
# Tree models
# ============================================================================


@pytest.mark.unit
def test_camel_case_document_parses():
    tree = DialogueTree.model_validate(gated_tree())

    gate = tree.nodes["gate"]
    assert tree.start_node_id == "gate"
    assert gate.npc_message == "Who goes there?"
    assert gate.choices[1].next_node_id == "paid"
    assert gate.choices[1].condition.target == "coin"
    assert gate.actions[1].condition.value == 9
    assert tree.nodes["royal"].is_end is True
    assert tree.nodes["paid"].next_node_id == "inside"


@pytest.mark.unit
def test_yaml_scalars_are_normalized():
    """Numeric ids become strings and dates become ISO text."""
    tree = DialogueTree.model_validate(yaml.safe_load(VALID_TREE_YAML))

    assert tree.version == "2"
    assert tree.nodes["welcome"].choices[0].id == "1"
    assert tree.metadata.created == "2024-01-01"
    assert tree.metadata.author == "tests"


@pytest.mark.unit
def test_yaml_dates_in_variables_become_text():
    document = yaml.safe_load(
        "id: ledger\n"
        "name: Ledger\n"
        "startNodeId: a\n"
        "variables:\n"
        "  since: 2024-01-01\n"
        "  audits: [2024-02-01 09:30:00]\n"
        "nodes:\n"
        "  a:\n"
        "    id: a\n"
        "    npcMessage: Hi\n"
        "    variables: {due: 2024-03-01}\n"
        "    actions:\n"
        "      - {type: set_variable, target: paid_on, value: 2024-04-01}\n"
    )

    tree = DialogueTree.model_validate(document)

    assert tree.variables == {"since": "2024-01-01", "audits": ["2024-02-01T09:30:00"]}
    assert tree.nodes["a"].variables == {"due": "2024-03-01"}
    assert tree.nodes["a"].actions[0].value == "2024-04-01"


@pytest.mark.unit
def test_snake_case_names_accepted():
    tree = DialogueTree.model_validate({
        "id": "plain",
        "name": "Plain",
        "start_node_id": "a",
        "nodes": {"a": {"id": "a", "npc_message": "Hi", "is_end": True}},
    })
    assert tree.nodes["a"].is_end is True


# ============================================================================
# ConversationState
# ============================================================================


@pytest.mark.unit
def test_state_snapshot_round_trip():
    started = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    state = ConversationState(
        conversation_id="c1",
        player_id="p1",
        npc_id="n1",
        provider_id="canned-branching",
        current_node_id="shop",
        tree_id="merchant",
        variables={"price": 10},
        started=started,
        last_activity=started,
        turn_count=3,
    )

    data = state.to_dict()
    assert data["started"] == "2024-06-01T12:00:00+00:00"

    restored = ConversationState.from_dict(data)
    assert restored == state


@pytest.mark.unit
def test_state_snapshot_is_json_safe():
    """Dates set at runtime are written as ISO text."""
    state = ConversationState(
        "c1", "p1", "n1", "canned-branching",
        variables={"since": date(2024, 1, 1), "log": [{"at": date(2024, 1, 2)}]},
    )

    data = state.to_dict()

    json.dumps(data)
    assert data["variables"] == {"since": "2024-01-01", "log": [{"at": "2024-01-02"}]}
    assert state.variables["since"] == date(2024, 1, 1)


@pytest.mark.unit
def test_state_copy_is_independent():
    state = ConversationState("c1", "p1", "n1", "canned-branching", variables={"a": 1})

    clone = state.copy()
    clone.variables["a"] = 2
    clone.turn_count = 5

    assert state.variables == {"a": 1}
    assert state.turn_count == 0
    assert clone.player_id == "p1"


# ============================================================================
# Errors and config
# ============================================================================


@pytest.mark.unit
def test_errors_carry_player_safe_message():
    err = NotFoundError("Provider ai-oracle cannot handle NPC n1")
    assert isinstance(err, DialogueError)
    assert err.user_message == "There is no such conversation."
    assert "ai-oracle" in str(err)

    custom = CapacityError("limit 5", user_message="Finish a conversation first.")
    assert custom.user_message == "Finish a conversation first."


@pytest.mark.unit
def test_config_defaults():
    config = DialogueConfig()
    assert config.enable_persistence is True
    assert config.max_conversations_per_player == 5
    assert config.conversation_timeout_minutes == 30.0
    assert config.autosave_interval_seconds == 300.0
    assert config.sweep_interval_seconds == 0.0
    assert config.default_provider == "canned-branching"
    assert config.content_path == "world_data"


@pytest.mark.unit
def test_config_from_env_settings(monkeypatch):
    monkeypatch.setattr("parley.config.DIALOGUE_MAX_CONVERSATIONS", 2)
    monkeypatch.setattr("parley.config.DIALOGUE_TIMEOUT_MINUTES", 5.0)
    monkeypatch.setattr("parley.config.WORLD_DATA_DIR", "/srv/content")

    config = DialogueConfig.from_env()

    assert config.max_conversations_per_player == 2
    assert config.conversation_timeout_minutes == 5.0
    assert config.content_path == "/srv/content"
