"""Command test specific fixtures."""

import pytest

from parley.engine.systems.dialogue import DialogueCommands
from parley.engine.systems.router import CommandRouter


@pytest.fixture
def dialogue_commands(manager, world):
    """DialogueCommands over the shared manager and world."""
    return DialogueCommands(manager, world)


@pytest.fixture
def router(dialogue_commands):
    """A CommandRouter with the dialogue commands registered."""
    router = CommandRouter()
    dialogue_commands.register(router)
    return router


@pytest.fixture
def conversation_id(manager):
    """Id of player_1's oldest active conversation."""
    def _get():
        conversations = manager.player_conversations("player_1")
        return conversations[0].conversation_id if conversations else None

    return _get
