# backend/parley/engine/systems/context.py
"""
GameContext - Shared context object for all game systems.

Provides:
- Access to World state
- Cross-system references (time manager, event dispatcher, dialogue)

This avoids circular imports and provides a clean dependency injection pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .events import EventDispatcher
from .time_manager import TimeEventManager

if TYPE_CHECKING:
    from ..world import World


class GameContext:
    """
    Shared context object passed to all game systems.

    Usage:
        ctx = GameContext(world)
        manager = DialogueManager(ctx)
        ctx.dialogue_manager = manager  # Register for cross-system access
    """

    def __init__(self, world: "World") -> None:
        self.world = world

        self.time_manager = TimeEventManager(self)
        self.event_dispatcher = EventDispatcher(self)

        # Set once the dialogue system is wired up
        self.dialogue_manager: Any = None
