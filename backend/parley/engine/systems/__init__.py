# backend/parley/engine/systems/__init__.py
"""
Game systems used by the conversation engine.

- TimeEventManager: Scheduled events, recurring timers
- EventDispatcher: Observability events with subscriber fan-out
- CommandRouter: Command parsing and handler routing
- GameContext: Shared references between systems
- dialogue: NPC conversation engine (trees, providers, manager, commands)
"""

from .context import GameContext
from .events import EventDispatcher
from .router import CommandMeta, CommandRouter
from .time_manager import TimeEventManager

__all__ = [
    "CommandMeta",
    "CommandRouter",
    "EventDispatcher",
    "GameContext",
    "TimeEventManager",
]
