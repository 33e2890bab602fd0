# backend/parley/engine/systems/events.py
"""
EventDispatcher - Observability events for game systems.

Provides:
- Event construction (type, conversation id, player id, payload, timestamp)
- Subscriber fan-out by event type, with "*" for every event
- A bounded history of recent events for debugging and tests

Handlers are called synchronously in subscription order; a failing handler
is logged and does not stop the others.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Optional

if TYPE_CHECKING:
    from .context import GameContext


# Type alias for events
Event = Dict[str, Any]
EventHandler = Callable[[Event], Any]

WILDCARD = "*"

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Routes emitted events to subscribers.

    Usage:
        dispatcher = EventDispatcher(ctx)
        dispatcher.subscribe("conversation.started", on_started)
        dispatcher.emit("conversation.started", conv_id, player_id, {"npc_id": npc_id})
    """

    def __init__(self, ctx: Optional["GameContext"] = None, history_size: int = 200) -> None:
        self.ctx = ctx
        self._handlers: Dict[str, List[EventHandler]] = {}
        self.history: Deque[Event] = deque(maxlen=history_size)

    # ---------- Subscription ----------

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    # ---------- Emission ----------

    def emit(
        self,
        event_type: str,
        conversation_id: str | None,
        player_id: str | None,
        payload: dict | None = None,
    ) -> Event:
        """
        Build an event and hand it to every matching subscriber.

        Returns:
            The event dict that was dispatched
        """
        ev: Event = {
            "type": event_type,
            "conversation_id": conversation_id,
            "player_id": player_id,
            "payload": payload or {},
            "timestamp": time.time(),
        }
        self.history.append(ev)

        for handler in self._handlers.get(event_type, []) + self._handlers.get(WILDCARD, []):
            try:
                handler(ev)
            except Exception:
                logger.exception("Event handler failed for %s", event_type)
        return ev

    def recent(self, event_type: str | None = None) -> List[Event]:
        """Events still in history, optionally filtered by type."""
        if event_type is None:
            return list(self.history)
        return [ev for ev in self.history if ev["type"] == event_type]
