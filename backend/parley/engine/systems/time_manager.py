# backend/parley/engine/systems/time_manager.py
"""
TimeEventManager - Scheduled and recurring timers on the event loop.

Provides:
- schedule(): one-shot or recurring callbacks after a delay
- cancel(): stop a pending or recurring event by id
- start() / stop(): lifecycle; stop() cancels everything still pending

Handlers may be plain functions or coroutines.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:
    from .context import GameContext

logger = logging.getLogger(__name__)


@dataclass
class TimeEvent:
    """A scheduled callback."""
    event_id: str
    delay: float
    handler: Callable[[], Any]
    recurring: bool = False
    task: Optional[asyncio.Task] = field(default=None, repr=False)


class TimeEventManager:
    """
    Owns every timer task so they can be cancelled together.

    Events scheduled before start() are held and launched when it runs.
    """

    def __init__(self, ctx: Optional["GameContext"] = None) -> None:
        self.ctx = ctx
        self.events: Dict[str, TimeEvent] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for event in self.events.values():
            if event.task is None:
                event.task = asyncio.create_task(self._run(event))
        logger.info("Time manager started (%d pending events)", len(self.events))

    async def stop(self) -> None:
        self._running = False
        tasks = [e.task for e in self.events.values() if e.task is not None]
        self.events.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Time manager stopped")

    def schedule(
        self,
        delay: float,
        handler: Callable[[], Any],
        recurring: bool = False,
        event_id: str | None = None,
    ) -> str:
        """
        Schedule ``handler`` to run after ``delay`` seconds.

        Args:
            delay: Seconds until the first (and, if recurring, every) run
            handler: Callable or coroutine function with no arguments
            recurring: Re-arm after each run until cancelled
            event_id: Optional id; replaces any event already using it

        Returns:
            The event id
        """
        event_id = event_id or str(uuid.uuid4())
        self.cancel(event_id)
        event = TimeEvent(event_id=event_id, delay=max(0.0, delay), handler=handler, recurring=recurring)
        self.events[event_id] = event
        if self._running:
            event.task = asyncio.create_task(self._run(event))
        return event_id

    def cancel(self, event_id: str) -> bool:
        event = self.events.pop(event_id, None)
        if event is None:
            return False
        if event.task is not None and event.task is not asyncio.current_task():
            event.task.cancel()
        return True

    async def _run(self, event: TimeEvent) -> None:
        try:
            while True:
                await asyncio.sleep(event.delay)
                if self.events.get(event.event_id) is not event:
                    return
                try:
                    result = event.handler()
                    if hasattr(result, "__await__"):
                        await result
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Timed event %s failed", event.event_id)
                if not event.recurring:
                    if self.events.get(event.event_id) is event:
                        del self.events[event.event_id]
                    return
                if self.events.get(event.event_id) is not event:
                    return
        except asyncio.CancelledError:
            pass
