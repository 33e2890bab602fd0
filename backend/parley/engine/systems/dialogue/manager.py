"""
DialogueManager - the authoritative table of active conversations.

Provides:
- Provider registry (register / unregister with cascading end)
- start / continue_conversation / end with capacity, ownership, and
  timeout policy applied before any provider is consulted
- Autosave + restore through a ConversationSnapshotStore
- An optional periodic sweep that ends idle conversations
- statistics() for admin/debug views

Every entry in the table is active; finished conversations are removed.
Each conversation id has its own asyncio.Lock so one conversation never
has two state updates in flight.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..events import EventDispatcher
from ..time_manager import TimeEventManager
from .errors import (
    CapacityError,
    ConversationTimeoutError,
    NotFoundError,
    OwnershipError,
)
from .persistence import ConversationSnapshotStore
from .providers import DialogueProvider
from .types import ConversationState, DialogueResponse, utcnow

if TYPE_CHECKING:
    from ..context import GameContext

logger = logging.getLogger(__name__)

AUTOSAVE_EVENT_ID = "dialogue_autosave"
SWEEP_EVENT_ID = "dialogue_sweep"


@dataclass
class DialogueConfig:
    """Tunable dialogue parameters."""
    enable_persistence: bool = True
    max_conversations_per_player: int = 5
    conversation_timeout_minutes: float = 30.0
    autosave_interval_seconds: float = 300.0
    # 0 disables the periodic idle sweep
    sweep_interval_seconds: float = 0.0
    default_provider: str = "canned-branching"
    content_path: str | None = "world_data"
    npc_bindings: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "DialogueConfig":
        from ....config import (
            DIALOGUE_AUTOSAVE_SECONDS,
            DIALOGUE_DEFAULT_PROVIDER,
            DIALOGUE_ENABLE_PERSISTENCE,
            DIALOGUE_MAX_CONVERSATIONS,
            DIALOGUE_SWEEP_SECONDS,
            DIALOGUE_TIMEOUT_MINUTES,
            WORLD_DATA_DIR,
        )

        return cls(
            enable_persistence=DIALOGUE_ENABLE_PERSISTENCE,
            max_conversations_per_player=DIALOGUE_MAX_CONVERSATIONS,
            conversation_timeout_minutes=DIALOGUE_TIMEOUT_MINUTES,
            autosave_interval_seconds=DIALOGUE_AUTOSAVE_SECONDS,
            sweep_interval_seconds=DIALOGUE_SWEEP_SECONDS,
            default_provider=DIALOGUE_DEFAULT_PROVIDER,
            content_path=WORLD_DATA_DIR,
        )


class DialogueManager:
    """
    Owns every active conversation and the policies around them.

    Uses GameContext (when given) for:
    - time_manager: autosave and sweep timers
    - event_dispatcher: shared with providers created by initialize()
    """

    def __init__(
        self,
        ctx: Optional["GameContext"] = None,
        config: Optional[DialogueConfig] = None,
        *,
        snapshot_store: Optional[ConversationSnapshotStore] = None,
        time_manager: Optional[TimeEventManager] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ctx = ctx
        self.config = config or DialogueConfig()
        self.snapshot_store = snapshot_store
        if time_manager is None and ctx is not None:
            time_manager = ctx.time_manager
        self.time_manager = time_manager
        self.clock = clock
        self.events: EventDispatcher = (
            ctx.event_dispatcher if ctx is not None else EventDispatcher()
        )

        self.providers: Dict[str, DialogueProvider] = {}
        self._conversations: Dict[str, ConversationState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._table_lock = asyncio.Lock()
        self._initialized = False

    # ---------- Provider registry ----------

    def register_provider(self, provider: DialogueProvider) -> None:
        if provider.id in self.providers:
            logger.warning("Replacing dialogue provider %s", provider.id)
        self.providers[provider.id] = provider
        provider.bind_state_source(self.get_state)
        logger.info("Registered dialogue provider %s (%s)", provider.id, provider.kind.value)

    async def unregister_provider(self, provider_id: str) -> bool:
        """Remove a provider, first ending every conversation it runs."""
        provider = self.providers.get(provider_id)
        if provider is None:
            return False
        owned = [cid for cid, s in self._conversations.items() if s.provider_id == provider_id]
        for conversation_id in owned:
            await self.end_internal(conversation_id)
        del self.providers[provider_id]
        provider.bind_state_source(None)
        logger.info("Unregistered dialogue provider %s (ended %d conversations)", provider_id, len(owned))
        return True

    def get_provider(self, provider_id: str) -> DialogueProvider | None:
        return self.providers.get(provider_id)

    # ---------- Table access ----------

    def get_state(self, conversation_id: str) -> ConversationState | None:
        return self._conversations.get(conversation_id)

    def player_conversations(self, player_id: str) -> List[ConversationState]:
        """Active conversations for a player, oldest first."""
        return [s for s in self._conversations.values() if s.player_id == player_id]

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    def _remove(self, conversation_id: str) -> ConversationState | None:
        self._locks.pop(conversation_id, None)
        return self._conversations.pop(conversation_id, None)

    def _store(self, state: ConversationState) -> None:
        if state.is_active:
            self._conversations[state.conversation_id] = state
        else:
            self._remove(state.conversation_id)

    def _is_stale(self, state: ConversationState) -> bool:
        limit = timedelta(minutes=self.config.conversation_timeout_minutes)
        return self.clock() - state.last_activity > limit

    # ---------- Conversation lifecycle ----------

    async def start(
        self, player: Any, npc_id: str, provider_id: str | None = None
    ) -> DialogueResponse:
        """
        Start a conversation between ``player`` and an NPC.

        Raises:
            CapacityError: the player is at the concurrent-conversation limit
            NotFoundError: unknown provider, or it cannot handle this NPC
        """
        async with self._table_lock:
            open_count = len(self.player_conversations(player.id))
            if open_count >= self.config.max_conversations_per_player:
                raise CapacityError(
                    f"Player {player.id} has {open_count} active conversations "
                    f"(limit {self.config.max_conversations_per_player})"
                )

            provider_id = provider_id or self.config.default_provider
            provider = self.providers.get(provider_id)
            if provider is None:
                raise NotFoundError(f"Unknown dialogue provider: {provider_id}")
            if not provider.can_handle(npc_id):
                raise NotFoundError(f"Provider {provider_id} cannot handle NPC {npc_id}")

            response = await provider.start_conversation(player, npc_id)
            self._store(response.state)

        logger.info(
            "Player %s started conversation %s with %s", player.id, response.conversation_id, npc_id
        )
        return response

    async def continue_conversation(
        self, player: Any, npc_id: str, text: str, conversation_id: str
    ) -> DialogueResponse:
        """
        Feed player input into a conversation.

        Raises:
            NotFoundError: no such active conversation (or its provider is gone)
            OwnershipError: the conversation belongs to someone else
            ConversationTimeoutError: idle too long; it has been ended
        """
        if conversation_id not in self._conversations:
            raise NotFoundError(f"No active conversation: {conversation_id}")
        async with self._lock_for(conversation_id):
            state = self._conversations.get(conversation_id)
            if state is None:
                self._locks.pop(conversation_id, None)
                raise NotFoundError(f"No active conversation: {conversation_id}")
            if state.player_id != player.id:
                raise OwnershipError(
                    f"Conversation {conversation_id} belongs to {state.player_id}, not {player.id}"
                )
            if self._is_stale(state):
                await self._end_locked(state)
                raise ConversationTimeoutError(f"Conversation {conversation_id} timed out")

            provider = self.providers.get(state.provider_id)
            if provider is None:
                self._remove(conversation_id)
                raise NotFoundError(f"Dialogue provider {state.provider_id} is gone")

            try:
                response = await provider.continue_conversation(player, state, text)
            except NotFoundError:
                # tree or node replaced underneath it; nothing left to continue
                logger.warning("Ending conversation %s: its dialogue content is gone", conversation_id)
                await self._end_locked(state)
                raise
            if response.is_complete:
                self._remove(conversation_id)
            else:
                self._store(response.state)
            return response

    continue_ = continue_conversation

    async def end(self, player: Any, npc_id: str | None, conversation_id: str) -> bool:
        """
        Player-initiated end. Unknown ids are a no-op.

        Returns:
            True if a conversation was ended

        Raises:
            OwnershipError: the conversation belongs to someone else
        """
        if conversation_id not in self._conversations:
            return False
        async with self._lock_for(conversation_id):
            state = self._conversations.get(conversation_id)
            if state is None:
                self._locks.pop(conversation_id, None)
                return False
            if state.player_id != player.id:
                raise OwnershipError(
                    f"Conversation {conversation_id} belongs to {state.player_id}, not {player.id}"
                )
            await self._end_locked(state)
            return True

    async def end_internal(self, conversation_id: str) -> bool:
        """Manager-initiated end; idempotent."""
        if conversation_id not in self._conversations:
            return False
        async with self._lock_for(conversation_id):
            state = self._conversations.get(conversation_id)
            if state is None:
                self._locks.pop(conversation_id, None)
                return False
            await self._end_locked(state)
            return True

    async def _end_locked(self, state: ConversationState) -> None:
        provider = self.providers.get(state.provider_id)
        try:
            if provider is not None:
                await provider.end_conversation(state)
        except Exception:
            logger.exception("Provider %s failed to end %s", state.provider_id, state.conversation_id)
        finally:
            self._remove(state.conversation_id)

    async def sweep_expired(self) -> int:
        """End every conversation idle past the timeout. Returns how many."""
        stale = [cid for cid, s in list(self._conversations.items()) if self._is_stale(s)]
        ended = 0
        for conversation_id in stale:
            if await self.end_internal(conversation_id):
                ended += 1
        if ended:
            logger.info("Swept %d idle conversations", ended)
        return ended

    # ---------- Persistence ----------

    async def autosave(self) -> bool:
        """Write every active conversation to the snapshot store. Never raises."""
        if self.snapshot_store is None or not self.config.enable_persistence:
            return False
        snapshots = [s.to_dict() for s in self._conversations.values()]
        try:
            await self.snapshot_store.save(snapshots)
        except Exception:
            logger.exception("Dialogue autosave failed")
            return False
        logger.debug("Autosaved %d conversations", len(snapshots))
        return True

    async def restore(self) -> int:
        """
        Reload saved conversations whose provider is registered.

        Returns:
            Number of conversations restored
        """
        if self.snapshot_store is None or not self.config.enable_persistence:
            return 0
        try:
            snapshots = await self.snapshot_store.load()
        except Exception:
            logger.exception("Could not load dialogue snapshots")
            return 0

        states = []
        for data in snapshots:
            try:
                states.append(ConversationState.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable conversation snapshot: %s", e)

        restored = 0
        for state in sorted(states, key=lambda s: s.started):
            if not state.is_active or state.provider_id not in self.providers:
                continue
            if state.conversation_id in self._conversations:
                continue
            self._conversations[state.conversation_id] = state
            restored += 1
        logger.info("Restored %d conversations from snapshots", restored)
        return restored

    # ---------- Lifecycle ----------

    async def initialize(self) -> None:
        """
        Prepare providers and timers.

        Registers a ScriptedTreeProvider for the configured content when no
        provider was registered beforehand.
        """
        if self._initialized:
            return

        if not self.providers:
            from .scripted import ScriptedTreeProvider

            self.register_provider(
                ScriptedTreeProvider(
                    ctx=self.ctx,
                    events=self.events,
                    content_path=self.config.content_path,
                    bindings=self.config.npc_bindings,
                    clock=self.clock,
                )
            )

        for provider in list(self.providers.values()):
            await provider.initialize()

        await self.restore()

        if self.time_manager is not None:
            autosave_on = (
                self.config.enable_persistence
                and self.snapshot_store is not None
                and self.config.autosave_interval_seconds > 0
            )
            if autosave_on:
                self.time_manager.schedule(
                    self.config.autosave_interval_seconds,
                    self.autosave,
                    recurring=True,
                    event_id=AUTOSAVE_EVENT_ID,
                )
            if self.config.sweep_interval_seconds > 0:
                self.time_manager.schedule(
                    self.config.sweep_interval_seconds,
                    self.sweep_expired,
                    recurring=True,
                    event_id=SWEEP_EVENT_ID,
                )

        self._initialized = True
        logger.info("Dialogue manager initialized with %d providers", len(self.providers))

    async def shutdown(self) -> None:
        """Stop timers, flush autosave, then end every conversation."""
        if self.time_manager is not None:
            self.time_manager.cancel(AUTOSAVE_EVENT_ID)
            self.time_manager.cancel(SWEEP_EVENT_ID)

        await self.autosave()

        for conversation_id in list(self._conversations):
            await self.end_internal(conversation_id)

        for provider in list(self.providers.values()):
            try:
                await provider.shutdown()
            except Exception:
                logger.exception("Provider %s failed to shut down", provider.id)

        self._initialized = False
        logger.info("Dialogue manager shut down")

    def statistics(self) -> Dict[str, Any]:
        return {
            "active_providers": len(self.providers),
            "active_conversations": len(self._conversations),
            "provider_types": sorted({p.kind.value for p in self.providers.values()}),
            "config": {
                "enable_persistence": self.config.enable_persistence,
                "max_conversations_per_player": self.config.max_conversations_per_player,
                "conversation_timeout_minutes": self.config.conversation_timeout_minutes,
            },
        }
