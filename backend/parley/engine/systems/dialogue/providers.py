"""
Dialogue providers: the strategies that drive a conversation.

Provides:
- DialogueProvider: the contract every provider kind implements
- BaseDialogueProvider: shared behavior (state creation, variable context,
  gated actions, end-of-conversation events, state lookup)

Providers never keep their own conversation table. The DialogueManager
owns the single table, hands a provider the state for each call, and
stores whatever state comes back in the response. ``get_state`` reads
through to the manager's table.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from ..events import EventDispatcher
from .actions import ActionExecutor, InventoryPort, QuestPort
from .conditions import ConditionEvaluator
from .types import (
    ConversationContext,
    ConversationState,
    DialogueAction,
    DialogueEventTypes,
    DialogueResponse,
    NpcContext,
    PlayerContext,
    ProviderKind,
    VariableContext,
    WorldContext,
    utcnow,
)

if TYPE_CHECKING:
    from ..context import GameContext

logger = logging.getLogger(__name__)

StateSource = Callable[[str], Optional[ConversationState]]


class DialogueProvider(ABC):
    """
    Contract for a conversation strategy.

    ``player`` arguments are player-state records (id, name, level, stats,
    inventory, flags, quests, skills, currency, faction_relations). Their
    ``flags`` list is used live, never copied.
    """

    id: str
    name: str
    kind: ProviderKind

    async def initialize(self) -> None:
        """Load content; called once by the manager at startup."""

    async def shutdown(self) -> None:
        """Release resources; called by the manager on shutdown."""

    @abstractmethod
    def can_handle(self, npc_id: str) -> bool: ...

    @abstractmethod
    async def start_conversation(self, player: Any, npc_id: str) -> DialogueResponse: ...

    @abstractmethod
    async def continue_conversation(
        self, player: Any, state: ConversationState, text: str
    ) -> DialogueResponse: ...

    @abstractmethod
    async def end_conversation(self, state: ConversationState) -> None: ...

    @abstractmethod
    def get_state(self, conversation_id: str) -> ConversationState | None: ...

    def bind_state_source(self, source: StateSource | None) -> None:
        """Point ``get_state`` at the table that owns this provider's conversations."""


class BaseDialogueProvider(DialogueProvider):
    """
    Shared behavior for concrete providers.

    Uses GameContext (when given) for:
    - world: NPC names/flags and world-level flags for the variable context
    - event_dispatcher: where conversation events go
    """

    def __init__(
        self,
        provider_id: str,
        name: str,
        kind: ProviderKind,
        ctx: Optional["GameContext"] = None,
        *,
        events: Optional[EventDispatcher] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        inventory: Optional[InventoryPort] = None,
        quests: Optional[QuestPort] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.id = provider_id
        self.name = name
        self.kind = kind
        self.ctx = ctx
        self.clock = clock
        if events is None:
            events = ctx.event_dispatcher if ctx is not None else EventDispatcher()
        self.events = events
        self.evaluator = evaluator or ConditionEvaluator(clock=clock)
        self.executor = ActionExecutor(
            events=self.events,
            inventory=inventory,
            quests=quests,
            custom_handler=self.execute_custom_action,
        )
        self._state_source: StateSource | None = None

    # ---------- State ----------

    def bind_state_source(self, source: StateSource | None) -> None:
        self._state_source = source

    def get_state(self, conversation_id: str) -> ConversationState | None:
        if self._state_source is None:
            return None
        state = self._state_source(conversation_id)
        if state is None or state.provider_id != self.id:
            return None
        return state

    def new_conversation_id(self, player_id: str, npc_id: str) -> str:
        millis = int(self.clock().timestamp() * 1000)
        return f"{self.id}_{player_id}_{npc_id}_{millis}_{uuid.uuid4().hex[:6]}"

    def create_state(self, player: Any, npc_id: str, tree_id: str | None = None) -> ConversationState:
        now = self.clock()
        return ConversationState(
            conversation_id=self.new_conversation_id(player.id, npc_id),
            player_id=player.id,
            npc_id=npc_id,
            provider_id=self.id,
            tree_id=tree_id,
            started=now,
            last_activity=now,
        )

    # ---------- Variable context ----------

    def build_context(self, player: Any, state: ConversationState) -> VariableContext:
        """
        Snapshot for one call. ``player.flags`` and ``state.variables`` are
        shared, so flag and variable actions land on the real objects.
        """
        world = self.ctx.world if self.ctx is not None else None

        npc_ctx = NpcContext(id=state.npc_id, name=state.npc_id)
        npc = world.npcs.get(state.npc_id) if world is not None else None
        if npc is not None:
            npc_ctx = NpcContext(id=npc.id, name=npc.name, flags=npc.flags, stats=npc.stats)

        return VariableContext(
            player=PlayerContext(
                id=player.id,
                name=getattr(player, "name", player.id),
                stats=getattr(player, "stats", {}),
                inventory=getattr(player, "inventory", []),
                flags=player.flags,
                quests=getattr(player, "quests", {}),
                skills=getattr(player, "skills", {}),
                level=getattr(player, "level", 1),
                currency=getattr(player, "currency", {}),
                faction_relations=getattr(player, "faction_relations", {}),
            ),
            npc=npc_ctx,
            conversation=ConversationContext(
                id=state.conversation_id,
                variables=state.variables,
                turn_count=state.turn_count,
                started=state.started,
                last_activity=state.last_activity,
            ),
            world=WorldContext(
                time=self.clock(),
                global_flags=world.global_flags if world is not None else {},
                faction_relations=world.faction_relations if world is not None else {},
            ),
        )

    # ---------- Actions ----------

    async def run_actions(
        self, actions: Iterable[DialogueAction], context: VariableContext
    ) -> list[DialogueAction]:
        """Run actions in order, each gated by its own condition."""
        return await self.executor.execute_all(actions, context, self.evaluator)

    async def execute_custom_action(self, action: DialogueAction, context: VariableContext) -> None:
        """Hook for ``custom`` actions; subclasses override."""
        logger.warning(
            "Provider %s has no handler for custom action %r", self.id, action.target
        )

    # ---------- Lifecycle ----------

    async def end_conversation(self, state: ConversationState) -> None:
        state.is_active = False
        duration = (self.clock() - state.started).total_seconds()
        self.events.emit(
            DialogueEventTypes.CONVERSATION_ENDED,
            state.conversation_id,
            state.player_id,
            {
                "npc_id": state.npc_id,
                "provider_id": self.id,
                "tree_id": state.tree_id,
                "duration": duration,
                "turn_count": state.turn_count,
            },
        )
        logger.debug("Conversation %s ended after %.1fs", state.conversation_id, duration)
