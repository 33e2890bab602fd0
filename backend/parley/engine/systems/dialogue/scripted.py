"""
ScriptedTreeProvider - branching conversations from authored dialogue trees.

Conversation lifecycle: STARTED -> AWAITING_INPUT (loop) -> ENDED.

Player input selects a choice either by number ("2") or by keyword: any
word longer than two letters that appears in the choice text. The first
eligible choice that matches wins. Input that matches nothing re-shows the
current node; it never ends the conversation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from .errors import NotFoundError
from .providers import BaseDialogueProvider
from .store import DialogueTreeStore, NpcBindingRegistry
from .types import (
    ConversationState,
    DialogueAction,
    DialogueChoice,
    DialogueEventTypes,
    DialogueNode,
    DialogueResponse,
    DialogueTree,
    ProviderKind,
    VariableContext,
)
from .variables import resolve

if TYPE_CHECKING:
    from ..context import GameContext

logger = logging.getLogger(__name__)

PROVIDER_ID = "canned-branching"
NO_MATCH_SUFFIX = "\n\nI didn't understand that. Please try again."


def _as_int(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except (TypeError, ValueError):
        return None


def choice_matches(choice: DialogueChoice, text: str) -> bool:
    """
    Numeric input only ever compares against the choice id; any other
    input matches when one of its words (3+ letters) is inside the
    choice text, ignoring case.
    """
    number = _as_int(text)
    if number is not None:
        return _as_int(choice.id) == number

    choice_text = choice.text.lower()
    return any(len(word) > 2 and word in choice_text for word in text.lower().split())


class ScriptedTreeProvider(BaseDialogueProvider):
    """
    Provider for authored dialogue trees (kind ``canned``).

    Args:
        store: Tree store to read from (a new empty one by default)
        content_path: Loaded by initialize(); trees come from ``<path>/dialogue``
        bindings: ``npc_id -> tree_id`` applied after content is loaded
    """

    def __init__(
        self,
        store: Optional[DialogueTreeStore] = None,
        ctx: Optional["GameContext"] = None,
        *,
        provider_id: str = PROVIDER_ID,
        name: str = "Scripted dialogue trees",
        content_path: str | Path | None = None,
        bindings: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(provider_id, name, ProviderKind.CANNED, ctx, **kwargs)
        self.store = store or DialogueTreeStore()
        self.bindings = NpcBindingRegistry(self.store)
        self.content_path = content_path
        self.initial_bindings = dict(bindings or {})

    async def initialize(self) -> None:
        if self.content_path is not None:
            self.store.load(self.content_path)
            self.bindings.load_mappings(self.store.bindings)
        self.bindings.load_mappings(self.initial_bindings)
        logger.info(
            "%s ready: %d trees, %d NPC bindings",
            self.name,
            len(self.store),
            len(self.bindings.bindings()),
        )

    # ---------- Bindings ----------

    def can_handle(self, npc_id: str) -> bool:
        return self.bindings.can_handle(npc_id)

    def bind(self, npc_id: str, tree_id: str) -> None:
        self.bindings.bind(npc_id, tree_id)

    def unbind(self, npc_id: str) -> bool:
        return self.bindings.unbind(npc_id)

    def _tree_for_npc(self, npc_id: str) -> DialogueTree:
        tree_id = self.bindings.tree_for(npc_id)
        if tree_id is None:
            raise NotFoundError(f"No dialogue tree bound to NPC {npc_id}")
        return self._tree(tree_id)

    def _tree(self, tree_id: str | None) -> DialogueTree:
        tree = self.store.get(tree_id) if tree_id else None
        if tree is None:
            raise NotFoundError(f"Dialogue tree not found: {tree_id}")
        return tree

    # ---------- Conversation flow ----------

    async def start_conversation(self, player: Any, npc_id: str) -> DialogueResponse:
        tree = self._tree_for_npc(npc_id)
        state = self.create_state(player, npc_id, tree.id)
        state.current_node_id = tree.start_node_id
        state.variables.update(tree.variables)

        node = tree.nodes[tree.start_node_id]
        context = self.build_context(player, state)
        await self.run_actions(node.actions, context)

        self.events.emit(
            DialogueEventTypes.CONVERSATION_STARTED,
            state.conversation_id,
            player.id,
            {"npc_id": npc_id, "tree_id": tree.id, "provider_id": self.id},
        )
        self._node_reached(state, node)
        return self._respond(node, state, context)

    async def continue_conversation(
        self, player: Any, state: ConversationState, text: str
    ) -> DialogueResponse:
        if state is None or not state.is_active:
            raise NotFoundError("No active conversation to continue")

        state = state.copy()
        tree = self._tree(state.tree_id)
        node = tree.nodes.get(state.current_node_id or "")
        if node is None:
            raise NotFoundError(
                f"Current node {state.current_node_id!r} not found in tree {tree.id}"
            )

        state.last_activity = self.clock()
        state.turn_count += 1
        context = self.build_context(player, state)
        next_node_id = node.next_node_id

        if node.choices:
            choice = self._select_choice(node, text, context)
            if choice is None:
                return self._respond(node, state, context, no_match=True)

            await self.run_actions(choice.actions, context)
            self.events.emit(
                DialogueEventTypes.CHOICE_MADE,
                state.conversation_id,
                state.player_id,
                {"choice_id": choice.id, "choice_text": choice.text, "node_id": node.id},
            )
            next_node_id = choice.next_node_id or node.next_node_id

        if not next_node_id or node.is_end:
            state.is_active = False
            return self._respond(node, state, context, is_complete=True)

        next_node = tree.nodes.get(next_node_id)
        if next_node is None:
            raise NotFoundError(f"Next node {next_node_id!r} not found in tree {tree.id}")

        state.current_node_id = next_node_id
        state.variables.update(next_node.variables)
        await self.run_actions(next_node.actions, context)

        self._node_reached(state, next_node)
        self.events.emit(
            DialogueEventTypes.CONVERSATION_CONTINUED,
            state.conversation_id,
            state.player_id,
            {"input": text, "current_node_id": next_node_id, "tree_id": tree.id},
        )
        return self._respond(next_node, state, context)

    # ---------- Helpers ----------

    def _eligible(self, choices: List[DialogueChoice], context: VariableContext) -> List[DialogueChoice]:
        return [
            c for c in choices
            if c.condition is None or self.evaluator.evaluate(c.condition, context)
        ]

    def _select_choice(
        self, node: DialogueNode, text: str, context: VariableContext
    ) -> DialogueChoice | None:
        for choice in self._eligible(node.choices, context):
            if choice_matches(choice, text):
                return choice
        return None

    def _node_reached(self, state: ConversationState, node: DialogueNode) -> None:
        self.events.emit(
            DialogueEventTypes.NODE_REACHED,
            state.conversation_id,
            state.player_id,
            {"node_id": node.id, "tree_id": state.tree_id},
        )

    def _respond(
        self,
        node: DialogueNode,
        state: ConversationState,
        context: VariableContext,
        *,
        no_match: bool = False,
        is_complete: bool = False,
    ) -> DialogueResponse:
        message = resolve(node.npc_message, context)
        if no_match:
            message += NO_MATCH_SUFFIX

        choices = [
            c.model_copy(update={"text": resolve(c.text, context)})
            for c in self._eligible(node.choices, context)
        ]
        actions: List[DialogueAction] = list(node.actions)

        return DialogueResponse(
            conversation_id=state.conversation_id,
            message=message,
            choices=choices or None,
            is_complete=is_complete,
            state=state,
            variables=dict(state.variables),
            actions=actions,
        )
