"""
Dialogue commands: talk, converse, respond, dialogue.

Handlers take ``(session_id, args, raw)`` and return the text to show the
player. NPCs are found by case-insensitive substring of name or short
description among the NPCs in the player's room; the first match wins.
``respond`` always goes to the player's oldest active conversation.

Failures come back as one short line; details only go to the log.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from .errors import DialogueError
from .types import DialogueResponse

if TYPE_CHECKING:
    from ...world import World, WorldNpc, WorldPlayer
    from ..router import CommandRouter
    from .manager import DialogueManager

logger = logging.getLogger(__name__)

CONVERSATION_ENDED = "[This conversation has ended]"


def render_response(response: DialogueResponse) -> str:
    """Format a DialogueResponse for a text client."""
    out = f"[Dialogue] {response.message}\n\n"

    if response.choices:
        out += "Choices:\n"
        for number, choice in enumerate(response.choices, start=1):
            out += f"{number}. {choice.text}\n"
        out += "\n"
        out += 'Type "respond <number>" or "respond <text>" to choose.\n'

    out += f"[Conversation: {response.conversation_id}]"

    if response.is_complete:
        out += f"\n\n{CONVERSATION_ENDED}"
    return out


class DialogueCommands:
    """
    Player-facing dialogue commands.

    Usage:
        commands = DialogueCommands(manager, world)
        commands.register(router)
    """

    def __init__(self, manager: "DialogueManager", world: "World") -> None:
        self.manager = manager
        self.world = world

    def register(self, router: "CommandRouter") -> None:
        router.register_handler(
            "talk",
            self.talk,
            aliases={"talk": ["t"]},
            category="dialogue",
            description="Talk to an NPC to start a conversation",
            usage="<npc name>",
        )
        router.register_handler(
            "converse",
            self.converse,
            aliases={"converse": ["con", "c"]},
            category="dialogue",
            description="Converse formally with an NPC",
            usage="<npc name>",
        )
        router.register_handler(
            "respond",
            self.respond,
            aliases={"respond": ["reply", "r"]},
            category="dialogue",
            description="Respond to an active dialogue",
            usage="<choice number or text>",
        )
        router.register_handler(
            "dialogue",
            self.dialogue,
            aliases={"dialogue": ["dia"]},
            category="dialogue",
            description="General dialogue commands",
            usage="<start|continue|end|status> [target]",
        )

    # ---------- Lookups ----------

    def find_npc_in_room(self, room_id: str, name: str) -> Optional["WorldNpc"]:
        needle = name.lower()
        for npc in self.world.get_npcs_in_room(room_id):
            if needle in npc.name.lower() or needle in (npc.short_description or "").lower():
                return npc
        return None

    def _player(self, session_id: str) -> Optional["WorldPlayer"]:
        return self.world.get_player_by_session(session_id)

    # ---------- Commands ----------

    async def talk(self, session_id: str, args: List[str], raw: str = "") -> str:
        if not args:
            return "Talk to whom? Usage: talk <npc name>"
        return await self._start(session_id, " ".join(args), "doesn't seem interested in talking.")

    async def converse(self, session_id: str, args: List[str], raw: str = "") -> str:
        if not args:
            return "Converse with whom? Usage: converse <npc name>"
        return await self._start(
            session_id, " ".join(args), "doesn't seem interested in conversing formally."
        )

    async def _start(self, session_id: str, npc_name: str, not_interested: str) -> str:
        player = self._player(session_id)
        if player is None:
            return "Player not found."

        npc = self.find_npc_in_room(player.room_id, npc_name)
        if npc is None:
            return f"You don't see {npc_name} here."

        provider_id = npc.dialogue_provider or self.manager.config.default_provider
        provider = self.manager.get_provider(provider_id)
        if provider is None or not provider.can_handle(npc.id):
            return f"{npc.name} {not_interested}"

        try:
            response = await self.manager.start(player, npc.id, provider_id)
        except DialogueError as e:
            logger.info("Player %s could not talk to %s: %s", player.id, npc.id, e)
            return e.user_message
        return render_response(response)

    async def respond(self, session_id: str, args: List[str], raw: str = "") -> str:
        if not args:
            return "Respond with what? Usage: respond <choice number or text>"

        player = self._player(session_id)
        if player is None:
            return "Player not found."

        conversations = self.manager.player_conversations(player.id)
        if not conversations:
            return "You have no active conversations."

        conversation = conversations[0]
        try:
            response = await self.manager.continue_conversation(
                player, conversation.npc_id, " ".join(args), conversation.conversation_id
            )
        except DialogueError as e:
            logger.info("Player %s could not respond in %s: %s", player.id, conversation.conversation_id, e)
            return e.user_message
        return render_response(response)

    async def dialogue(self, session_id: str, args: List[str], raw: str = "") -> str:
        if not args:
            return "Usage: dialogue <action> <target> [input]"

        action = args[0].lower()
        rest = args[1:]

        if action in ("start", "begin"):
            return await self.talk(session_id, rest, raw)
        if action in ("continue", "reply"):
            return await self.respond(session_id, rest, raw)
        if action in ("end", "stop"):
            return await self.end_dialogue(session_id, rest)
        if action == "status":
            return self.status(session_id)
        return f"Unknown dialogue action: {action}. Available actions: start, continue, end, status"

    async def end_dialogue(self, session_id: str, args: List[str]) -> str:
        """End the oldest conversation, or the one with the named NPC."""
        player = self._player(session_id)
        if player is None:
            return "Player not found."

        conversations = self.manager.player_conversations(player.id)
        if args:
            npc = self.find_npc_in_room(player.room_id, " ".join(args))
            npc_id = npc.id if npc is not None else None
            conversations = [c for c in conversations if c.npc_id == npc_id]
        if not conversations:
            return "No active dialogue to end."

        conversation = conversations[0]
        try:
            await self.manager.end(player, conversation.npc_id, conversation.conversation_id)
        except DialogueError as e:
            return e.user_message
        return f"You end your conversation with {self._npc_name(conversation.npc_id)}."

    def status(self, session_id: str) -> str:
        player = self._player(session_id)
        if player is None:
            return "Player not found."

        conversations = self.manager.player_conversations(player.id)
        if not conversations:
            return "No active dialogues."

        lines = ["Active conversations:"]
        for number, conversation in enumerate(conversations, start=1):
            lines.append(
                f"{number}. {self._npc_name(conversation.npc_id)} "
                f"(turns: {conversation.turn_count}) [Conversation: {conversation.conversation_id}]"
            )
        return "\n".join(lines)

    def _npc_name(self, npc_id: str) -> str:
        npc = self.world.npcs.get(npc_id)
        return npc.name if npc is not None else npc_id
