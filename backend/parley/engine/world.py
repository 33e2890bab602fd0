# backend/parley/engine/world.py
"""
In-memory world state consumed by the conversation engine.

Rooms, players, and NPCs are kept just detailed enough for dialogue:
who is where, what a player carries, which flags and quests they hold.
WorldGameHooks applies dialogue item/quest actions to this state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

logger = logging.getLogger(__name__)

# Simple type aliases for clarity
RoomId = str
PlayerId = str
NpcId = str
SessionId = str
ItemId = str
QuestId = str


@dataclass
class QuestProgress:
    """A player's standing on one quest."""
    quest_id: QuestId
    status: str = "in_progress"  # in_progress, completed
    started_at: float = field(default_factory=time.time)
    completed_at: float | None = None


@dataclass
class WorldPlayer:
    """Runtime representation of a player in the world."""
    id: PlayerId
    name: str
    room_id: RoomId
    level: int = 1
    stats: Dict[str, Any] = field(default_factory=dict)
    # Repeatable item ids; two potions are two entries
    inventory: List[ItemId] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    quests: Dict[QuestId, QuestProgress] = field(default_factory=dict)
    skills: Dict[str, float] = field(default_factory=dict)
    currency: Dict[str, int] = field(default_factory=dict)
    faction_relations: Dict[str, float] = field(default_factory=dict)


@dataclass
class WorldNpc:
    """Runtime representation of a specific NPC instance in the world."""
    id: NpcId
    name: str
    room_id: RoomId
    short_description: str = ""
    keywords: List[str] = field(default_factory=list)
    # Provider id for this NPC's conversations (None = manager default)
    dialogue_provider: str | None = None
    flags: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorldRoom:
    """Runtime representation of a room in the world."""
    id: RoomId
    name: str
    description: str = ""
    exits: Dict[str, RoomId] = field(default_factory=dict)
    entities: Set[str] = field(default_factory=set)


@dataclass
class World:
    """
    In-memory world state.

    This is the authoritative runtime graph the command layer reads from.
    """
    rooms: Dict[RoomId, WorldRoom] = field(default_factory=dict)
    players: Dict[PlayerId, WorldPlayer] = field(default_factory=dict)
    npcs: Dict[NpcId, WorldNpc] = field(default_factory=dict)
    sessions: Dict[SessionId, PlayerId] = field(default_factory=dict)
    global_flags: Dict[str, Any] = field(default_factory=dict)
    # faction -> (other faction -> standing)
    faction_relations: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def add_room(self, room: WorldRoom) -> WorldRoom:
        self.rooms[room.id] = room
        return room

    def add_player(self, player: WorldPlayer, session_id: SessionId | None = None) -> WorldPlayer:
        self.players[player.id] = player
        self._place(player.id, player.room_id)
        if session_id is not None:
            self.sessions[session_id] = player.id
        return player

    def add_npc(self, npc: WorldNpc) -> WorldNpc:
        self.npcs[npc.id] = npc
        self._place(npc.id, npc.room_id)
        return npc

    def _place(self, entity_id: str, room_id: RoomId) -> None:
        room = self.rooms.get(room_id)
        if room is None:
            room = self.add_room(WorldRoom(id=room_id, name=room_id))
        room.entities.add(entity_id)

    def get_player_by_session(self, session_id: SessionId) -> WorldPlayer | None:
        player_id = self.sessions.get(session_id)
        if player_id is None:
            return None
        return self.players.get(player_id)

    def get_npcs_in_room(self, room_id: RoomId) -> list[WorldNpc]:
        """NPCs in a room, in a stable (id) order."""
        return sorted(
            (npc for npc in self.npcs.values() if npc.room_id == room_id),
            key=lambda npc: npc.id,
        )


class WorldGameHooks:
    """Applies dialogue item and quest actions to the in-memory world."""

    def __init__(self, world: World) -> None:
        self.world = world

    def _player(self, player_id: PlayerId) -> WorldPlayer:
        player = self.world.players.get(player_id)
        if player is None:
            raise KeyError(f"Unknown player: {player_id}")
        return player

    def give_item(self, player_id: PlayerId, item_id: ItemId, quantity: int) -> None:
        self._player(player_id).inventory.extend([item_id] * quantity)

    def take_item(self, player_id: PlayerId, item_id: ItemId, quantity: int) -> None:
        inventory = self._player(player_id).inventory
        for _ in range(quantity):
            if item_id not in inventory:
                break
            inventory.remove(item_id)

    def start_quest(self, player_id: PlayerId, quest_id: QuestId) -> None:
        quests = self._player(player_id).quests
        if quest_id not in quests:
            quests[quest_id] = QuestProgress(quest_id=quest_id)
            logger.debug("Player %s started quest %s", player_id, quest_id)

    def complete_quest(self, player_id: PlayerId, quest_id: QuestId) -> None:
        quests = self._player(player_id).quests
        progress = quests.setdefault(quest_id, QuestProgress(quest_id=quest_id))
        progress.status = "completed"
        progress.completed_at = time.time()
        logger.debug("Player %s completed quest %s", player_id, quest_id)
