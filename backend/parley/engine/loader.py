# backend/parley/engine/loader.py
"""
Builds a small in-memory World from YAML content.

Used by the development console; a real server populates World from its
own storage.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .world import World, WorldNpc, WorldRoom

logger = logging.getLogger(__name__)

BUNDLED_WORLD_DATA = Path(__file__).parent.parent / "world_data"


def load_npcs_from_yaml(world: World, world_data_dir: str | Path | None = None, room_id: str = "square") -> int:
    """
    Place every NPC listed in ``<world_data_dir>/npcs.yaml`` into one room.

    Args:
        world: World to populate
        world_data_dir: Content folder; defaults to the bundled world_data
        room_id: Room the NPCs are placed in (created if missing)

    Returns:
        Number of NPCs added
    """
    world_data_dir = Path(world_data_dir) if world_data_dir else BUNDLED_WORLD_DATA
    npcs_file = world_data_dir / "npcs.yaml"
    if not npcs_file.exists():
        logger.info("No npcs.yaml in %s", world_data_dir)
        return 0

    with open(npcs_file, "r", encoding="utf-8") as f:
        npc_data = yaml.safe_load(f) or []

    if room_id not in world.rooms:
        world.add_room(WorldRoom(id=room_id, name=room_id.replace("_", " ").title()))

    added = 0
    for entry in npc_data:
        if not isinstance(entry, dict) or not entry.get("id"):
            logger.warning("Skipping malformed NPC entry in %s: %r", npcs_file.name, entry)
            continue
        world.add_npc(
            WorldNpc(
                id=str(entry["id"]),
                name=entry.get("name", entry["id"]),
                room_id=room_id,
                short_description=entry.get("short_description", ""),
                keywords=list(entry.get("keywords", [])),
                dialogue_provider=entry.get("dialogue_provider"),
            )
        )
        added += 1

    logger.info("Loaded %d NPCs from %s", added, npcs_file)
    return added
