"""
Conversation snapshot stores used by the manager's autosave and restore.

Provides:
- ConversationSnapshotStore: the protocol (save all / load all)
- MemorySnapshotStore: keeps the last save in memory
- SqlConversationStore: SQLAlchemy async table (conversation_snapshots)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....models import ConversationSnapshot

logger = logging.getLogger(__name__)


class ConversationSnapshotStore(Protocol):
    async def save(self, snapshots: List[Dict[str, Any]]) -> None:
        """Replace everything stored with ``snapshots``."""
        ...

    async def load(self) -> List[Dict[str, Any]]:
        ...


class MemorySnapshotStore:
    """In-process store; handy for tests and the console."""

    def __init__(self) -> None:
        self.snapshots: List[Dict[str, Any]] = []
        self.save_count = 0

    async def save(self, snapshots: List[Dict[str, Any]]) -> None:
        self.snapshots = [dict(s) for s in snapshots]
        self.save_count += 1

    async def load(self) -> List[Dict[str, Any]]:
        return [dict(s) for s in self.snapshots]


class SqlConversationStore:
    """
    Snapshot store on the ``conversation_snapshots`` table.

    Args:
        session_factory: async_sessionmaker bound to an engine whose tables exist
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def save(self, snapshots: List[Dict[str, Any]]) -> None:
        saved_at = time.time()
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(ConversationSnapshot))
                for snapshot in snapshots:
                    session.add(
                        ConversationSnapshot(
                            conversation_id=snapshot["conversation_id"],
                            player_id=snapshot["player_id"],
                            provider_id=snapshot["provider_id"],
                            data=snapshot,
                            saved_at=saved_at,
                        )
                    )
        logger.debug("Saved %d conversation snapshots", len(snapshots))

    async def load(self) -> List[Dict[str, Any]]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ConversationSnapshot).order_by(ConversationSnapshot.saved_at)
            )
            return [dict(row.data) for row in result.scalars().all()]
