"""
Global pytest configuration and shared fixtures.

Provides common test infrastructure for all test suites including:
- Database engine/session factory for snapshot persistence
- World, player, and NPC setup
- Dialogue stores, providers, and managers wired together
- A controllable clock
- Temporary content folders
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import parley.models  # noqa: F401
from parley.engine.systems.context import GameContext
from parley.engine.systems.dialogue import (
    DialogueConfig,
    DialogueManager,
    DialogueTreeStore,
    ScriptedTreeProvider,
)
from parley.engine.world import World, WorldGameHooks, WorldNpc, WorldRoom
from parley.models import Base
from tests.fixtures.dialogue_samples import gated_tree, merchant_tree, node_conditions_tree
from tests.fixtures.players import PlayerBuilder

# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def test_engine():
    """Create in-memory SQLite database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Use StaticPool to share single connection
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


# ============================================================================
# World Fixtures
# ============================================================================


@pytest.fixture
def world() -> World:
    """World with one room, a player on session 'sess_1', and three NPCs."""
    world = World()
    world.add_room(WorldRoom(id="room_center", name="Center Room"))
    world.add_room(WorldRoom(id="room_far", name="Far Room"))
    world.add_player(PlayerBuilder().with_id("player_1").with_name("Alice").build(), session_id="sess_1")
    world.add_player(PlayerBuilder().with_id("player_2").with_name("Bob").build(), session_id="sess_2")
    world.add_npc(WorldNpc(id="merchant_npc", name="Mira the Merchant", room_id="room_center",
                           short_description="a cheerful trader"))
    world.add_npc(WorldNpc(id="gate_npc", name="Gatekeeper", room_id="room_center",
                           short_description="a stern sentry"))
    world.add_npc(WorldNpc(id="mute_npc", name="Silent Monk", room_id="room_center",
                           short_description="a monk under a vow"))
    world.add_npc(WorldNpc(id="far_npc", name="Distant Hermit", room_id="room_far"))
    return world


@pytest.fixture
def player(world):
    return world.players["player_1"]


@pytest.fixture
def other_player(world):
    return world.players["player_2"]


@pytest.fixture
def game_context(world) -> GameContext:
    return GameContext(world)


# ============================================================================
# Dialogue Fixtures
# ============================================================================


@pytest.fixture
def tree_store() -> DialogueTreeStore:
    store = DialogueTreeStore()
    store.upsert(merchant_tree())
    store.upsert(gated_tree())
    store.upsert(node_conditions_tree())
    return store


@pytest.fixture
def provider(tree_store, game_context, world, clock) -> ScriptedTreeProvider:
    hooks = WorldGameHooks(world)
    provider = ScriptedTreeProvider(
        tree_store,
        game_context,
        inventory=hooks,
        quests=hooks,
        clock=clock,
    )
    provider.bind("merchant_npc", "merchant")
    provider.bind("gate_npc", "gatekeeper")
    provider.bind("secret_npc", "secretive")
    return provider


@pytest.fixture
def dialogue_config() -> DialogueConfig:
    return DialogueConfig(content_path=None, autosave_interval_seconds=0)


@pytest.fixture
def manager(game_context, provider, dialogue_config, clock) -> DialogueManager:
    manager = DialogueManager(game_context, dialogue_config, clock=clock)
    manager.register_provider(provider)
    game_context.dialogue_manager = manager
    return manager


# ============================================================================
# Temporary File System Fixtures
# ============================================================================


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """Empty content folder with a dialogue/ subfolder."""
    (tmp_path / "content" / "dialogue").mkdir(parents=True)
    return tmp_path / "content"
