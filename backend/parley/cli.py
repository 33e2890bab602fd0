"""
Parley CLI - Command line tools for the conversation engine.

Usage:
    parley init           Copy the starter dialogue content into a project
    parley check DIR      Validate the dialogue trees under DIR/dialogue
    parley console        Talk to NPCs locally through the command router
    parley db init        Create the conversation snapshot table
"""

import asyncio
import sys
from pathlib import Path

import click

from parley import __version__
from parley.config import DATABASE_URL, configure_logging
from parley.engine.loader import BUNDLED_WORLD_DATA


@click.group()
@click.version_option(version=__version__, prog_name="parley")
@click.option("--log-level", default=None, help="Logging level (default: PARLEY_LOG_LEVEL or INFO)")
def main(log_level: str | None):
    """Parley - NPC conversations for text worlds."""
    configure_logging(log_level)


@main.command()
@click.argument("name", default="my-world")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing files")
def init(name: str, force: bool):
    """Copy the bundled starter content into NAME/world_data.

    Use "." to initialize in the current directory.
    """
    import shutil

    project_dir = Path.cwd() / name if name != "." else Path.cwd()
    dest = project_dir / "world_data"

    if dest.exists() and not force:
        click.echo(f"⚠️ Error: {dest} already exists. Use --force to overwrite.")
        sys.exit(1)

    project_dir.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        shutil.rmtree(dest)
    shutil.copytree(BUNDLED_WORLD_DATA, dest)

    tree_count = len([p for p in (dest / "dialogue").glob("*.yaml") if not p.name.startswith("_")])
    click.echo(f"🗺️  Copied world_data/ ({tree_count} dialogue trees)")
    click.echo("")
    click.echo("Next steps:")
    click.echo(f"  parley check {dest}")
    click.echo(f"  parley console --content {dest}")


@main.command()
@click.argument("content_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def check(content_dir: Path):
    """Load and validate every dialogue tree under CONTENT_DIR/dialogue."""
    from parley.engine.systems.dialogue.store import DialogueTreeStore

    store = DialogueTreeStore()
    loaded = store.load(content_dir)

    for tree in sorted(store.get_all(), key=lambda t: t.id):
        click.echo(f"✅ {tree.id} ({tree.name}): {len(tree.nodes)} nodes, starts at {tree.start_node_id}")

    for npc_id, tree_id in sorted(store.bindings.items()):
        marker = "🔗" if tree_id in store else "⚠️"
        click.echo(f"{marker} {npc_id} -> {tree_id}")

    for file_name, reason in store.load_errors:
        click.echo(click.style(f"❌ {file_name}: {reason}", fg="red"))

    unknown = [t for t in store.bindings.values() if t not in store]
    click.echo("")
    click.echo(f"{loaded} trees loaded, {len(store.load_errors)} files skipped")
    if store.load_errors or unknown:
        sys.exit(1)


@main.command()
@click.option("--content", "-c", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Content folder (default: bundled starter content)")
@click.option("--player", "-p", default="Traveler", help="Your character's name")
@click.option("--bind", "-b", "binds", multiple=True, metavar="NPC=TREE",
              help="Extra NPC binding; may be repeated")
@click.option("--database", "-d", default=None,
              help="Snapshot database URL; conversations survive restarts when set")
def console(content: Path | None, player: str, binds: tuple, database: str | None):
    """Talk to NPCs locally. Type 'help' for commands, 'quit' to leave."""
    bindings = {}
    for item in binds:
        npc_id, sep, tree_id = item.partition("=")
        if not sep or not npc_id or not tree_id:
            raise click.BadParameter(f"expected NPC=TREE, got {item!r}", param_hint="--bind")
        bindings[npc_id] = tree_id

    asyncio.run(_console(content or BUNDLED_WORLD_DATA, player, bindings, database))


async def _console(content: Path, player_name: str, bindings: dict, database: str | None) -> None:
    from parley.db import create_tables, make_engine, make_session_factory
    from parley.engine.loader import load_npcs_from_yaml
    from parley.engine.systems.context import GameContext
    from parley.engine.systems.dialogue import (
        DialogueCommands,
        DialogueConfig,
        DialogueManager,
        ScriptedTreeProvider,
        SqlConversationStore,
    )
    from parley.engine.systems.router import CommandRouter
    from parley.engine.world import World, WorldGameHooks, WorldPlayer

    world = World()
    load_npcs_from_yaml(world, content)
    world.add_player(
        WorldPlayer(id="player_1", name=player_name, room_id="square"),
        session_id="console",
    )

    ctx = GameContext(world)
    engine = None
    snapshot_store = None
    if database:
        engine = make_engine(database)
        await create_tables(engine)
        snapshot_store = SqlConversationStore(make_session_factory(engine))

    config = DialogueConfig(content_path=str(content), npc_bindings=bindings)
    manager = DialogueManager(ctx, config, snapshot_store=snapshot_store)
    hooks = WorldGameHooks(world)
    manager.register_provider(
        ScriptedTreeProvider(
            ctx=ctx,
            content_path=content,
            bindings=bindings,
            inventory=hooks,
            quests=hooks,
        )
    )
    ctx.dialogue_manager = manager

    router = CommandRouter()
    DialogueCommands(manager, world).register(router)

    await ctx.time_manager.start()
    await manager.initialize()

    npc_names = ", ".join(npc.name for npc in world.get_npcs_in_room("square")) or "nobody"
    click.echo(f"You are {player_name}. Around you: {npc_names}.")

    try:
        while True:
            try:
                line = await asyncio.to_thread(click.prompt, "", prompt_suffix="> ", default="",
                                               show_default=False)
            except (click.exceptions.Abort, EOFError):
                break
            line = line.strip()
            if line.lower() in ("quit", "exit"):
                break
            if line.lower() == "help":
                click.echo(router.get_help())
                continue
            reply = await router.dispatch("console", line)
            if reply:
                click.echo(reply)
    finally:
        await manager.shutdown()
        await ctx.time_manager.stop()
        if engine is not None:
            await engine.dispose()
    click.echo("Farewell.")


@main.group()
def db():
    """Snapshot database commands."""
    pass


@db.command("init")
@click.option("--database", "-d", default=DATABASE_URL, help="Database URL")
def db_init(database: str):
    """Create the conversation snapshot table."""
    from parley.db import create_tables, make_engine

    async def _create():
        engine = make_engine(database)
        try:
            await create_tables(engine)
        finally:
            await engine.dispose()

    asyncio.run(_create())
    click.echo(click.style(f"✅ Tables ready in {database}", fg="green"))


if __name__ == "__main__":
    main()
