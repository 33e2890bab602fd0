# backend/parley/engine/systems/router.py
"""
CommandRouter: Command routing for player input lines.

Provides:
- register_handler() / @register() for handlers with names and aliases
- Unified command dispatch (sync or async handlers)
- Command metadata and help system
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# (session_id, args, raw_line) -> text, None, or an awaitable of either
CommandHandler = Callable[[str, List[str], str], Any]

UNKNOWN_COMMAND = "You mutter something unintelligible. (Unknown command)"
COMMAND_FAILED = "Something went wrong executing that command."


@dataclass
class CommandMeta:
    """Metadata for a registered command."""
    name: str  # Primary command name
    names: List[str]  # All primary names
    aliases: Dict[str, List[str]]  # Map of name -> alias list
    handler: CommandHandler  # The actual handler function
    category: str  # Command category (dialogue, misc, ...)
    description: str  # Human-readable description
    usage: str  # Usage string (e.g., "talk <npc>")


class CommandRouter:
    """
    Routes player commands to handlers.

    Supports:
    - Multiple names and aliases for commands
    - Command categorization and help
    """

    def __init__(self) -> None:
        self.commands: Dict[str, CommandMeta] = {}  # name -> meta
        self.categories: Dict[str, List[str]] = {}  # category -> [command names]

    def register(
        self,
        names: List[str],
        aliases: Optional[Dict[str, List[str]]] = None,
        category: str = "misc",
        description: str = "",
        usage: str = "",
    ) -> Callable:
        """
        Decorator to register a command handler.

        @router.register(names=["talk"], aliases={"talk": ["t"]})
        async def handle_talk(session_id, args, raw):
            ...
        """
        def decorator(handler: CommandHandler) -> CommandHandler:
            self.register_handler(
                primary_name=names[0],
                handler=handler,
                names=names,
                aliases=aliases,
                category=category,
                description=description,
                usage=usage,
            )
            return handler

        return decorator

    def register_handler(
        self,
        primary_name: str,
        handler: CommandHandler,
        names: Optional[List[str]] = None,
        aliases: Optional[Dict[str, List[str]]] = None,
        category: str = "misc",
        description: str = "",
        usage: str = "",
    ) -> None:
        """
        Register a command handler directly (without decorator).

        Args:
            primary_name: Primary command name
            handler: Handler function
            names: List of command name variants (defaults to [primary_name])
            aliases: Dict of aliases
            category: Command category
            description: Description text
            usage: Usage text
        """
        if names is None:
            names = [primary_name]

        meta = CommandMeta(
            name=primary_name,
            names=names,
            aliases=aliases or {},
            handler=handler,
            category=category,
            description=description,
            usage=usage,
        )
        for name in names:
            self.commands[name] = meta
        for alias_list in (aliases or {}).values():
            for alias in alias_list:
                self.commands[alias] = meta

        if category not in self.categories:
            self.categories[category] = []
        if primary_name not in self.categories[category]:
            self.categories[category].append(primary_name)

    async def dispatch(self, session_id: str, raw_command: str) -> str | None:
        """
        Parse and dispatch a command line to its handler.

        Args:
            session_id: The session the line arrived on
            raw_command: Raw command string (e.g., "talk guard")

        Returns:
            Text to send back, or None
        """
        raw = raw_command.strip()
        if not raw:
            return None

        parts = raw.split()
        cmd_name = parts[0].lower()
        args = parts[1:]

        meta = self.commands.get(cmd_name)
        if meta is None:
            return UNKNOWN_COMMAND

        try:
            result = meta.handler(session_id, args, raw)
            if hasattr(result, "__await__"):
                return await result
            return result
        except Exception:
            logger.exception("Command %s failed for session %s", cmd_name, session_id)
            return COMMAND_FAILED

    def get_help(self, category: Optional[str] = None) -> str:
        """
        Get help text for commands.

        Args:
            category: Specific category to list, or None for all
        """
        lines = ["═══ Available Commands ═══", ""]

        cats = [category] if category else sorted(self.categories.keys())

        for cat in cats:
            if cat not in self.categories:
                continue

            lines.append(f"**{cat.title()}**:")
            for cmd_name in sorted(self.categories[cat]):
                meta = self.commands[cmd_name]
                usage = f"{cmd_name} {meta.usage}" if meta.usage else cmd_name
                aliases_str = ""
                if cmd_name in meta.aliases:
                    aliases_str = f" (aliases: {', '.join(meta.aliases[cmd_name])})"
                lines.append(f"  {usage}{aliases_str}")
                if meta.description:
                    lines.append(f"    {meta.description}")
            lines.append("")

        return "\n".join(lines)
