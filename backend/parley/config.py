"""
Server configuration.

Values come from environment variables (PARLEY_*) with sensible defaults
for local development.
"""

import logging
import os

# Logging
LOG_LEVEL = os.getenv("PARLEY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Database settings (conversation snapshots)
DATABASE_URL = os.getenv("PARLEY_DATABASE_URL", "sqlite+aiosqlite:///./parley.db")

# Content directories
WORLD_DATA_DIR = os.getenv("PARLEY_WORLD_DATA_DIR", "world_data")

# Dialogue settings
DIALOGUE_ENABLE_PERSISTENCE = os.getenv("PARLEY_DIALOGUE_PERSISTENCE", "1") not in ("0", "false", "no")
DIALOGUE_MAX_CONVERSATIONS = int(os.getenv("PARLEY_DIALOGUE_MAX_CONVERSATIONS", "5"))
DIALOGUE_TIMEOUT_MINUTES = float(os.getenv("PARLEY_DIALOGUE_TIMEOUT_MINUTES", "30"))
DIALOGUE_AUTOSAVE_SECONDS = float(os.getenv("PARLEY_DIALOGUE_AUTOSAVE_SECONDS", "300"))
DIALOGUE_SWEEP_SECONDS = float(os.getenv("PARLEY_DIALOGUE_SWEEP_SECONDS", "0"))
DIALOGUE_DEFAULT_PROVIDER = os.getenv("PARLEY_DIALOGUE_DEFAULT_PROVIDER", "canned-branching")


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for the server and the CLI."""
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format=LOG_FORMAT,
    )
