"""
Parley - NPC conversation engine for multiplayer text worlds.
"""

__version__ = "0.3.0"
