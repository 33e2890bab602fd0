"""
Template variable resolution for NPC messages and choice text.

``{{player.level}}`` is replaced by walking the dotted path through the
VariableContext. Anything that cannot be resolved is left exactly as
written so broken templates stay visible in-game.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping, Sequence
from typing import Any

PLACEHOLDER = re.compile(r"\{\{([^{}]*)\}\}")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, MISSING)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            return current[int(segment)]
        except (ValueError, IndexError):
            return MISSING
    if dataclasses.is_dataclass(current) and not isinstance(current, type):
        names = {f.name for f in dataclasses.fields(current)}
        if segment in names:
            return getattr(current, segment)
    return MISSING


def lookup(root: Any, path: str) -> Any:
    """
    Walk ``path`` (dot separated) from ``root``.

    Mappings are indexed by key, sequences by integer index, dataclass
    records by declared field name only. Returns MISSING when any
    segment cannot be followed.
    """
    path = path.strip()
    if not path:
        return MISSING
    current = root
    for segment in path.split("."):
        current = _step(current, segment.strip())
        if current is MISSING:
            return MISSING
    return current


def render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve(text: str, context: Any) -> str:
    """Substitute every ``{{path}}`` in text; unresolved placeholders are kept."""
    if not text or "{{" not in text:
        return text

    def _sub(match: re.Match) -> str:
        value = lookup(context, match.group(1))
        if value is MISSING or value is None:
            return match.group(0)
        return render_value(value)

    return PLACEHOLDER.sub(_sub, text)
