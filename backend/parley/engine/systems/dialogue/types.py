"""
Dialogue data model.

Provides:
- Closed vocabularies for conditions, actions, and provider kinds
- Immutable tree definitions (DialogueTree, DialogueNode, DialogueChoice, ...)
  validated with pydantic; documents use camelCase keys, snake_case works too
- Runtime records (ConversationState, VariableContext, DialogueResponse)
  as plain dataclasses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time; the default clock everywhere."""
    return datetime.now(timezone.utc)


# ---------- Vocabularies ----------


class ConditionType(str, Enum):
    VARIABLE = "variable"
    FLAG = "flag"
    ITEM = "item"
    QUEST = "quest"
    STAT = "stat"
    SKILL = "skill"
    LEVEL = "level"
    TIME = "time"
    RANDOM = "random"
    CUSTOM = "custom"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    HAS = "has"
    NOT_HAS = "not_has"
    IN = "in"
    NOT_IN = "not_in"


class ActionType(str, Enum):
    SET_VARIABLE = "set_variable"
    GIVE_ITEM = "give_item"
    TAKE_ITEM = "take_item"
    ADD_FLAG = "add_flag"
    REMOVE_FLAG = "remove_flag"
    START_QUEST = "start_quest"
    COMPLETE_QUEST = "complete_quest"
    CUSTOM = "custom"


class ProviderKind(str, Enum):
    """Conversation strategy families."""

    CANNED = "canned"
    AI = "ai"
    CUSTOM = "custom"


class DialogueEventTypes:
    """Event names emitted by the dialogue system."""

    CONVERSATION_STARTED = "conversation.started"
    CONVERSATION_CONTINUED = "conversation.continued"
    CONVERSATION_ENDED = "conversation.ended"
    NODE_REACHED = "dialogue.node.reached"
    CHOICE_MADE = "dialogue.choice.made"
    ACTION_EXECUTED = "dialogue.action.executed"


# ---------- Tree definitions (immutable, loaded from content) ----------


class _ContentModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _as_id(value: Any) -> Any:
    # YAML turns `id: 1` into an int; ids are strings everywhere else
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


ContentId = Annotated[str, BeforeValidator(_as_id)]


def iso_dates(value: Any) -> Any:
    """Replace date/datetime values (at any depth) with ISO text."""
    # YAML reads bare timestamps as date/datetime objects
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: iso_dates(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [iso_dates(item) for item in value]
    return value


Variables = Annotated[Dict[str, Any], BeforeValidator(iso_dates)]


class DialogueCondition(_ContentModel):
    """A predicate over the variable context."""

    type: ConditionType
    operator: ConditionOperator = ConditionOperator.EQUALS
    target: str = ""
    value: Any = None
    negate: bool = False


class DialogueAction(_ContentModel):
    """An effect; gated by its own optional condition."""

    type: ActionType
    target: Optional[str] = None
    value: Annotated[Any, BeforeValidator(iso_dates)] = None
    condition: Optional[DialogueCondition] = None


class DialogueChoice(_ContentModel):
    """A selectable player response."""

    id: ContentId
    text: str
    condition: Optional[DialogueCondition] = None
    actions: List[DialogueAction] = []
    next_node_id: Optional[ContentId] = None


class DialogueNode(_ContentModel):
    """One NPC turn.

    ``conditions`` is part of the document format but nothing evaluates it;
    only choice conditions and per-action conditions gate behavior.
    """

    id: ContentId
    npc_message: str
    choices: List[DialogueChoice] = []
    conditions: List[DialogueCondition] = []
    actions: List[DialogueAction] = []
    is_end: bool = False
    next_node_id: Optional[ContentId] = None
    variables: Variables = {}


class TreeMetadata(_ContentModel):
    author: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    tags: List[str] = []

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _as_iso(cls, value: Any) -> Any:
        return iso_dates(value)


class DialogueTree(_ContentModel):
    """An author-defined node graph for one conversation topic."""

    id: ContentId
    name: str
    description: Optional[str] = None
    version: ContentId = "1.0"
    start_node_id: ContentId
    nodes: Dict[str, DialogueNode]
    variables: Variables = {}
    metadata: TreeMetadata = TreeMetadata()

    @field_validator("nodes", mode="before")
    @classmethod
    def _coerce_node_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {_as_id(key): node for key, node in value.items()}
        return value

    @model_validator(mode="after")
    def _check_structure(self) -> "DialogueTree":
        if not self.id.strip():
            raise ValueError("tree id must not be empty")
        if not self.name.strip():
            raise ValueError(f"tree {self.id!r} has an empty name")
        if not self.start_node_id.strip():
            raise ValueError(f"tree {self.id!r} has an empty start node id")
        if not self.nodes:
            raise ValueError(f"tree {self.id!r} has no nodes")
        if self.start_node_id not in self.nodes:
            raise ValueError(
                f"tree {self.id!r}: start node {self.start_node_id!r} does not exist"
            )
        for key, node in self.nodes.items():
            if node.id != key:
                raise ValueError(
                    f"tree {self.id!r}: node key {key!r} does not match node id {node.id!r}"
                )
        return self


# ---------- Runtime records ----------


@dataclass
class ConversationState:
    """
    Mutable state of one conversation.

    ``player_id`` is fixed once set; reassigning it raises AttributeError.
    """

    conversation_id: str
    player_id: str
    npc_id: str
    provider_id: str
    current_node_id: str | None = None
    tree_id: str | None = None
    variables: Dict[str, Any] = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)
    started: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    is_active: bool = True
    turn_count: int = 0

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "player_id" and "player_id" in self.__dict__:
            raise AttributeError("player_id cannot change after a conversation is created")
        super().__setattr__(name, value)

    def copy(self) -> "ConversationState":
        """Working copy with its own variables and flags containers."""
        return ConversationState(
            conversation_id=self.conversation_id,
            player_id=self.player_id,
            npc_id=self.npc_id,
            provider_id=self.provider_id,
            current_node_id=self.current_node_id,
            tree_id=self.tree_id,
            variables=dict(self.variables),
            flags=list(self.flags),
            started=self.started,
            last_activity=self.last_activity,
            is_active=self.is_active,
            turn_count=self.turn_count,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly snapshot."""
        return {
            "conversation_id": self.conversation_id,
            "player_id": self.player_id,
            "npc_id": self.npc_id,
            "provider_id": self.provider_id,
            "current_node_id": self.current_node_id,
            "tree_id": self.tree_id,
            "variables": iso_dates(self.variables),
            "flags": list(self.flags),
            "started": self.started.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "is_active": self.is_active,
            "turn_count": self.turn_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationState":
        return cls(
            conversation_id=data["conversation_id"],
            player_id=data["player_id"],
            npc_id=data["npc_id"],
            provider_id=data["provider_id"],
            current_node_id=data.get("current_node_id"),
            tree_id=data.get("tree_id"),
            variables=dict(data.get("variables") or {}),
            flags=list(data.get("flags") or []),
            started=datetime.fromisoformat(data["started"]),
            last_activity=datetime.fromisoformat(data["last_activity"]),
            is_active=data.get("is_active", True),
            turn_count=data.get("turn_count", 0),
        )


@dataclass
class PlayerContext:
    stats: Dict[str, Any] = field(default_factory=dict)
    inventory: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)  # live reference to the player's list
    quests: Dict[str, Any] = field(default_factory=dict)
    skills: Dict[str, float] = field(default_factory=dict)
    level: int = 1
    currency: Dict[str, int] = field(default_factory=dict)
    faction_relations: Dict[str, float] = field(default_factory=dict)
    id: str = ""
    name: str = ""


@dataclass
class NpcContext:
    id: str = ""
    name: str = ""
    flags: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationContext:
    variables: Dict[str, Any] = field(default_factory=dict)  # live reference to the state's dict
    turn_count: int = 0
    started: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    id: str = ""


@dataclass
class WorldContext:
    time: datetime = field(default_factory=utcnow)
    global_flags: Dict[str, Any] = field(default_factory=dict)
    faction_relations: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass
class VariableContext:
    """Per-call snapshot used for template resolution and rule evaluation."""

    player: PlayerContext
    npc: NpcContext
    conversation: ConversationContext
    world: WorldContext

    def get(self, path: str, default: Any = None) -> Any:
        """Walk a dotted path (``player.stats.strength``)."""
        from .variables import MISSING, lookup

        value = lookup(self, path)
        return default if value is MISSING else value


@dataclass
class DialogueResponse:
    """What a provider hands back for one start/continue call."""

    conversation_id: str
    message: str
    is_complete: bool
    state: ConversationState
    choices: Optional[List[DialogueChoice]] = None
    variables: Dict[str, Any] = field(default_factory=dict)
    actions: List[DialogueAction] = field(default_factory=list)
