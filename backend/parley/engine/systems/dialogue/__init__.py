# backend/parley/engine/systems/dialogue/__init__.py
"""
NPC conversation engine.

- DialogueTreeStore / NPC bindings: loads and validates tree content
- ConditionEvaluator, ActionExecutor, resolve(): rule/effect/template layer
- DialogueProvider + ScriptedTreeProvider: conversation strategies
- DialogueManager: the authoritative conversation table and its policies
- DialogueCommands: talk / converse / respond / dialogue
"""

from .actions import ActionExecutor, InventoryPort, LoggingGameHooks, QuestPort
from .commands import DialogueCommands, render_response
from .conditions import ConditionEvaluator, compare_values
from .errors import (
    CapacityError,
    ConfigurationError,
    ConversationTimeoutError,
    DialogueError,
    NotFoundError,
    OwnershipError,
)
from .manager import DialogueConfig, DialogueManager
from .persistence import ConversationSnapshotStore, MemorySnapshotStore, SqlConversationStore
from .providers import BaseDialogueProvider, DialogueProvider
from .scripted import ScriptedTreeProvider
from .store import DialogueTreeStore, NpcBindingRegistry
from .types import (
    ActionType,
    ConditionOperator,
    ConditionType,
    ConversationState,
    DialogueAction,
    DialogueChoice,
    DialogueCondition,
    DialogueEventTypes,
    DialogueNode,
    DialogueResponse,
    DialogueTree,
    ProviderKind,
    VariableContext,
)
from .variables import resolve

__all__ = [
    "ActionExecutor",
    "ActionType",
    "BaseDialogueProvider",
    "CapacityError",
    "ConditionEvaluator",
    "ConditionOperator",
    "ConditionType",
    "ConfigurationError",
    "ConversationSnapshotStore",
    "ConversationState",
    "ConversationTimeoutError",
    "DialogueAction",
    "DialogueChoice",
    "DialogueCommands",
    "DialogueCondition",
    "DialogueConfig",
    "DialogueError",
    "DialogueEventTypes",
    "DialogueManager",
    "DialogueNode",
    "DialogueProvider",
    "DialogueResponse",
    "DialogueTree",
    "DialogueTreeStore",
    "InventoryPort",
    "LoggingGameHooks",
    "MemorySnapshotStore",
    "NotFoundError",
    "NpcBindingRegistry",
    "OwnershipError",
    "ProviderKind",
    "QuestPort",
    "ScriptedTreeProvider",
    "SqlConversationStore",
    "VariableContext",
    "compare_values",
    "render_response",
    "resolve",
]
