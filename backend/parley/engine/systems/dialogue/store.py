"""
DialogueTreeStore and NpcBindingRegistry.

Trees live one per file under ``<content>/dialogue/`` as YAML or JSON.
Files whose name starts with ``_`` are not trees; ``_bindings.yaml`` (or
``.json``) holds an ``npc_id: tree_id`` mapping.

A malformed file is logged and skipped; loading always continues.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError, NotFoundError
from .types import DialogueTree

logger = logging.getLogger(__name__)

TREE_SUFFIXES = (".yaml", ".yml", ".json")
BINDINGS_STEM = "_bindings"


def _read_document(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


class DialogueTreeStore:
    """
    Validated, immutable dialogue trees keyed by id.

    Attributes:
        load_errors: (file name, reason) for every file skipped by the last load()
        bindings: NPC bindings read from the content folder by the last load()
    """

    def __init__(self) -> None:
        self._trees: Dict[str, DialogueTree] = {}
        self.load_errors: List[Tuple[str, str]] = []
        self.bindings: Dict[str, str] = {}

    # ---------- Loading ----------

    def load(self, content_path: str | Path) -> int:
        """
        Load every tree under ``<content_path>/dialogue``.

        Returns:
            Number of trees loaded by this call.
        """
        self.load_errors = []
        self.bindings = {}
        dialogue_dir = Path(content_path) / "dialogue"
        if not dialogue_dir.is_dir():
            logger.warning("Dialogue content folder not found: %s", dialogue_dir)
            return 0

        loaded = 0
        for path in sorted(dialogue_dir.iterdir()):
            if not path.is_file() or path.suffix not in TREE_SUFFIXES:
                continue
            if path.name.startswith("_"):
                if path.stem == BINDINGS_STEM:
                    self._load_bindings(path)
                continue
            try:
                tree = self.validate(_read_document(path))
            except (ConfigurationError, OSError, UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
                logger.error("Skipping dialogue file %s: %s", path.name, e)
                self.load_errors.append((path.name, str(e)))
                continue
            if tree.id in self._trees:
                logger.warning("Dialogue tree %s redefined by %s", tree.id, path.name)
            self._trees[tree.id] = tree
            loaded += 1

        logger.info("Loaded %d dialogue trees from %s", loaded, dialogue_dir)
        return loaded

    def _load_bindings(self, path: Path) -> None:
        try:
            data = _read_document(path) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error("Skipping bindings file %s: %s", path.name, e)
            self.load_errors.append((path.name, str(e)))
            return
        if not isinstance(data, Mapping):
            logger.error("Bindings file %s must map npc ids to tree ids", path.name)
            self.load_errors.append((path.name, "expected a mapping"))
            return
        self.bindings.update({str(npc): str(tree) for npc, tree in data.items()})

    # ---------- Validation ----------

    @staticmethod
    def validate(tree: DialogueTree | Mapping[str, Any]) -> DialogueTree:
        """
        Check a tree (model or raw document) and return the validated model.

        Raises:
            ConfigurationError: on any structural problem.
        """
        if isinstance(tree, DialogueTree):
            tree = tree.model_dump(by_alias=True)
        if not isinstance(tree, Mapping):
            raise ConfigurationError(f"dialogue tree must be a mapping, got {type(tree).__name__}")
        try:
            return DialogueTree.model_validate(tree)
        except ValidationError as e:
            raise ConfigurationError(f"invalid dialogue tree {tree.get('id')!r}: {e}") from e

    # ---------- Access ----------

    def get(self, tree_id: str) -> DialogueTree | None:
        return self._trees.get(tree_id)

    def get_all(self) -> List[DialogueTree]:
        return list(self._trees.values())

    def upsert(self, tree: DialogueTree | Mapping[str, Any]) -> DialogueTree:
        """Validate and insert or replace a tree."""
        validated = self.validate(tree)
        self._trees[validated.id] = validated
        return validated

    def __contains__(self, tree_id: object) -> bool:
        return tree_id in self._trees

    def __len__(self) -> int:
        return len(self._trees)

    def __iter__(self) -> Iterator[DialogueTree]:
        return iter(list(self._trees.values()))


class NpcBindingRegistry:
    """Which tree each NPC speaks. An NPC is handled iff it has a binding."""

    def __init__(self, store: DialogueTreeStore) -> None:
        self.store = store
        self._bindings: Dict[str, str] = {}

    def can_handle(self, npc_id: str) -> bool:
        return npc_id in self._bindings

    def bind(self, npc_id: str, tree_id: str) -> None:
        if tree_id not in self.store:
            raise NotFoundError(f"Unknown dialogue tree: {tree_id}")
        self._bindings[npc_id] = tree_id
        logger.debug("Bound NPC %s to dialogue tree %s", npc_id, tree_id)

    def unbind(self, npc_id: str) -> bool:
        return self._bindings.pop(npc_id, None) is not None

    def tree_for(self, npc_id: str) -> str | None:
        return self._bindings.get(npc_id)

    def bindings(self) -> Dict[str, str]:
        return dict(self._bindings)

    def load_mappings(self, mapping: Mapping[str, str]) -> int:
        """Bind many NPCs at once; unknown trees are logged and skipped."""
        bound = 0
        for npc_id, tree_id in mapping.items():
            try:
                self.bind(npc_id, tree_id)
            except NotFoundError:
                logger.warning("Cannot bind NPC %s: unknown dialogue tree %s", npc_id, tree_id)
                continue
            bound += 1
        return bound
