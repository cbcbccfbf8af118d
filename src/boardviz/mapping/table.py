"""Mapping table: base definitions merged with learned overrides."""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from boardviz.models import MappingDocument, MappingEntry
from boardviz.utils.persistence import PydanticPersistence

logger = logging.getLogger(__name__)


def load_mapping_file(path: Path) -> list[MappingEntry]:
    """
    Load a mapping definition file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigFileInvalidError: If the file is not valid JSON
        ConfigValidationError: If an entry is invalid
    """
    document = PydanticPersistence.load_json(path, MappingDocument)
    logger.info(f"Loaded {len(document.root)} mapping entries from {path}")
    return list(document.root)


class MappingTable:
    """
    Ordered collection of mapping entries with at most one entry per key.

    Entries are grouped by their identity key: the declared key, or one
    synthesized from kind/channel/code. Entries with neither stay ungrouped
    and keep their position.

    Example:
        ```python
        table = MappingTable.merge(base_entries, learned_entries)
        resolver = MappingResolver(table)
        ```
    """

    def __init__(self, entries: Iterable[MappingEntry] = ()):
        self._entries: list[MappingEntry] = []
        self._index: dict[str, int] = {}
        for entry in entries:
            self.insert(entry)

    @classmethod
    def merge(
        cls, base: Iterable[MappingEntry], learned: Iterable[MappingEntry] = ()
    ) -> "MappingTable":
        """
        Merge base entries with learned overrides.

        Base entries are inserted by key. A learned entry sharing a key
        replaces the target and animation of the base entry, and inherits
        the base display name when it has none of its own. Learned entries
        with no matching key are appended.
        """
        table = cls(base)
        overridden = 0
        for entry in learned:
            if table.override(entry):
                overridden += 1
        logger.debug(f"Merged mapping table: {len(table)} entries, {overridden} learned overrides")
        return table

    @classmethod
    def from_files(cls, base_path: Path | None, learned_path: Path | None = None) -> "MappingTable":
        """Load and merge base and learned mapping files (missing learned file is fine)."""
        base = load_mapping_file(base_path) if base_path else []
        learned: list[MappingEntry] = []
        if learned_path is not None and learned_path.exists():
            learned = load_mapping_file(learned_path)
        return cls.merge(base, learned)

    def insert(self, entry: MappingEntry) -> None:
        """Insert an entry; an entry with the same key is replaced in place."""
        key = entry.identity_key
        if key is None:
            self._entries.append(entry)
            return
        if key in self._index:
            logger.debug(f"Duplicate mapping key {key}, later entry wins")
            self._entries[self._index[key]] = entry
            return
        self._index[key] = len(self._entries)
        self._entries.append(entry)

    def override(self, learned: MappingEntry) -> bool:
        """
        Apply a learned entry on top of the table.

        Returns:
            True if an existing entry was overridden, False if it was inserted
        """
        key = learned.identity_key
        if key is None or key not in self._index:
            self.insert(learned)
            return False

        position = self._index[key]
        base = self._entries[position]
        self._entries[position] = base.model_copy(
            update={
                "target_id": learned.target_id,
                "animation": learned.animation,
                "display_name": learned.display_name or base.display_name,
            }
        )
        return True

    def get(self, key: str) -> MappingEntry | None:
        """Entry grouped under an identity key."""
        position = self._index.get(key)
        return self._entries[position] if position is not None else None

    @property
    def entries(self) -> tuple[MappingEntry, ...]:
        """All entries in table order."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(tuple(self._entries))
