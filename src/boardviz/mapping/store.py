"""Persistent store for locally learned mapping overrides."""

import logging
from pathlib import Path

from boardviz.models import MappingDocument, MappingEntry
from boardviz.utils.persistence import PydanticPersistence

logger = logging.getLogger(__name__)


class LearnedMappingStore:
    """
    JSON file of learned mapping entries, upserted by identity key.

    Learned entries override the base definition when the mapping
    table is merged (see MappingTable.merge).
    """

    def __init__(self, path: Path):
        self.path = path
        self._entries: list[MappingEntry] = list(
            PydanticPersistence.load_json_or_default(path, MappingDocument).root
        )

    @property
    def entries(self) -> list[MappingEntry]:
        """Learned entries in file order."""
        return list(self._entries)

    def learn(self, entry: MappingEntry) -> None:
        """
        Add or replace a learned entry and save the store.

        Raises:
            ValueError: If the entry has no identity key to learn it under
        """
        key = entry.identity_key
        if key is None:
            raise ValueError("A learned mapping needs a key or type/ch/code fields")

        for position, existing in enumerate(self._entries):
            if existing.identity_key == key:
                self._entries[position] = entry
                break
        else:
            self._entries.append(entry)

        self.save()
        logger.info(f"Learned mapping {key} -> {entry.target_id}")

    def forget(self, key: str) -> bool:
        """Remove the entry learned under `key`; returns True if one was removed."""
        remaining = [e for e in self._entries if e.identity_key != key]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        self.save()
        logger.info(f"Forgot learned mapping {key}")
        return True

    def save(self) -> None:
        """Write the store to disk."""
        PydanticPersistence.save_json(MappingDocument(self._entries), self.path)
