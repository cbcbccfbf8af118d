"""Resolve canonical events to mapping entries."""

import logging

from boardviz.models import CanonicalEvent, EventKind, MappingEntry

from .table import MappingTable

logger = logging.getLogger(__name__)


class MappingResolver:
    """
    Finds the mapping entry for a canonical event.

    Search order:
    1. Exact key match among entries that declare a key
    2. Structural match (kind, channel, code) among keyless entries
    3. For a note-off with no entry of its own, the entry of the matching
       note-on, so pads authored once react to both press and release
    """

    def __init__(self, table: MappingTable | None = None):
        self._keyed: dict[str, MappingEntry] = {}
        self._keyless: tuple[MappingEntry, ...] = ()
        self.load(table if table is not None else MappingTable())

    def load(self, table: MappingTable) -> None:
        """Swap in a new mapping table."""
        keyed = {entry.key: entry for entry in table if entry.key is not None}
        keyless = tuple(entry for entry in table if entry.key is None)
        self._keyed, self._keyless = keyed, keyless
        logger.info(f"Resolver loaded {len(keyed)} keyed and {len(keyless)} structural entries")

    def lookup(self, event: CanonicalEvent) -> MappingEntry | None:
        """
        Find the entry bound to an event.

        Returns:
            The matching entry, or None if the event is unmapped
        """
        entry = self._match(event)
        if entry is None and event.kind is EventKind.NOTE_OFF:
            entry = self._match(event.model_copy(update={"kind": EventKind.NOTE_ON}))
        return entry

    def _match(self, event: CanonicalEvent) -> MappingEntry | None:
        entry = self._keyed.get(event.key)
        if entry is not None:
            return entry

        for candidate in self._keyless:
            if candidate.matches_fields(event):
                return candidate
        return None

    def __len__(self) -> int:
        return len(self._keyed) + len(self._keyless)
