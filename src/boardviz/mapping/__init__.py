"""Mapping table, resolver and learned-override store."""

from .resolver import MappingResolver
from .store import LearnedMappingStore
from .table import MappingTable, load_mapping_file

__all__ = ["LearnedMappingStore", "MappingResolver", "MappingTable", "load_mapping_file"]
