"""Generic utility modules for boardviz.

- observer: thread-safe observer list
- persistence: atomic JSON load/save for pydantic models
"""

from .observer import ObserverManager
from .persistence import PydanticPersistence

__all__ = ["ObserverManager", "PydanticPersistence"]
