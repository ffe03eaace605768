"""Memory construction: hierarchical chunk builder and card builders."""

from omnimemory.memory.builder import HierarchicalMemoryBuilder
from omnimemory.memory.cards import EntityCardBuilder, PersonaCardBuilder, SituationCardBuilder

__all__ = [
    "EntityCardBuilder",
    "HierarchicalMemoryBuilder",
    "PersonaCardBuilder",
    "SituationCardBuilder",
]
