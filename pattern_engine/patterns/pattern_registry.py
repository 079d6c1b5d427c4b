# pattern_engine/patterns/pattern_registry.py

from typing import Dict, Iterable, Iterator, List, Optional
import logging
import threading

from ..core.errors import DuplicatePatternError, RegistryFrozenError
from .pattern import PatternDefinition

logger = logging.getLogger(__name__)


class PatternRegistry:
    """Ordered registry of pattern definitions.

    Writes happen during setup from a single thread. Once `freeze()` has
    been called the registry is read-only and may be shared between worker
    threads without locking.
    """

    def __init__(self, definitions: Optional[Iterable[PatternDefinition]] = None):
        self._definitions: Dict[str, PatternDefinition] = {}
        self._write_lock = threading.Lock()
        self._frozen = False
        for definition in definitions or ():
            self.register(definition)

    def register(self, definition: PatternDefinition, replace: bool = False) -> 'PatternRegistry':
        with self._write_lock:
            if self._frozen:
                raise RegistryFrozenError("Cannot register definitions after detection has started",
                                          pattern=definition.name)
            if definition.name in self._definitions and not replace:
                raise DuplicatePatternError("Pattern already registered", pattern=definition.name)
            self._definitions[definition.name] = definition
        logger.debug(f"Registered pattern definition: {definition.name}")
        return self

    def freeze(self):
        if not self._frozen:
            self._frozen = True
            logger.debug(f"Pattern registry frozen with {len(self._definitions)} definitions")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[PatternDefinition]:
        return self._definitions.get(name)

    def names(self) -> List[str]:
        return list(self._definitions)

    def definitions(self) -> List[PatternDefinition]:
        return list(self._definitions.values())

    def __iter__(self) -> Iterator[PatternDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: str) -> bool:
        return name in self._definitions
