# pattern_engine/core/service_registry.py

from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from .errors import PatternEngineError, RegistryFrozenError
from .instrumentation import Instrumentation, NULL_INSTRUMENTATION

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Owned registry of shared, lazily created service instances.

    Each named instance is created at most once, under a lock with a
    double-checked fast path. After `freeze()` only names that already exist
    can be read; creating a new one raises RegistryFrozenError.
    """

    def __init__(self, instrumentation: Optional[Instrumentation] = None):
        self.instrumentation = instrumentation or NULL_INSTRUMENTATION
        self._instances: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        with self._lock:
            self._frozen = True

    def get_or_create(self, name: str, factory: Callable[[], Any]) -> Any:
        instance = self._instances.get(name)
        if instance is not None:
            return instance

        with self._lock:
            # Another thread may have won the race while we waited
            if name in self._instances:
                return self._instances[name]
            if self._frozen:
                raise RegistryFrozenError(f"Cannot create '{name}' after the registry was frozen",
                                          pattern=name)

            logger.debug(f"Creating shared instance '{name}'")
            try:
                instance = factory()
            except Exception as e:
                logger.error(f"Failed to create shared instance '{name}': {str(e)}")
                raise PatternEngineError(f"Failed to create shared instance: {e}", pattern=name,
                                         context="initialization") from e

            self._instances[name] = instance
            count = len(self._instances)

        self.instrumentation.event(f"singleton.created.{name}", service=name)
        self.instrumentation.gauge("singleton.instances", count)
        logger.info(f"Shared instance '{name}' created")
        return instance

    def get(self, name: str) -> Optional[Any]:
        return self._instances.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._instances)

    def __contains__(self, name: str) -> bool:
        return name in self._instances

    def reset(self, name: str) -> bool:
        """Drop a shared instance (mainly for tests); refused once frozen"""
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"Cannot reset '{name}' after the registry was frozen",
                                          pattern=name)
            removed = self._instances.pop(name, None) is not None
        if removed:
            logger.warning(f"Shared instance '{name}' reset")
        return removed
