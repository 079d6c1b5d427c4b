# pattern_engine/core/instrumentation.py

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import threading

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Dict[str, Any]], None]


class MetricsCollector:
    """Thread-safe named counters and gauges"""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self._counters[name] += amount

    def gauge(self, name: str, value: float):
        with self._lock:
            self._gauges[name] = value

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> Optional[float]:
        with self._lock:
            return self._gauges.get(name)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'counters': dict(self._counters),
                'gauges': dict(self._gauges),
            }


class Monitor:
    """Records named events and forwards them to subscribers"""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[Tuple[str, Dict[str, Any]]] = []
        self._subscribers: List[EventCallback] = []

    def subscribe(self, callback: EventCallback):
        with self._lock:
            self._subscribers.append(callback)

    def record_event(self, name: str, **data):
        with self._lock:
            self._events.append((name, data))
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(name, data)
            except Exception as e:
                # A broken subscriber must never affect the caller
                logger.error(f"Monitoring callback failed for event {name}: {str(e)}")

    @property
    def events(self) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return list(self._events)

    def event_names(self) -> List[str]:
        return [name for name, _ in self.events]


@dataclass
class Instrumentation:
    """Optional observability collaborators injected into detector and transformer.

    Either member may be None, in which case the corresponding calls are
    dropped. Detection results never depend on what is attached here.
    """
    metrics: Optional[MetricsCollector] = None
    monitor: Optional[Monitor] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def enabled(cls) -> 'Instrumentation':
        return cls(metrics=MetricsCollector(), monitor=Monitor())

    def count(self, name: str, amount: int = 1):
        if self.metrics is not None:
            self.metrics.increment(name, amount)

    def gauge(self, name: str, value: float):
        if self.metrics is not None:
            self.metrics.gauge(name, value)

    def event(self, name: str, **data):
        if self.monitor is not None:
            self.monitor.record_event(name, **data)


NULL_INSTRUMENTATION = Instrumentation()
