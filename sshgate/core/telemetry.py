"""
Telemetry and event collection
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Any, Optional


@dataclass
class Event:
    """Event record"""
    name: str
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)


class Telemetry:
    """Telemetry collector, safe to feed from tunnel and request threads"""
    
    def __init__(self):
        self._events: list[Event] = []
        self._lock = threading.Lock()
    
    def record_event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Record an event"""
        with self._lock:
            self._events.append(Event(name=name, metadata=metadata or {}))
    
    def get_events(self, name: Optional[str] = None) -> list[Event]:
        """Get recorded events, optionally only those with the given name"""
        with self._lock:
            if name is None:
                return self._events.copy()
            return [e for e in self._events if e.name == name]
    
    def clear(self) -> None:
        """Clear all events"""
        with self._lock:
            self._events.clear()


# Global telemetry instance
_telemetry = Telemetry()


def get_telemetry() -> Telemetry:
    """Get global telemetry instance"""
    return _telemetry
