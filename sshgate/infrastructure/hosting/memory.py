"""
In-process hosting environment

Issues :class:`HostSession` objects and delivers created/destroyed
notifications to registered listeners, the way a web framework's session
container would. Useful for embedding the registry in a single process and
for tests.
"""
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ...core.interfaces import HostSession, SessionListener
from ...core.logging import get_logger

logger = get_logger(__name__)


class MemoryHostSession(HostSession):
    """Session handle issued by :class:`InMemorySessionHost`"""
    
    def __init__(self, host: "InMemorySessionHost", session_id: str):
        self._host = host
        self._id = session_id
        self._created_at = datetime.now(timezone.utc)
        self._valid = True
        self._lock = threading.Lock()
    
    @property
    def id(self) -> str:
        return self._id
    
    @property
    def created_at(self) -> datetime:
        return self._created_at
    
    def is_valid(self) -> bool:
        return self._valid
    
    def invalidate(self) -> None:
        with self._lock:
            if not self._valid:
                return
            self._valid = False
        self._host._destroyed(self)
    
    def __repr__(self) -> str:
        return f"MemoryHostSession({self._id}, valid={self._valid})"


class InMemorySessionHost:
    """Creates sessions and notifies listeners of their lifecycle"""
    
    def __init__(self, listeners: Optional[List[SessionListener]] = None):
        self._listeners: List[SessionListener] = list(listeners or [])
        self._sessions: Dict[str, MemoryHostSession] = {}
        self._lock = threading.Lock()
    
    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)
    
    def create_session(self, session_id: Optional[str] = None) -> MemoryHostSession:
        """Open a new session and deliver the created notification"""
        host_session = MemoryHostSession(self, session_id or uuid.uuid4().hex)
        with self._lock:
            self._sessions[host_session.id] = host_session
        for listener in self._listeners:
            listener.session_created(host_session)
        return host_session
    
    def get_session(self, session_id: str) -> Optional[MemoryHostSession]:
        with self._lock:
            return self._sessions.get(session_id)
    
    def invalidate_all(self) -> None:
        """Invalidate every open session (e.g. on shutdown)"""
        with self._lock:
            sessions = list(self._sessions.values())
        for host_session in sessions:
            host_session.invalidate()
    
    def _destroyed(self, host_session: MemoryHostSession) -> None:
        with self._lock:
            self._sessions.pop(host_session.id, None)
        for listener in self._listeners:
            try:
                listener.session_destroyed(host_session)
            except Exception as e:
                logger.error(f"Session listener failed for {host_session.id}: {e}", exc_info=True)
