"""
Process-wide registry of live user sessions

The hosting environment notifies the registry when sessions are created and
destroyed. Destroying a session releases everything it owns: its tunnels are
stopped and its remote-desktop sessions are handed to the external manager
to be closed, before the entry is removed.
"""
import threading
from typing import Dict, Optional, Set, Union

from ...core.exceptions import NoSuchSessionError, SessionInvalidatedError
from ...core.interfaces import HostSession, RemoteSessionManager, SessionListener
from ...core.settings import SSHSettings
from ...core.logging import get_logger, get_access_logger
from ...core.telemetry import get_telemetry
from .models import Session

logger = get_logger(__name__)
access_logger = get_access_logger()
telemetry = get_telemetry()


class SessionRegistry(SessionListener):
    """Maps session identifiers to :class:`Session` objects"""
    
    def __init__(
        self,
        remote_session_manager: Optional[RemoteSessionManager] = None,
        settings: Optional[SSHSettings] = None,
    ):
        """
        Args:
            remote_session_manager: Closes remote-desktop sessions left over
                when a user session ends
            settings: SSH settings handed to every registered session
        """
        self.remote_session_manager = remote_session_manager
        self.settings = settings
        self._sessions: Dict[str, Session] = {}
        self._ending: Set[str] = set()
        self._lock = threading.Lock()
    
    # --------------------
    # Lifecycle notifications
    # --------------------
    def session_created(self, host_session: HostSession) -> None:
        with self._lock:
            self._sessions[host_session.id] = Session(host_session, self.settings)
        logger.debug(f"Session registered: {host_session.id}")
    
    def session_destroyed(self, host_session: HostSession) -> None:
        with self._lock:
            session = self._sessions.get(host_session.id)
            if session is None or host_session.id in self._ending:
                # Never registered, already torn down, or being torn down
                logger.debug(f"Ignoring destroyed notification for {host_session.id}")
                return
            self._ending.add(host_session.id)
        
        if session.has_credential():
            credential = session.credential
            access_logger.info(
                f"User session ended for {credential.user_name} "
                f"({credential.formatted_time_since_issued()})"
            )
        
        for tunnel in session.tunnels:
            tunnel.stop_tunnel()
            session.remove_tunnel(tunnel)
        
        for reference in list(session.remote_sessions):
            self._end_remote_session(reference, session)
        
        with self._lock:
            self._sessions.pop(host_session.id, None)
            self._ending.discard(host_session.id)
        
        telemetry.record_event("session.ended", {"session_id": host_session.id})
        logger.debug(f"Session removed: {host_session.id}")
    
    def _end_remote_session(self, reference, session: Session) -> None:
        if self.remote_session_manager is None:
            logger.warning(
                f"No remote session manager configured; cannot close {reference!r} "
                f"for session {session.session_id}"
            )
            return
        try:
            self.remote_session_manager.end_session(reference, session)
        except Exception as e:
            logger.error(
                f"Failed to end remote session {reference!r} for session {session.session_id}: {e}",
                exc_info=True,
            )
    
    # --------------------
    # Queries
    # --------------------
    def lookup(self, session_id: str) -> Optional[Session]:
        """Return the registered session, or None"""
        with self._lock:
            return self._sessions.get(session_id)
    
    def get(self, session_id: str) -> Session:
        """
        Return a live session.
        
        Raises:
            NoSuchSessionError: If no session is registered under the id
            SessionInvalidatedError: If the session has been invalidated
        """
        session = self.lookup(session_id)
        if session is None:
            raise NoSuchSessionError(f"No such session: {session_id}")
        if not session.is_valid():
            raise SessionInvalidatedError(f"Session has been invalidated: {session_id}")
        return session
    
    def active_sessions(self) -> Set[Session]:
        """
        Snapshot of live sessions.
        
        Destroyed notifications may lag behind invalidation, so every
        session is probed and invalidated ones are left out.
        """
        with self._lock:
            sessions = list(self._sessions.values())
        return {s for s in sessions if s.is_valid()}
    
    # --------------------
    # Commands
    # --------------------
    def end_session(self, session: Union[str, Session]) -> None:
        """
        Invalidate a session; the hosting environment then delivers the
        destroyed notification. Unknown identifiers are ignored.
        """
        if isinstance(session, str):
            found = self.lookup(session)
            if found is None:
                logger.debug(f"end_session: unknown session {session}")
                return
            session = found
        
        if session.is_valid():
            session.host_session.invalidate()
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
    
    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
