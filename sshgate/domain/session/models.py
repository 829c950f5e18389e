"""
Per-user session state
"""
import threading
import weakref
from typing import Any, Optional, Set, TYPE_CHECKING

from ...core.exceptions import SessionError
from ...core.interfaces import HostSession
from ...core.settings import SSHSettings
from ..ssh.client import ForkedSSHClient
from ..ssh.credentials import Credential

if TYPE_CHECKING:
    from ..ssh.tunnel import Tunnel


class Session:
    """
    Server-side state of one authenticated browser session.
    
    Wraps the hosting environment's session handle and holds one optional
    field per tracked attribute. External remote-desktop session references
    are held weakly; the registry asks their manager to close them when the
    session ends. Equality and hash use only ``session_id``.
    """
    
    def __init__(self, host_session: HostSession, settings: Optional[SSHSettings] = None):
        self.host_session = host_session
        self.settings = settings
        self.user_email: Optional[str] = None
        self.credential: Optional[Credential] = None
        self.oauth_token: Optional[str] = None
        self._remote_sessions: "weakref.WeakSet[Any]" = weakref.WeakSet()
        self._tunnels: Set["Tunnel"] = set()
        self._lock = threading.Lock()
    
    @property
    def session_id(self) -> str:
        return self.host_session.id
    
    def is_valid(self) -> bool:
        return self.host_session.is_valid()
    
    def has_user_email(self) -> bool:
        return self.user_email is not None
    
    def has_credential(self) -> bool:
        return self.credential is not None
    
    def has_oauth_token(self) -> bool:
        return self.oauth_token is not None
    
    def clear_oauth_token(self) -> None:
        self.oauth_token = None
    
    @property
    def remote_sessions(self) -> "weakref.WeakSet[Any]":
        """Mutable weak set of external remote-desktop session references"""
        return self._remote_sessions
    
    @property
    def tunnels(self) -> Set["Tunnel"]:
        """Snapshot of tunnels opened for this session"""
        with self._lock:
            return set(self._tunnels)
    
    def add_tunnel(self, tunnel: "Tunnel") -> None:
        with self._lock:
            self._tunnels.add(tunnel)
    
    def remove_tunnel(self, tunnel: "Tunnel") -> None:
        with self._lock:
            self._tunnels.discard(tunnel)
    
    def ssh_client(self, settings: Optional[SSHSettings] = None) -> ForkedSSHClient:
        """
        Build a forked ssh client for this session's credential.
        
        Args:
            settings: SSH settings (default: the settings the session was
                registered with)
        
        Raises:
            SessionError: If no credential has been issued for the session
        """
        if self.credential is None:
            raise SessionError(f"Session {self.session_id} has no credential")
        return ForkedSSHClient(self.credential, settings=settings or self.settings)
    
    def start_tunnel(
        self,
        remote_port: int,
        max_uptime_seconds: float = 0,
        client: Optional[ForkedSSHClient] = None,
    ) -> "Tunnel":
        """
        Start a tunnel owned by this session.
        
        The tunnel is forgotten once its process ends and is stopped when the
        session ends.
        """
        client = client or self.ssh_client()
        tunnel = client.start_tunnel(remote_port, max_uptime_seconds)
        self.add_tunnel(tunnel)
        tunnel.future.add_done_callback(lambda f: self.remove_tunnel(tunnel))
        return tunnel
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Session):
            return NotImplemented
        return self.session_id == other.session_id
    
    def __hash__(self) -> int:
        return hash(self.session_id)
    
    def __repr__(self) -> str:
        user = self.credential.user_name if self.credential else self.user_email
        return f"Session(id={self.session_id}, user={user})"
