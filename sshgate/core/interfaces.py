"""
Core interfaces for the hosting environment and external collaborators
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.session.models import Session


class HostSession(ABC):
    """
    A session object owned by the hosting environment (e.g. a web framework).
    
    Invalidating it must make the environment deliver a destroyed
    notification to its session listeners.
    """
    
    @property
    @abstractmethod
    def id(self) -> str:
        """Opaque session identifier"""
        pass
    
    @property
    @abstractmethod
    def created_at(self) -> datetime:
        """Creation time of the session"""
        pass
    
    @abstractmethod
    def is_valid(self) -> bool:
        """Whether the session is still live"""
        pass
    
    @abstractmethod
    def invalidate(self) -> None:
        """End the session"""
        pass


class SessionListener(ABC):
    """Receives lifecycle notifications from the hosting environment"""
    
    @abstractmethod
    def session_created(self, host_session: HostSession) -> None:
        pass
    
    @abstractmethod
    def session_destroyed(self, host_session: HostSession) -> None:
        pass


class RemoteSessionManager(ABC):
    """External manager of remote-desktop sessions held by a user session"""
    
    @abstractmethod
    def end_session(self, reference: Any, owner: "Session") -> None:
        """Close ``reference`` on behalf of ``owner``"""
        pass
