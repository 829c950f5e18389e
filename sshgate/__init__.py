"""
sshgate - certificate-authenticated remote execution for web portals

Grants portal users ephemeral access to gateway-fronted compute hosts by
forking a short-lived ssh process per operation:
- Credential materialization with owner-only permissions and guaranteed cleanup
- Remote command execution with watchdog timeouts
- Local port-forward tunnels running in the background
- Session registry that releases tunnels and remote sessions on logout
"""

__version__ = "0.1.0"

from .core import (
    SSHSettings,
    setup_logging,
    get_logger,
    HostSession,
    SessionListener,
    RemoteSessionManager,
)
from .core.exceptions import (
    SSHGateError,
    ConfigError,
    CredentialError,
    SSHExecError,
    TunnelError,
    SessionError,
    NoSuchSessionError,
    SessionInvalidatedError,
)
from .domain.ssh import (
    Credential,
    CredentialMaterializer,
    MaterializedCredential,
    Watchdog,
    ForkedSSHClient,
    Tunnel,
    TunnelManager,
)
from .domain.session import Session, SessionRegistry
from .adapters.config import load_settings

__all__ = [
    # Version
    "__version__",
    # Settings and logging
    "SSHSettings",
    "load_settings",
    "setup_logging",
    "get_logger",
    # Interfaces
    "HostSession",
    "SessionListener",
    "RemoteSessionManager",
    # Errors
    "SSHGateError",
    "ConfigError",
    "CredentialError",
    "SSHExecError",
    "TunnelError",
    "SessionError",
    "NoSuchSessionError",
    "SessionInvalidatedError",
    # SSH
    "Credential",
    "CredentialMaterializer",
    "MaterializedCredential",
    "Watchdog",
    "ForkedSSHClient",
    "Tunnel",
    "TunnelManager",
    # Sessions
    "Session",
    "SessionRegistry",
]
