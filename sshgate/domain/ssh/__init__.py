"""
Forked ssh execution and tunnels
"""
from .credentials import Credential, MaterializedCredential, CredentialMaterializer
from .watchdog import Watchdog
from .command import build_ssh_command
from .client import ForkedSSHClient
from .tunnel import Tunnel, TunnelManager, find_free_port, get_tunnel_manager

__all__ = [
    "Credential",
    "MaterializedCredential",
    "CredentialMaterializer",
    "Watchdog",
    "build_ssh_command",
    "ForkedSSHClient",
    "Tunnel",
    "TunnelManager",
    "find_free_port",
    "get_tunnel_manager",
]
