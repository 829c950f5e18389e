"""
Argument list construction for forked ssh invocations
"""
from typing import Dict, List, Optional

from ...core.constants import REMOTE_SHELL_ARGS
from ...core.exceptions import ConfigError
from ...core.settings import SSHSettings


def build_ssh_command(
    settings: SSHSettings,
    identity_file: str,
    user_name: str,
    target_host: str,
    extra_flags: Optional[Dict[str, Optional[str]]] = None,
    request_shell: bool = False,
) -> List[str]:
    """
    Build the argument list for one ssh invocation.
    
    Order matters for some ssh clients: fixed options, login user and target
    host come first, then the extra flags in mapping order, then the remote
    shell request.
    
    Args:
        settings: SSH settings (binary, host key policy)
        identity_file: Path to the private key; the certificate is expected
            next to it
        user_name: Login user
        target_host: Host ssh connects to
        extra_flags: Flag -> optional value; empty or None values are omitted
        request_shell: Append ``bash -s --`` so commands are read from stdin
    
    Returns:
        Argument list, starting with the ssh binary
    
    Raises:
        ConfigError: If a flag key is malformed
    """
    args = [
        settings.ssh_binary,
        "-q",
        "-i", identity_file,
        f"-oStrictHostKeyChecking={settings.strict_host_key_checking}",
    ]
    if settings.known_hosts_file:
        args.append(f"-oUserKnownHostsFile={settings.known_hosts_file}")
    args += [
        "-oBatchMode=yes",
        "-oKbdInteractiveAuthentication=no",
        "-l", user_name,
        target_host,
    ]
    
    for key, value in (extra_flags or {}).items():
        if not key or not key.startswith("-"):
            raise ConfigError(f"Malformed ssh flag: {key!r}")
        args.append(key)
        if value:
            args.append(value)
    
    if request_shell:
        args.extend(REMOTE_SHELL_ARGS)
    
    return args


def forward_flag(local_port: int, remote_host: str, remote_port: int) -> Dict[str, Optional[str]]:
    """Local forwarding flag mapping ``local_port`` to ``remote_host:remote_port``"""
    return {f"-L{local_port}:{remote_host}:{remote_port}": ""}


def format_command_line(args: List[str]) -> str:
    """Render an argument list for log messages"""
    return " ".join(args)
