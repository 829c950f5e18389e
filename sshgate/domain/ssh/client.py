"""
Forked ssh client

Each request forks a fresh ssh process; no connection is kept between calls.
The credential is written to disk at the start of each invocation and deleted
when it completes.
"""
import re
import subprocess
from typing import Dict, Optional, TYPE_CHECKING

from ...core.exceptions import ConfigError, SSHExecError
from ...core.logging import get_logger
from ...core.settings import SSHSettings
from ...core.telemetry import get_telemetry
from .command import build_ssh_command, format_command_line
from .credentials import Credential, CredentialMaterializer
from .watchdog import Watchdog, WatchdogState

if TYPE_CHECKING:
    from .tunnel import Tunnel, TunnelManager

logger = get_logger(__name__)
telemetry = get_telemetry()

_LOG_UNSAFE = re.compile(r"[\t\n\r]")


class ForkedSSHClient:
    """
    SSH client that forks the ssh binary for every request.

    Authenticates with a short-lived certificate against ``via_gateway``.
    Depends on an ssh binary (``settings.ssh_binary``) in the search path.
    """

    def __init__(
        self,
        credential: Credential,
        settings: Optional[SSHSettings] = None,
        materializer: Optional[CredentialMaterializer] = None,
        tunnel_manager: Optional["TunnelManager"] = None,
    ):
        """
        Initialize client.

        Args:
            credential: Credential used for every invocation
            settings: SSH settings (default: built-in defaults)
            materializer: Writes the credential to disk
            tunnel_manager: Manager that runs tunnels (default: process-wide)
        """
        self.credential = credential
        self.settings = settings or SSHSettings()
        self.settings.validate()
        self.materializer = materializer or CredentialMaterializer(self.settings.temp_dir)
        self._tunnel_manager = tunnel_manager

        if self.settings.host_key_checking_disabled:
            logger.warning(
                f"Host key checking is disabled for {credential.user_name}@{self.via_gateway}"
            )

    @property
    def remote_host(self) -> str:
        return self.credential.remote_host

    @property
    def via_gateway(self) -> str:
        return self.credential.via_gateway

    @property
    def tunnel_manager(self) -> "TunnelManager":
        if self._tunnel_manager is None:
            from .tunnel import get_tunnel_manager
            self._tunnel_manager = get_tunnel_manager()
        return self._tunnel_manager

    def exec(
        self,
        remote_commands: str = "",
        extra_flags: Optional[Dict[str, Optional[str]]] = None,
        watchdog: Optional[Watchdog] = None,
    ) -> str:
        """
        Execute remote commands through a forked ssh process.

        Args:
            remote_commands: Shell text fed to ``bash -s`` on the remote side;
                empty means no shell is requested and nothing is sent
            extra_flags: Additional ssh flags -> optional values, in order
            watchdog: Bounds the runtime of the process
                (default: ``settings.default_timeout``)

        Returns:
            Combined stdout and stderr of the process

        Raises:
            CredentialError: If the credential cannot be written to disk
            ConfigError: If the ssh binary is missing or a flag is malformed
            SSHExecError: On non-zero exit or forced termination
        """
        if watchdog is None:
            watchdog = Watchdog(self.settings.default_timeout)
        elif watchdog.state is not WatchdogState.ARMED:
            raise ConfigError("Watchdog has already been used for another invocation")

        remote_commands = remote_commands or ""
        has_commands = len(remote_commands) > 0

        try:
            with self.materializer.materialize(self.credential) as cert_files:
                cmd = build_ssh_command(
                    self.settings,
                    identity_file=str(cert_files.private_key_file.absolute()),
                    user_name=self.credential.user_name,
                    target_host=self.via_gateway,
                    extra_flags=extra_flags,
                    request_shell=has_commands,
                )
                return self._run(cmd, remote_commands, watchdog)
        finally:
            watchdog.stop()

    def _run(self, cmd: list[str], remote_commands: str, watchdog: Watchdog) -> str:
        """Fork ``cmd``, feed ``remote_commands`` and wait for it to exit"""
        logger.debug(f"Forking: {format_command_line(cmd)}")
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise ConfigError(f"SSH binary not found: {cmd[0]}") from e

        watchdog.start(process)
        raw_output, _ = process.communicate(input=remote_commands.encode("utf-8"))
        output = raw_output.decode("utf-8", errors="replace")

        if process.returncode == 0 and not watchdog.killed:
            return output

        if watchdog.timed_out:
            cause: BaseException = subprocess.TimeoutExpired(cmd, watchdog.timeout, output=raw_output)
        else:
            cause = subprocess.CalledProcessError(process.returncode, cmd, output=raw_output)

        error = (
            f"SSH command failed for user {self.credential.user_name}: "
            f"{format_command_line(cmd)}; "
            f"Remote commands: {remote_commands}; "
            f"Remote server said: {output}"
        )
        if watchdog.killed and not watchdog.timed_out:
            logger.info(_LOG_UNSAFE.sub(" ", f"SSH process stopped on request: {format_command_line(cmd)}"))
        else:
            logger.error(_LOG_UNSAFE.sub(" ", error))
        telemetry.record_event("ssh.exec.failed", {
            "user": self.credential.user_name,
            "host": self.via_gateway,
            "returncode": process.returncode,
            "killed": watchdog.killed,
        })
        raise SSHExecError(output, cause) from cause

    def start_tunnel(self, remote_port: int, max_uptime_seconds: float = 0) -> "Tunnel":
        """
        Start a local port forward to ``remote_host:remote_port``.

        Args:
            remote_port: Port on the remote host
            max_uptime_seconds: Maximum lifetime; zero or negative means no limit

        Returns:
            Tunnel handle; the call does not wait for the tunnel to end
        """
        return self.tunnel_manager.start_tunnel(self, remote_port, max_uptime_seconds)

    def __repr__(self) -> str:
        return f"ForkedSSHClient({self.credential.user_name}@{self.via_gateway} -> {self.remote_host})"
