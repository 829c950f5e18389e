"""
SSH local port-forward tunnels backed by long-running forked ssh processes
"""
import socket
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional, TYPE_CHECKING

from ...core.constants import (
    TUNNEL_HOLD_COMMAND,
    PORT_ALLOCATION_ATTEMPTS,
    UNCAPPED_TUNNEL_WORKERS,
)
from ...core.exceptions import TunnelError, SSHExecError
from ...core.logging import get_logger
from ...core.settings import SSHSettings
from ...core.telemetry import get_telemetry
from .command import forward_flag
from .watchdog import Watchdog

if TYPE_CHECKING:
    from .client import ForkedSSHClient

logger = get_logger(__name__)
telemetry = get_telemetry()


class Tunnel:
    """
    Handle on a running port forward.

    Ports and host are fixed at creation; the running state is probed from
    the watchdog on every call.
    """

    def __init__(
        self,
        local_port: int,
        remote_port: int,
        remote_host: str,
        watchdog: Watchdog,
    ):
        self._local_port = local_port
        self._remote_port = remote_port
        self._remote_host = remote_host
        self._watchdog = watchdog
        self.started_at = time.time()
        self.future: Optional[Future] = None

    @property
    def watchdog(self) -> Watchdog:
        return self._watchdog

    @property
    def local_port(self) -> int:
        return self._local_port

    @property
    def remote_port(self) -> int:
        return self._remote_port

    @property
    def remote_host(self) -> str:
        return self._remote_host

    def is_running(self) -> bool:
        """Check if the forwarding process is (still) running"""
        return self._watchdog.is_watching()

    def stop_tunnel(self) -> None:
        """Kill the forwarding process. Repeated calls are no-ops."""
        if not self._watchdog.destroy_process():
            return
        telemetry.record_event("tunnel.stopped", {
            "local_port": self._local_port,
            "remote_host": self._remote_host,
            "remote_port": self._remote_port,
        })

    def __repr__(self) -> str:
        return (
            f"Tunnel(localhost:{self._local_port} -> {self._remote_host}:{self._remote_port}, "
            f"running={self.is_running()})"
        )


class TunnelManager:
    """
    Runs tunnels on a dedicated thread pool, separate from request threads.

    Each active tunnel occupies one pool thread for its whole lifetime, so the
    pool is sized to ``max_tunnels``.
    """

    def __init__(self, settings: Optional[SSHSettings] = None):
        self.settings = settings or SSHSettings()
        self.settings.validate()
        workers = self.settings.max_tunnels or UNCAPPED_TUNNEL_WORKERS
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ssh-tunnel")
        self._active: Dict[int, Tunnel] = {}
        self._lock = threading.Lock()

    def start_tunnel(
        self,
        client: "ForkedSSHClient",
        remote_port: int,
        max_uptime_seconds: float = 0,
    ) -> Tunnel:
        """
        Start forwarding a free local port to ``client.remote_host:remote_port``.

        Args:
            client: Client whose credential and gateway are used
            remote_port: Port on the remote host
            max_uptime_seconds: Maximum lifetime; zero or negative means no limit

        Returns:
            Tunnel handle, returned without waiting for the tunnel to end

        Raises:
            TunnelError: If the port is invalid, the tunnel cap is reached or
                no free local port could be found
        """
        if not (1 <= remote_port <= 65535):
            raise TunnelError(f"Invalid remote_port: {remote_port}")

        watchdog = Watchdog(max_uptime_seconds)

        with self._lock:
            if self.settings.max_tunnels and len(self._active) >= self.settings.max_tunnels:
                raise TunnelError(
                    f"Tunnel limit reached ({self.settings.max_tunnels} active tunnels)"
                )
            local_port = self._allocate_port_locked()
            tunnel = Tunnel(local_port, remote_port, client.remote_host, watchdog)
            self._active[local_port] = tunnel

        flags = forward_flag(local_port, client.remote_host, remote_port)
        try:
            tunnel.future = self._executor.submit(client.exec, TUNNEL_HOLD_COMMAND, flags, watchdog)
        except RuntimeError as e:
            self._release(tunnel)
            raise TunnelError(f"Tunnel pool is shut down: {e}") from e
        tunnel.future.add_done_callback(lambda f: self._on_finished(tunnel, f))

        logger.info(
            f"Tunnel started: localhost:{local_port} -> {client.remote_host}:{remote_port} "
            f"via {client.via_gateway}"
        )
        telemetry.record_event("tunnel.started", {
            "local_port": local_port,
            "remote_host": client.remote_host,
            "remote_port": remote_port,
            "max_uptime_seconds": max_uptime_seconds,
        })
        return tunnel

    def active_tunnels(self) -> list[Tunnel]:
        """Snapshot of tunnels whose process has not finished"""
        with self._lock:
            return list(self._active.values())

    def shutdown(self, wait: bool = True) -> None:
        """Stop every tunnel and shut the pool down"""
        for tunnel in self.active_tunnels():
            tunnel.stop_tunnel()
        self._executor.shutdown(wait=wait)

    def _allocate_port_locked(self) -> int:
        for _ in range(PORT_ALLOCATION_ATTEMPTS):
            port = find_free_port(self.settings.tunnel_bind_host)
            if port not in self._active:
                return port
        raise TunnelError("Could not find a free local port")

    def _release(self, tunnel: Tunnel) -> None:
        with self._lock:
            if self._active.get(tunnel.local_port) is tunnel:
                del self._active[tunnel.local_port]

    def _on_finished(self, tunnel: Tunnel, future: Future) -> None:
        self._release(tunnel)
        error = future.exception()
        if error is None:
            logger.info(f"Tunnel on localhost:{tunnel.local_port} closed")
        elif isinstance(error, SSHExecError) and tunnel.watchdog.killed:
            logger.info(f"Tunnel on localhost:{tunnel.local_port} stopped")
        else:
            logger.error(
                f"Tunnel on localhost:{tunnel.local_port} failed: {error}",
                exc_info=error,
            )


def find_free_port(host: str = "127.0.0.1") -> int:
    """
    Ask the OS for a free ephemeral port.

    The socket is closed before returning, so the port may be claimed by
    another process before ssh binds it.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]


_default_manager: Optional[TunnelManager] = None
_default_lock = threading.Lock()


def get_tunnel_manager() -> TunnelManager:
    """Get the process-wide tunnel manager"""
    global _default_manager
    with _default_lock:
        if _default_manager is None:
            _default_manager = TunnelManager()
        return _default_manager
