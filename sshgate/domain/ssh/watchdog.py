"""
Watchdog that bounds the lifetime of one forked process
"""
import os
import signal
import subprocess
import threading
from enum import Enum
from typing import Optional

from ...core.logging import get_logger

logger = get_logger(__name__)


class WatchdogState(Enum):
    ARMED = "armed"
    WATCHING = "watching"
    STOPPED = "stopped"


class Watchdog:
    """
    Kills a process after ``timeout`` seconds, or on request.
    
    A watchdog is armed when created, watches once a process is attached and
    is stopped when that process has exited. ``destroy_process()`` may be
    called at any point; if no process is attached yet, the process is killed
    as soon as it attaches.
    """
    
    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Maximum runtime in seconds; None, zero or negative
                means no limit
        """
        self.timeout = timeout if timeout is not None and timeout > 0 else None
        self._lock = threading.Lock()
        self._state = WatchdogState.ARMED
        self._process: Optional[subprocess.Popen] = None
        self._timer: Optional[threading.Timer] = None
        self._destroy_requested = False
        self._killed = False
        self._timed_out = False
    
    @classmethod
    def infinite(cls) -> "Watchdog":
        return cls(None)
    
    @property
    def killed(self) -> bool:
        """Whether the watched process was forcibly terminated"""
        return self._killed
    
    @property
    def timed_out(self) -> bool:
        """Whether the forced termination came from expiry"""
        return self._timed_out
    
    @property
    def state(self) -> WatchdogState:
        return self._state
    
    def start(self, process: subprocess.Popen) -> None:
        """Attach a freshly started process"""
        with self._lock:
            if self._state is not WatchdogState.ARMED:
                raise RuntimeError(f"Watchdog cannot be started in state {self._state.value}")
            self._process = process
            self._state = WatchdogState.WATCHING
            
            if self._destroy_requested:
                self._kill_locked()
                return
            
            if self.timeout is not None:
                self._timer = threading.Timer(self.timeout, self._expire)
                self._timer.daemon = True
                self._timer.start()
    
    def stop(self) -> None:
        """Mark the watched process as finished"""
        with self._lock:
            self._state = WatchdogState.STOPPED
            self._process = None
            if self._timer:
                self._timer.cancel()
                self._timer = None
    
    def destroy_process(self) -> bool:
        """
        Forcibly terminate the watched process.
        
        Returns:
            True if this call was the first stop request for a live watchdog
        """
        with self._lock:
            if self._state is WatchdogState.STOPPED or self._destroy_requested:
                return False
            self._destroy_requested = True
            if self._process is not None:
                self._kill_locked()
            return True
    
    def is_watching(self) -> bool:
        """Whether a process is (or is about to be) running under this watchdog"""
        with self._lock:
            return self._state is not WatchdogState.STOPPED and not self._destroy_requested
    
    def _expire(self) -> None:
        with self._lock:
            if self._state is not WatchdogState.WATCHING or self._killed:
                return
            logger.warning(f"Watchdog expired after {self.timeout}s, killing process")
            self._timed_out = True
            self._kill_locked()
    
    def _kill_locked(self) -> None:
        # Kill the whole process group so children holding the output pipe die too
        self._killed = True
        if self._process is None:
            return
        try:
            os.killpg(self._process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            self._process.kill()
    
    def __repr__(self) -> str:
        return f"Watchdog(timeout={self.timeout}, state={self._state.value})"
