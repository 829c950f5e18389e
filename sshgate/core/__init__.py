"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_access_logger, get_stderr_console
from .interfaces import HostSession, SessionListener, RemoteSessionManager
from .settings import SSHSettings
from .telemetry import Telemetry, get_telemetry

__all__ = [
    "setup_logging",
    "get_logger",
    "get_access_logger",
    "get_stderr_console",
    "HostSession",
    "SessionListener",
    "RemoteSessionManager",
    "SSHSettings",
    "Telemetry",
    "get_telemetry",
]
