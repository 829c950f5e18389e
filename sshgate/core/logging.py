"""
Rich-based logging system
"""
import sys
import logging
from typing import Optional
from pathlib import Path

from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback

from .constants import ACCESS_LOGGER_NAME


_stderr_console = Console(file=sys.stderr)

_FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    access_log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
) -> None:
    """
    Setup Rich logging system.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        access_log_file: Optional file that receives only access log lines
        rich_tracebacks: Enable rich tracebacks
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    
    if rich_tracebacks:
        install_traceback(console=_stderr_console, width=120)
    
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    
    rich_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=True,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_level=True,
    )
    rich_handler.setLevel(log_level)
    root_logger.addHandler(rich_handler)
    
    if log_file:
        root_logger.addHandler(_file_handler(log_file, log_level, _FILE_FORMAT))
    
    # Access lines always go out at INFO, independent of the root level
    access_logger = get_access_logger()
    access_logger.setLevel(logging.INFO)
    access_logger.handlers.clear()
    if access_log_file:
        access_logger.addHandler(
            _file_handler(access_log_file, logging.INFO, '%(asctime)s %(message)s')
        )


def _file_handler(path: Path, level: int, fmt: str) -> logging.FileHandler:
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.
    
    Args:
        name: Logger name (usually __name__)
    
    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_access_logger() -> logging.Logger:
    """Get the logger that records ended user sessions"""
    return logging.getLogger(ACCESS_LOGGER_NAME)


def get_stderr_console() -> Console:
    """Get stderr console for errors and logs"""
    return _stderr_console
