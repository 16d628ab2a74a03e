"""
Dual-sink logging for the motion display pipeline.

Logs to both stdout AND a log file. Status notifications published on the
event bus are mirrored here so a headless run still leaves a trace.
"""

import sys
import logging
from pathlib import Path
from typing import List, Optional


# Log file paths (in order of preference)
LOG_FILE_PATHS = [
    "/var/log/motion_display.log",
    "/tmp/motion_display.log",
]

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _find_writable_log_file(candidates: List[str]) -> Optional[str]:
    """Return the first candidate path that can be opened for append."""
    for path in candidates:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'a'):
                pass
            return path
        except (PermissionError, OSError):
            continue
    return None


def setup_logging(verbose: bool = False,
                  log_file: Optional[str] = None,
                  log_format: Optional[str] = None,
                  file_logging: bool = True) -> logging.Logger:
    """
    Setup dual-sink logging.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
        log_file: Override log file path. If None, uses default paths.
        log_format: Override log format string.
        file_logging: Set False to log to stdout only.

    Returns:
        The package logger
    """
    level = logging.DEBUG if verbose else logging.INFO

    if log_format is None:
        log_format = DEFAULT_LOG_FORMAT

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    file_path = None
    if file_logging:
        file_path = log_file or _find_writable_log_file(LOG_FILE_PATHS)

    if file_path:
        try:
            file_handler = logging.FileHandler(file_path, mode='a')
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(log_format))
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging at {file_path}: {e}",
                  file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("motion_display")
    logger.setLevel(level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
