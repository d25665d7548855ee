"""Logging setup.

The terminal belongs to the interactive UI and standard output carries
the selected command, so log records go to a rotating file under the
data directory instead of the console.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from .config import data_dir

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(level: str = "INFO", path: Optional[Path] = None) -> Optional[Path]:
    """Send log records to ``gencmd.log`` in the data directory.

    :returns: The log file path, or ``None`` if it could not be opened,
      in which case logging is disabled.
    """
    logger.remove()
    try:
        log_path = path or data_dir() / "logs" / "gencmd.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level.upper(),
            rotation="1 MB",
            retention=5,
            backtrace=True,
            diagnose=False,
            encoding="utf-8",
            format=LOG_FORMAT,
        )
    except (OSError, ValueError):
        return None
    return log_path
