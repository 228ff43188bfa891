# src/pathcrypt/logger_config.py
"""
Logging configuration for processes embedding the engine.
"""
import logging
import time
from pathlib import Path
from typing import Optional

from .constants import (LOG_DATE_FORMAT, LOG_FILE_BASENAME,
                        LOG_FILE_TIMESTAMP_FORMAT, LOG_FORMAT)

current_log_file_path: Optional[Path] = None


def setup_logging(log_dir: Optional[Path] = None, level: int = logging.INFO) -> Path:
    """Sets up logging configuration and returns the log file path."""
    global current_log_file_path
    timestamp = time.strftime(LOG_FILE_TIMESTAMP_FORMAT)
    base_dir = Path(log_dir) if log_dir is not None else Path.cwd()
    base_dir.mkdir(parents=True, exist_ok=True)
    log_file = (base_dir / f"{LOG_FILE_BASENAME}_{timestamp}.log").resolve()
    current_log_file_path = log_file

    logging.basicConfig(
        filename=log_file,
        filemode="w",
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    return log_file
