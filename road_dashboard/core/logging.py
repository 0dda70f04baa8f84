"""
@file logging.py
@brief Centralized logging configuration
@details
Configures logging for the API service and the import jobs. Output goes
to stdout, to a log file, or both, depending on LOG_OUTPUT. The log
directory is created on demand; when it cannot be created the service
falls back to stdout only.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_log_dir() -> Optional[str]:
    log_dir = os.getenv("LOG_DIR")
    if log_dir:
        return log_dir

    # logs/ next to the package root
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
    log_dir = os.path.join(base_dir, "logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
    except (OSError, PermissionError):
        return None
    if not os.access(log_dir, os.W_OK):
        return None
    return log_dir


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    @brief Configure and return the application logger
    @details
    LOG_OUTPUT selects the handlers:
    - 'stdout': console only
    - 'file': logs/app.log only
    - 'both': console and file (default)
    """
    log_output = os.getenv("LOG_OUTPUT", "both").lower()
    handlers = []

    if log_output in ("stdout", "both"):
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_output in ("file", "both"):
        log_dir = _resolve_log_dir()
        if log_dir:
            try:
                handlers.append(logging.FileHandler(os.path.join(log_dir, "app.log")))
            except (OSError, PermissionError):
                pass

    if not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    return logging.getLogger("road_dashboard")
