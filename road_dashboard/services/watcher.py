"""
@file watcher.py
@brief Polling watcher for the on-disk CSV dataset

@details
A daemon thread samples the file's (mtime, size) signature every
`interval` seconds and calls `on_change(path)` when it differs from the
last sample. A file that appears counts as a change; a file that
disappears does not (the current dataset stays loaded).

Callback failures are logged and the watcher keeps polling.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
import os
import threading
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

Signature = Optional[Tuple[float, int]]


def file_signature(path: str) -> Signature:
    """(mtime, size) of `path`, or None when it does not exist."""
    try:
        stat = os.stat(path)
    except FileNotFoundError:
        return None
    return (stat.st_mtime, stat.st_size)


class CsvFileWatcher:
    """
    @brief Background change detector for a single file
    """

    def __init__(self, path: str, on_change: Callable[[str], None], interval: float = 2.0):
        self.path = path
        self.on_change = on_change
        self.interval = interval
        self._last: Signature = file_signature(path)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="csv-watcher", daemon=True
        )
        self._thread.start()
        logger.info(f"Watching {self.path} for changes (every {self.interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info(f"Stopped watching {self.path}")

    def check_once(self) -> bool:
        """
        @brief Sample the file once and fire the callback on change
        @return True if a change was detected
        """
        current = file_signature(self.path)
        if current is None or current == self._last:
            return False

        self._last = current
        try:
            self.on_change(self.path)
        except Exception as e:
            logger.error(f"Reload after change to {self.path} failed: {e}", exc_info=True)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.check_once()
