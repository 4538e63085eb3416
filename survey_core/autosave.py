# survey_core/autosave.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .config import AUTOSAVE_INTERVAL_SEC


log = logging.getLogger(__name__)


class AutoSaver:
    """Debounced background flush.

    ``touch()`` (called on every Response Store mutation) re-arms a single
    timer; when it fires, ``flush`` runs on the timer thread. Flush failures
    are logged and dropped so navigation never sees them. ``cancel()`` must be
    called on teardown.
    """

    def __init__(self, flush: Callable[[], None], interval_sec: float = AUTOSAVE_INTERVAL_SEC):
        self._flush = flush
        self.interval_sec = float(interval_sec)
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._closed = False
        self.flush_count = 0
        self.failure_count = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def touch(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.interval_sec, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            if self._closed or self._timer is None:
                return
            self._timer = None
        self._run()

    def _run(self) -> bool:
        try:
            self._flush()
        except Exception:
            self.failure_count += 1
            log.warning("autosave flush failed", exc_info=True)
            return False
        self.flush_count += 1
        log.debug("autosave flushed count=%d", self.flush_count)
        return True

    def flush_now(self) -> bool:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self._run()

    def cancel(self) -> None:
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
