"""Periodic background tasks with a cancellation handle."""

import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Calls a function every `interval` seconds on a daemon thread.

    cancel() stops the loop promptly; a call already in progress finishes.
    """

    def __init__(self, interval, callback, name='periodic-task'):
        self.interval = interval
        self.callback = callback
        self.name = name
        self._cancelled = threading.Event()
        self._thread = None

    def start(self):
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def join(self, timeout=None):
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self):
        while not self._cancelled.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
