"""Background work whose results are applied on the foreground loop"""

import functools
import logging
import queue
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

logger = logging.getLogger(__name__)

Completion = Callable[[Any, BaseException | None], None]


class TaskRunner(ABC):
    """Runs jobs off the input thread.

    Completions and timer callbacks never run on the worker threads: they are
    queued, and `process_pending` runs them on the caller's thread. That
    keeps the foreground loop the only writer of the session state.
    """

    @abstractmethod
    def submit(self, job: Callable[[], Any], on_done: Completion) -> None:
        """Run a job in the background, then on_done(result, error)"""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        """Run a callback after a delay"""

    @abstractmethod
    def process_pending(self) -> int:
        """Run queued completions, returning how many ran"""

    @abstractmethod
    def shutdown(self) -> None:
        """Stop accepting work and release the threads"""


class BackgroundTasks(TaskRunner):
    """Concrete implementation of TaskRunner using daemon threads.

    A job still blocked in a request when the viewer quits does not keep the
    process alive.
    """

    def __init__(self) -> None:
        self._completed: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, job: Callable[[], Any], on_done: Completion) -> None:
        """Run a job on its own thread; its outcome is queued for the foreground"""

        def _run() -> None:
            try:
                result = job()
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.exception("Background job failed")
                self._completed.put(functools.partial(on_done, None, e))
            else:
                self._completed.put(functools.partial(on_done, result, None))

        with self._lock:
            if self._closed:
                logger.debug("Ignoring job submitted after shutdown")
                return
        threading.Thread(target=_run, name="tailview-fetch", daemon=True).start()

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        """Queue a callback for the foreground once the delay has passed"""

        def _fire() -> None:
            with self._lock:
                self._timers.discard(timer)
            self._completed.put(callback)

        timer = threading.Timer(delay, _fire)
        timer.daemon = True
        with self._lock:
            if self._closed:
                return
            self._timers.add(timer)
        timer.start()

    def process_pending(self) -> int:
        """Run everything that completed since the last call"""
        count = 0
        while True:
            try:
                callback = self._completed.get_nowait()
            except queue.Empty:
                return count
            callback()
            count += 1

    def shutdown(self) -> None:
        """Cancel timers and refuse new jobs; running jobs are abandoned"""
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
