"""
PeriodicJob — Fixed-interval background runner on a daemon thread.

Sweepers run on their own thread so foreground load on the caller's
thread or event loop never delays them.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("rootguard.scheduler")


class PeriodicJob:
    """Call ``fn`` every ``interval`` seconds until stopped.

    The first call happens one full interval after :meth:`start`.
    Exceptions raised by ``fn`` are logged and the schedule continues.
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], object]):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._fn = fn
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._loop,
                name=f"rootguard-{self.name}",
                daemon=True,
            )
            self._thread.start()
        logger.debug("Started periodic job %s (every %.1fs)", self.name, self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            logger.debug("Stopped periodic job %s", self.name)

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._fn()
            except Exception as err:
                logger.error("Periodic job %s failed: %s", self.name, err)
