"""Signal-aware drain-then-exit coordination."""

from __future__ import annotations

import enum
import logging
import signal
import threading
from typing import Any, Dict, Iterable, Optional

from .session import StreamSession


class ShutdownState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    FORCE_EXIT = "force_exit"


class ShutdownCoordinator:
    """Counts interrupts and drains the session queue before ending the run.

    The first interrupt (or end of input) starts a single watcher thread that
    waits for the queue to empty and then exits with status 0, or with the
    highest status passed to ``begin_drain``. Interrupts are counted on their
    own: after end of input the first ctrl+c is still reported and keeps
    draining, and only the second one aborts with status 1.
    """

    def __init__(
        self,
        session: StreamSession,
        *,
        drain_interval: float = 3.0,
        logger: logging.Logger,
    ) -> None:
        self.session = session
        self.drain_interval = drain_interval
        self.logger = logger
        self._lock = threading.Lock()
        self._signal_count = 0
        self._drain_code = 0
        self._watcher: Optional[threading.Thread] = None
        self._previous: Dict[int, Any] = {}

    # ------------------------------------------------------------------
    def install(self, signals: Iterable[int] | None = None) -> None:
        targets = list(signals) if signals is not None else [signal.SIGINT]
        for sig in targets:
            self._previous[sig] = signal.signal(sig, self._handle_signal)

    def restore(self) -> None:
        """Put back the handlers that were active before ``install``."""

        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def _handle_signal(self, signum: int, frame) -> None:
        self.trigger(signum)

    # ------------------------------------------------------------------
    def trigger(self, signum: int = signal.SIGINT) -> ShutdownState:
        with self._lock:
            self._signal_count += 1
            count = self._signal_count

        if count > 2:
            return ShutdownState.FORCE_EXIT
        if count == 2:
            self.logger.error("aborted")
            self.session.request_exit(1, "aborted")
            return ShutdownState.FORCE_EXIT

        self.logger.info("got signal: %s", _signal_name(signum))
        self.logger.info("press ctrl+c again to exit immediately")
        self.begin_drain()
        return ShutdownState.DRAINING

    # ------------------------------------------------------------------
    def begin_drain(self, exit_code: int = 0) -> bool:
        """Start the drain watcher unless one is already running.

        ``exit_code`` is the status reported once the queue is empty; a
        later call can raise it but never lower it.
        """

        with self._lock:
            self._drain_code = max(self._drain_code, exit_code)
            if self._watcher is not None:
                return False
            self._watcher = threading.Thread(target=self._drain, name="DrainWatcher", daemon=True)
        self._watcher.start()
        return True

    def _drain(self) -> None:
        queue = self.session.queue
        while not self.session.finished:
            if queue.is_empty():
                self.session.request_exit(self._drain_code, "drained")
                return
            self.logger.info("flushing remaining messages to Slack...")
            if self.session.wait(self.drain_interval) is not None:
                return

    # ------------------------------------------------------------------
    @property
    def signal_count(self) -> int:
        return self._signal_count

    @property
    def state(self) -> ShutdownState:
        if self._signal_count >= 2:
            return ShutdownState.FORCE_EXIT
        if self._signal_count == 1 or self._watcher is not None:
            return ShutdownState.DRAINING
        return ShutdownState.RUNNING

    def join(self, timeout: float | None = None) -> None:
        if self._watcher is not None:
            self._watcher.join(timeout)


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


__all__ = ["ShutdownCoordinator", "ShutdownState"]
