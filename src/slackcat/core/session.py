"""Per-run state shared by the streaming components."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .line_queue import LineQueue


class StreamSession:
    """Holds the line queue, the resolved destination and the run's exit status.

    Any component may end the run through :meth:`request_exit`; the first
    request wins and later ones are ignored.
    """

    def __init__(
        self,
        *,
        channel_id: str,
        channel_name: str,
        logger: logging.Logger,
        queue: Optional[LineQueue] = None,
    ) -> None:
        self.channel_id = channel_id
        self.channel_name = channel_name
        self.logger = logger
        self.queue = queue or LineQueue()
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._exit_code: Optional[int] = None
        self._reason: Optional[str] = None

    def request_exit(self, code: int, reason: str | None = None) -> bool:
        with self._lock:
            if self._exit_code is not None:
                return False
            self._exit_code = code
            self._reason = reason
        self.logger.debug("Exit requested with status %s (%s)", code, reason or "no reason")
        self._finished.set()
        return True

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: float | None = None, *, poll_interval: float = 0.25) -> Optional[int]:
        """Block until an exit is requested and return its status.

        Waiting happens in short slices so the main thread keeps servicing
        signal handlers.
        """

        remaining = timeout
        while not self._finished.is_set():
            step = poll_interval if remaining is None else min(poll_interval, remaining)
            if self._finished.wait(step):
                break
            if remaining is not None:
                remaining -= step
                if remaining <= 0:
                    break
        return self._exit_code


__all__ = ["StreamSession"]
