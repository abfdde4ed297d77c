"""Producer side of the pipeline: read input lines into the queue."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Iterator, Optional, TextIO

from .line_queue import LineQueue


def iter_lines(stream: TextIO) -> Iterator[str]:
    """Yield lines from ``stream`` without their trailing newline."""

    for raw in stream:
        yield raw.rstrip("\r\n")


class LineProducer:
    """Feeds ``lines`` into the queue on a background thread.

    ``on_exhausted`` is called once the input ends, which is how end of input
    requests the same drain as an interrupt. When reading fails and
    ``on_error`` is set, it is called with the exception instead, so the
    lines read so far still drain but the run does not end cleanly.
    """

    def __init__(
        self,
        lines: Iterable[str],
        queue: LineQueue,
        *,
        on_exhausted: Callable[[], object],
        on_error: Optional[Callable[[BaseException], object]] = None,
        tee: Optional[TextIO] = None,
        logger: logging.Logger,
    ) -> None:
        self.lines = lines
        self.queue = queue
        self.on_exhausted = on_exhausted
        self.on_error = on_error
        self.tee = tee
        self.logger = logger
        self.count = 0
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="LineProducer", daemon=True)
        self._thread.start()

    def run(self) -> None:
        try:
            for line in self.lines:
                if self.tee is not None:
                    self.tee.write(line + "\n")
                    self.tee.flush()
                self.queue.add(line)
                self.count += 1
        except Exception as exc:
            self.logger.exception("Reading input failed after %d line(s): %s", self.count, exc)
            self.error = exc
        else:
            self.logger.debug("Input exhausted after %d line(s)", self.count)
        if self.error is not None and self.on_error is not None:
            self.on_error(self.error)
        else:
            self.on_exhausted()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


__all__ = ["LineProducer", "iter_lines"]
