"""Thread-safe buffer of pending lines with flush/acknowledge staging."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator, List, Tuple


@dataclass(frozen=True)
class Line:
    seq: int
    text: str


@dataclass(frozen=True)
class Batch:
    """Ordered snapshot of lines handed to the delivery loop by one flush."""

    lines: Tuple[Line, ...] = ()

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.lines]

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[Line]:
        return iter(self.lines)


class LineQueue:
    """Ordered line buffer shared by the producer, delivery loop and drain watcher.

    Lines move from the live buffer into a staged batch on :meth:`flush` and
    are only discarded by :meth:`ack`. A flush issued while a batch is still
    staged appends the new lines behind it, so staged lines are never lost.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffer: List[Line] = []
        self._staged: List[Line] = []
        self._next_seq = 0

    # ------------------------------------------------------------------
    def add(self, text: str) -> Line:
        with self._lock:
            line = Line(self._next_seq, text)
            self._next_seq += 1
            self._buffer.append(line)
            return line

    # ------------------------------------------------------------------
    def flush(self) -> Batch:
        with self._lock:
            if self._buffer:
                self._staged.extend(self._buffer)
                self._buffer = []
            return Batch(tuple(self._staged))

    # ------------------------------------------------------------------
    def ack(self) -> None:
        with self._lock:
            self._staged = []

    # ------------------------------------------------------------------
    def is_empty(self) -> bool:
        with self._lock:
            return not self._buffer and not self._staged

    # ------------------------------------------------------------------
    def pending(self) -> int:
        """Number of lines not yet acknowledged."""

        with self._lock:
            return len(self._buffer) + len(self._staged)


__all__ = ["Batch", "Line", "LineQueue"]
