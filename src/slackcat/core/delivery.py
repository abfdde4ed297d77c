"""Periodic flush-and-post loop feeding the transport."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from ..transport import Transport, TransportError
from .line_queue import Batch
from .session import StreamSession

_ESCAPES = (
    ("&", "%26amp%3B"),
    ("<", "%26lt%3B"),
    (">", "%26gt%3B"),
)


def encode_batch(lines: Iterable[str]) -> str:
    """Join ``lines`` with newlines and escape Slack's markup control characters."""

    text = "\n".join(lines)
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


class DeliveryLoop:
    """Flushes the session queue every ``interval`` seconds and posts each batch.

    Transport errors are fatal: the loop reports them, asks the session to
    exit with status 1 and stops without acknowledging the batch.
    """

    def __init__(
        self,
        session: StreamSession,
        transport: Optional[Transport],
        *,
        interval: float = 3.0,
        dry_run: bool = False,
        logger: logging.Logger,
    ) -> None:
        if transport is None and not dry_run:
            raise ValueError("A transport is required unless running in dry-run mode")
        self.session = session
        self.transport = transport
        self.interval = interval
        self.dry_run = dry_run
        self.logger = logger
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="DeliveryLoop", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    # ------------------------------------------------------------------
    def run(self) -> None:
        self.logger.debug("Delivery loop started (interval %.1fs)", self.interval)
        while not self._stop.is_set() and not self.session.finished:
            if not self.tick():
                return
            self._stop.wait(self.interval)
        self.logger.debug("Delivery loop stopped")

    # ------------------------------------------------------------------
    def tick(self) -> bool:
        """Run one flush cycle; return ``False`` once delivery has failed."""

        queue = self.session.queue
        if queue.is_empty():
            return True
        batch = queue.flush()
        if not batch:
            return True

        if self.dry_run:
            self.logger.info(
                "skipped posting of %d message lines to %s",
                len(batch),
                self.session.channel_name,
            )
        else:
            try:
                self._post(batch)
            except TransportError as exc:
                self.logger.error("Slack API error: %s", exc)
                self._stop.set()
                self.session.request_exit(1, str(exc))
                return False
            self.logger.info(
                "posted %d message lines to %s",
                len(batch),
                self.session.channel_name,
            )
        queue.ack()
        return True

    def _post(self, batch: Batch) -> None:
        if self.transport is None:
            raise TransportError("no transport configured")
        self.transport.post_message(self.session.channel_id, encode_batch(batch.texts))


__all__ = ["DeliveryLoop", "encode_batch"]
