"""Runtime orchestration for slackcat."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional, TextIO

from .config import Settings
from .core import DeliveryLoop, LineProducer, ShutdownCoordinator, StreamSession
from .transport import SlackTransport, Transport, TransportError

TransportFactory = Callable[[Settings, logging.Logger], Transport]

_CHUNK_SIZE = 64 * 1024


def default_transport(settings: Settings, logger: logging.Logger) -> Transport:
    return SlackTransport(
        settings.require_token(),
        api_url=settings.api_url,
        timeout=settings.request_timeout,
        logger=logger,
    )


class SlackCatRuntime:
    """Connects to Slack once and then runs either the stream or an upload."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        *,
        transport_factory: TransportFactory = default_transport,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._transport_factory = transport_factory
        self.transport: Optional[Transport] = None
        self.channel_id: Optional[str] = None

    # ------------------------------------------------------------------
    def connect(self) -> str:
        """Authenticate and resolve the configured channel; errors are fatal."""

        channel_name = self.settings.require_channel()
        transport = self._transport_factory(self.settings, self.logger)
        identity = transport.authenticate()
        self.logger.info("connected to %s as %s", identity.team, identity.user)
        self.channel_id = transport.resolve_channel(channel_name)
        self.logger.debug("Resolved %s to %s", channel_name, self.channel_id)
        self.transport = transport
        return self.channel_id

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------------
    def stream(
        self,
        lines: Iterable[str],
        *,
        tee: Optional[TextIO] = None,
        install_signals: bool = True,
    ) -> int:
        """Relay ``lines`` in batches until drained or aborted; return the exit code."""

        if self.channel_id is None:
            self.connect()
        session = StreamSession(
            channel_id=str(self.channel_id),
            channel_name=self.settings.channel,
            logger=self.logger,
        )
        coordinator = ShutdownCoordinator(
            session,
            drain_interval=self.settings.drain_interval,
            logger=self.logger,
        )
        delivery = DeliveryLoop(
            session,
            self.transport,
            interval=self.settings.flush_interval,
            dry_run=self.settings.dry_run,
            logger=self.logger,
        )
        producer = LineProducer(
            lines,
            session.queue,
            on_exhausted=coordinator.begin_drain,
            on_error=lambda exc: coordinator.begin_drain(exit_code=1),
            tee=tee,
            logger=self.logger,
        )

        if install_signals:
            coordinator.install()
        try:
            delivery.start()
            producer.start()
            code = session.wait()
        finally:
            delivery.stop(timeout=0)
            coordinator.restore()
        pending = session.queue.pending()
        if pending:
            self.logger.warning("%d line(s) left undelivered", pending)
        return 1 if code is None else code

    # ------------------------------------------------------------------
    def upload(
        self,
        path: str | Path,
        *,
        name: str | None = None,
        filetype: str | None = None,
        comment: str | None = None,
    ) -> int:
        """Upload one file to the channel; return the exit code."""

        if self.channel_id is None:
            self.connect()
        file_name = name or str(int(time.time()))

        if self.settings.dry_run:
            self.logger.info("skipping upload of file %s to %s", file_name, self.settings.channel)
            return 0

        if self.transport is None:
            raise TransportError("not connected to Slack")
        start = time.perf_counter()
        try:
            self.transport.upload_file(
                str(self.channel_id),
                path,
                file_name,
                filetype=filetype,
                comment=comment,
            )
        except TransportError as exc:
            self.logger.error("error uploading file to Slack: %s", exc)
            return 1
        duration = time.perf_counter() - start
        self.logger.info(
            "file %s uploaded to %s (%.3fs)", file_name, self.settings.channel, duration
        )
        return 0

    # ------------------------------------------------------------------
    def upload_stream(
        self,
        stream: BinaryIO,
        *,
        name: str | None = None,
        filetype: str | None = None,
        comment: str | None = None,
        tee: Optional[BinaryIO] = None,
    ) -> int:
        """Copy the raw bytes of ``stream`` into a temporary file and upload it."""

        handle, tmp_path = tempfile.mkstemp(prefix="slackcat-")
        try:
            with os.fdopen(handle, "wb") as out:
                if tee is None:
                    shutil.copyfileobj(stream, out)
                else:
                    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                        out.write(chunk)
                        tee.write(chunk)
                    tee.flush()
            return self.upload(tmp_path, name=name, filetype=filetype, comment=comment)
        finally:
            os.unlink(tmp_path)


__all__ = ["SlackCatRuntime", "TransportFactory", "default_transport"]
