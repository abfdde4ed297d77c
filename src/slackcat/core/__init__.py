"""Core streaming components for slackcat."""

from .delivery import DeliveryLoop, encode_batch
from .graceful_shutdown import ShutdownCoordinator, ShutdownState
from .ingest import LineProducer, iter_lines
from .line_queue import Batch, Line, LineQueue
from .session import StreamSession

__all__ = [
    "Batch",
    "DeliveryLoop",
    "Line",
    "LineProducer",
    "LineQueue",
    "ShutdownCoordinator",
    "ShutdownState",
    "StreamSession",
    "encode_batch",
    "iter_lines",
]
