from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from slackcat.transport import Identity, TransportError  # noqa: E402


class StubTransport:
    def __init__(self, *, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.posts: List[Tuple[str, str]] = []
        self.uploads: List[dict] = []
        self.closed = False

    def authenticate(self) -> Identity:
        return Identity(team="acme", user="bot")

    def resolve_channel(self, name: str) -> str:
        return f"C-{name}"

    def post_message(self, channel_id: str, text: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.posts.append((channel_id, text))

    def upload_file(self, channel_id, path, name, filetype=None, comment=None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.uploads.append(
            {
                "channel_id": channel_id,
                "path": str(path),
                "name": name,
                "filetype": filetype,
                "comment": comment,
                "content": Path(path).read_bytes(),
            }
        )

    def close(self) -> None:
        self.closed = True


class BlockingTransport(StubTransport):
    """Connects fine but holds every post until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def post_message(self, channel_id: str, text: str) -> None:
        self.release.wait(10)
        super().post_message(channel_id, text)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("slackcat_test")


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def failing_transport() -> StubTransport:
    return StubTransport(fail_with=TransportError("chat.postMessage failed: channel_not_found"))


@pytest.fixture
def blocking_transport():
    stub = BlockingTransport()
    yield stub
    stub.release.set()
