"""Tests for the ``slackcat.cli`` entry point."""

from __future__ import annotations

import io
import logging
from unittest.mock import Mock

import pytest

from slackcat import cli
from slackcat.config import ConfigError, ConfigLoadResult
from slackcat.transport import AuthenticationError


@pytest.fixture
def runtime(monkeypatch):
    instance = Mock()
    instance.upload.return_value = 0
    instance.stream.return_value = 0
    instance.upload_stream.return_value = 0
    factory = Mock(return_value=instance)
    monkeypatch.setattr(cli, "SlackCatRuntime", factory)
    monkeypatch.setattr(cli, "configure_logging", Mock(return_value=logging.getLogger("slackcat_test")))
    return factory, instance


@pytest.fixture
def load(monkeypatch):
    loader = Mock(
        return_value=ConfigLoadResult(
            config={"token": "t", "channel": "general"}, sources=("/etc/slackcat.yaml",)
        )
    )
    monkeypatch.setattr(cli, "load_config", loader)
    return loader


def test_file_argument_uploads(runtime, load) -> None:
    factory, instance = runtime

    code = cli.main(["-c", "general", "-n", "report", "--comment", "hi", "out.txt"])

    assert code == 0
    load.assert_called_once_with(
        None,
        overrides={"channel": "general", "dry_run": None, "tee": None},
        include_sources=True,
    )
    instance.connect.assert_called_once_with()
    instance.upload.assert_called_once_with("out.txt", name="report", filetype=None, comment="hi")
    instance.close.assert_called_once_with()


def test_stream_flag_streams_stdin(runtime, load, monkeypatch) -> None:
    _, instance = runtime
    instance.stream.return_value = 1
    monkeypatch.setattr(cli.sys, "stdin", io.TextIOWrapper(io.BytesIO(b"a\nb\n")))

    code = cli.main(["--stream", "--noop", "--log-level", "DEBUG", "--config", "alt.yaml"])

    assert code == 1
    load.assert_called_once_with(
        "alt.yaml",
        overrides={
            "channel": None,
            "dry_run": True,
            "tee": None,
            "logging": {"console_level": "DEBUG"},
        },
        include_sources=True,
    )
    lines = instance.stream.call_args.args[0]
    assert list(lines) == ["a", "b"]


def test_without_file_or_stream_uploads_stdin(runtime, load, monkeypatch) -> None:
    _, instance = runtime
    stdin = io.TextIOWrapper(io.BytesIO(b"payload"))
    monkeypatch.setattr(cli.sys, "stdin", stdin)

    assert cli.main(["--filetype", "text"]) == 0

    instance.upload_stream.assert_called_once_with(
        stdin.buffer, name=None, filetype="text", comment=None, tee=None
    )


def test_file_and_stream_are_mutually_exclusive(runtime, load) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--stream", "out.txt"])
    assert excinfo.value.code == 2


def test_configuration_error_exits_one(runtime, monkeypatch) -> None:
    monkeypatch.setattr(cli, "load_config", Mock(side_effect=ConfigError("bad")))

    assert cli.main([]) == 1


def test_transport_error_during_connect_exits_one(runtime, load) -> None:
    _, instance = runtime
    instance.connect.side_effect = AuthenticationError("invalid_auth")

    assert cli.main(["out.txt"]) == 1
    instance.upload.assert_not_called()
    instance.close.assert_called_once_with()


def test_stream_replaces_undecodable_bytes(runtime, load, monkeypatch) -> None:
    _, instance = runtime
    monkeypatch.setattr(cli.sys, "stdin", io.TextIOWrapper(io.BytesIO(b"ok\n\xff\xfebad\n")))

    assert cli.main(["--stream"]) == 0

    lines = instance.stream.call_args.args[0]
    assert list(lines) == ["ok", "\ufffd\ufffdbad"]


def test_configuration_sources_are_logged_at_debug(runtime, load, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="slackcat_test"):
        assert cli.main(["out.txt"]) == 0

    assert "Loaded configuration from: /etc/slackcat.yaml" in caplog.text


def test_invalid_settings_exit_one(runtime, monkeypatch) -> None:
    monkeypatch.setattr(
        cli, "load_config", Mock(return_value=ConfigLoadResult(config={"flush_interval": 0}, sources=()))
    )

    assert cli.main([]) == 1
