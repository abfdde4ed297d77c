"""Command-line entry point for slackcat."""

from __future__ import annotations

import argparse
import io
import sys
from typing import Any, Dict, Sequence

from .config import ConfigError, Settings, load_config
from .core import iter_lines
from .logging_utils import configure_logging
from .runtime import SlackCatRuntime
from .transport import TransportError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slackcat",
        description="Redirect a file or output stream to a Slack channel, group or user.",
    )
    parser.add_argument("file", nargs="?", help="file to upload instead of reading stdin")
    parser.add_argument("-c", "--channel", help="Slack channel, group or user to post to")
    parser.add_argument(
        "-s", "--stream", action="store_true", help="stream stdin line by line as messages"
    )
    parser.add_argument(
        "-t", "--tee", action="store_true", default=None, help="print stdin to stdout before posting"
    )
    parser.add_argument(
        "--noop",
        action="store_true",
        default=None,
        help="skip posting to Slack; useful for testing",
    )
    parser.add_argument("-n", "--filename", help="filename for upload (defaults to a timestamp)")
    parser.add_argument("--filetype", help="Slack filetype for the upload")
    parser.add_argument("--comment", help="initial comment for the upload")
    parser.add_argument("--config", help="path to an additional YAML configuration file")
    parser.add_argument("--log-level", help="console log level (default: INFO)")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "channel": args.channel,
        "dry_run": args.noop,
        "tee": args.tee,
    }
    if args.log_level:
        overrides["logging"] = {"console_level": args.log_level}
    return overrides


def _text_stdin() -> io.TextIOWrapper:
    """Stdin decoded as UTF-8, with undecodable bytes replaced rather than fatal."""

    return io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.stream and args.file:
        parser.error("a file cannot be combined with --stream")

    try:
        result = load_config(args.config, overrides=_overrides(args), include_sources=True)
        settings = Settings.from_mapping(result.config)
    except ConfigError as exc:
        configure_logging({}).error("%s", exc)
        return 1
    logger = configure_logging(settings.logging)
    logger.debug("Loaded configuration from: %s", ", ".join(result.sources) or "<defaults>")

    runtime = SlackCatRuntime(settings, logger)
    try:
        runtime.connect()
        if args.file:
            return runtime.upload(
                args.file, name=args.filename, filetype=args.filetype, comment=args.comment
            )
        if args.stream:
            return runtime.stream(
                iter_lines(_text_stdin()), tee=sys.stdout if settings.tee else None
            )
        return runtime.upload_stream(
            sys.stdin.buffer,
            name=args.filename,
            filetype=args.filetype,
            comment=args.comment,
            tee=sys.stdout.buffer if settings.tee else None,
        )
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1
    except TransportError as exc:
        logger.error("Slack API error: %s", exc)
        return 1
    except KeyboardInterrupt:  # pragma: no cover - interrupt outside streaming
        logger.error("aborted")
        return 1
    finally:
        runtime.close()


if __name__ == "__main__":  # pragma: no cover - manual execution shortcut
    sys.exit(main())
