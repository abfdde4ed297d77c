"""Command-line entry point for slackcat."""

from __future__ import annotations

import sys

from slackcat.cli import main


if __name__ == "__main__":
    sys.exit(main())
