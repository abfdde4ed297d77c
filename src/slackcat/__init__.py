"""Stream lines or upload files from the command line to Slack."""

__version__ = "0.1.0"
