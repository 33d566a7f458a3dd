"""duelboard's command-line interface."""

from duelboard.cli.main import app

__all__ = ["app"]
