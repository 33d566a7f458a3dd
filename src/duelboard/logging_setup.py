"""Centralized logging configuration for duelboard.

Engine modules only call ``logging.getLogger(__name__)``; the CLI installs the
single Rich handler below. Query-building libraries under the storage layer are
held at WARNING so ``--debug`` shows duelboard's own trace, not SQL compilation.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final, cast

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["configure_logging", "console"]

_LOG_LEVEL_ENV: Final[str] = "DUELBOARD_LOG_LEVEL"
_DEFAULT_LEVEL_NAME: Final[str] = "INFO"
_QUIET_LIBRARIES: Final[tuple[str, ...]] = ("ibis", "sqlglot", "duckdb")

console = Console()

if TYPE_CHECKING:

    class _ManagedRichHandler(RichHandler):
        _duelboard_managed: bool
else:
    _ManagedRichHandler = RichHandler


def _resolve_level() -> int:
    """Return the logging level defined via environment variable."""
    level_name = os.getenv(_LOG_LEVEL_ENV, _DEFAULT_LEVEL_NAME).upper()
    return getattr(logging, level_name, logging.INFO)


def _find_managed_handler(root_logger: logging.Logger) -> _ManagedRichHandler | None:
    for handler in root_logger.handlers:
        if isinstance(handler, RichHandler) and getattr(handler, "_duelboard_managed", False):
            return cast("_ManagedRichHandler", handler)
    return None


def configure_logging(level: int | None = None) -> None:
    """Install the Rich handler (once) and apply ``level``.

    Args:
        level: Explicit level, e.g. from ``--debug``. Falls back to
            ``DUELBOARD_LOG_LEVEL`` and then INFO.

    """
    root_logger = logging.getLogger()
    resolved = _resolve_level() if level is None else level

    if _find_managed_handler(root_logger) is None:
        root_logger.handlers.clear()
        # Submission titles and voter ids are user text; never parse them as markup
        handler = _ManagedRichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._duelboard_managed = True
        root_logger.addHandler(handler)

    root_logger.setLevel(resolved)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    logging.captureWarnings(True)
