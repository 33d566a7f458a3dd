"""Tests for the CLI logging configuration."""

import logging

import pytest
from rich.logging import RichHandler

from duelboard.logging_setup import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _managed(root):
    return [h for h in root.handlers if isinstance(h, RichHandler) and getattr(h, "_duelboard_managed", False)]


def test_handler_installed_once():
    configure_logging()
    configure_logging()
    assert len(_managed(logging.getLogger())) == 1


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("DUELBOARD_LOG_LEVEL", "warning")
    configure_logging()
    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("DUELBOARD_LOG_LEVEL", "chatty")
    configure_logging()
    assert logging.getLogger().level == logging.INFO


def test_debug_keeps_query_libraries_quiet():
    configure_logging(logging.DEBUG)
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlglot").level == logging.WARNING
    assert logging.getLogger("ibis").level == logging.WARNING
