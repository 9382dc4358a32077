"""Tests for specir.output.

Covers:
- NO_COLOR / TERM=dumb color disabling
- Log level selection for verbose and quiet runs
- stdout vs stderr discipline
"""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from specir.output import _should_disable_color, configure_logging


# ------------------------------------------------------------------ #
# Colour control
# ------------------------------------------------------------------ #


class TestShouldDisableColor:
    def test_no_color_set(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_color_enabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


class TestConfigureLogging:
    def test_default_level_is_info(self) -> None:
        handler = configure_logging()
        assert isinstance(handler, RichHandler)
        assert handler.level == logging.INFO
        assert logging.getLogger("specir").level == logging.INFO

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("specir").level == logging.DEBUG

    def test_quiet_only_errors(self) -> None:
        configure_logging(quiet=True)
        assert logging.getLogger("specir").level == logging.ERROR

    def test_verbose_wins_over_quiet(self) -> None:
        configure_logging(verbose=True, quiet=True)
        assert logging.getLogger("specir").level == logging.DEBUG

    def test_repeated_calls_replace_the_handler(self) -> None:
        configure_logging()
        second = configure_logging(verbose=True)
        handlers = [h for h in logging.getLogger("specir").handlers if h.get_name() == "specir"]
        assert handlers == [second]

    def test_records_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(no_color=True)
        logging.getLogger("specir.parser.resolver").warning("Unresolved reference '%s'", "#/x")

        captured = capsys.readouterr()
        assert "Unresolved reference '#/x'" in captured.err
        assert captured.out == ""

    def test_quiet_hides_warnings(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(quiet=True, no_color=True)
        logging.getLogger("specir.schema.projector").warning("hidden")
        assert "hidden" not in capsys.readouterr().err

