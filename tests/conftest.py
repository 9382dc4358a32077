"""Shared test fixtures for specir.

Provides reusable fixtures for loading document fixtures, creating isolated
config environments and keeping logging state from leaking between tests.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from specir.models import ParsedSpec
from specir.parser.extractor import extract_spec


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Remove handlers installed by ``configure_logging`` after every test.

    ``configure_logging`` raises the level of the ``specir`` logger in quiet
    mode, which would hide warnings from ``caplog`` in later tests.
    """
    yield
    logger = logging.getLogger("specir")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_31_raw() -> dict[str, Any]:
    """Load raw petstore 3.1 document dict."""
    with open(FIXTURES_DIR / "petstore_3.1.json") as f:
        return json.load(f)


@pytest.fixture
def swagger_20_raw() -> dict[str, Any]:
    """Load raw Swagger 2.0 document dict."""
    with open(FIXTURES_DIR / "swagger_2.0.json") as f:
        return json.load(f)


@pytest.fixture
def multi_dir() -> Path:
    """Directory holding ``main.json``, ``common.json`` and a schema document."""
    return FIXTURES_DIR / "multi"


# ---------------------------------------------------------------------------
# Parsed fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_spec(petstore_31_raw: dict[str, Any]) -> ParsedSpec:
    """Extracted IR of the petstore 3.1 fixture (resolved on its own)."""
    return extract_spec(petstore_31_raw)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_CACHE_HOME to subdirectories of tmp_path so
    that tests never touch real user config.  Clears all SPECIR_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("specir.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))

    for var in ["SPECIR_TIMEOUT", "SPECIR_CACHE_TTL", "SPECIR_NO_CACHE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path
