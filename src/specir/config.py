"""Configuration management with XDG paths and precedence resolution.

This module handles all persistent configuration for specir:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specir/`` on macOS and Windows.  See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **User config** -- A single :class:`~specir.models.SpecirConfig` JSON
  file holding defaults for every run.
* **Project config** -- ``./specir.json``, a partial config that overrides
  the user file for runs started in that directory.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  overrides, environment variables, project-local config and user config
  into the effective configuration.

Configuration files are only ever read; specir never writes them.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from specir.cache import FetchCache
from specir.exceptions import ConfigError
from specir.models import SpecirConfig

_APP_NAME = "specir"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specir.json"

_TRUTHY = ("1", "true", "yes", "on")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/specir/`` (default ``~/.config/specir/``).
    On macOS/Windows: ``~/.specir/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Used to store fetched remote documents.  Cached data can be safely
    deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/specir/`` (default ``~/.cache/specir/``).
    On macOS/Windows: ``~/.specir/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- User config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> Optional[dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def load_global_config() -> SpecirConfig:
    """Load the user configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~specir.models.SpecirConfig`.  If the file
        does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    data = _read_json(path, "user config")
    if data is None:
        return SpecirConfig()
    try:
        return SpecirConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid user config at {path}: {exc}") from exc


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specir.json``.

    The file may hold any subset of the :class:`~specir.models.SpecirConfig`
    sections, for example ``{"projection": {"named_enums": true}}``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    return _read_json(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project config")


# --- Precedence resolution ---


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    timeout = os.environ.get("SPECIR_TIMEOUT")
    if timeout:
        try:
            overrides.setdefault("loader", {})["timeout"] = float(timeout)
        except ValueError as exc:
            raise ConfigError(f"SPECIR_TIMEOUT must be a number, got {timeout!r}") from exc

    ttl = os.environ.get("SPECIR_CACHE_TTL")
    if ttl:
        try:
            overrides.setdefault("cache", {})["ttl_seconds"] = int(ttl)
        except ValueError as exc:
            raise ConfigError(f"SPECIR_CACHE_TTL must be an integer, got {ttl!r}") from exc

    if os.environ.get("SPECIR_NO_CACHE", "").lower() in _TRUTHY:
        overrides.setdefault("cache", {})["enabled"] = False

    return overrides


def resolve_config(overrides: Optional[dict[str, Any]] = None) -> SpecirConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. Explicit *overrides* (same shape as the JSON files)
        2. Environment variables (``SPECIR_TIMEOUT``, ``SPECIR_CACHE_TTL``,
           ``SPECIR_NO_CACHE``)
        3. Project config (``./specir.json``)
        4. User config (``~/.config/specir/config.json``)
        5. Defaults

    Raises:
        ConfigError: If a layer is malformed or the merged result fails
            validation.
    """
    data = load_global_config().model_dump(mode="json")

    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)
    data = _deep_merge(data, _env_overrides())
    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return SpecirConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def create_fetch_cache(config: SpecirConfig) -> FetchCache:
    """Return the on-disk remote document cache described by *config*."""
    return FetchCache(get_cache_dir(), config.cache)
