"""Load API description documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw documents and converting them
into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection.  The transport is selected by URI scheme:

* ``-`` -- standard input.
* ``http://`` / ``https://`` -- fetched with :mod:`httpx`.
* ``file://`` URIs and bare paths -- read from the local filesystem.

The public functions are:

* :func:`load_spec` -- synchronous wrapper around :func:`fetch_document`
  for loading a single document.
* :func:`fetch_document` -- the awaitable used by
  :class:`~specir.parser.documents.DocumentCache` for every document it
  loads, optionally backed by a :class:`~specir.cache.FetchCache`.
* :func:`to_document_uri` -- normalize a source string into the absolute
  retrieval URI used as the cache key.
* :func:`parse_content` -- JSON/YAML parsing with format hints.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import unquote, urlsplit

import httpx
import yaml

from specir.exceptions import SpecParseError

if TYPE_CHECKING:
    from specir.cache import FetchCache

logger = logging.getLogger(__name__)


def to_document_uri(source: str) -> str:
    """Return the absolute retrieval URI for *source*.

    URLs (any string with a scheme other than a Windows drive letter) are
    returned without their fragment; paths are resolved against the current
    working directory and converted to ``file://`` URIs.
    """
    if source == "-":
        return "stdin:"
    parts = urlsplit(source)
    if parts.scheme and len(parts.scheme) > 1:
        return source.split("#", 1)[0]
    return Path(source).resolve().as_uri()


def load_spec(source: str) -> dict[str, Any]:
    """Load a document from URL, file path, ``file://`` URI, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path or URI, or '-' for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    uri = "stdin:" if source == "-" else source
    return asyncio.run(fetch_document(uri))


async def fetch_document(
    uri: str,
    client: Optional[httpx.AsyncClient] = None,
    fetch_cache: Optional[FetchCache] = None,
) -> dict[str, Any]:
    """Fetch and parse the document at *uri*.

    HTTP(S) documents are fetched through *client* (a temporary client is
    opened when none is given) and, when *fetch_cache* is enabled, served
    from or stored into the on-disk cache.  Everything else is read from
    the local filesystem.

    Raises:
        SpecParseError: If the document cannot be fetched or parsed.
    """
    if uri == "stdin:":
        return _load_from_stdin()
    if not uri.startswith(("http://", "https://")):
        return _load_from_file(_file_path(uri))

    if fetch_cache is not None:
        cached = fetch_cache.get(uri)
        if cached is not None:
            logger.debug("Serving %s from the fetch cache", uri)
            return parse_content(cached["content"], hint=cached.get("hint", ""))

    if client is None:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as temp:
            response = await _get(temp, uri)
    else:
        response = await _get(client, uri)

    content = response.text
    hint = _hint_from_content_type(response.headers.get("content-type", ""))
    if not hint:
        hint = _hint_from_suffix(urlsplit(uri).path)
    document = parse_content(content, hint=hint)
    if fetch_cache is not None:
        fetch_cache.set(uri, {"content": content, "hint": hint})
    return document


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch document from {url}: {exc}") from exc
    return response


def _file_path(source: str) -> str:
    if source.startswith("file:"):
        return unquote(urlsplit(source).path)
    return source


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin.

    Reads all available input and attempts to parse as JSON, then YAML.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except Exception as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return parse_content(content, hint="stdin")


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.

    Raises:
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SpecParseError(f"Document {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise SpecParseError(f"Failed to read document {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Document is empty: {path}")

    return parse_content(content, hint=_hint_from_suffix(file_path.name))


def _hint_from_content_type(content_type: str) -> str:
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def _hint_from_suffix(name: str) -> str:
    suffix = Path(name).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    return ""


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    This order is chosen because valid JSON is also valid YAML, but JSON
    parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise SpecParseError(
                    "Document must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            # If the hint was explicitly JSON, don't try YAML
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise SpecParseError(
                "Document must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)
