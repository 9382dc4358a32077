"""Media-type normalization, classification and negotiation.

:func:`negotiate` picks the one representation an emitter should use when a
request body or response declares several ``content`` entries:

1. Normalize every key: drop ``;``-parameters, trim, lowercase.
2. Score specificity: ``*/*`` is 0, a wildcard subtype (``text/*``) is 1,
   a concrete type is 2.
3. Drop wildcard entries subsumed by a more specific entry that matches
   them (``application/*`` next to ``application/json``).
4. Rank the survivors by preference: ``application/json``,
   ``application/x-json``, any other ``*/json`` or ``+json``,
   ``multipart/form-data``, ``application/x-www-form-urlencoded``, any
   ``text/*``, then everything else.  Ties go to the more specific entry,
   then to the one declared first.
5. Return the winner's ``schema``, or its ``itemSchema`` when the media type
   is a streaming (sequential) format such as JSON Lines or server-sent
   events.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Optional

JSON_MEDIA_TYPE = "application/json"

SEQUENTIAL_MEDIA_TYPES = frozenset(
    {
        "application/json-seq",
        "application/geo+json-seq",
        "application/jsonl",
        "application/jsonlines",
        "application/x-jsonlines",
        "application/ndjson",
        "application/x-ndjson",
        "text/event-stream",
        "multipart/mixed",
    }
)

_SEQUENTIAL_SUFFIXES = (
    "+json-seq",
    "+jsonl",
    "+ndjson",
    "/json-seq",
    "/jsonl",
    "/ndjson",
    "/x-ndjson",
)

_BINARY_PREFIXES = ("image/", "audio/", "video/", "font/")
_BINARY_TYPES = frozenset(
    {
        "application/octet-stream",
        "application/pdf",
        "application/zip",
        "application/gzip",
        "application/x-tar",
        "application/x-protobuf",
        "application/vnd.ms-excel",
        "application/msword",
    }
)


class NegotiatedContent(NamedTuple):
    """The representation chosen by :func:`negotiate`.

    ``key`` is the media type as declared; ``schema`` is the entry's
    ``schema`` or, for streaming formats, its ``itemSchema``.
    """

    media_type: str
    key: str
    schema: Any
    streaming: bool


def normalize_media_type(media_type: str) -> str:
    """Strip parameters and whitespace and lowercase *media_type*."""
    return media_type.split(";", 1)[0].strip().lower()


def specificity(media_type: str) -> int:
    normalized = normalize_media_type(media_type)
    if normalized in ("*/*", "*"):
        return 0
    if normalized.endswith("/*"):
        return 1
    return 2


def is_json(media_type: str) -> bool:
    normalized = normalize_media_type(media_type)
    return normalized in (JSON_MEDIA_TYPE, "application/x-json") or normalized.endswith(
        ("/json", "+json")
    )


def is_streaming(media_type: str) -> bool:
    """Return True for sequential formats whose payload is a stream of items."""
    normalized = normalize_media_type(media_type)
    return normalized in SEQUENTIAL_MEDIA_TYPES or normalized.endswith(_SEQUENTIAL_SUFFIXES)


def is_binary(media_type: str) -> bool:
    normalized = normalize_media_type(media_type)
    return normalized in _BINARY_TYPES or normalized.startswith(_BINARY_PREFIXES)


def is_textual(media_type: str) -> bool:
    normalized = normalize_media_type(media_type)
    return (
        normalized.startswith("text/")
        or is_json(normalized)
        or normalized.endswith(("+xml", "/xml", "+yaml", "/yaml"))
        or normalized in ("application/x-www-form-urlencoded", "application/javascript")
    )


def preference(media_type: str) -> int:
    """Rank of *media_type* in the negotiation order; lower is better."""
    normalized = normalize_media_type(media_type)
    if normalized == JSON_MEDIA_TYPE:
        return 0
    if normalized == "application/x-json":
        return 1
    if normalized.endswith(("/json", "+json")):
        return 2
    if normalized == "multipart/form-data":
        return 3
    if normalized == "application/x-www-form-urlencoded":
        return 4
    if normalized.startswith("text/"):
        return 5
    return 6


def _matches(wildcard: str, concrete: str) -> bool:
    if wildcard in ("*/*", "*"):
        return True
    return concrete.startswith(wildcard[:-1])


def negotiate(content: Optional[Mapping[str, Any]]) -> Optional[NegotiatedContent]:
    """Choose one entry of a ``content`` map.

    Args:
        content: Media type -> *Media Type Object* (or a
            :class:`~specir.models.MediaTypeRecord`).  Values that are not
            mappings are read through their ``schema_`` / ``item_schema``
            attributes.

    Returns:
        The chosen representation, or ``None`` when *content* is empty.
    """
    if not content:
        return None

    entries = [
        (index, key, normalize_media_type(key), value)
        for index, (key, value) in enumerate(content.items())
    ]
    concrete = [normalized for _, _, normalized, _ in entries if specificity(normalized) == 2]

    survivors = []
    for index, key, normalized, value in entries:
        score = specificity(normalized)
        if score < 2 and any(_matches(normalized, other) for other in concrete):
            continue
        survivors.append((preference(normalized), -score, index, key, normalized, value))
    survivors.sort(key=lambda entry: entry[:3])

    _, _, _, key, normalized, value = survivors[0]
    streaming = is_streaming(normalized)
    schema = _entry_schema(value, streaming)
    return NegotiatedContent(media_type=normalized, key=key, schema=schema, streaming=streaming)


def _entry_schema(value: Any, streaming: bool) -> Any:
    if isinstance(value, Mapping):
        if streaming and value.get("itemSchema") is not None:
            return value["itemSchema"]
        return value.get("schema")
    if streaming and getattr(value, "item_schema", None) is not None:
        return value.item_schema
    return getattr(value, "schema_", None)
