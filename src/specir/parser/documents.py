"""Per-run cache of loaded documents and their embedded identifiers.

A :class:`DocumentCache` owns everything one generation run knows about the
documents reachable from its entry document:

* the URI -> document map, keyed by retrieval URI, by the canonical
  ``$self`` URI an OpenAPI 3.2 document may declare, and by the absolute
  URI of every embedded ``$id``;
* the ``$anchor`` / ``$dynamicAnchor`` index (``<base>#<name>`` -> node);
* the base URI of every object node, so a reference found anywhere in a
  document can be made absolute against its nearest ``$id``;
* one :class:`asyncio.Task` per requested URI.

Loading is asynchronous.  :meth:`DocumentCache.load` shares a single
in-flight task between concurrent requests for the same URI, so a document
is fetched at most once and every resolution of it sees the identical
object.  After a document is registered its outgoing references are
*scheduled* as new tasks rather than awaited, so documents that reference
each other never wait on one another.  :meth:`DocumentCache.load_all`
awaits the full transitive closure and then validates every OpenAPI or
Swagger document it found.

Nothing here is global: build one cache per run and pass it by handle to
the resolver and extractor.

Example::

    async with DocumentCache() as cache:
        entry = await cache.load_all("openapi.yaml")

    # or, from synchronous code
    cache, entry = load_documents("openapi.yaml")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator, Optional
from urllib.parse import urljoin, urlsplit

import httpx

from specir.cache import FetchCache
from specir.exceptions import DocumentLoadError, SpecParseError
from specir.models import LoaderConfig
from specir.parser.loader import fetch_document, to_document_uri
from specir.parser.validator import is_api_document, validate_spec

logger = logging.getLogger(__name__)

_REFERENCE_KEYS = ("$ref", "$dynamicRef", "operationRef")


def _defrag(uri: str) -> str:
    return uri.split("#", 1)[0]


def _join(base: str, ref: str) -> Optional[str]:
    try:
        return urljoin(base, ref)
    except ValueError as exc:
        logger.warning("Ignoring malformed URI reference '%s' in %s: %s", ref, base, exc)
        return None


class DocumentCache:
    """URI -> document map and identifier index for one run.

    Args:
        config: Transport settings.  Defaults to :class:`LoaderConfig`.
        fetch_cache: Optional on-disk cache for remote documents.
        client: An :class:`httpx.AsyncClient` to fetch remote documents
            with.  When omitted one is opened by ``async with`` (or by
            :func:`load_documents`) and closed on exit.
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        fetch_cache: Optional[FetchCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or LoaderConfig()
        self._fetch_cache = fetch_cache
        self._client = client
        self._owns_client = False
        self._semaphore: Optional[asyncio.Semaphore] = None

        self._documents: dict[str, Any] = {}
        self._retrieved: dict[str, Any] = {}
        self._aliases: dict[str, str] = {}
        self._dynamic_anchors: dict[str, Any] = {}
        self._bases: dict[int, tuple[Any, str]] = {}
        self._outgoing: dict[str, list[str]] = {}
        self._expanded: set[str] = set()
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._failed: dict[str, str] = {}

    async def __aenter__(self) -> DocumentCache:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, uri: str, document: Any) -> None:
        """Register an already-parsed *document* under retrieval *uri*.

        Indexes ``$self``, ``$id``, ``$anchor`` and ``$dynamicAnchor`` and
        records the document's outgoing external references.  Adding a URI
        twice keeps the first document.
        """
        uri = _defrag(uri)
        if uri in self._retrieved:
            return
        self._retrieved[uri] = document
        self._documents.setdefault(uri, document)

        base = uri
        self_uri = document.get("$self") if is_api_document(document) else None
        if isinstance(self_uri, str) and self_uri:
            alias = _defrag(_join(uri, self_uri) or uri)
            if alias and alias != uri:
                self._documents.setdefault(alias, document)
                self._aliases[alias] = uri
                base = alias

        outgoing: list[str] = []
        self._index(document, base, outgoing, set())
        self._outgoing[uri] = [
            ref for ref in dict.fromkeys(outgoing) if ref not in (uri, base)
        ]

    def _index(self, node: Any, base: str, outgoing: list[str], seen: set[int]) -> None:
        if isinstance(node, list):
            for item in node:
                self._index(item, base, outgoing, seen)
            return
        if not isinstance(node, dict) or id(node) in seen:
            return
        seen.add(id(node))

        schema_id = node.get("$id")
        if isinstance(schema_id, str) and schema_id and not schema_id.startswith("#"):
            base = _defrag(_join(base, schema_id) or base) or base
            self._documents.setdefault(base, node)
        self._bases.setdefault(id(node), (node, base))

        anchor = node.get("$anchor")
        if isinstance(anchor, str) and anchor:
            self._documents.setdefault(f"{base}#{anchor}", node)
        dynamic_anchor = node.get("$dynamicAnchor")
        if isinstance(dynamic_anchor, str) and dynamic_anchor:
            self._documents.setdefault(f"{base}#{dynamic_anchor}", node)
            self._dynamic_anchors.setdefault(f"{base}#{dynamic_anchor}", node)

        for key in _REFERENCE_KEYS:
            value = node.get(key)
            if isinstance(value, str) and value and not value.startswith("#"):
                joined = _join(base, value)
                target = _defrag(joined) if joined else None
                if target:
                    outgoing.append(_absolute(target))

        for value in node.values():
            if isinstance(value, (dict, list)):
                self._index(value, base, outgoing, seen)

    def register_base(self, node: Any, base: str) -> None:
        """Record *base* as the base URI of a node built from document content."""
        if isinstance(node, dict):
            self._bases.setdefault(id(node), (node, base))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, uri: str, chain: frozenset[str] = frozenset()) -> Any:
        """Return the document at *uri*, fetching it on first request.

        Concurrent callers for the same URI await the same task.

        Raises:
            SpecParseError: If the document cannot be fetched or parsed.
        """
        uri = _defrag(uri)
        if uri in self._documents:
            return self._documents[uri]
        task = self._tasks.get(uri)
        if task is None:
            task = asyncio.ensure_future(self._load(uri, chain | {uri}))
            self._tasks[uri] = task
        return await task

    async def _load(self, uri: str, chain: frozenset[str]) -> Any:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._config.max_concurrency)
        location = self._retrieval_location(uri)
        async with self._semaphore:
            logger.debug("Loading document %s", location)
            document = await fetch_document(location, self._client, self._fetch_cache)
        self.add(uri, document)
        self._expand(uri, chain)
        return self._documents[uri]

    def _expand(self, uri: str, chain: frozenset[str]) -> None:
        if uri in self._expanded:
            return
        self._expanded.add(uri)
        for ref in self._outgoing.get(uri, ()):
            if ref in chain:
                logger.debug("Not following %s from %s: already being loaded", ref, uri)
                continue
            if ref in self._documents or ref in self._tasks:
                continue
            self._tasks[ref] = asyncio.ensure_future(self._load(ref, chain | {ref}))

    def _retrieval_location(self, uri: str) -> str:
        # A URI under a document's $self base is fetched relative to where
        # that document was actually retrieved from.
        for alias, retrieved in self._aliases.items():
            prefix = alias.rsplit("/", 1)[0] + "/"
            if uri.startswith(prefix):
                return urljoin(retrieved, uri[len(prefix):])
        return uri

    async def load_all(self, source: str) -> Any:
        """Load the entry document at *source* and everything it references.

        Failures loading referenced documents are logged and leave those
        references unresolved.  Every loaded OpenAPI/Swagger document is
        validated once the closure is complete.

        Returns:
            The entry document.

        Raises:
            DocumentLoadError: If the entry document cannot be loaded.
            SpecValidationError: If any loaded API document is malformed.
        """
        entry = to_document_uri(source)
        try:
            document = await self.load(entry)
        except SpecParseError as exc:
            raise DocumentLoadError(entry, str(exc)) from exc

        for uri in list(self._retrieved):
            self._expand(uri, frozenset({uri}))
        while True:
            pending = [task for task in self._tasks.values() if not task.done()]
            if not pending:
                break
            await asyncio.wait(pending)

        for uri, task in self._tasks.items():
            if task.cancelled() or uri == entry:
                continue
            exc = task.exception()
            if exc is not None:
                logger.warning("Could not load referenced document '%s': %s", uri, exc)
                self._failed[uri] = str(exc) or type(exc).__name__

        for uri, doc in self._retrieved.items():
            if is_api_document(doc):
                validate_spec(doc)
        return document

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, uri: str) -> Any:
        """Return the node registered under *uri* (a document, ``$id`` or anchor), or None."""
        return self._documents.get(uri)

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    def dynamic_anchor(self, base: str, name: str) -> Any:
        return self._dynamic_anchors.get(f"{base}#{name}")

    def base_uri_of(self, node: Any) -> Optional[str]:
        """Return the base URI in effect for *node*, if it came from a cached document."""
        entry = self._bases.get(id(node))
        if entry is not None and entry[0] is node:
            return entry[1]
        return None

    def logical_base(self, uri: str) -> str:
        """Return the ``$self`` URI of the document retrieved from *uri*, or *uri* itself."""
        uri = _defrag(uri)
        for alias, retrieved in self._aliases.items():
            if retrieved == uri:
                return alias
        return uri

    def retrieval_uri(self, uri: str) -> str:
        return self._aliases.get(_defrag(uri), _defrag(uri))

    def failed(self) -> dict[str, str]:
        """URIs whose load failed, mapped to the failure message."""
        return dict(self._failed)

    def documents(self) -> Iterator[tuple[str, Any]]:
        """Iterate ``(retrieval_uri, document)`` pairs in load order."""
        return iter(list(self._retrieved.items()))

    def __len__(self) -> int:
        return len(self._retrieved)


def _absolute(uri: str) -> str:
    parts = urlsplit(uri)
    if parts.scheme and len(parts.scheme) > 1:
        return uri
    return to_document_uri(uri)


def load_documents(
    source: str,
    config: Optional[LoaderConfig] = None,
    fetch_cache: Optional[FetchCache] = None,
) -> tuple[DocumentCache, Any]:
    """Synchronously load *source* and its reference closure.

    Returns:
        The populated :class:`DocumentCache` and the entry document.

    Raises:
        DocumentLoadError: If the entry document cannot be loaded.
        SpecValidationError: If a loaded API document is malformed.
    """

    async def _run() -> tuple[DocumentCache, Any]:
        async with DocumentCache(config, fetch_cache) as cache:
            document = await cache.load_all(source)
        return cache, document

    return asyncio.run(_run())
