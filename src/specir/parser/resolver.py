"""Resolve ``$ref`` / ``$dynamicRef`` references against a :class:`DocumentCache`.

A reference is split into its document part and fragment and made absolute
against the base URI of the object it appears in (the nearest ``$id``, the
document's ``$self``, or its retrieval URI).  The fragment is then looked up
in this order:

1. For ``$dynamicRef`` with a plain-name fragment: the outermost
   ``$dynamicAnchor`` of that name among the documents on the resolution
   stack.
2. The ``$id`` / ``$anchor`` index of the cache.
3. A JSON Pointer walk (RFC 6901) over the target document, unescaping
   ``~1`` to ``/`` and ``~0`` to ``~``, with list indices.

A target that is itself a reference is followed.  The chain of reference
keys being followed is passed explicitly as a tuple; a reference already on
the chain is not followed again and the node reached so far is returned, so
self- and mutually-referential chains always terminate.

Resolution never performs I/O.  Every external document must already be in
the cache, which :meth:`~specir.parser.documents.DocumentCache.load_all`
guarantees for the reference closure of the entry document.  A reference to
a document that is not cached, or a pointer segment that does not exist, is
logged as a warning and resolves to ``None``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import unquote, urljoin

from specir.parser.documents import DocumentCache

logger = logging.getLogger(__name__)

_MISSING = object()


def is_ref(obj: Any) -> bool:
    """Return True if *obj* is a ``{"$ref": ...}`` or ``{"$dynamicRef": ...}`` object."""
    return isinstance(obj, dict) and (
        isinstance(obj.get("$ref"), str) or isinstance(obj.get("$dynamicRef"), str)
    )


class ReferenceResolver:
    """Resolve references for one run.

    Args:
        cache: The run's populated document cache.
        entry_uri: Retrieval URI of the entry document; the default base
            for references with no other context.
    """

    def __init__(self, cache: DocumentCache, entry_uri: str) -> None:
        self.cache = cache
        self.entry_uri = cache.logical_base(entry_uri)

    def base_of(self, node: Any, context_uri: Optional[str] = None) -> str:
        return self.cache.base_uri_of(node) or context_uri or self.entry_uri

    def ref_key(self, ref: str, base: Optional[str] = None) -> Optional[str]:
        """Return the absolute ``document#fragment`` key of *ref* against *base*.

        Returns ``None`` (and logs a warning) when *ref* is not a valid URI
        reference.
        """
        base = base or self.entry_uri
        try:
            absolute = urljoin(base, ref)
        except ValueError as exc:
            logger.warning("Unresolved reference '%s': malformed URI (%s)", ref, exc)
            return None
        document, _, fragment = absolute.partition("#")
        return f"{document or base.split('#', 1)[0]}#{unquote(fragment)}"

    def resolve(
        self,
        ref: str,
        context_uri: Optional[str] = None,
        stack: tuple[str, ...] = (),
        dynamic: bool = False,
    ) -> Any:
        """Return the node addressed by *ref*, or ``None`` when it cannot be found.

        Args:
            ref: The reference string (``#/components/schemas/Pet``,
                ``common.yaml#/Error``, ``#node``...).
            context_uri: Base URI of the object the reference appears in.
            stack: Keys of the references currently being followed.
            dynamic: Treat *ref* as a ``$dynamicRef``.
        """
        key = self.ref_key(ref, context_uri)
        if key is None:
            return None
        document_uri, _, fragment = key.partition("#")

        node: Any = _MISSING
        if fragment and not fragment.startswith("/"):
            if dynamic:
                node = self._dynamic_target(fragment, stack + (key,))
            if node is _MISSING:
                node = self.cache.get(key)
                if node is None:
                    logger.warning("Unresolved reference '%s': no anchor '%s'", ref, fragment)
                    return None
        else:
            document = self.cache.get(document_uri)
            if document is None:
                logger.warning(
                    "Unresolved reference '%s': document '%s' is not loaded", ref, document_uri
                )
                return None
            node = _walk_pointer(document, fragment, ref)
            if node is _MISSING:
                return None

        if is_ref(node):
            return self.resolve_object(node, document_uri, stack + (key,))
        return node

    def resolve_object(
        self,
        obj: Any,
        context_uri: Optional[str] = None,
        stack: tuple[str, ...] = (),
    ) -> Any:
        """Resolve a reference object, applying its sibling fields as overrides.

        Every key next to ``$ref`` other than the reference itself replaces
        the same key of the target, on a copy.  Non-reference values are
        returned unchanged.  Returns ``None`` when the reference cannot be
        resolved.
        """
        if not is_ref(obj):
            return obj
        dynamic = not isinstance(obj.get("$ref"), str)
        ref = obj["$dynamicRef"] if dynamic else obj["$ref"]
        base = self.base_of(obj, context_uri)
        key = self.ref_key(ref, base)
        if key is None:
            return None
        if key in stack:
            logger.debug("Reference cycle at '%s'; not following it again", key)
            return obj

        target = self.resolve(ref, base, stack, dynamic=dynamic)
        if target is None:
            return None
        siblings = {k: v for k, v in obj.items() if k not in ("$ref", "$dynamicRef")}
        if not siblings or not isinstance(target, dict):
            return target
        merged = {**target, **siblings}
        self.cache.register_base(merged, self.base_of(target, key.partition("#")[0]))
        return merged

    def _dynamic_target(self, name: str, stack: tuple[str, ...]) -> Any:
        for key in stack:
            scope = key.partition("#")[0]
            node = self.cache.dynamic_anchor(scope, name)
            if node is not None:
                return node
        return _MISSING


def _walk_pointer(document: Any, fragment: str, ref: str) -> Any:
    if not fragment:
        return document
    current = document
    for segment in fragment[1:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            logger.warning("Unresolved reference '%s': segment '%s' not found", ref, segment)
            return _MISSING
    return current
