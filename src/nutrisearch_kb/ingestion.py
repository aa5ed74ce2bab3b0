"""
Ingestion boundary.

The RDF/XML loader upstream hands over already-extracted triples whose
components are Term-shaped values. This module turns those values into
Terms and Triples, rejecting entries that cannot be resolved so the store
can count and skip them instead of failing the whole batch.

Accepted component shapes:
- a ``Term``
- a dict: ``{"type": "iri"|"literal"|"bnode", "value": ..., "datatype": ..., "lang": ...}``
- a string: ``<iri>``, ``_:id``, ``"lex"``, ``"lex"^^<dt>``, ``"lex"^^prefix:dt``,
  ``"lex"@lang``, ``prefix:local`` or an absolute ``scheme:...`` IRI
"""

import logging
import re
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from nutrisearch_kb.models import RejectedEntry, Triple
from nutrisearch_kb.storage.terms import PrefixMap, Term, TermKind

logger = logging.getLogger(__name__)


class MalformedTermError(ValueError):
    """A value that cannot be resolved to a valid Term."""


class MalformedTripleError(ValueError):
    """An ingestion entry that cannot be resolved to a valid Triple."""


_LITERAL_RE = re.compile(
    r'^"(?P<lex>(?:[^"\\]|\\.)*)"'
    r'(?:@(?P<lang>[A-Za-z]+(?:-[A-Za-z0-9]+)*)|\^\^(?P<dt>\S+))?$',
    re.DOTALL,
)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:\S*$")
_BNODE_RE = re.compile(r"^_:(?P<label>[A-Za-z0-9_\-.]+)$")

_DICT_KINDS = {
    "iri": TermKind.IRI,
    "uri": TermKind.IRI,
    "namednode": TermKind.IRI,
    "literal": TermKind.LITERAL,
    "bnode": TermKind.BNODE,
    "blanknode": TermKind.BNODE,
}


def _unescape(lex: str) -> str:
    return re.sub(r'\\(["\\nrt])', lambda m: {"n": "\n", "r": "\r", "t": "\t"}.get(m.group(1), m.group(1)), lex)


def _resolve_iri_text(text: str, prefixes: PrefixMap) -> str:
    if text.startswith("<"):
        if not text.endswith(">") or len(text) < 3:
            raise MalformedTermError(f"Unterminated IRI: {text!r}")
        return text[1:-1]
    if prefixes.split(text) is not None:
        return prefixes.expand(text)
    if _SCHEME_RE.match(text):
        return text
    raise MalformedTermError(f"Cannot resolve {text!r} to an IRI")


def _resolve_string(text: str, prefixes: PrefixMap) -> Term:
    text = text.strip()
    if not text:
        raise MalformedTermError("Empty term")

    if text.startswith('"'):
        match = _LITERAL_RE.match(text)
        if match is None:
            raise MalformedTermError(f"Unterminated or invalid literal: {text!r}")
        datatype = None
        if match.group("dt"):
            datatype = _resolve_iri_text(match.group("dt"), prefixes)
        return Term.literal(
            _unescape(match.group("lex")),
            datatype=datatype,
            lang=match.group("lang"),
        )

    if text.startswith("_:"):
        match = _BNODE_RE.match(text)
        if match is None:
            raise MalformedTermError(f"Invalid blank node: {text!r}")
        return Term.bnode(match.group("label"))

    return Term.iri(_resolve_iri_text(text, prefixes))


def _resolve_mapping(value: Mapping[str, Any], prefixes: PrefixMap) -> Term:
    kind_name = str(value.get("type", value.get("termType", ""))).lower()
    kind = _DICT_KINDS.get(kind_name)
    if kind is None:
        raise MalformedTermError(f"Unknown term type: {kind_name!r}")
    raw = value.get("value")
    if raw is None:
        raise MalformedTermError("Term dict without a value")

    if kind == TermKind.IRI:
        return Term.iri(_resolve_iri_text(str(raw), prefixes))
    if kind == TermKind.BNODE:
        label = str(raw)
        if label.startswith("_:"):
            label = label[2:]
        if not label:
            raise MalformedTermError("Blank node without a label")
        return Term.bnode(label)

    datatype = value.get("datatype")
    if datatype:
        datatype = _resolve_iri_text(str(datatype), prefixes)
    return Term.literal(raw, datatype=datatype or None, lang=value.get("lang") or None)


def resolve_term(value: Any, prefixes: Optional[PrefixMap] = None) -> Term:
    """
    Resolve a Term-shaped value into a Term.

    Raises:
        MalformedTermError: If the value has no valid Term reading
    """
    if isinstance(value, Term):
        return value
    prefixes = prefixes or PrefixMap()
    if isinstance(value, str):
        return _resolve_string(value, prefixes)
    if isinstance(value, Mapping):
        return _resolve_mapping(value, prefixes)
    raise MalformedTermError(f"Unsupported term value: {value!r}")


def _components(entry: Any) -> Tuple[Any, Any, Any, Any]:
    if isinstance(entry, Mapping):
        try:
            return entry["subject"], entry["predicate"], entry["object"], entry.get("graph")
        except KeyError as e:
            raise MalformedTripleError(f"Missing component {e.args[0]!r}") from e
    if isinstance(entry, (tuple, list)):
        if len(entry) == 3:
            return entry[0], entry[1], entry[2], None
        if len(entry) == 4:
            return entry[0], entry[1], entry[2], entry[3]
        raise MalformedTripleError(f"Expected 3 or 4 components, got {len(entry)}")
    raise MalformedTripleError(f"Unsupported triple entry: {type(entry).__name__}")


def resolve_triple(entry: Any, prefixes: Optional[PrefixMap] = None) -> Triple:
    """
    Resolve one ingestion entry into a Triple.

    Raises:
        MalformedTripleError: If any component is malformed or sits in a
            position its kind is not allowed in
    """
    if isinstance(entry, Triple):
        return entry
    prefixes = prefixes or PrefixMap()
    s, p, o, g = _components(entry)
    try:
        subject = resolve_term(s, prefixes)
        predicate = resolve_term(p, prefixes)
        obj = resolve_term(o, prefixes)
        graph = resolve_term(g, prefixes) if g is not None else None
    except MalformedTermError as e:
        raise MalformedTripleError(str(e)) from e

    if subject.is_literal:
        raise MalformedTripleError(f"Literal in subject position: {subject}")
    if not predicate.is_iri:
        raise MalformedTripleError(f"Predicate must be an IRI: {predicate}")
    if graph is not None and graph.is_literal:
        raise MalformedTripleError(f"Literal in graph position: {graph}")
    return Triple(subject, predicate, obj, graph)


def iter_resolved(
    entries: Iterable[Any],
    prefixes: Optional[PrefixMap] = None,
) -> Iterator[Tuple[int, Optional[Triple], Optional[RejectedEntry]]]:
    """
    Resolve entries one by one, yielding ``(index, triple, rejection)``.

    Exactly one of ``triple`` and ``rejection`` is set for each entry.
    """
    prefixes = prefixes or PrefixMap()
    for index, entry in enumerate(entries):
        try:
            yield index, resolve_triple(entry, prefixes), None
        except MalformedTripleError as e:
            logger.warning(f"Skipping malformed triple #{index}: {e}")
            yield index, None, RejectedEntry(index=index, entry=entry, reason=str(e))
