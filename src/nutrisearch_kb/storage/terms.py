"""
RDF Term Model.

Every value occupying a triple position is a Term: an IRI, a Literal
(optionally typed or language-tagged) or a Blank Node. Terms are immutable
and compared structurally, so they can be used directly as index keys.

Also provides prefix expansion/contraction for compact IRIs.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterator, Optional, Tuple

from nutrisearch_kb.vocab import DEFAULT_PREFIXES, NUMERIC_DATATYPES


class TermKind(IntEnum):
    """RDF term kind enumeration."""
    IRI = 0
    LITERAL = 1
    BNODE = 2

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    TermKind.IRI: "iri",
    TermKind.LITERAL: "literal",
    TermKind.BNODE: "bnode",
}


@dataclass(frozen=True, slots=True)
class Term:
    """
    Representation of an RDF term.

    Attributes:
        kind: The type of term (IRI, LITERAL, BNODE)
        lex: Lexical form (IRI string, literal value, bnode label)
        datatype: Datatype IRI (for typed literals)
        lang: Language tag (for language-tagged literals)
    """
    kind: TermKind
    lex: str
    datatype: Optional[str] = None
    lang: Optional[str] = None

    @classmethod
    def iri(cls, value: str) -> "Term":
        """Create an IRI term."""
        return cls(kind=TermKind.IRI, lex=value)

    @classmethod
    def literal(
        cls,
        value: Any,
        datatype: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> "Term":
        """Create a literal term."""
        if isinstance(value, bool):
            value = "true" if value else "false"
        return cls(kind=TermKind.LITERAL, lex=str(value), datatype=datatype, lang=lang)

    @classmethod
    def bnode(cls, label: str) -> "Term":
        """Create a blank node term."""
        return cls(kind=TermKind.BNODE, lex=label)

    @property
    def is_iri(self) -> bool:
        return self.kind == TermKind.IRI

    @property
    def is_literal(self) -> bool:
        return self.kind == TermKind.LITERAL

    @property
    def is_bnode(self) -> bool:
        return self.kind == TermKind.BNODE

    def string_value(self) -> str:
        """The value STR() yields for this term."""
        return self.lex

    def numeric_value(self) -> Optional[float]:
        """Return the literal as a number, or None if it isn't numeric."""
        if self.kind != TermKind.LITERAL:
            return None
        if self.datatype is not None and self.datatype not in NUMERIC_DATATYPES:
            return None
        try:
            return float(self.lex)
        except ValueError:
            return None

    def n3(self) -> str:
        """Render in N-Triples syntax."""
        if self.kind == TermKind.IRI:
            return f"<{self.lex}>"
        if self.kind == TermKind.BNODE:
            return f"_:{self.lex}"
        escaped = self.lex.replace("\\", "\\\\").replace('"', '\\"')
        if self.lang:
            return f'"{escaped}"@{self.lang}'
        if self.datatype:
            return f'"{escaped}"^^<{self.datatype}>'
        return f'"{escaped}"'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a result-row cell: value plus kind."""
        d: Dict[str, Any] = {"value": self.lex, "kind": self.kind.label}
        if self.datatype:
            d["datatype"] = self.datatype
        if self.lang:
            d["lang"] = self.lang
        return d

    def __str__(self) -> str:
        return self.n3()


def local_name(iri: str) -> str:
    """Return the fragment or last path segment of an IRI."""
    if "#" in iri:
        name = iri.rsplit("#", 1)[1]
        if name:
            return name
    return iri.rstrip("/").rsplit("/", 1)[-1]


class PrefixMap:
    """
    Bidirectional prefix table for compact IRIs.

    The empty prefix is allowed, so ``:Apple`` expands against the default
    namespace.
    """

    def __init__(self, prefixes: Optional[Dict[str, str]] = None):
        self._prefixes: Dict[str, str] = dict(DEFAULT_PREFIXES if prefixes is None else prefixes)

    def bind(self, prefix: str, namespace: str) -> None:
        self._prefixes[prefix] = namespace

    def namespace(self, prefix: str) -> Optional[str]:
        return self._prefixes.get(prefix)

    def copy(self) -> "PrefixMap":
        return PrefixMap(self._prefixes)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._prefixes.items())

    def __contains__(self, prefix: str) -> bool:
        return prefix in self._prefixes

    def split(self, name: str) -> Optional[Tuple[str, str]]:
        """Split ``prefix:local`` when the prefix is bound, else None."""
        if ":" not in name:
            return None
        prefix, local = name.split(":", 1)
        if local.startswith("//") or prefix not in self._prefixes:
            return None
        return prefix, local

    def expand(self, name: str) -> str:
        """Expand a prefixed name; unknown prefixes are returned unchanged."""
        parts = self.split(name)
        if parts is None:
            return name
        prefix, local = parts
        return self._prefixes[prefix] + local

    def contract(self, iri: str) -> str:
        """Return the shortest prefixed form of an IRI, or the IRI itself."""
        best: Optional[str] = None
        for prefix, namespace in self._prefixes.items():
            if namespace and iri.startswith(namespace):
                candidate = f"{prefix}:{iri[len(namespace):]}"
                if best is None or len(candidate) < len(best):
                    best = candidate
        return best if best is not None else iri
