"""
Core data models for the knowledge base.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from nutrisearch_kb.storage.terms import Term


@dataclass(frozen=True, slots=True)
class Triple:
    """
    A (subject, predicate, object, graph) fact.

    ``graph`` is None for the default graph. Structural equality over all
    four components is what the store deduplicates on.
    """
    subject: Term
    predicate: Term
    object: Term
    graph: Optional[Term] = None

    def as_tuple(self) -> Tuple[Term, Term, Term, Optional[Term]]:
        return (self.subject, self.predicate, self.object, self.graph)

    def to_dict(self) -> Dict[str, str]:
        """Plain-string view used by reasoning explanations."""
        d = {
            "subject": self.subject.lex,
            "predicate": self.predicate.lex,
            "object": self.object.lex,
        }
        if self.graph is not None:
            d["graph"] = self.graph.lex
        return d

    def __str__(self) -> str:
        parts = [self.subject.n3(), self.predicate.n3(), self.object.n3()]
        if self.graph is not None:
            parts.append(self.graph.n3())
        return " ".join(parts) + " ."


@dataclass
class RejectedEntry:
    """An ingestion entry that could not be turned into a Triple."""
    index: int
    entry: Any
    reason: str


@dataclass
class BulkLoadResult:
    """Outcome of a bulk insert."""
    added: int = 0
    duplicates: int = 0
    errors: List[RejectedEntry] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return len(self.errors)

    @property
    def total(self) -> int:
        return self.added + self.duplicates + self.rejected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "duplicates": self.duplicates,
            "rejected": self.rejected,
            "errors": [
                {"index": e.index, "reason": e.reason}
                for e in self.errors
            ],
        }
