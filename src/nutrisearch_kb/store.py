"""
In-memory TripleStore.

Triples live in an insertion-ordered slot list. Three hash indexes map a
Term to the ascending slot numbers of the triples that use it as subject,
predicate or object, so lookups with any concrete component avoid a full
scan. Indexes are updated on every add/remove and are never stale.

Removal leaves a tombstone in the slot list; once tombstones outnumber live
triples the slots are compacted and the indexes rebuilt.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

import polars as pl

from nutrisearch_kb.ingestion import iter_resolved
from nutrisearch_kb.models import BulkLoadResult, Triple
from nutrisearch_kb.storage.terms import PrefixMap, Term

logger = logging.getLogger(__name__)


class _AnyGraph:
    """Sentinel: match triples in every graph."""

    def __repr__(self) -> str:
        return "ANY_GRAPH"


ANY_GRAPH: Any = _AnyGraph()


class ReadOnlyStoreError(RuntimeError):
    """Raised when mutating a read-only store snapshot."""


class TripleStore:
    """
    A deduplicating set of triples with subject/predicate/object indexes.

    Lookups never raise; an empty list is a valid answer.
    """

    def __init__(
        self,
        triples: Optional[Iterable[Triple]] = None,
        prefixes: Optional[PrefixMap] = None,
        read_only: bool = False,
    ):
        self.prefixes = prefixes or PrefixMap()
        self._slots: List[Optional[Triple]] = []
        self._positions: Dict[Triple, int] = {}
        self._by_subject: Dict[Term, List[int]] = {}
        self._by_predicate: Dict[Term, List[int]] = {}
        self._by_object: Dict[Term, List[int]] = {}
        self._tombstones = 0
        self._read_only = False

        if triples is not None:
            for triple in triples:
                self.add(triple)
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    def _check_writable(self) -> None:
        if self._read_only:
            raise ReadOnlyStoreError("Cannot modify a read-only store snapshot")

    # ========== Mutation ==========

    def add(self, triple: Triple) -> bool:
        """
        Insert a triple if it is not already present.

        Returns:
            True if the triple was added, False if it already existed
        """
        self._check_writable()
        if triple in self._positions:
            return False

        slot = len(self._slots)
        self._slots.append(triple)
        self._positions[triple] = slot
        self._by_subject.setdefault(triple.subject, []).append(slot)
        self._by_predicate.setdefault(triple.predicate, []).append(slot)
        self._by_object.setdefault(triple.object, []).append(slot)
        return True

    def add_bulk(self, entries: Iterable[Any]) -> BulkLoadResult:
        """
        Add many triples, skipping malformed entries.

        Entries may be Triples or any shape the ingestion boundary resolves
        (tuples, dicts, N-Triples-like strings). Malformed entries are counted
        and reported, never fatal.
        """
        self._check_writable()
        result = BulkLoadResult()
        for _, triple, rejection in iter_resolved(entries, self.prefixes):
            if rejection is not None:
                result.errors.append(rejection)
            elif self.add(triple):
                result.added += 1
            else:
                result.duplicates += 1

        if result.rejected:
            logger.warning(
                f"Bulk load rejected {result.rejected} of {result.total} entries"
            )
        logger.info(
            f"Bulk load added {result.added} triples "
            f"({result.duplicates} duplicates, store size {len(self)})"
        )
        return result

    def remove(self, triple: Triple) -> bool:
        """
        Delete an exact triple.

        Returns:
            True if the triple was present
        """
        self._check_writable()
        slot = self._positions.pop(triple, None)
        if slot is None:
            return False

        self._slots[slot] = None
        self._tombstones += 1
        for index, key in (
            (self._by_subject, triple.subject),
            (self._by_predicate, triple.predicate),
            (self._by_object, triple.object),
        ):
            slots = index[key]
            slots.remove(slot)
            if not slots:
                del index[key]

        if self._tombstones > len(self._positions):
            self._compact()
        return True

    def clear(self) -> None:
        self._check_writable()
        self._slots.clear()
        self._positions.clear()
        self._by_subject.clear()
        self._by_predicate.clear()
        self._by_object.clear()
        self._tombstones = 0

    def _compact(self) -> None:
        live = [t for t in self._slots if t is not None]
        self._slots = []
        self._positions = {}
        self._by_subject = {}
        self._by_predicate = {}
        self._by_object = {}
        self._tombstones = 0
        for triple in live:
            slot = len(self._slots)
            self._slots.append(triple)
            self._positions[triple] = slot
            self._by_subject.setdefault(triple.subject, []).append(slot)
            self._by_predicate.setdefault(triple.predicate, []).append(slot)
            self._by_object.setdefault(triple.object, []).append(slot)

    # ========== Lookup ==========

    def query(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        object: Optional[Term] = None,
        graph: Any = ANY_GRAPH,
    ) -> List[Triple]:
        """
        Return all triples matching a pattern, in insertion order.

        None for a component means "any". ``graph`` defaults to every graph;
        pass None to restrict to the default graph.
        """
        if predicate is not None:
            candidates: Optional[List[int]] = self._by_predicate.get(predicate, [])
        elif subject is not None:
            candidates = self._by_subject.get(subject, [])
        elif object is not None:
            candidates = self._by_object.get(object, [])
        else:
            candidates = None

        if candidates is None:
            source: Iterable[Optional[Triple]] = self._slots
        else:
            source = (self._slots[slot] for slot in candidates)

        results = []
        for triple in source:
            if triple is None:
                continue
            if subject is not None and triple.subject != subject:
                continue
            if predicate is not None and triple.predicate != predicate:
                continue
            if object is not None and triple.object != object:
                continue
            if graph is not ANY_GRAPH and triple.graph != graph:
                continue
            results.append(triple)
        return results

    def contains(self, triple: Triple) -> bool:
        return triple in self._positions

    def __contains__(self, triple: object) -> bool:
        return triple in self._positions

    def size(self) -> int:
        """Current triple count."""
        return len(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Triple]:
        return (t for t in self._slots if t is not None)

    def triples(self) -> List[Triple]:
        """All triples in insertion order."""
        return list(self)

    def subjects(
        self,
        predicate: Optional[Term] = None,
        object: Optional[Term] = None,
    ) -> List[Term]:
        """Distinct subjects of matching triples, first-seen order."""
        seen: Dict[Term, None] = {}
        for triple in self.query(None, predicate, object):
            seen.setdefault(triple.subject, None)
        return list(seen)

    def objects(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
    ) -> List[Term]:
        """Distinct objects of matching triples, first-seen order."""
        seen: Dict[Term, None] = {}
        for triple in self.query(subject, predicate, None):
            seen.setdefault(triple.object, None)
        return list(seen)

    def predicates(self) -> Set[Term]:
        return set(self._by_predicate)

    # ========== Snapshots and views ==========

    def snapshot(self) -> "TripleStore":
        """Return a read-only copy of the current contents."""
        return TripleStore(iter(self), prefixes=self.prefixes.copy(), read_only=True)

    def to_dataframe(self) -> pl.DataFrame:
        """
        Materialize a string-based columnar view of the store.

        Columns: s, p, o, g, o_kind, o_datatype.
        """
        rows = {"s": [], "p": [], "o": [], "g": [], "o_kind": [], "o_datatype": []}
        for triple in self:
            rows["s"].append(triple.subject.lex)
            rows["p"].append(triple.predicate.lex)
            rows["o"].append(triple.object.lex)
            rows["g"].append(triple.graph.lex if triple.graph is not None else None)
            rows["o_kind"].append(triple.object.kind.label)
            rows["o_datatype"].append(triple.object.datatype)
        return pl.DataFrame(
            rows,
            schema={
                "s": pl.Utf8,
                "p": pl.Utf8,
                "o": pl.Utf8,
                "g": pl.Utf8,
                "o_kind": pl.Utf8,
                "o_datatype": pl.Utf8,
            },
        )

    def __repr__(self) -> str:
        mode = ", read_only" if self._read_only else ""
        return f"TripleStore(size={len(self)}{mode})"
