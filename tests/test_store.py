"""
Tests for the in-memory TripleStore.
"""

import pytest

from nutrisearch_kb.models import Triple
from nutrisearch_kb.storage.terms import Term
from nutrisearch_kb.store import ANY_GRAPH, ReadOnlyStoreError, TripleStore
from nutrisearch_kb.vocab import NUTRITION_NS, RDF_TYPE, XSD_INTEGER


def n(local):
    return Term.iri(NUTRITION_NS + local)


HAS_NUTRIENT = n("hasNutrient")
TYPE = Term.iri(RDF_TYPE)


@pytest.fixture
def store():
    s = TripleStore()
    s.add(Triple(n("Apple"), TYPE, n("Food")))
    s.add(Triple(n("Apple"), HAS_NUTRIENT, n("VitaminC")))
    s.add(Triple(n("Apple"), HAS_NUTRIENT, n("Fiber")))
    s.add(Triple(n("Salmon"), HAS_NUTRIENT, n("Omega3")))
    s.add(Triple(n("Salmon"), n("caloricDensity"), Term.literal("208", datatype=XSD_INTEGER)))
    return s


class TestAdd:
    """Tests for insertion."""

    def test_add_returns_true_for_new(self):
        s = TripleStore()
        assert s.add(Triple(n("Apple"), TYPE, n("Food"))) is True
        assert s.size() == 1

    def test_idempotent_insertion(self, store):
        """Adding an existing triple leaves size unchanged."""
        triple = Triple(n("Kale"), HAS_NUTRIENT, n("Iron"))
        store.add(triple)
        size = store.size()
        assert store.add(triple) is False
        assert store.size() == size

    def test_graph_is_part_of_identity(self):
        s = TripleStore()
        s.add(Triple(n("Apple"), TYPE, n("Food")))
        s.add(Triple(n("Apple"), TYPE, n("Food"), graph=Term.iri("http://example.org/g")))
        assert len(s) == 2


class TestAddBulk:
    """Tests for bulk insertion with malformed entries."""

    def test_counts(self):
        s = TripleStore()
        result = s.add_bulk([
            ("nutrition:Apple", "rdf:type", "nutrition:Food"),
            ("nutrition:Apple", "rdf:type", "nutrition:Food"),
            ("nutrition:Apple", "rdfs:label", '"unterminated'),
            ("nutrition:Apple", "nutrition:caloricDensity", '"52"^^xsd:integer'),
        ])
        assert result.added == 2
        assert result.duplicates == 1
        assert result.rejected == 1
        assert result.errors[0].index == 2
        assert result.total == 4
        assert len(s) == 2

    def test_accepts_triples(self):
        s = TripleStore()
        result = s.add_bulk([Triple(n("Apple"), TYPE, n("Food"))])
        assert result.added == 1

    def test_to_dict(self):
        s = TripleStore()
        result = s.add_bulk([("bad",)])
        d = result.to_dict()
        assert d["added"] == 0
        assert d["rejected"] == 1
        assert d["errors"][0]["index"] == 0


class TestQuery:
    """Tests for pattern lookups."""

    def test_by_predicate(self, store):
        results = store.query(predicate=HAS_NUTRIENT)
        assert [t.object for t in results] == [n("VitaminC"), n("Fiber"), n("Omega3")]

    def test_by_subject(self, store):
        results = store.query(subject=n("Salmon"))
        assert len(results) == 2

    def test_by_object(self, store):
        results = store.query(object=n("Omega3"))
        assert [t.subject for t in results] == [n("Salmon")]

    def test_fully_bound(self, store):
        assert len(store.query(n("Apple"), HAS_NUTRIENT, n("Fiber"))) == 1
        assert store.query(n("Apple"), HAS_NUTRIENT, n("Omega3")) == []

    def test_full_scan(self, store):
        assert len(store.query()) == 5

    def test_unknown_term_gives_empty_list(self, store):
        assert store.query(predicate=n("unknown")) == []

    def test_graph_filter(self):
        g = Term.iri("http://example.org/g")
        s = TripleStore()
        s.add(Triple(n("Apple"), TYPE, n("Food")))
        s.add(Triple(n("Salmon"), TYPE, n("Food"), graph=g))
        assert len(s.query(predicate=TYPE, graph=ANY_GRAPH)) == 2
        assert [t.subject for t in s.query(predicate=TYPE, graph=None)] == [n("Apple")]
        assert [t.subject for t in s.query(predicate=TYPE, graph=g)] == [n("Salmon")]

    def test_subjects_and_objects(self, store):
        assert store.subjects(HAS_NUTRIENT) == [n("Apple"), n("Salmon")]
        assert store.objects(n("Apple"), HAS_NUTRIENT) == [n("VitaminC"), n("Fiber")]
        assert HAS_NUTRIENT in store.predicates()


class TestRemove:
    """Tests for removal and index maintenance."""

    def test_remove(self, store):
        triple = Triple(n("Apple"), HAS_NUTRIENT, n("Fiber"))
        assert store.remove(triple) is True
        assert triple not in store
        assert store.query(object=n("Fiber")) == []
        assert len(store) == 4

    def test_remove_absent_is_noop(self, store):
        assert store.remove(Triple(n("Kale"), TYPE, n("Food"))) is False
        assert len(store) == 5

    def test_compaction_keeps_order_and_indexes(self, store):
        for obj in ("VitaminC", "Fiber", "Omega3"):
            store.remove(Triple(n("Apple") if obj != "Omega3" else n("Salmon"), HAS_NUTRIENT, n(obj)))
        store.add(Triple(n("Kale"), HAS_NUTRIENT, n("Iron")))
        assert [t.subject for t in store] == [n("Apple"), n("Salmon"), n("Kale")]
        assert [t.subject for t in store.query(predicate=HAS_NUTRIENT)] == [n("Kale")]

    def test_readd_after_remove(self, store):
        triple = Triple(n("Apple"), HAS_NUTRIENT, n("Fiber"))
        store.remove(triple)
        assert store.add(triple) is True
        assert store.triples()[-1] == triple

    def test_clear(self, store):
        store.clear()
        assert len(store) == 0
        assert store.query(predicate=HAS_NUTRIENT) == []


class TestSnapshot:
    def test_snapshot_is_read_only_copy(self, store):
        snapshot = store.snapshot()
        assert snapshot.read_only
        assert snapshot.triples() == store.triples()
        with pytest.raises(ReadOnlyStoreError):
            snapshot.add(Triple(n("Kale"), TYPE, n("Food")))
        with pytest.raises(ReadOnlyStoreError):
            snapshot.remove(Triple(n("Apple"), TYPE, n("Food")))

    def test_snapshot_is_isolated(self, store):
        snapshot = store.snapshot()
        store.add(Triple(n("Kale"), TYPE, n("Food")))
        assert len(snapshot) == 5
        assert len(store) == 6


class TestDataFrame:
    def test_columns_and_rows(self, store):
        df = store.to_dataframe()
        assert df.columns == ["s", "p", "o", "g", "o_kind", "o_datatype"]
        assert df.height == 5
        literal_rows = df.filter(df["o_kind"] == "literal")
        assert literal_rows.height == 1
        assert literal_rows["o_datatype"][0] == XSD_INTEGER

    def test_empty(self):
        df = TripleStore().to_dataframe()
        assert df.height == 0
