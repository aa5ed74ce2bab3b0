"""
Tests for ontology statistics and exploration.
"""

import pytest

from nutrisearch_kb.explore import EXPLORE_KINDS, explore_ontology, ontology_stats
from nutrisearch_kb.models import Triple
from nutrisearch_kb.ontology import DEMO_TRIPLES, load_demo_ontology
from nutrisearch_kb.storage.terms import Term
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import NUTRITION_NS, OWL_NAMED_INDIVIDUAL, RDF_TYPE


@pytest.fixture
def demo_store():
    store = TripleStore()
    load_demo_ontology(store)
    return store


class TestOntologyStats:
    """Tests for ontology_stats over the demonstration ontology."""

    def test_counts(self, demo_store):
        stats = ontology_stats(demo_store)
        assert stats["triples"] == len(DEMO_TRIPLES)
        assert stats["subjects"] == 27
        assert stats["predicates"] == 7
        assert stats["literals"] == 5
        assert stats["blankNodes"] == 0

    def test_schema_counts(self, demo_store):
        stats = ontology_stats(demo_store)
        assert stats["classes"] == 8
        assert stats["objectProperties"] == 4
        assert stats["dataProperties"] == 3
        assert stats["individuals"] == 12

    def test_domain_counts_follow_subclasses(self, demo_store):
        stats = ontology_stats(demo_store)
        assert stats["foods"] == 4
        assert stats["nutrients"] == 4
        assert stats["healthEffects"] == 4

    def test_top_predicates(self, demo_store):
        top = ontology_stats(demo_store)["topPredicates"]
        assert top[0] == {"predicate": "rdf:type", "count": 23}
        assert sum(entry["count"] for entry in top) == len(DEMO_TRIPLES)

    def test_top_predicates_limit(self, demo_store):
        assert len(ontology_stats(demo_store, top_predicates=2)["topPredicates"]) == 2

    def test_empty_store(self):
        stats = ontology_stats(TripleStore())
        assert stats["triples"] == 0
        assert stats["classes"] == 0
        assert stats["topPredicates"] == []


class TestExplore:
    def test_all_kinds(self, demo_store):
        result = explore_ontology(demo_store)
        assert list(result) == list(EXPLORE_KINDS)
        assert result["classes"] == [
            "AnimalBasedFood",
            "Food",
            "HealthEffect",
            "Macronutrient",
            "Micronutrient",
            "Nutrient",
            "Person",
            "PlantBasedFood",
        ]
        assert result["objectProperties"] == ["consumes", "hasHealthEffect", "hasNutrient", "recommendedFor"]
        assert result["dataProperties"] == ["caloricDensity", "glycemicIndex", "inflammatoryEffect"]

    def test_individuals(self, demo_store):
        individuals = explore_ontology(demo_store, "individuals")["individuals"]
        assert len(individuals) == 12
        assert "Apple" in individuals
        assert "Omega3" in individuals
        assert "Food" not in individuals

    def test_named_individual_declaration(self):
        store = TripleStore()
        store.add(Triple(Term.iri(NUTRITION_NS + "Kale"), Term.iri(RDF_TYPE), Term.iri(OWL_NAMED_INDIVIDUAL)))
        assert explore_ontology(store, "individuals") == {"individuals": ["Kale"]}

    def test_unknown_kind(self, demo_store):
        with pytest.raises(ValueError, match="Unknown kind"):
            explore_ontology(demo_store, "foods")
