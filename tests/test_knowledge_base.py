"""
Tests for the KnowledgeBase session facade.
"""

import pytest
from pydantic import ValidationError

from nutrisearch_kb import KnowledgeBase
from nutrisearch_kb.config import (
    ConfigValidationError,
    KnowledgeBaseConfig,
    QueryConfig,
    ReasoningConfig,
)
from nutrisearch_kb.models import Triple
from nutrisearch_kb.ontology import DEMO_TRIPLES
from nutrisearch_kb.storage.terms import Term


@pytest.fixture
def kb():
    session = KnowledgeBase()
    session.load_demo()
    return session


def make_kb(**reasoning):
    session = KnowledgeBase(KnowledgeBaseConfig(reasoning=ReasoningConfig(**reasoning)))
    session.load_demo()
    return session


class TestLoading:
    """Tests for loading and materialization."""

    def test_demo_is_materialized(self, kb):
        assert len(kb) == len(DEMO_TRIPLES) + 3
        assert kb.stats()["inferred"] == 3

    def test_load_reports_bulk_result(self):
        session = KnowledgeBase()
        result = session.load([
            ("nutrition:Kale", "nutrition:hasNutrient", "nutrition:Iron"),
            ("nutrition:Kale", "nutrition:caloricDensity", '"49'),
        ])
        assert result.added == 1
        assert result.rejected == 1

    def test_without_materialization(self):
        session = make_kb(materialize_on_load=False)
        assert session.stats()["inferred"] == 0
        explanation = session.reason()
        assert explanation.to_dict()["totalInferred"] == 3
        assert explanation.fixpoint_reached

    def test_incremental_load_reasons_again(self, kb):
        kb.load([
            ("nutrition:Turmeric", "nutrition:hasNutrient", "nutrition:Curcumin"),
            ("nutrition:Turmeric", "nutrition:hasNutrient", "nutrition:Gingerol"),
        ])
        assert kb.explain().to_dict()["inferredByRule"]["antiInflammatoryInference"][-1]["object"].endswith(
            "StrongAntiInflammatory"
        )

    def test_custom_namespace(self):
        ns = "http://example.org/food#"
        session = KnowledgeBase(KnowledgeBaseConfig(namespace=ns))
        session.load_demo()
        mild = Triple(
            Term.iri(ns + "Salmon"),
            Term.iri(ns + "hasHealthEffect"),
            Term.iri(ns + "MildAntiInflammatory"),
        )
        assert mild in session.store
        assert session.reasoner.is_inferred(mild)


class TestConfiguration:
    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigValidationError):
            KnowledgeBase(KnowledgeBaseConfig(namespace="no-separator"))

    def test_enabled_rules(self):
        session = make_kb(enabled_rules=["antiInflammatoryInference"])
        assert session.reasoner.rule_names == ["antiInflammatoryInference"]
        assert session.stats()["inferred"] == 1

    def test_rdfs_entailment_prepends_rules(self):
        session = make_kb(rdfs_entailment=True)
        assert session.reasoner.rule_names[:2] == ["rdfsSubClassTransitivity", "rdfsTypeInheritance"]

    def test_iteration_cap_from_config(self):
        session = make_kb(max_iterations=1)
        assert session.reasoner.last_run.iterations == 1


class TestQuery:
    """Tests for query execution through the session."""

    def test_bare_names(self, kb):
        result = kb.query("SELECT ?food ?n WHERE { ?food hasNutrient ?n }")
        assert result.variables == ["food", "n"]
        assert len(result) == 4
        assert not result.fallback

    def test_fallback_without_rdfs(self, kb):
        """Foods are typed by subclass only; the fallback still finds them."""
        result = kb.query("this is not sparql")
        assert result.fallback
        assert result.error
        assert result.variables == ["food"]
        names = sorted(row["food"].lex.rsplit("#", 1)[-1] for row in result)
        assert names == ["Apple", "Quinoa", "Salmon", "Spinach"]

    def test_fallback_follows_namespace(self):
        ns = "http://example.org/food#"
        session = KnowledgeBase(KnowledgeBaseConfig(namespace=ns))
        assert session.engine.default_entity_class == ns + "Food"
        session.load([("nutrition:Kale", "rdf:type", "nutrition:Food")])
        result = session.query("garbage")
        assert result.fallback
        assert result.rows == [{"food": Term.iri(ns + "Kale")}]

    def test_explicit_fallback_class(self):
        ns = "http://example.org/food#"
        config = KnowledgeBaseConfig(namespace=ns, query=QueryConfig(default_entity_class=ns + "Nutrient"))
        session = KnowledgeBase(config)
        assert session.engine.default_entity_class == ns + "Nutrient"

    def test_fallback_with_rdfs(self):
        session = make_kb(rdfs_entailment=True)
        result = session.query("SELECT nonsense")
        assert result.fallback
        names = sorted(row["food"].lex.rsplit("#", 1)[-1] for row in result)
        assert names == ["Apple", "Quinoa", "Salmon", "Spinach"]

    def test_max_results(self):
        session = KnowledgeBase(KnowledgeBaseConfig(query=QueryConfig(max_results=2)))
        session.load_demo()
        assert len(session.query("SELECT ?food ?n WHERE { ?food hasNutrient ?n }")) == 2

    def test_sees_inferred_facts(self, kb):
        result = kb.query("SELECT ?food WHERE { ?food hasHealthEffect :MildAntiInflammatory }")
        assert [row["food"].lex.rsplit("#", 1)[-1] for row in result] == ["Salmon"]


class TestRecommend:
    def test_mapping_profile(self, kb):
        results = kb.recommend(["cognitive"], {"preferences": ["plant-based"]})
        spinach = next(r for r in results if r.entity == "Spinach")
        assert spinach.score == pytest.approx(2.4)

    def test_limit(self, kb):
        assert [r.entity for r in kb.recommend(["cognitive"], limit=1)] == ["Salmon"]

    def test_empty_goals(self, kb):
        with pytest.raises(ValidationError):
            kb.recommend([])


class TestInspection:
    def test_clear_inferences(self, kb):
        assert kb.clear_inferences() == 3
        assert len(kb) == len(DEMO_TRIPLES)
        assert kb.explain().total_inferred == 0

    def test_stats_and_explore(self, kb):
        stats = kb.stats()
        assert stats["foods"] == 4
        assert stats["triples"] == len(DEMO_TRIPLES) + 3
        assert kb.explore("dataProperties") == {
            "dataProperties": ["caloricDensity", "glycemicIndex", "inflammatoryEffect"]
        }

    def test_repr(self, kb):
        assert repr(kb) == f"KnowledgeBase(triples={len(DEMO_TRIPLES) + 3}, inferred=3)"
