"""
KnowledgeBase session facade.

One TripleStore, one Reasoner and one QueryEngine wired from a
KnowledgeBaseConfig. Every operation holds a single re-entrant lock, so a
session can be shared by a multi-threaded host without interleaving a
reasoning pass with a query.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from nutrisearch_kb.config import ConfigValidator, KnowledgeBaseConfig
from nutrisearch_kb.explore import explore_ontology, ontology_stats
from nutrisearch_kb.models import BulkLoadResult
from nutrisearch_kb.ontology import DEMO_TRIPLES
from nutrisearch_kb.scoring import Recommendation, UserProfile, recommend
from nutrisearch_kb.sparql.executor import QueryEngine, QueryResult
from nutrisearch_kb.storage.inference import (
    Reasoner,
    ReasoningExplanation,
    Rule,
    builtin_rules,
    rdfs_rules,
)
from nutrisearch_kb.storage.terms import PrefixMap
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import NutritionVocabulary

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """
    A nutrition knowledge base session.

    Example:
        kb = KnowledgeBase()
        kb.load_demo()
        result = kb.query("SELECT ?food ?n WHERE { ?food hasNutrient ?n }")
        recommendations = kb.recommend(["cognitive"], {"preferences": ["plant-based"]})
    """

    def __init__(self, config: Optional[KnowledgeBaseConfig] = None):
        """
        Args:
            config: Session configuration (defaults apply when omitted)

        Raises:
            ConfigValidationError: If the configuration is invalid
        """
        self.config = config or KnowledgeBaseConfig()
        ConfigValidator.validate_or_raise(self.config)

        self.vocab = NutritionVocabulary(self.config.namespace)
        self.prefixes = PrefixMap(self.config.prefix_table())
        self.store = TripleStore(prefixes=self.prefixes)
        self.reasoner = Reasoner(
            rules=self._select_rules(),
            max_iterations=self.config.reasoning.max_iterations,
        )
        self.engine = QueryEngine(
            prefixes=self.prefixes,
            default_entity_class=self.config.query.default_entity_class or self.vocab.food,
            default_variable=self.config.query.default_variable,
            max_results=self.config.query.max_results,
        )
        self._lock = threading.RLock()

    def _select_rules(self) -> List[Rule]:
        rules = builtin_rules(self.vocab)
        enabled = self.config.reasoning.enabled_rules
        if enabled is not None:
            rules = [rule for rule in rules if rule.name in enabled]
        if self.config.reasoning.rdfs_entailment:
            rules = rdfs_rules() + rules
        return rules

    # ========== Loading ==========

    def load(self, triples: Iterable[Any]) -> BulkLoadResult:
        """
        Add triples handed over by an ingestion collaborator.

        Reasons to a fixpoint afterwards when ``materialize_on_load`` is set.
        """
        with self._lock:
            result = self.store.add_bulk(triples)
            if self.config.reasoning.materialize_on_load:
                self.reasoner.apply_to_fixpoint(self.store)
            return result

    def load_demo(self) -> BulkLoadResult:
        """Load the demonstration nutrition ontology."""
        logger.info("Loading demonstration ontology")
        return self.load(DEMO_TRIPLES)

    # ========== Reasoning ==========

    def reason(self, max_iterations: Optional[int] = None) -> ReasoningExplanation:
        """Run the rules to a fixpoint and summarize the provenance log."""
        with self._lock:
            self.reasoner.apply_to_fixpoint(self.store, max_iterations)
            return self.reasoner.explain()

    def explain(self) -> ReasoningExplanation:
        with self._lock:
            return self.reasoner.explain()

    def clear_inferences(self) -> int:
        """Remove every inferred triple; asserted facts stay."""
        with self._lock:
            return self.reasoner.clear_inferences(self.store)

    # ========== Querying ==========

    def query(self, text: str) -> QueryResult:
        with self._lock:
            return self.engine.execute(text, self.store)

    def recommend(
        self,
        goals: Sequence[str],
        profile: Union[UserProfile, Mapping[str, Any], None] = None,
        limit: Optional[int] = None,
    ) -> List[Recommendation]:
        """
        Rank entities against health goals.

        Args:
            goals: Health goals (non-empty)
            profile: UserProfile or a mapping with restrictions/preferences
            limit: Maximum number of recommendations
        """
        if profile is not None and not isinstance(profile, UserProfile):
            profile = UserProfile.model_validate(dict(profile))
        with self._lock:
            return recommend(self.store, goals, profile, vocab=self.vocab, limit=limit)

    # ========== Inspection ==========

    def stats(self) -> Dict[str, Any]:
        """Ontology statistics plus the inferred-triple count."""
        with self._lock:
            stats = ontology_stats(self.store, self.vocab)
            stats["inferred"] = len(self.reasoner.inferred)
            return stats

    def explore(self, kind: Optional[str] = None) -> Dict[str, List[str]]:
        with self._lock:
            return explore_ontology(self.store, kind)

    def __len__(self) -> int:
        return len(self.store)

    def __repr__(self) -> str:
        return f"KnowledgeBase(triples={len(self.store)}, inferred={len(self.reasoner.inferred)})"
