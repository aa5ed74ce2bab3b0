"""
NutriSearch KB: an in-memory nutrition knowledge base.

Triple store, restricted SPARQL SELECT engine, forward-chaining reasoner
with provenance, and goal-based food scoring.
"""

__version__ = "0.1.0"

from nutrisearch_kb.storage.terms import Term, TermKind, PrefixMap, local_name
from nutrisearch_kb.models import Triple, BulkLoadResult
from nutrisearch_kb.store import TripleStore, ReadOnlyStoreError
from nutrisearch_kb.ingestion import MalformedTermError, MalformedTripleError
from nutrisearch_kb.sparql import parse_query, QueryEngine, QueryResult, execute_query
from nutrisearch_kb.storage.inference import (
    Reasoner,
    Rule,
    InferredFact,
    ReasoningExplanation,
    builtin_rules,
    rdfs_rules,
)
from nutrisearch_kb.scoring import (
    EntityFacts,
    UserProfile,
    RecommendationRequest,
    Recommendation,
    extract_entity_facts,
    score,
    recommend,
)
from nutrisearch_kb.config import (
    KnowledgeBaseConfig,
    QueryConfig,
    ReasoningConfig,
    ConfigValidator,
    ConfigValidationError,
)
from nutrisearch_kb.knowledge_base import KnowledgeBase

__all__ = [
    # Terms and triples
    "Term",
    "TermKind",
    "PrefixMap",
    "local_name",
    "Triple",
    "BulkLoadResult",
    # Store
    "TripleStore",
    "ReadOnlyStoreError",
    "MalformedTermError",
    "MalformedTripleError",
    # Query
    "parse_query",
    "QueryEngine",
    "QueryResult",
    "execute_query",
    # Reasoning
    "Reasoner",
    "Rule",
    "InferredFact",
    "ReasoningExplanation",
    "builtin_rules",
    "rdfs_rules",
    # Scoring
    "EntityFacts",
    "UserProfile",
    "RecommendationRequest",
    "Recommendation",
    "extract_entity_facts",
    "score",
    "recommend",
    # Configuration
    "KnowledgeBaseConfig",
    "QueryConfig",
    "ReasoningConfig",
    "ConfigValidator",
    "ConfigValidationError",
    # Session
    "KnowledgeBase",
]
