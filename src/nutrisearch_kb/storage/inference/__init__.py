"""
Inference Engine Package.

Modules:
- rules: Rule abstraction, registry, nutrition and RDFS rule catalogs
- reasoner: Forward-chaining fixpoint loop with provenance
- explanation: Summary of the provenance log
"""

from nutrisearch_kb.storage.inference.rules import (
    Rule,
    RuleRegistry,
    builtin_rules,
    rdfs_rules,
)
from nutrisearch_kb.storage.inference.reasoner import (
    DEFAULT_MAX_ITERATIONS,
    InferredFact,
    Reasoner,
    ReasoningRunStats,
)
from nutrisearch_kb.storage.inference.explanation import ReasoningExplanation

__all__ = [
    # Rules
    "Rule",
    "RuleRegistry",
    "builtin_rules",
    "rdfs_rules",
    # Reasoner
    "DEFAULT_MAX_ITERATIONS",
    "InferredFact",
    "Reasoner",
    "ReasoningRunStats",
    # Explanation
    "ReasoningExplanation",
]
