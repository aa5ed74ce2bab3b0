"""
Reasoning Explanation.

Read-only summary of a reasoning session built from the provenance log:
how many facts were inferred, by which rules, and how the last run ended
(fixpoint, iteration cap, failed rules).
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import polars as pl

if TYPE_CHECKING:
    from nutrisearch_kb.storage.inference.reasoner import InferredFact, ReasoningRunStats


@dataclass
class ReasoningExplanation:
    """
    Summary of the provenance log.

    ``to_dict`` produces the wire shape:
    ``{totalInferred, rulesApplied, inferredByRule, iterations,
    iterationCapReached, fixpointReached, failedRules, lastReasoningTimestamp}``.
    """
    total_inferred: int
    rules_applied: List[str]
    inferred_by_rule: Dict[str, List[Dict[str, str]]]
    iterations: int = 0
    iteration_cap_reached: bool = False
    fixpoint_reached: bool = False
    failed_rules: List[str] = field(default_factory=list)
    last_reasoning_timestamp: Optional[str] = None
    facts: List["InferredFact"] = field(default_factory=list, repr=False)

    @classmethod
    def from_log(
        cls,
        facts: Sequence["InferredFact"],
        rule_names: Sequence[str],
        last_run: Optional["ReasoningRunStats"] = None,
    ) -> "ReasoningExplanation":
        """
        Build an explanation from provenance entries.

        Args:
            facts: The provenance log, in derivation order
            rule_names: Registered rule names
            last_run: Statistics of the most recent run, if any
        """
        grouped: Dict[str, List[Dict[str, str]]] = {}
        for fact in facts:
            grouped.setdefault(fact.rule, []).append(fact.triple.to_dict())

        explanation = cls(
            total_inferred=len(facts),
            rules_applied=list(rule_names),
            inferred_by_rule=grouped,
            facts=list(facts),
        )
        if last_run is not None:
            explanation.iterations = last_run.iterations
            explanation.iteration_cap_reached = last_run.cap_reached
            explanation.fixpoint_reached = last_run.fixpoint_reached
            explanation.failed_rules = list(last_run.failed_rules)
            if last_run.finished_at is not None:
                explanation.last_reasoning_timestamp = last_run.finished_at.isoformat()
        return explanation

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "totalInferred": self.total_inferred,
            "rulesApplied": list(self.rules_applied),
            "inferredByRule": {
                rule: [dict(t) for t in triples]
                for rule, triples in self.inferred_by_rule.items()
            },
            "iterations": self.iterations,
            "iterationCapReached": self.iteration_cap_reached,
            "fixpointReached": self.fixpoint_reached,
            "failedRules": list(self.failed_rules),
            "lastReasoningTimestamp": self.last_reasoning_timestamp,
        }

    def to_dataframe(self) -> pl.DataFrame:
        """One row per inferred fact: rule, subject, predicate, object, iteration."""
        return pl.DataFrame(
            {
                "rule": [f.rule for f in self.facts],
                "subject": [f.triple.subject.lex for f in self.facts],
                "predicate": [f.triple.predicate.lex for f in self.facts],
                "object": [f.triple.object.lex for f in self.facts],
                "iteration": [f.iteration for f in self.facts],
            },
            schema={
                "rule": pl.Utf8,
                "subject": pl.Utf8,
                "predicate": pl.Utf8,
                "object": pl.Utf8,
                "iteration": pl.Int64,
            },
        )
