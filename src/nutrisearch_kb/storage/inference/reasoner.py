"""
Forward-chaining Reasoner with provenance tracking.

Each pass runs every registered rule against a read-only snapshot of the
store, then inserts the candidates that are not already present, in rule
order, recording which rule derived each new triple and when. Passes repeat
until one adds nothing (fixpoint) or the iteration cap is hit.

A rule that raises is logged and skipped for that pass; the other rules
still run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from nutrisearch_kb.models import Triple
from nutrisearch_kb.storage.inference.explanation import ReasoningExplanation
from nutrisearch_kb.storage.inference.rules import Rule, RuleFn, RuleRegistry, builtin_rules
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import DEFAULT_VOCABULARY, NutritionVocabulary

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class InferredFact:
    """
    Provenance of one inferred triple.

    Attributes:
        triple: The triple the reasoner inserted
        rule: Name of the rule that derived it
        derived_at: When it was inserted (UTC)
        iteration: The pass (1-based) that inserted it
    """
    triple: Triple
    rule: str
    derived_at: datetime
    iteration: int = 1

    def to_dict(self) -> Dict[str, object]:
        d: Dict[str, object] = dict(self.triple.to_dict())
        d["rule"] = self.rule
        d["derivedAt"] = self.derived_at.isoformat()
        d["iteration"] = self.iteration
        return d


@dataclass
class ReasoningRunStats:
    """Outcome of the most recent apply_once / apply_to_fixpoint call."""
    iterations: int = 0
    inferred: int = 0
    fixpoint_reached: bool = False
    cap_reached: bool = False
    failed_rules: List[str] = field(default_factory=list)
    inferred_by_rule: Dict[str, int] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class Reasoner:
    """
    Forward-chaining rule engine over a TripleStore.

    The provenance log accumulates across calls until ``clear_inferences``.

    Example:
        reasoner = Reasoner()
        reasoner.apply_to_fixpoint(store)
        print(reasoner.explain().to_dict())
    """

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        vocab: NutritionVocabulary = DEFAULT_VOCABULARY,
    ):
        """
        Args:
            rules: Rules to register; defaults to the nutrition catalog
            max_iterations: Default pass cap for apply_to_fixpoint
            vocab: Vocabulary the default catalog is built over
        """
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.registry = RuleRegistry(builtin_rules(vocab) if rules is None else rules)
        self.max_iterations = max_iterations
        self.last_run = ReasoningRunStats()
        self._log: List[InferredFact] = []
        self._provenance: Dict[Triple, InferredFact] = {}
        self._store: Optional[TripleStore] = None

    # ========== Rules ==========

    def register_rule(
        self,
        rule: Union[Rule, str],
        fn: Optional[RuleFn] = None,
        description: str = "",
    ) -> Rule:
        """
        Register a rule object, or a name plus candidate function.

        Returns:
            The registered Rule
        """
        if not isinstance(rule, Rule):
            if fn is None:
                raise TypeError("register_rule(name, fn) requires a rule function")
            rule = Rule(rule, fn, description)
        self.registry.register(rule)
        return rule

    @property
    def rule_names(self) -> List[str]:
        return self.registry.names()

    # ========== Application ==========

    def _run_pass(self, store: TripleStore, iteration: int) -> Tuple[List[InferredFact], List[str]]:
        """One pass: all rules read the same snapshot, then candidates are inserted."""
        self._store = store
        snapshot = store.snapshot()
        candidates: List[Tuple[str, Triple]] = []
        failed: List[str] = []

        for rule in self.registry:
            try:
                produced = rule.apply(snapshot)
                for triple in produced:
                    if not isinstance(triple, Triple):
                        raise TypeError(f"rule produced {type(triple).__name__}, expected Triple")
            except Exception:
                logger.exception(f"Rule {rule.name} failed; continuing with remaining rules")
                failed.append(rule.name)
                continue
            logger.debug(f"Rule {rule.name}: {len(produced)} candidates")
            candidates.extend((rule.name, triple) for triple in produced)

        derived_at = datetime.now(timezone.utc)
        new_facts: List[InferredFact] = []
        for rule_name, triple in candidates:
            if store.add(triple):
                fact = InferredFact(triple, rule_name, derived_at, iteration)
                self._log.append(fact)
                self._provenance[triple] = fact
                new_facts.append(fact)
        return new_facts, failed

    def apply_once(self, store: TripleStore) -> List[InferredFact]:
        """
        Run every rule once against the current store.

        Returns:
            The facts newly inserted by this pass
        """
        stats = ReasoningRunStats(started_at=datetime.now(timezone.utc))
        new_facts, failed = self._run_pass(store, iteration=1)
        stats.iterations = 1
        stats.inferred = len(new_facts)
        stats.fixpoint_reached = not new_facts
        stats.failed_rules = failed
        for fact in new_facts:
            stats.inferred_by_rule[fact.rule] = stats.inferred_by_rule.get(fact.rule, 0) + 1
        stats.finished_at = datetime.now(timezone.utc)
        self.last_run = stats
        return new_facts

    def apply_to_fixpoint(
        self,
        store: TripleStore,
        max_iterations: Optional[int] = None,
    ) -> List[InferredFact]:
        """
        Repeat passes until nothing new is derived or the cap is reached.

        Hitting the cap is not an error; it shows up in ``last_run`` and
        ``explain()``.

        Args:
            store: Store to read and extend
            max_iterations: Pass cap (defaults to the reasoner's)

        Returns:
            The accumulated provenance log
        """
        cap = self.max_iterations if max_iterations is None else max_iterations
        if cap < 1:
            raise ValueError(f"max_iterations must be >= 1, got {cap}")

        stats = ReasoningRunStats(started_at=datetime.now(timezone.utc))
        for iteration in range(1, cap + 1):
            new_facts, failed = self._run_pass(store, iteration)
            stats.iterations = iteration
            stats.inferred += len(new_facts)
            for name in failed:
                if name not in stats.failed_rules:
                    stats.failed_rules.append(name)
            for fact in new_facts:
                stats.inferred_by_rule[fact.rule] = stats.inferred_by_rule.get(fact.rule, 0) + 1
            if not new_facts:
                stats.fixpoint_reached = True
                break
        else:
            stats.cap_reached = True
            logger.warning(f"Reasoning stopped at iteration cap ({cap}) before reaching a fixpoint")

        stats.finished_at = datetime.now(timezone.utc)
        self.last_run = stats
        logger.info(
            f"Reasoning finished after {stats.iterations} iterations: "
            f"{stats.inferred} new triples, {len(self._log)} inferred in total"
        )
        return list(self._log)

    # ========== Provenance ==========

    @property
    def inferred(self) -> List[InferredFact]:
        """The provenance log, in derivation order."""
        return list(self._log)

    def justify(self, triple: Triple) -> Optional[InferredFact]:
        """Provenance of a triple, or None if the reasoner did not derive it."""
        return self._provenance.get(triple)

    def is_inferred(self, triple: Triple) -> bool:
        return triple in self._provenance

    def inferred_by_rule(self, rule_name: str) -> List[InferredFact]:
        return [f for f in self._log if f.rule == rule_name]

    def explain(self) -> ReasoningExplanation:
        """Summarize the provenance log, grouped by rule."""
        return ReasoningExplanation.from_log(self._log, self.rule_names, self.last_run)

    def clear_inferences(self, store: Optional[TripleStore] = None) -> int:
        """
        Remove every logged triple from the store and empty the log.

        Facts added outside reasoning are untouched.

        Args:
            store: Store to clean; defaults to the one last reasoned over

        Returns:
            Number of triples removed
        """
        target = store if store is not None else self._store
        removed = 0
        if target is not None:
            for fact in self._log:
                if target.remove(fact.triple):
                    removed += 1
        logger.info(f"Cleared {len(self._log)} inferences ({removed} triples removed)")
        self._log.clear()
        self._provenance.clear()
        return removed
