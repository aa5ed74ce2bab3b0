"""
Inference Rule Definitions and Registry.

A rule is data: a name plus a function from a (read-only) store to the
candidate triples it derives. Rules never mutate the store; the Reasoner
inserts their candidates.

Provides:
- Rule: a named candidate generator
- RuleRegistry: rules in registration order
- builtin_rules: the nutrition rule catalog
- rdfs_rules: subClassOf transitivity and type inheritance
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from nutrisearch_kb.models import Triple
from nutrisearch_kb.storage.terms import Term, local_name
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import (
    DEFAULT_VOCABULARY,
    NutritionVocabulary,
    RDF_TYPE,
    RDFS_SUBCLASS_OF,
)

RuleFn = Callable[[TripleStore], Iterable[Triple]]


@dataclass(frozen=True)
class Rule:
    """
    A single inference rule.

    Attributes:
        name: Unique rule name, used to tag provenance
        fn: Candidate generator over a store snapshot
        description: Human-readable summary
    """
    name: str
    fn: RuleFn
    description: str = ""

    def apply(self, store: TripleStore) -> List[Triple]:
        """Run the rule and return its candidate triples."""
        return list(self.fn(store))


class RuleRegistry:
    """
    Registry of inference rules in registration order.

    Registering a name twice replaces the earlier rule in place.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self._rules: Dict[str, Rule] = {}
        for rule in rules or ():
            self.register(rule)

    def register(self, rule: Rule) -> None:
        """Register a rule."""
        self._rules[rule.name] = rule

    def unregister(self, name: str) -> bool:
        return self._rules.pop(name, None) is not None

    def get(self, name: str) -> Optional[Rule]:
        """Get a rule by name."""
        return self._rules.get(name)

    def names(self) -> List[str]:
        return list(self._rules)

    def list_rules(self) -> List[Rule]:
        """List all registered rules."""
        return list(self._rules.values())

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)


# =============================================================================
# Nutrition rule catalog
# =============================================================================

COMPLEMENTARY_NUTRIENTS = {
    "Iron": "VitaminC",
    "Calcium": "VitaminD",
    "FatSolubleVitamins": "HealthyFats",
}

ANTI_INFLAMMATORY_NUTRIENTS = frozenset({
    "Omega3", "Curcumin", "Gingerol", "Quercetin", "Resveratrol",
})

MICRONUTRIENTS = frozenset({
    "VitaminC", "VitaminA", "VitaminE", "Iron", "Calcium", "Magnesium",
})

HIGH_DENSITY_THRESHOLD = 0.1
MEDIUM_DENSITY_THRESHOLD = 0.05


def _nutrients_by_subject(store: TripleStore, vocab: NutritionVocabulary) -> Dict[Term, List[str]]:
    """Local names of each subject's hasNutrient objects, store order."""
    grouped: Dict[Term, List[str]] = {}
    for triple in store.query(predicate=Term.iri(vocab.has_nutrient)):
        grouped.setdefault(triple.subject, []).append(local_name(triple.object.lex))
    return grouped


def health_effect_transitivity(vocab: NutritionVocabulary = DEFAULT_VOCABULARY) -> Rule:
    """(A hasHealthEffect B), (B hasHealthEffect C) => (A hasHealthEffect C)."""
    predicate = Term.iri(vocab.has_health_effect)

    def derive(store: TripleStore) -> Iterator[Triple]:
        for first in store.query(predicate=predicate):
            for second in store.query(subject=first.object, predicate=predicate):
                yield Triple(first.subject, predicate, second.object)

    return Rule(
        "healthEffectTransitivity",
        derive,
        "Health effects of health effects propagate to the subject",
    )


def nutrient_complementarity(vocab: NutritionVocabulary = DEFAULT_VOCABULARY) -> Rule:
    """Subjects holding both nutrients of a complementary pair get a hasSynergy literal."""
    synergy = Term.iri(vocab.has_synergy)

    def derive(store: TripleStore) -> Iterator[Triple]:
        for subject, nutrients in _nutrients_by_subject(store, vocab).items():
            present = set(nutrients)
            for nutrient in dict.fromkeys(nutrients):
                complement = COMPLEMENTARY_NUTRIENTS.get(nutrient)
                if complement and complement in present:
                    yield Triple(
                        subject,
                        synergy,
                        Term.literal(f"Enhanced absorption of {nutrient} with {complement}"),
                    )

    return Rule(
        "nutrientComplementarity",
        derive,
        "Complementary nutrient pairs on the same subject yield a synergy fact",
    )


def anti_inflammatory_inference(vocab: NutritionVocabulary = DEFAULT_VOCABULARY) -> Rule:
    """Two or more anti-inflammatory nutrients => strong effect, exactly one => mild."""
    has_effect = Term.iri(vocab.has_health_effect)
    strong = Term.iri(vocab.term("StrongAntiInflammatory"))
    mild = Term.iri(vocab.term("MildAntiInflammatory"))

    def derive(store: TripleStore) -> Iterator[Triple]:
        for subject, nutrients in _nutrients_by_subject(store, vocab).items():
            count = sum(1 for n in nutrients if n in ANTI_INFLAMMATORY_NUTRIENTS)
            if count >= 2:
                yield Triple(subject, has_effect, strong)
            elif count == 1:
                yield Triple(subject, has_effect, mild)

    return Rule(
        "antiInflammatoryInference",
        derive,
        "Counts anti-inflammatory nutrients per subject",
    )


def classify_density(score: float) -> str:
    """Local name of the density class for a micronutrient/calorie ratio."""
    if score > HIGH_DENSITY_THRESHOLD:
        return "HighNutrientDensity"
    if score > MEDIUM_DENSITY_THRESHOLD:
        return "MediumNutrientDensity"
    return "LowNutrientDensity"


def nutritional_density_classification(vocab: NutritionVocabulary = DEFAULT_VOCABULARY) -> Rule:
    """Classify subjects by micronutrient count per unit of caloric density."""
    has_density = Term.iri(vocab.has_nutrient_density)
    caloric_density = Term.iri(vocab.caloric_density)

    def derive(store: TripleStore) -> Iterator[Triple]:
        calories: Dict[Term, float] = {}
        for triple in store.query(predicate=caloric_density):
            value = triple.object.numeric_value()
            if value is not None:
                calories[triple.subject] = value

        for subject, nutrients in _nutrients_by_subject(store, vocab).items():
            density = calories.get(subject)
            if not density:
                continue
            micronutrients = sum(1 for n in nutrients if n in MICRONUTRIENTS)
            label = classify_density(micronutrients / density)
            yield Triple(subject, has_density, Term.iri(vocab.term(label)))

    return Rule(
        "nutritionalDensityClassification",
        derive,
        "Micronutrients per caloric density: >0.1 high, >0.05 medium, else low",
    )


def builtin_rules(vocab: NutritionVocabulary = DEFAULT_VOCABULARY) -> List[Rule]:
    """The nutrition rule catalog, in application order."""
    return [
        health_effect_transitivity(vocab),
        nutrient_complementarity(vocab),
        anti_inflammatory_inference(vocab),
        nutritional_density_classification(vocab),
    ]


# =============================================================================
# RDFS rules
# =============================================================================

def subclass_transitivity() -> Rule:
    """rdfs11: (A subClassOf B), (B subClassOf C) => (A subClassOf C)."""
    subclass_of = Term.iri(RDFS_SUBCLASS_OF)

    def derive(store: TripleStore) -> Iterator[Triple]:
        for first in store.query(predicate=subclass_of):
            for second in store.query(subject=first.object, predicate=subclass_of):
                yield Triple(first.subject, subclass_of, second.object)

    return Rule("rdfsSubClassTransitivity", derive, "rdfs11: subClassOf is transitive")


def type_inheritance() -> Rule:
    """rdfs9: (x type A), (A subClassOf B) => (x type B)."""
    rdf_type = Term.iri(RDF_TYPE)
    subclass_of = Term.iri(RDFS_SUBCLASS_OF)

    def derive(store: TripleStore) -> Iterator[Triple]:
        for typing in store.query(predicate=rdf_type):
            for parent in store.query(subject=typing.object, predicate=subclass_of):
                yield Triple(typing.subject, rdf_type, parent.object)

    return Rule("rdfsTypeInheritance", derive, "rdfs9: instances of a subclass are instances of its superclass")


def rdfs_rules() -> List[Rule]:
    """RDFS entailment subset: subclass transitivity and type inheritance."""
    return [subclass_transitivity(), type_inheritance()]
