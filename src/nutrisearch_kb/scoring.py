"""
Goal scoring and food recommendations.

Scores an entity's (already reasoned) facts against a caller's health goals:

- health effect names containing a goal: +3 x 2 each
- nutrients supporting a goal via the support table: +2 each
- nutrient density class: +1.5 high, +0.75 medium
- any matching dietary restriction zeroes the score
- each matching preference multiplies the score by 1.2

Scoring is a pure function of (facts, goals, profile).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from nutrisearch_kb.storage.terms import Term, local_name
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import DEFAULT_VOCABULARY, NutritionVocabulary, RDF_TYPE

logger = logging.getLogger(__name__)

HEALTH_EFFECT_WEIGHT = 3.0
NUTRIENT_WEIGHT = 2.0
DENSITY_WEIGHT = 1.5
PREFERENCE_BONUS = 1.2

# goal -> nutrient name fragments that support it
NUTRIENT_SUPPORT = {
    "energy": ["bvitamin", "iron", "magnesium", "coenzyme"],
    "cognitive": ["omega3", "phosphatidyl", "choline", "antioxidant"],
    "anti-inflammatory": ["omega3", "curcumin", "gingerol", "quercetin"],
    "digestive": ["fiber", "probiotic", "enzyme", "prebiotic"],
    "immune": ["vitaminc", "vitamind", "zinc", "selenium"],
}

RESTRICTION_KEYWORDS = {
    "gluten": ["wheat", "barley", "rye", "gluten"],
    "dairy": ["milk", "cheese", "yogurt", "dairy", "lactose"],
    "vegan": ["meat", "dairy", "egg", "honey", "gelatin"],
    "low-carb": ["sugar", "carbohydrate", "grain", "bread"],
}

PREFERENCE_KEYWORDS = {
    "plant-based": ["plant", "vegetable", "fruit", "legume"],
    "high-protein": ["protein", "amino", "muscle"],
    "low-calorie": ["lowcalorie", "light", "lean"],
}


# =============================================================================
# Request models
# =============================================================================

class UserProfile(BaseModel):
    """Dietary restrictions and preferences of the user being served."""
    restrictions: list[str] = Field(default_factory=list, description="e.g. gluten, dairy, vegan, low-carb")
    preferences: list[str] = Field(default_factory=list, description="e.g. plant-based, high-protein, low-calorie")


class RecommendationRequest(BaseModel):
    """Goals plus profile for a recommendation run."""
    goals: list[str] = Field(..., min_length=1, description="Health goals, e.g. energy, cognitive")
    profile: UserProfile = Field(default_factory=UserProfile)


# =============================================================================
# Entity facts
# =============================================================================

@dataclass
class EntityFacts:
    """
    What the store says about one entity, by local name.

    ``properties`` holds nutrientDensity (class local name),
    caloricDensity and inflammatoryEffect (numbers) when present.
    """
    name: str
    iri: str = ""
    nutrients: List[str] = field(default_factory=list)
    health_effects: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def nutrient_density(self) -> Optional[str]:
        return self.properties.get("nutrientDensity")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "iri": self.iri,
            "nutrients": list(self.nutrients),
            "healthEffects": list(self.health_effects),
            "types": list(self.types),
            "properties": dict(self.properties),
        }


def _add_unique(values: List[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _number(term: Term) -> Optional[float]:
    value = term.numeric_value()
    if value is not None and value.is_integer():
        return int(value)
    return value


def extract_entity_facts(
    store: TripleStore,
    vocab: NutritionVocabulary = DEFAULT_VOCABULARY,
) -> Dict[str, EntityFacts]:
    """
    Group store facts per subject local name, in first-seen order.

    Subjects sharing a local name across namespaces are merged.
    """
    has_nutrient = vocab.has_nutrient
    has_effect = vocab.has_health_effect
    has_density = vocab.has_nutrient_density
    numeric_properties = {
        vocab.caloric_density: "caloricDensity",
        vocab.inflammatory_effect: "inflammatoryEffect",
    }

    entities: Dict[str, EntityFacts] = {}
    for triple in store:
        if not triple.subject.is_iri:
            continue
        name = local_name(triple.subject.lex)
        facts = entities.get(name)
        if facts is None:
            facts = entities[name] = EntityFacts(name=name, iri=triple.subject.lex)

        predicate = triple.predicate.lex
        obj = triple.object
        if predicate == has_nutrient:
            _add_unique(facts.nutrients, local_name(obj.lex))
        elif predicate == has_effect:
            _add_unique(facts.health_effects, local_name(obj.lex))
        elif predicate == RDF_TYPE and obj.is_iri:
            _add_unique(facts.types, local_name(obj.lex))
        elif predicate == has_density:
            facts.properties["nutrientDensity"] = local_name(obj.lex)
        elif predicate in numeric_properties:
            value = _number(obj)
            if value is not None:
                facts.properties[numeric_properties[predicate]] = value
    return entities


# =============================================================================
# Scoring
# =============================================================================

def _goals(goals: Iterable[str]) -> List[str]:
    return [g.strip().lower() for g in goals if g and g.strip()]


def nutrient_supports_goal(nutrient: str, goal: str) -> bool:
    supporters = NUTRIENT_SUPPORT.get(goal.strip().lower())
    if not supporters:
        return False
    name = nutrient.lower()
    return any(s in name for s in supporters)


def _matches_any(keywords: Sequence[str], names: Iterable[str]) -> bool:
    lowered = [n.lower() for n in names]
    return any(k in name for k in keywords for name in lowered)


def violates_restriction(facts: EntityFacts, restriction: str) -> bool:
    """True if a nutrient, health effect or type of the entity hits the restriction."""
    key = restriction.strip().lower()
    if not key:
        return False
    keywords = RESTRICTION_KEYWORDS.get(key, [key])
    return _matches_any(keywords, facts.nutrients + facts.health_effects + facts.types)


def matches_preference(facts: EntityFacts, preference: str) -> bool:
    """True if a health effect or type of the entity fits the preference."""
    key = preference.strip().lower()
    if not key:
        return False
    keywords = PREFERENCE_KEYWORDS.get(key, [key])
    return _matches_any(keywords, facts.health_effects + facts.types)


def score(
    facts: EntityFacts,
    goals: Sequence[str],
    profile: Optional[UserProfile] = None,
) -> float:
    """
    Score an entity against health goals and a user profile.

    Args:
        facts: The entity's facts (after reasoning)
        goals: Goal strings; matched case-insensitively
        profile: Restrictions zero the score, preferences multiply it

    Returns:
        Non-negative score; 0 when any restriction matches
    """
    wanted = _goals(goals)
    total = 0.0

    for effect in facts.health_effects:
        effect_name = effect.lower()
        for goal in wanted:
            if goal in effect_name:
                total += HEALTH_EFFECT_WEIGHT * 2

    for nutrient in facts.nutrients:
        for goal in wanted:
            if nutrient_supports_goal(nutrient, goal):
                total += NUTRIENT_WEIGHT

    density = facts.nutrient_density
    if density:
        density = density.lower()
        if "high" in density:
            total += DENSITY_WEIGHT
        if "medium" in density:
            total += DENSITY_WEIGHT * 0.5

    if profile is not None:
        if any(violates_restriction(facts, r) for r in profile.restrictions):
            return 0.0
        for preference in profile.preferences:
            if matches_preference(facts, preference):
                total *= PREFERENCE_BONUS

    return total


def match_level(value: float) -> str:
    if value >= 8:
        return "excellent"
    if value >= 5:
        return "good"
    if value >= 3:
        return "moderate"
    return "low"


def explain_match(facts: EntityFacts, goals: Sequence[str]) -> List[str]:
    """Human-readable reasons an entity fits the goals."""
    reasons = []
    for goal in _goals(goals):
        effects = [e for e in facts.health_effects if goal in e.lower()]
        nutrients = [n for n in facts.nutrients if nutrient_supports_goal(n, goal)]
        if effects:
            reasons.append(f"Supports {goal} through: {', '.join(effects)}")
        if nutrients:
            reasons.append(f"Contains {', '.join(nutrients)} for {goal}")
    if facts.nutrient_density:
        reasons.append(f"Nutrient density: {facts.nutrient_density}")
    return reasons


# =============================================================================
# Recommendations
# =============================================================================

@dataclass
class Recommendation:
    """A scored entity."""
    entity: str
    iri: str
    score: float
    match_level: str
    reasoning: List[str]
    facts: EntityFacts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "iri": self.iri,
            "score": self.score,
            "matchLevel": self.match_level,
            "reasoning": list(self.reasoning),
            "facts": self.facts.to_dict(),
        }


def recommend(
    store: TripleStore,
    goals: Sequence[str],
    profile: Optional[UserProfile] = None,
    vocab: NutritionVocabulary = DEFAULT_VOCABULARY,
    limit: Optional[int] = None,
) -> List[Recommendation]:
    """
    Rank every entity with a positive score.

    The store should already hold inferred facts. Goals are validated
    through RecommendationRequest, so an empty goal list raises
    pydantic.ValidationError.

    Returns:
        Recommendations by score descending, then entity name
    """
    request = RecommendationRequest(goals=list(goals), profile=profile or UserProfile())

    results = []
    for facts in extract_entity_facts(store, vocab).values():
        value = score(facts, request.goals, request.profile)
        if value > 0:
            results.append(Recommendation(
                entity=facts.name,
                iri=facts.iri,
                score=value,
                match_level=match_level(value),
                reasoning=explain_match(facts, request.goals),
                facts=facts,
            ))

    results.sort(key=lambda r: (-r.score, r.entity))
    logger.info(f"Scored entities for goals {request.goals}: {len(results)} recommendations")
    if limit is not None:
        results = results[:limit]
    return results
