"""
Demonstration nutrition ontology.

Used when no Protégé export is available: a small class hierarchy, object and
datatype properties, and a handful of foods, nutrients and health effects.
Entries are in prefixed form and go through the regular ingestion boundary.
"""

from typing import List, Tuple

from nutrisearch_kb.models import BulkLoadResult
from nutrisearch_kb.store import TripleStore

DEMO_TRIPLES: List[Tuple[str, str, str]] = [
    # Base classes
    ("nutrition:Food", "rdf:type", "owl:Class"),
    ("nutrition:Nutrient", "rdf:type", "owl:Class"),
    ("nutrition:HealthEffect", "rdf:type", "owl:Class"),
    ("nutrition:Person", "rdf:type", "owl:Class"),

    # Subclasses
    ("nutrition:PlantBasedFood", "rdfs:subClassOf", "nutrition:Food"),
    ("nutrition:AnimalBasedFood", "rdfs:subClassOf", "nutrition:Food"),
    ("nutrition:Macronutrient", "rdfs:subClassOf", "nutrition:Nutrient"),
    ("nutrition:Micronutrient", "rdfs:subClassOf", "nutrition:Nutrient"),

    # Object properties
    ("nutrition:hasNutrient", "rdf:type", "owl:ObjectProperty"),
    ("nutrition:hasHealthEffect", "rdf:type", "owl:ObjectProperty"),
    ("nutrition:consumes", "rdf:type", "owl:ObjectProperty"),
    ("nutrition:recommendedFor", "rdf:type", "owl:ObjectProperty"),

    # Datatype properties
    ("nutrition:caloricDensity", "rdf:type", "owl:DatatypeProperty"),
    ("nutrition:glycemicIndex", "rdf:type", "owl:DatatypeProperty"),
    ("nutrition:inflammatoryEffect", "rdf:type", "owl:DatatypeProperty"),

    # Foods
    ("nutrition:Apple", "rdf:type", "nutrition:PlantBasedFood"),
    ("nutrition:Salmon", "rdf:type", "nutrition:AnimalBasedFood"),
    ("nutrition:Spinach", "rdf:type", "nutrition:PlantBasedFood"),
    ("nutrition:Quinoa", "rdf:type", "nutrition:PlantBasedFood"),

    # Nutrients
    ("nutrition:VitaminC", "rdf:type", "nutrition:Micronutrient"),
    ("nutrition:Omega3", "rdf:type", "nutrition:Macronutrient"),
    ("nutrition:Fiber", "rdf:type", "nutrition:Macronutrient"),
    ("nutrition:Antioxidants", "rdf:type", "nutrition:Micronutrient"),

    # Health effects
    ("nutrition:AntiInflammatory", "rdf:type", "nutrition:HealthEffect"),
    ("nutrition:EnergyBoosting", "rdf:type", "nutrition:HealthEffect"),
    ("nutrition:DigestiveHealth", "rdf:type", "nutrition:HealthEffect"),
    ("nutrition:CognitiveFunction", "rdf:type", "nutrition:HealthEffect"),

    # Relations
    ("nutrition:Apple", "nutrition:hasNutrient", "nutrition:VitaminC"),
    ("nutrition:Apple", "nutrition:hasNutrient", "nutrition:Fiber"),
    ("nutrition:Apple", "nutrition:hasHealthEffect", "nutrition:EnergyBoosting"),
    ("nutrition:Salmon", "nutrition:hasNutrient", "nutrition:Omega3"),
    ("nutrition:Salmon", "nutrition:hasHealthEffect", "nutrition:AntiInflammatory"),
    ("nutrition:Salmon", "nutrition:hasHealthEffect", "nutrition:CognitiveFunction"),
    ("nutrition:Spinach", "nutrition:hasNutrient", "nutrition:Antioxidants"),
    ("nutrition:Spinach", "nutrition:hasHealthEffect", "nutrition:DigestiveHealth"),

    # Data properties
    ("nutrition:Apple", "nutrition:caloricDensity", '"52"^^xsd:integer'),
    ("nutrition:Apple", "nutrition:glycemicIndex", '"36"^^xsd:integer'),
    ("nutrition:Apple", "nutrition:inflammatoryEffect", '"1"^^xsd:integer'),
    ("nutrition:Salmon", "nutrition:caloricDensity", '"208"^^xsd:integer'),
    ("nutrition:Salmon", "nutrition:inflammatoryEffect", '"-2"^^xsd:integer'),
]


def load_demo_ontology(store: TripleStore) -> BulkLoadResult:
    """Load the demonstration ontology into a store."""
    return store.add_bulk(DEMO_TRIPLES)
