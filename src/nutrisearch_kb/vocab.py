"""
Vocabulary constants for the nutrition knowledge base.

Namespaces are expanded against these when resolving prefixed names in
ingested triples and queries.
"""

from dataclasses import dataclass


# Namespaces
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS_NS = "http://www.w3.org/2000/01/rdf-schema#"
OWL_NS = "http://www.w3.org/2002/07/owl#"
XSD_NS = "http://www.w3.org/2001/XMLSchema#"
NUTRITION_NS = "http://www.semanticweb.org/nutrisearch-ontology#"

# RDF / RDFS / OWL vocabulary
RDF_TYPE = RDF_NS + "type"
RDFS_LABEL = RDFS_NS + "label"
RDFS_SUBCLASS_OF = RDFS_NS + "subClassOf"
OWL_CLASS = OWL_NS + "Class"
OWL_OBJECT_PROPERTY = OWL_NS + "ObjectProperty"
OWL_DATATYPE_PROPERTY = OWL_NS + "DatatypeProperty"
OWL_NAMED_INDIVIDUAL = OWL_NS + "NamedIndividual"

# XSD datatypes
XSD_STRING = XSD_NS + "string"
XSD_INTEGER = XSD_NS + "integer"
XSD_DECIMAL = XSD_NS + "decimal"
XSD_DOUBLE = XSD_NS + "double"
XSD_BOOLEAN = XSD_NS + "boolean"

NUMERIC_DATATYPES = frozenset({
    XSD_INTEGER,
    XSD_DECIMAL,
    XSD_DOUBLE,
    XSD_NS + "float",
    XSD_NS + "int",
    XSD_NS + "long",
    XSD_NS + "short",
    XSD_NS + "nonNegativeInteger",
    XSD_NS + "positiveInteger",
})

DEFAULT_PREFIXES = {
    "": NUTRITION_NS,
    "nutrition": NUTRITION_NS,
    "NutritionOntology": NUTRITION_NS,
    "rdf": RDF_NS,
    "rdfs": RDFS_NS,
    "owl": OWL_NS,
    "xsd": XSD_NS,
}


@dataclass(frozen=True)
class NutritionVocabulary:
    """
    IRIs of the nutrition ontology terms the rules and scorer rely on.

    Built from a namespace so a differently-rooted ontology can be reasoned
    over with the same rule catalog.
    """
    namespace: str = NUTRITION_NS

    def term(self, local: str) -> str:
        return self.namespace + local

    @property
    def food(self) -> str:
        return self.term("Food")

    @property
    def nutrient(self) -> str:
        return self.term("Nutrient")

    @property
    def health_effect(self) -> str:
        return self.term("HealthEffect")

    @property
    def has_nutrient(self) -> str:
        return self.term("hasNutrient")

    @property
    def has_health_effect(self) -> str:
        return self.term("hasHealthEffect")

    @property
    def has_synergy(self) -> str:
        return self.term("hasSynergy")

    @property
    def has_nutrient_density(self) -> str:
        return self.term("hasNutrientDensity")

    @property
    def caloric_density(self) -> str:
        return self.term("caloricDensity")

    @property
    def inflammatory_effect(self) -> str:
        return self.term("inflammatoryEffect")

    @property
    def glycemic_index(self) -> str:
        return self.term("glycemicIndex")


DEFAULT_VOCABULARY = NutritionVocabulary()
