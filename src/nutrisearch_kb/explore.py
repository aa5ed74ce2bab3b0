"""
Ontology statistics and exploration.

Both operate on the polars view of the store, so they are cheap summaries
rather than queries.
"""

from typing import Any, Dict, List, Optional, Set

import polars as pl

from nutrisearch_kb.storage.terms import local_name
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import (
    DEFAULT_VOCABULARY,
    NutritionVocabulary,
    OWL_CLASS,
    OWL_DATATYPE_PROPERTY,
    OWL_NAMED_INDIVIDUAL,
    OWL_OBJECT_PROPERTY,
    RDF_TYPE,
    RDFS_SUBCLASS_OF,
)

EXPLORE_KINDS = ("classes", "objectProperties", "dataProperties", "individuals")

_SCHEMA_TYPES = (OWL_CLASS, OWL_OBJECT_PROPERTY, OWL_DATATYPE_PROPERTY, OWL_NAMED_INDIVIDUAL)


def _subjects(df: pl.DataFrame, predicate: str, obj: Optional[str] = None) -> Set[str]:
    mask = pl.col("p") == predicate
    if obj is not None:
        mask = mask & (pl.col("o") == obj)
    return set(df.filter(mask).get_column("s").to_list())


def _subclass_closure(df: pl.DataFrame, root: str) -> Set[str]:
    """root plus every class reachable downwards through rdfs:subClassOf."""
    edges = df.filter(pl.col("p") == RDFS_SUBCLASS_OF).select(["s", "o"]).rows()
    children: Dict[str, List[str]] = {}
    for child, parent in edges:
        children.setdefault(parent, []).append(child)

    found = {root}
    pending = [root]
    while pending:
        for child in children.get(pending.pop(), []):
            if child not in found:
                found.add(child)
                pending.append(child)
    return found


def _instances(df: pl.DataFrame, root: str) -> Set[str]:
    classes = _subclass_closure(df, root)
    typed = df.filter((pl.col("p") == RDF_TYPE) & pl.col("o").is_in(list(classes)))
    return set(typed.get_column("s").to_list())


def _classes(df: pl.DataFrame) -> Set[str]:
    return _subjects(df, RDF_TYPE, OWL_CLASS) | _subjects(df, RDFS_SUBCLASS_OF)


def _individuals(df: pl.DataFrame) -> Set[str]:
    """Subjects typed with something other than an OWL schema type, or declared NamedIndividual."""
    typed = df.filter(
        (pl.col("p") == RDF_TYPE) & (pl.col("o_kind") == "iri")
    ).select(["s", "o"]).rows()
    classes = _classes(df)
    individuals = {s for s, o in typed if o not in _SCHEMA_TYPES}
    individuals |= _subjects(df, RDF_TYPE, OWL_NAMED_INDIVIDUAL)
    return individuals - classes


def ontology_stats(
    store: TripleStore,
    vocab: NutritionVocabulary = DEFAULT_VOCABULARY,
    top_predicates: int = 10,
) -> Dict[str, Any]:
    """
    Summarize store contents.

    Returns:
        Counts of triples, distinct subjects and predicates, literal and
        blank-node objects, schema elements, foods, nutrients and health
        effects (instances of the class or its subclasses), and the most
        used predicates.
    """
    df = store.to_dataframe()

    usage = (
        df.group_by("p")
        .agg(pl.len().alias("count"))
        .sort(["count", "p"], descending=[True, False])
        .head(top_predicates)
    )

    return {
        "triples": df.height,
        "subjects": df.get_column("s").n_unique(),
        "predicates": df.get_column("p").n_unique(),
        "literals": df.filter(pl.col("o_kind") == "literal").height,
        "blankNodes": df.filter(pl.col("o_kind") == "bnode").height,
        "classes": len(_classes(df)),
        "objectProperties": len(_subjects(df, RDF_TYPE, OWL_OBJECT_PROPERTY)),
        "dataProperties": len(_subjects(df, RDF_TYPE, OWL_DATATYPE_PROPERTY)),
        "individuals": len(_individuals(df)),
        "foods": len(_instances(df, vocab.food)),
        "nutrients": len(_instances(df, vocab.nutrient)),
        "healthEffects": len(_instances(df, vocab.health_effect)),
        "topPredicates": [
            {"predicate": store.prefixes.contract(p), "count": count}
            for p, count in usage.rows()
        ],
    }


def explore_ontology(store: TripleStore, kind: Optional[str] = None) -> Dict[str, List[str]]:
    """
    List schema elements and individuals by local name.

    Args:
        store: Store to explore
        kind: One of classes, objectProperties, dataProperties, individuals;
              None for all

    Raises:
        ValueError: If kind is not recognized
    """
    if kind is not None and kind not in EXPLORE_KINDS:
        raise ValueError(f"Unknown kind {kind!r}; expected one of {', '.join(EXPLORE_KINDS)}")

    df = store.to_dataframe()
    collectors = {
        "classes": lambda: _classes(df),
        "objectProperties": lambda: _subjects(df, RDF_TYPE, OWL_OBJECT_PROPERTY),
        "dataProperties": lambda: _subjects(df, RDF_TYPE, OWL_DATATYPE_PROPERTY),
        "individuals": lambda: _individuals(df),
    }
    kinds = [kind] if kind is not None else list(EXPLORE_KINDS)
    return {
        k: sorted({local_name(iri) for iri in collectors[k]()})
        for k in kinds
    }
