"""
Restricted SPARQL SELECT support.

Parses single-block SELECT queries (triple patterns plus FILTER) and
evaluates them against a TripleStore.
"""

from nutrisearch_kb.sparql.ast import (
    Variable,
    IRI,
    Literal,
    BlankNode,
    TriplePattern,
    Filter,
    Comparison,
    LogicalExpression,
    FunctionCall,
    UnsupportedExpression,
    WhereClause,
    SelectQuery,
)
from nutrisearch_kb.sparql.parser import SPARQLParser, ParseException, parse_query, default_query
from nutrisearch_kb.sparql.executor import Binding, QueryEngine, QueryResult, execute_query

__all__ = [
    "Variable",
    "IRI",
    "Literal",
    "BlankNode",
    "TriplePattern",
    "Filter",
    "Comparison",
    "LogicalExpression",
    "FunctionCall",
    "UnsupportedExpression",
    "WhereClause",
    "SelectQuery",
    "SPARQLParser",
    "ParseException",
    "parse_query",
    "default_query",
    "Binding",
    "QueryEngine",
    "QueryResult",
    "execute_query",
]
