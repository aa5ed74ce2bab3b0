"""
Query Executor.

Evaluates a parsed SelectQuery against a TripleStore as a left-deep
nested-loop join:

- A worklist of partial bindings starts with one empty binding
- Each pattern, in query order, extends every partial binding with the
  store triples matching its concrete components; an already-bound variable
  must equal the triple's term or the candidate is dropped
- Filters run over the surviving bindings, then ORDER BY, projection,
  DISTINCT, OFFSET and LIMIT

Nothing here raises for bad input: unparseable queries fall back to the
default query, unsupported filters pass every binding.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import polars as pl

from nutrisearch_kb.sparql.ast import (
    SelectQuery,
    TriplePattern,
    Variable, IRI, Literal, BlankNode,
    Filter, Comparison, LogicalExpression, FunctionCall, UnsupportedExpression,
    ComparisonOp, LogicalOp,
)
from nutrisearch_kb.sparql.parser import ParseException, default_query, parse_query
from nutrisearch_kb.storage.terms import PrefixMap, Term, TermKind
from nutrisearch_kb.store import TripleStore
from nutrisearch_kb.vocab import DEFAULT_VOCABULARY, RDFS_SUBCLASS_OF, XSD_BOOLEAN

logger = logging.getLogger(__name__)

Binding = Dict[str, Term]

# A pattern position after prefix expansion
_Slot = Union[Variable, Term]


class _UnsupportedFilter(Exception):
    """The filter uses something outside the expression language."""


class _EvaluationError(Exception):
    """SPARQL expression error: unbound variable or type error."""


@dataclass
class QueryResult:
    """
    Result table of a SELECT query.

    ``fallback`` is set when the input could not be parsed and the default
    query was evaluated instead; ``error`` then holds the parse error.
    """
    variables: List[str]
    rows: List[Binding]
    fallback: bool = False
    error: Optional[str] = None
    query: Optional[SelectQuery] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Binding]:
        return iter(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        """``{variables, rows}`` with each cell as ``{value, kind}``."""
        return {
            "variables": list(self.variables),
            "rows": [
                {name: term.to_dict() for name, term in row.items()}
                for row in self.rows
            ],
        }

    def to_dataframe(self) -> pl.DataFrame:
        """String values of the result table, one column per variable."""
        data = {
            name: [row[name].lex if name in row else None for row in self.rows]
            for name in self.variables
        }
        return pl.DataFrame(data, schema={name: pl.Utf8 for name in self.variables})


class QueryEngine:
    """
    Parses and evaluates queries against a TripleStore.

    Example:
        engine = QueryEngine()
        result = engine.execute(
            'SELECT ?food WHERE { ?food hasNutrient ?n } '
            'FILTER(CONTAINS(LCASE(STR(?n)), "omega"))',
            store,
        )
    """

    def __init__(
        self,
        prefixes: Optional[PrefixMap] = None,
        default_entity_class: Optional[str] = None,
        default_variable: str = "food",
        max_results: Optional[int] = None,
    ):
        """
        Args:
            prefixes: Prefix table for expanding prefixed and bare names
            default_entity_class: Class IRI of the fallback query
            default_variable: Variable name of the fallback query
            max_results: Hard cap on returned rows (None = unlimited)
        """
        self.prefixes = prefixes or PrefixMap()
        self.default_entity_class = default_entity_class or DEFAULT_VOCABULARY.food
        self.default_variable = default_variable
        self.max_results = max_results

    # ========== Parsing ==========

    def default_query(self, store: Optional[TripleStore] = None) -> SelectQuery:
        """
        Instances of the default entity class. Given a store, subclasses of
        the class declared there via rdfs:subClassOf are matched as well.
        """
        subclasses = self._subclasses(store) if store is not None else []
        return default_query(self.default_entity_class, self.default_variable, subclasses)

    def _subclasses(self, store: TripleStore) -> List[str]:
        """Transitive subclasses of the default entity class, nearest first."""
        sub_class_of = Term.iri(RDFS_SUBCLASS_OF)
        found: List[str] = []
        pending = [self.default_entity_class]
        while pending:
            parent = pending.pop(0)
            for child in store.subjects(sub_class_of, Term.iri(parent)):
                if child.kind != TermKind.IRI or child.lex == self.default_entity_class:
                    continue
                if child.lex not in found:
                    found.append(child.lex)
                    pending.append(child.lex)
        return found

    def parse_with_status(
        self,
        text: str,
        store: Optional[TripleStore] = None,
    ) -> Tuple[SelectQuery, Optional[str]]:
        """Parse, returning the query and the parse error if the fallback was used."""
        try:
            return parse_query(text), None
        except ParseException as e:
            message = str(e)
        except RecursionError:
            message = "query nesting too deep"
        logger.warning(f"Unparseable query, evaluating default query instead: {message}")
        return self.default_query(store), message

    def parse(self, text: str) -> SelectQuery:
        """Parse a query; unparseable input yields the default query."""
        query, _ = self.parse_with_status(text)
        return query

    # ========== Evaluation ==========

    def execute(self, text: str, store: TripleStore) -> QueryResult:
        """Parse and evaluate a query string."""
        query, error = self.parse_with_status(text, store)
        rows = self.evaluate(query, store)
        return QueryResult(
            variables=[v.name for v in query.projection()],
            rows=rows,
            fallback=error is not None,
            error=error,
            query=query,
        )

    def evaluate(self, query: SelectQuery, store: TripleStore) -> List[Binding]:
        """
        Evaluate a parsed query.

        Returns:
            Projected bindings in join order (or ORDER BY order)
        """
        prefixes = self.prefixes.copy()
        for prefix, namespace in query.prefixes.items():
            prefixes.bind(prefix, namespace)

        solutions: List[Binding] = [{}]
        for pattern in query.where.patterns:
            slots = self._resolve_pattern(pattern, prefixes)
            extended: List[Binding] = []
            for binding in solutions:
                extended.extend(self._extend(binding, slots, store))
            solutions = extended
            if not solutions:
                break

        if query.where.filters:
            solutions = [
                b for b in solutions
                if all(self._passes(f, b, prefixes) for f in query.where.filters)
            ]

        for var, ascending in reversed(query.order_by):
            solutions.sort(
                key=lambda b, name=var.name: b[name].lex if name in b else "",
                reverse=not ascending,
            )

        projected_names = [v.name for v in query.projection()]
        rows = [
            {name: b[name] for name in projected_names if name in b}
            for b in solutions
        ]

        if query.distinct:
            seen = set()
            unique = []
            for row in rows:
                key = tuple(row.get(name) for name in projected_names)
                if key not in seen:
                    seen.add(key)
                    unique.append(row)
            rows = unique

        if query.offset:
            rows = rows[query.offset:]
        if query.limit is not None:
            rows = rows[:query.limit]
        if self.max_results is not None:
            rows = rows[:self.max_results]

        logger.debug(
            f"Query matched {len(solutions)} solutions, returning {len(rows)} rows"
        )
        return rows

    def _resolve_term(self, term: Any, prefixes: PrefixMap) -> Term:
        if isinstance(term, IRI):
            return Term.iri(prefixes.expand(term.value))
        if isinstance(term, Literal):
            datatype = prefixes.expand(term.datatype) if term.datatype else None
            return Term.literal(term.value, datatype=datatype, lang=term.language)
        if isinstance(term, BlankNode):
            return Term.bnode(term.label)
        raise TypeError(f"Not a concrete query term: {term!r}")

    def _resolve_pattern(
        self,
        pattern: TriplePattern,
        prefixes: PrefixMap,
    ) -> Tuple[_Slot, _Slot, _Slot]:
        return tuple(
            term if isinstance(term, Variable) else self._resolve_term(term, prefixes)
            for term in (pattern.subject, pattern.predicate, pattern.object)
        )

    def _extend(
        self,
        binding: Binding,
        slots: Tuple[_Slot, _Slot, _Slot],
        store: TripleStore,
    ) -> Iterator[Binding]:
        """Extend one partial binding with every consistent matching triple."""
        lookup = [
            binding.get(slot.name) if isinstance(slot, Variable) else slot
            for slot in slots
        ]
        for triple in store.query(lookup[0], lookup[1], lookup[2]):
            candidate = dict(binding)
            consistent = True
            for slot, value in zip(slots, (triple.subject, triple.predicate, triple.object)):
                if not isinstance(slot, Variable):
                    continue
                bound = candidate.get(slot.name)
                if bound is None:
                    candidate[slot.name] = value
                elif bound != value:
                    consistent = False
                    break
            if consistent:
                yield candidate

    # ========== Filters ==========

    def _passes(self, filter_clause: Filter, binding: Binding, prefixes: PrefixMap) -> bool:
        try:
            return _effective_boolean(self._eval(filter_clause.expression, binding, prefixes))
        except _UnsupportedFilter:
            return True
        except _EvaluationError:
            return False

    def _eval(self, expr: Any, binding: Binding, prefixes: PrefixMap) -> Any:
        if isinstance(expr, Variable):
            if expr.name not in binding:
                raise _EvaluationError(f"unbound variable {expr}")
            return binding[expr.name]
        if isinstance(expr, (IRI, Literal, BlankNode)):
            return self._resolve_term(expr, prefixes)
        if isinstance(expr, Comparison):
            left = self._eval(expr.left, binding, prefixes)
            right = self._eval(expr.right, binding, prefixes)
            return _compare(left, expr.operator, right)
        if isinstance(expr, LogicalExpression):
            return self._eval_logical(expr, binding, prefixes)
        if isinstance(expr, FunctionCall):
            return self._eval_function(expr, binding, prefixes)
        if isinstance(expr, UnsupportedExpression):
            raise _UnsupportedFilter(expr.text)
        raise _UnsupportedFilter(str(expr))

    def _eval_logical(self, expr: LogicalExpression, binding: Binding, prefixes: PrefixMap) -> bool:
        if expr.operator == LogicalOp.NOT:
            return not _effective_boolean(self._eval(expr.operands[0], binding, prefixes))

        # SPARQL three-valued logic: an error only matters if it decides the result.
        # An unsupported operand counts as true and the others still apply.
        short_circuit = expr.operator == LogicalOp.OR
        error: Optional[_EvaluationError] = None
        for operand in expr.operands:
            try:
                value = _effective_boolean(self._eval(operand, binding, prefixes))
            except _UnsupportedFilter:
                value = True
            except _EvaluationError as e:
                error = e
                continue
            if value == short_circuit:
                return short_circuit
        if error is not None:
            raise error
        return not short_circuit

    def _eval_function(self, func: FunctionCall, binding: Binding, prefixes: PrefixMap) -> Any:
        name = func.name.upper()
        args = func.arguments

        if name == "BOUND":
            if len(args) != 1 or not isinstance(args[0], Variable):
                raise _UnsupportedFilter(str(func))
            return args[0].name in binding

        handler = _FUNCTIONS.get(name)
        if handler is None:
            raise _UnsupportedFilter(str(func))
        arity, fn = handler
        if len(args) != arity:
            raise _UnsupportedFilter(str(func))
        values = [self._eval(arg, binding, prefixes) for arg in args]
        return fn(*values)


# =============================================================================
# Value helpers
# =============================================================================

def _string(value: Any) -> str:
    if isinstance(value, Term):
        return value.lex
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Term):
        return value.numeric_value()
    return None


def _effective_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return bool(value)
    if isinstance(value, Term):
        if value.kind != TermKind.LITERAL:
            raise _EvaluationError(f"no boolean value for {value}")
        if value.datatype == XSD_BOOLEAN:
            return value.lex == "true"
        number = value.numeric_value()
        if number is not None:
            return number != 0
        return bool(value.lex)
    raise _EvaluationError(f"no boolean value for {value!r}")


def _compare(left: Any, op: ComparisonOp, right: Any) -> bool:
    left_num, right_num = _number(left), _number(right)
    if left_num is not None and right_num is not None:
        a, b = left_num, right_num
    elif op in (ComparisonOp.EQ, ComparisonOp.NE) and isinstance(left, Term) and isinstance(right, Term):
        equal = left == right
        return equal if op == ComparisonOp.EQ else not equal
    else:
        a, b = _string(left), _string(right)

    if op == ComparisonOp.EQ:
        return a == b
    if op == ComparisonOp.NE:
        return a != b
    if op == ComparisonOp.LT:
        return a < b
    if op == ComparisonOp.LE:
        return a <= b
    if op == ComparisonOp.GT:
        return a > b
    return a >= b


def _kind_test(kind: TermKind):
    def test(value: Any) -> bool:
        return isinstance(value, Term) and value.kind == kind
    return test


# name -> (arity, implementation); string matching is case-insensitive
_FUNCTIONS = {
    "STR": (1, lambda v: _string(v)),
    "LCASE": (1, lambda v: _string(v).lower()),
    "UCASE": (1, lambda v: _string(v).upper()),
    "STRLEN": (1, lambda v: len(_string(v))),
    "CONTAINS": (2, lambda a, b: _string(b).casefold() in _string(a).casefold()),
    "STRSTARTS": (2, lambda a, b: _string(a).casefold().startswith(_string(b).casefold())),
    "STRENDS": (2, lambda a, b: _string(a).casefold().endswith(_string(b).casefold())),
    "ISIRI": (1, _kind_test(TermKind.IRI)),
    "ISURI": (1, _kind_test(TermKind.IRI)),
    "ISLITERAL": (1, _kind_test(TermKind.LITERAL)),
    "ISBLANK": (1, _kind_test(TermKind.BNODE)),
}


def execute_query(store: TripleStore, query_string: str, **engine_options: Any) -> QueryResult:
    """Parse and execute a query with a one-off engine."""
    engine = QueryEngine(prefixes=store.prefixes, **engine_options)
    return engine.execute(query_string, store)
