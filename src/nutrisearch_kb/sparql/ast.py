"""
Query AST.

A parsed query is a SELECT over an ordered list of triple patterns plus
FILTER expressions. Pattern positions hold query terms (variables, IRIs as
written, literals, blank nodes); prefix expansion happens at evaluation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ComparisonOp(str, Enum):
    """FILTER comparison operators, valued by their canonical symbol."""
    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    @classmethod
    def from_str(cls, op: str) -> "ComparisonOp":
        aliases = {"==": "=", "<>": "!="}
        return cls(aliases.get(op, op))


class LogicalOp(str, Enum):
    AND = "&&"
    OR = "||"
    NOT = "!"


# =============================================================================
# Pattern terms
# =============================================================================

@dataclass(frozen=True)
class Variable:
    """?food or $food; stored without the sigil."""
    name: str

    def __str__(self) -> str:
        return f"?{self.name}"


@dataclass(frozen=True)
class IRI:
    """
    An IRI as written in the query.

    ``value`` is either an absolute IRI (from ``<...>``) or a prefixed name
    such as ``nutrition:Apple``. Bare names like ``hasNutrient`` arrive here
    as ``:hasNutrient``.
    """
    value: str

    def __str__(self) -> str:
        return f"<{self.value}>" if "://" in self.value else self.value


@dataclass(frozen=True)
class Literal:
    """Literal in lexical form, with optional language tag or datatype."""
    value: str
    language: Optional[str] = None
    datatype: Optional[str] = None

    def __str__(self) -> str:
        quoted = '"' + self.value.replace("\\", "\\\\").replace('"', '\\"') + '"'
        if self.language:
            return f"{quoted}@{self.language}"
        if self.datatype:
            return f"{quoted}^^{IRI(self.datatype)}"
        return quoted


@dataclass(frozen=True)
class BlankNode:
    """_:label, matched as a concrete term."""
    label: str

    def __str__(self) -> str:
        return f"_:{self.label}"


PatternTerm = Union[Variable, IRI, Literal, BlankNode]


@dataclass(frozen=True)
class TriplePattern:
    subject: PatternTerm
    predicate: PatternTerm
    object: PatternTerm

    def __str__(self) -> str:
        return f"{self.subject} {self.predicate} {self.object} ."

    def variables(self) -> list[Variable]:
        """Distinct variables by position."""
        found: list[Variable] = []
        for slot in (self.subject, self.predicate, self.object):
            if isinstance(slot, Variable) and slot not in found:
                found.append(slot)
        return found


# =============================================================================
# FILTER expressions
# =============================================================================

@dataclass
class Comparison:
    left: "Expression"
    operator: ComparisonOp
    right: "Expression"

    def __str__(self) -> str:
        return f"{self.left} {self.operator.value} {self.right}"


@dataclass
class LogicalExpression:
    """NOT has a single operand; AND/OR have two or more."""
    operator: LogicalOp
    operands: list["Expression"]

    def __str__(self) -> str:
        if self.operator is LogicalOp.NOT:
            return f"!({self.operands[0]})"
        joiner = f" {self.operator.value} "
        return "(" + joiner.join(map(str, self.operands)) + ")"


@dataclass
class FunctionCall:
    """Built-in call such as CONTAINS(LCASE(STR(?n)), "omega"); name is upper-cased."""
    name: str
    arguments: list["Expression"]

    def __str__(self) -> str:
        return f"{self.name}({', '.join(map(str, self.arguments))})"


@dataclass
class UnsupportedExpression:
    """
    A FILTER body outside the expression language (NOT EXISTS, unknown
    syntax). Kept as source text and treated as always true.
    """
    text: str

    def __str__(self) -> str:
        return self.text


Expression = Union[
    Variable, IRI, Literal, BlankNode,
    Comparison, LogicalExpression, FunctionCall, UnsupportedExpression,
]


@dataclass
class Filter:
    expression: Expression

    def __str__(self) -> str:
        if isinstance(self.expression, UnsupportedExpression):
            return f"FILTER {self.expression}"
        return f"FILTER({self.expression})"


# =============================================================================
# Query
# =============================================================================

@dataclass
class WhereClause:
    patterns: list[TriplePattern] = field(default_factory=list)
    filters: list[Filter] = field(default_factory=list)

    def variables(self) -> list[Variable]:
        """Pattern variables in order of first appearance."""
        found: list[Variable] = []
        for pattern in self.patterns:
            found.extend(v for v in pattern.variables() if v not in found)
        return found


@dataclass
class SelectQuery:
    """
    SELECT [DISTINCT] vars WHERE {...} [ORDER BY] [LIMIT] [OFFSET].

    An empty ``variables`` list stands for ``SELECT *``; ``order_by`` holds
    (variable, ascending) pairs.
    """
    prefixes: dict[str, str] = field(default_factory=dict)
    variables: list[Variable] = field(default_factory=list)
    where: WhereClause = field(default_factory=WhereClause)
    distinct: bool = False
    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: list[tuple[Variable, bool]] = field(default_factory=list)

    @property
    def select_all(self) -> bool:
        return not self.variables

    def projection(self) -> list[Variable]:
        """Result columns: the selected variables, or every pattern variable for ``*``."""
        return self.where.variables() if self.select_all else list(self.variables)

    def __str__(self) -> str:
        lines = [f"PREFIX {p}: <{ns}>" for p, ns in self.prefixes.items()]
        head = "*" if self.select_all else " ".join(map(str, self.variables))
        lines.append(f"SELECT {'DISTINCT ' if self.distinct else ''}{head} WHERE {{")
        lines.extend(f"  {item}" for item in [*self.where.patterns, *self.where.filters])
        lines.append("}")
        if self.order_by:
            keys = [str(var) if asc else f"DESC({var})" for var, asc in self.order_by]
            lines.append("ORDER BY " + " ".join(keys))
        if self.limit is not None:
            lines.append(f"LIMIT {self.limit}")
        if self.offset:
            lines.append(f"OFFSET {self.offset}")
        return "\n".join(lines)
