"""
Query parser using pyparsing.

Grammar of the restricted SELECT dialect::

    query    := prefix* SELECT DISTINCT? (var+ | '*') WHERE? '{' item* '}'
                filter* order? limit? offset?
    item     := pattern | filter '.'?
    pattern  := term term term '.'?
    filter   := FILTER ( '(' expr ')' | call )
    order    := ORDER BY ( var | ASC '(' var ')' | DESC '(' var ')' )+

Pattern terms are ``?var``, ``<iri>``, ``prefix:local``, bare names
(resolved against the ``:`` prefix), ``a``, literals and ``_:`` blank nodes.
FILTER bodies that are not expressions, such as ``NOT EXISTS {...}``, are
kept as source text instead of failing the whole query. Anything else
outside the grammar (OPTIONAL, UNION, ASK, ...) raises ParseException.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import pyparsing as pp
from pyparsing import (
    CaselessKeyword,
    DelimitedList,
    Forward,
    Group,
    Keyword,
    OneOrMore,
    OpAssoc,
    Opt,
    QuotedString,
    Regex,
    Suppress,
    ZeroOrMore,
    infix_notation,
    nested_expr,
    one_of,
    original_text_for,
)

from nutrisearch_kb.sparql.ast import (
    BlankNode,
    Comparison,
    ComparisonOp,
    Filter,
    FunctionCall,
    IRI,
    Literal,
    LogicalExpression,
    LogicalOp,
    SelectQuery,
    TriplePattern,
    UnsupportedExpression,
    Variable,
    WhereClause,
)
from nutrisearch_kb.vocab import XSD_BOOLEAN, XSD_DECIMAL, XSD_INTEGER

ParseException = pp.ParseException

# Words that end a pattern list; a bare name never matches one of these
RESERVED_WORDS = (
    "SELECT", "WHERE", "FILTER", "PREFIX", "DISTINCT", "ORDER", "BY", "ASC",
    "DESC", "LIMIT", "OFFSET", "NOT", "EXISTS", "OPTIONAL", "UNION", "GRAPH",
    "BIND", "VALUES", "MINUS",
)


@dataclass(frozen=True)
class _PrefixDecl:
    prefix: str
    namespace: str


@dataclass(frozen=True)
class _OrderKey:
    variable: Variable
    ascending: bool


# =============================================================================
# Parse actions
# =============================================================================

def _to_literal(tokens: pp.ParseResults) -> Literal:
    lang = tokens.get("lang")
    datatype = tokens.get("datatype")
    if datatype and datatype.startswith("<"):
        datatype = datatype[1:-1]
    return Literal(tokens["lex"], language=lang[1:] if lang else None, datatype=datatype or None)


def _to_number(tokens: pp.ParseResults) -> Literal:
    text = tokens[0]
    return Literal(text, datatype=XSD_DECIMAL if "." in text else XSD_INTEGER)


def _to_comparison(tokens: pp.ParseResults) -> Comparison:
    parts = list(tokens[0])
    result = parts[0]
    for symbol, right in zip(parts[1::2], parts[2::2]):
        result = Comparison(result, ComparisonOp.from_str(symbol), right)
    return result


def _logical(op: LogicalOp):
    def action(tokens: pp.ParseResults) -> LogicalExpression:
        return LogicalExpression(op, list(tokens[0])[0::2])
    return action


def _to_negation(tokens: pp.ParseResults) -> LogicalExpression:
    return LogicalExpression(LogicalOp.NOT, [tokens[0][1]])


def _to_where(tokens: pp.ParseResults) -> WhereClause:
    where = WhereClause()
    for item in tokens:
        if isinstance(item, Filter):
            where.filters.append(item)
        else:
            where.patterns.append(item)
    return where


def _to_select(tokens: pp.ParseResults) -> SelectQuery:
    where = tokens["where"][0]
    where.filters.extend(tokens.get("trailing", []))
    return SelectQuery(
        prefixes={decl.prefix: decl.namespace for decl in tokens.get("prefixes", [])},
        variables=list(tokens.get("projection", [])),
        where=where,
        distinct="distinct" in tokens,
        limit=int(tokens["limit"]) if "limit" in tokens else None,
        offset=int(tokens["offset"]) if "offset" in tokens else None,
        order_by=[(key.variable, key.ascending) for key in tokens.get("order", [])],
    )


class SPARQLParser:
    """
    Parser for the restricted SELECT dialect.

    The grammar is built once per instance; ``parse_query`` keeps a shared
    instance.
    """

    def __init__(self):
        self.query = self._build_grammar()

    @staticmethod
    def _build_grammar() -> pp.ParserElement:
        pp.ParserElement.enable_packrat()
        kw = {word: CaselessKeyword(word) for word in RESERVED_WORDS}

        # =================================================================
        # Terms
        # =================================================================

        iri_pattern = r"<[^<>\s]+>"
        pname_pattern = r"(?:[A-Za-z][\w\-]*)?:(?:[A-Za-z0-9_](?:[\w.\-]*[\w\-])?)?"

        variable = Regex(r"[?$][A-Za-z_][A-Za-z0-9_]*").set_parse_action(
            lambda t: Variable(t[0][1:])
        )
        full_iri = Regex(iri_pattern).set_parse_action(lambda t: IRI(t[0][1:-1]))
        prefixed_name = Regex(pname_pattern).set_parse_action(lambda t: IRI(t[0]))
        iri = full_iri | prefixed_name
        bare_name = (
            ~pp.MatchFirst(list(kw.values())) + Regex(r"[A-Za-z][\w\-]*")
        ).set_parse_action(lambda t: IRI(":" + t[0]))
        rdf_type = Keyword("a").set_parse_action(lambda: IRI("rdf:type"))
        blank_node = Regex(r"_:[A-Za-z0-9_]+").set_parse_action(lambda t: BlankNode(t[0][2:]))

        literal = (
            (QuotedString('"', esc_char="\\") | QuotedString("'", esc_char="\\"))("lex")
            + Opt(
                Regex(r"@[A-Za-z]+(?:-[A-Za-z0-9]+)*")("lang")
                | Suppress("^^") + Regex(f"{iri_pattern}|{pname_pattern}")("datatype")
            )
        ).set_parse_action(_to_literal)
        number = Regex(r"[+-]?(?:\d*\.\d+|\d+)").set_parse_action(_to_number)
        boolean = (CaselessKeyword("true") | CaselessKeyword("false")).set_parse_action(
            lambda t: Literal(t[0].lower(), datatype=XSD_BOOLEAN)
        )

        term = (
            variable | full_iri | blank_node | literal | number | boolean
            | prefixed_name | rdf_type | bare_name
        )

        # =================================================================
        # FILTER expressions
        # =================================================================

        expression = Forward()
        call = (
            Regex(r"[A-Za-z_][A-Za-z0-9_]*")
            + Suppress("(") + Opt(DelimitedList(expression)) + Suppress(")")
        ).set_parse_action(lambda t: FunctionCall(t[0].upper(), list(t[1:])))
        operand = call | variable | literal | number | boolean | iri

        expression <<= infix_notation(operand, [
            ("!", 1, OpAssoc.RIGHT, _to_negation),
            (one_of("= == != <> < <= > >="), 2, OpAssoc.LEFT, _to_comparison),
            ("&&", 2, OpAssoc.LEFT, _logical(LogicalOp.AND)),
            ("||", 2, OpAssoc.LEFT, _logical(LogicalOp.OR)),
        ])

        supported_filter = (
            Suppress(kw["FILTER"]) + (Suppress("(") + expression + Suppress(")") | call)
        ).set_parse_action(lambda t: Filter(t[0]))
        opaque_filter = (
            Suppress(kw["FILTER"]) + original_text_for(
                nested_expr("(", ")") | Opt(kw["NOT"]) + kw["EXISTS"] + nested_expr("{", "}")
            )
        ).set_parse_action(lambda t: Filter(UnsupportedExpression(t[0])))
        filter_clause = supported_filter | opaque_filter

        # =================================================================
        # Query
        # =================================================================

        pattern = (term + term + term + Opt(Suppress("."))).set_parse_action(
            lambda t: TriplePattern(t[0], t[1], t[2])
        )
        where = (
            Suppress(Opt(kw["WHERE"])) + Suppress("{")
            + ZeroOrMore(filter_clause + Opt(Suppress(".")) | pattern) + Suppress("}")
        ).set_parse_action(_to_where)

        prefix_decl = (
            Suppress(kw["PREFIX"]) + Regex(r"(?:[A-Za-z][\w\-]*)?:") + full_iri
        ).set_parse_action(lambda t: _PrefixDecl(t[0][:-1], t[1].value))

        order_key = (
            (Suppress(kw["ASC"]) + Suppress("(") + variable + Suppress(")")).set_parse_action(
                lambda t: _OrderKey(t[0], True)
            )
            | (Suppress(kw["DESC"]) + Suppress("(") + variable + Suppress(")")).set_parse_action(
                lambda t: _OrderKey(t[0], False)
            )
            | variable.copy().add_parse_action(lambda t: _OrderKey(t[0], True))
        )
        count = Regex(r"\d+")

        query = (
            Group(ZeroOrMore(prefix_decl))("prefixes")
            + Suppress(kw["SELECT"])
            + Opt(kw["DISTINCT"]("distinct"))
            + (Suppress("*") | Group(OneOrMore(variable))("projection"))
            + Group(where)("where")
            + Group(ZeroOrMore(filter_clause))("trailing")
            + Opt(Suppress(kw["ORDER"]) + Suppress(kw["BY"]) + Group(OneOrMore(order_key))("order"))
            + Opt(Suppress(kw["LIMIT"]) + count("limit"))
            + Opt(Suppress(kw["OFFSET"]) + count("offset"))
        ).set_parse_action(_to_select)
        query.ignore(Regex(r"#[^\n]*"))
        return query

    def parse(self, query_string: str) -> SelectQuery:
        """
        Parse a query string into a SelectQuery.

        Raises:
            ParseException: If the query is malformed or uses unsupported forms
        """
        return self.query.parse_string(query_string, parse_all=True)[0]


_parser: Optional[SPARQLParser] = None


def parse_query(query_string: str) -> SelectQuery:
    """
    Parse with a shared parser instance.

    Raises:
        ParseException: If the query is malformed or uses unsupported forms
    """
    global _parser
    if _parser is None:
        _parser = SPARQLParser()
    return _parser.parse(query_string)


def default_query(
    entity_class: str,
    variable: str = "food",
    subclasses: Sequence[str] = (),
) -> SelectQuery:
    """
    The query evaluated when the input cannot be parsed:
    ``SELECT ?<variable> WHERE { ?<variable> rdf:type <entity_class> }``.

    With ``subclasses`` the type is matched against the class or any of
    them, so instances typed only by a subclass are selected too.
    """
    var = Variable(variable)
    if not subclasses:
        return SelectQuery(
            variables=[var],
            where=WhereClause(patterns=[TriplePattern(var, IRI("rdf:type"), IRI(entity_class))]),
        )

    type_var = Variable(variable + "Class")
    alternatives = [
        Comparison(type_var, ComparisonOp.EQ, IRI(cls))
        for cls in (entity_class, *subclasses)
    ]
    return SelectQuery(
        variables=[var],
        distinct=True,
        where=WhereClause(
            patterns=[TriplePattern(var, IRI("rdf:type"), type_var)],
            filters=[Filter(LogicalExpression(LogicalOp.OR, alternatives))],
        ),
    )
