"""
Tests for the term model and prefix handling.
"""

import pytest

from nutrisearch_kb.storage.terms import Term, TermKind, PrefixMap, local_name
from nutrisearch_kb.vocab import NUTRITION_NS, RDF_TYPE, XSD_INTEGER, XSD_STRING


class TestTerm:
    """Tests for Term construction and equality."""

    def test_iri(self):
        term = Term.iri(NUTRITION_NS + "Apple")
        assert term.kind == TermKind.IRI
        assert term.is_iri
        assert not term.is_literal
        assert term.lex == NUTRITION_NS + "Apple"

    def test_literal_with_datatype(self):
        term = Term.literal("52", datatype=XSD_INTEGER)
        assert term.is_literal
        assert term.datatype == XSD_INTEGER
        assert term.lang is None

    def test_literal_from_bool(self):
        assert Term.literal(True).lex == "true"
        assert Term.literal(False).lex == "false"

    def test_bnode(self):
        term = Term.bnode("b0")
        assert term.is_bnode
        assert term.n3() == "_:b0"

    def test_structural_equality(self):
        """Equal components mean equal terms and equal hashes."""
        a = Term.literal("x", lang="en")
        b = Term.literal("x", lang="en")
        assert a == b
        assert hash(a) == hash(b)
        assert a != Term.literal("x")
        assert Term.iri("x") != Term.literal("x")

    def test_immutable(self):
        term = Term.iri("http://example.org/a")
        with pytest.raises(AttributeError):
            term.lex = "other"

    def test_numeric_value(self):
        assert Term.literal("52", datatype=XSD_INTEGER).numeric_value() == 52.0
        assert Term.literal("-2").numeric_value() == -2.0
        assert Term.literal("abc").numeric_value() is None
        assert Term.literal("5", datatype=XSD_STRING).numeric_value() is None
        assert Term.iri("http://example.org/5").numeric_value() is None

    def test_n3(self):
        assert Term.iri(RDF_TYPE).n3() == f"<{RDF_TYPE}>"
        assert Term.literal('say "hi"').n3() == '"say \\"hi\\""'
        assert Term.literal("chat", lang="fr").n3() == '"chat"@fr'
        assert Term.literal("1", datatype=XSD_INTEGER).n3() == f'"1"^^<{XSD_INTEGER}>'

    def test_to_dict(self):
        assert Term.iri("http://example.org/a").to_dict() == {
            "value": "http://example.org/a",
            "kind": "iri",
        }
        assert Term.literal("1", datatype=XSD_INTEGER).to_dict() == {
            "value": "1",
            "kind": "literal",
            "datatype": XSD_INTEGER,
        }

    def test_string_value(self):
        assert Term.literal("Omega3").string_value() == "Omega3"
        assert Term.iri(NUTRITION_NS + "Omega3").string_value() == NUTRITION_NS + "Omega3"


class TestLocalName:
    def test_fragment(self):
        assert local_name(NUTRITION_NS + "Salmon") == "Salmon"

    def test_path(self):
        assert local_name("http://example.org/foods/Kale") == "Kale"
        assert local_name("http://example.org/foods/Kale/") == "Kale"


class TestPrefixMap:
    """Tests for prefix expansion and contraction."""

    def test_expand_known_prefix(self):
        prefixes = PrefixMap()
        assert prefixes.expand("nutrition:Apple") == NUTRITION_NS + "Apple"
        assert prefixes.expand("rdf:type") == RDF_TYPE

    def test_empty_prefix_is_nutrition_namespace(self):
        assert PrefixMap().expand(":hasNutrient") == NUTRITION_NS + "hasNutrient"

    def test_unknown_prefix_unchanged(self):
        assert PrefixMap().expand("foo:bar") == "foo:bar"

    def test_absolute_iri_unchanged(self):
        assert PrefixMap().expand("http://example.org/x") == "http://example.org/x"

    def test_contract_picks_shortest(self):
        prefixes = PrefixMap()
        assert prefixes.contract(NUTRITION_NS + "Apple") == ":Apple"
        assert prefixes.contract(RDF_TYPE) == "rdf:type"
        assert prefixes.contract("http://example.org/x") == "http://example.org/x"

    def test_bind_and_copy(self):
        prefixes = PrefixMap({})
        prefixes.bind("ex", "http://example.org/")
        copy = prefixes.copy()
        copy.bind("other", "http://other.org/")
        assert prefixes.expand("ex:a") == "http://example.org/a"
        assert "other" in copy
        assert "other" not in prefixes
