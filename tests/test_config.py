"""
Tests for knowledge base configuration.
"""

import json

import pytest
import yaml

from nutrisearch_kb.config import (
    ConfigValidationError,
    ConfigValidator,
    KnowledgeBaseConfig,
    QueryConfig,
    ReasoningConfig,
)
from nutrisearch_kb.vocab import NUTRITION_NS


class TestDefaults:
    def test_default_values(self):
        config = KnowledgeBaseConfig()
        assert config.namespace == NUTRITION_NS
        assert config.query.default_entity_class is None
        assert config.query.default_variable == "food"
        assert config.query.max_results is None
        assert config.reasoning.max_iterations == 100
        assert config.reasoning.rdfs_entailment is False
        assert config.reasoning.enabled_rules is None
        assert config.reasoning.materialize_on_load is True

    def test_defaults_are_valid(self):
        assert ConfigValidator.validate(KnowledgeBaseConfig()) == []

    def test_prefix_table_follows_namespace(self):
        config = KnowledgeBaseConfig(namespace="http://example.org/food#")
        table = config.prefix_table()
        assert table[""] == "http://example.org/food#"
        assert table["nutrition"] == "http://example.org/food#"
        assert table["rdf"] == "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

    def test_explicit_prefixes_win(self):
        config = KnowledgeBaseConfig(prefixes={"": "http://example.org/", "ex": "http://example.org/ex#"})
        table = config.prefix_table()
        assert table[""] == "http://example.org/"
        assert table["ex"] == "http://example.org/ex#"


class TestPersistence:
    """Tests for JSON and YAML round trips."""

    @pytest.fixture
    def config(self):
        return KnowledgeBaseConfig(
            prefixes={"ex": "http://example.org/"},
            query=QueryConfig(max_results=50),
            reasoning=ReasoningConfig(
                max_iterations=10,
                rdfs_entailment=True,
                enabled_rules=["antiInflammatoryInference"],
            ),
        )

    def test_json_round_trip(self, tmp_path, config):
        path = tmp_path / "kb.json"
        config.save(path)
        assert json.loads(path.read_text())["reasoning"]["max_iterations"] == 10
        assert KnowledgeBaseConfig.load(path) == config

    def test_yaml_round_trip(self, tmp_path, config):
        path = tmp_path / "kb.yaml"
        config.save(path)
        assert yaml.safe_load(path.read_text())["query"]["max_results"] == 50
        assert KnowledgeBaseConfig.load(path) == config

    def test_missing_file_gives_defaults(self, tmp_path):
        assert KnowledgeBaseConfig.load(tmp_path / "absent.yml") == KnowledgeBaseConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "kb.yml"
        path.write_text("reasoning:\n  rdfs_entailment: true\n")
        config = KnowledgeBaseConfig.load(path)
        assert config.reasoning.rdfs_entailment is True
        assert config.reasoning.max_iterations == 100
        assert config.query == QueryConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "kb.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigValidationError):
            KnowledgeBaseConfig.load(path)


class TestValidation:
    """Tests for ConfigValidator."""

    @pytest.mark.parametrize("config,fragment", [
        (KnowledgeBaseConfig(namespace=""), "namespace must not be empty"),
        (KnowledgeBaseConfig(namespace="http://example.org/food"), "must end with"),
        (KnowledgeBaseConfig(prefixes={"bad:name": "http://x/"}), "Invalid prefix name"),
        (KnowledgeBaseConfig(prefixes={"ex": ""}), "empty namespace"),
        (KnowledgeBaseConfig(query=QueryConfig(default_variable="my-var")), "default_variable"),
        (KnowledgeBaseConfig(query=QueryConfig(default_entity_class="")), "default_entity_class"),
        (KnowledgeBaseConfig(query=QueryConfig(max_results=0)), "max_results"),
        (KnowledgeBaseConfig(reasoning=ReasoningConfig(max_iterations=0)), "max_iterations"),
        (KnowledgeBaseConfig(reasoning=ReasoningConfig(enabled_rules=["noSuchRule"])), "Unknown rule: noSuchRule"),
    ])
    def test_errors(self, config, fragment):
        errors = ConfigValidator.validate(config)
        assert any(fragment in e for e in errors)

    def test_underscore_variable_allowed(self):
        config = KnowledgeBaseConfig(query=QueryConfig(default_variable="food_item"))
        assert ConfigValidator.validate(config) == []

    def test_validate_or_raise(self):
        config = KnowledgeBaseConfig(reasoning=ReasoningConfig(max_iterations=0))
        with pytest.raises(ConfigValidationError, match="max_iterations"):
            ConfigValidator.validate_or_raise(config)
