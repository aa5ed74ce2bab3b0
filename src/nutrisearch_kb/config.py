"""
Knowledge base configuration.

Provides:
- Namespace and prefix table
- Query engine settings (fallback query, result cap)
- Reasoning settings (iteration cap, enabled rules, RDFS entailment)
- Validation and JSON/YAML persistence
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from nutrisearch_kb.storage.inference.reasoner import DEFAULT_MAX_ITERATIONS
from nutrisearch_kb.storage.inference.rules import builtin_rules
from nutrisearch_kb.vocab import DEFAULT_PREFIXES, NUTRITION_NS

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yaml", ".yml")


class ConfigValidationError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class QueryConfig:
    """Query engine configuration."""
    default_entity_class: Optional[str] = None  # None means the Food class of the namespace
    default_variable: str = "food"
    max_results: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_entity_class": self.default_entity_class,
            "default_variable": self.default_variable,
            "max_results": self.max_results,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryConfig":
        return cls(
            default_entity_class=data.get("default_entity_class"),
            default_variable=data.get("default_variable", "food"),
            max_results=data.get("max_results"),
        )


@dataclass
class ReasoningConfig:
    """Reasoning configuration."""
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    rdfs_entailment: bool = False
    enabled_rules: Optional[List[str]] = None  # None means every built-in rule
    materialize_on_load: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_iterations": self.max_iterations,
            "rdfs_entailment": self.rdfs_entailment,
            "enabled_rules": self.enabled_rules,
            "materialize_on_load": self.materialize_on_load,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReasoningConfig":
        enabled = data.get("enabled_rules")
        return cls(
            max_iterations=data.get("max_iterations", DEFAULT_MAX_ITERATIONS),
            rdfs_entailment=data.get("rdfs_entailment", False),
            enabled_rules=list(enabled) if enabled is not None else None,
            materialize_on_load=data.get("materialize_on_load", True),
        )


@dataclass
class KnowledgeBaseConfig:
    """
    Complete configuration for a KnowledgeBase session.

    ``prefixes`` is merged over the default prefix table; the empty prefix
    and ``nutrition`` follow ``namespace`` unless set explicitly.
    """
    namespace: str = NUTRITION_NS
    prefixes: Dict[str, str] = field(default_factory=dict)
    query: QueryConfig = field(default_factory=QueryConfig)
    reasoning: ReasoningConfig = field(default_factory=ReasoningConfig)

    def prefix_table(self) -> Dict[str, str]:
        """Effective prefix table."""
        table = dict(DEFAULT_PREFIXES)
        table[""] = self.namespace
        table["nutrition"] = self.namespace
        table["NutritionOntology"] = self.namespace
        table.update(self.prefixes)
        return table

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "prefixes": dict(self.prefixes),
            "query": self.query.to_dict(),
            "reasoning": self.reasoning.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeBaseConfig":
        return cls(
            namespace=data.get("namespace", NUTRITION_NS),
            prefixes=dict(data.get("prefixes") or {}),
            query=QueryConfig.from_dict(data.get("query") or {}),
            reasoning=ReasoningConfig.from_dict(data.get("reasoning") or {}),
        )

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration; YAML for .yaml/.yml files, JSON otherwise."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in _YAML_SUFFIXES:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved configuration to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "KnowledgeBaseConfig":
        """Load configuration; a missing file yields the defaults."""
        path = Path(path)
        if not path.exists():
            logger.info(f"No configuration at {path}, using defaults")
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Configuration in {path} must be a mapping")
        return cls.from_dict(data)


class ConfigValidator:
    """Validates knowledge base configuration."""

    @staticmethod
    def validate(config: KnowledgeBaseConfig) -> List[str]:
        """
        Validate configuration.

        Returns list of error messages (empty if valid).
        """
        errors = []

        if not config.namespace:
            errors.append("namespace must not be empty")
        elif not config.namespace.endswith(("#", "/")):
            errors.append("namespace must end with '#' or '/'")

        for prefix, namespace in config.prefixes.items():
            if ":" in prefix or " " in prefix:
                errors.append(f"Invalid prefix name: {prefix!r}")
            if not namespace:
                errors.append(f"Prefix {prefix!r} has an empty namespace")

        # Query config validation
        if config.query.default_entity_class == "":
            errors.append("default_entity_class must not be empty")

        if not config.query.default_variable or not config.query.default_variable.replace("_", "a").isalnum():
            errors.append(f"Invalid default_variable: {config.query.default_variable!r}")

        if config.query.max_results is not None and config.query.max_results < 1:
            errors.append("max_results must be at least 1")

        # Reasoning config validation
        if config.reasoning.max_iterations < 1:
            errors.append("max_iterations must be at least 1")

        if config.reasoning.enabled_rules is not None:
            known = {rule.name for rule in builtin_rules()}
            for name in config.reasoning.enabled_rules:
                if name not in known:
                    errors.append(f"Unknown rule: {name}")

        return errors

    @staticmethod
    def validate_or_raise(config: KnowledgeBaseConfig) -> None:
        """Validate configuration, raising on errors."""
        errors = ConfigValidator.validate(config)
        if errors:
            raise ConfigValidationError("; ".join(errors))
