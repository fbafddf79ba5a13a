"""Tests for archrules.engine.rule_loader: parsing rules.yml."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml
from conftest import DEMO_RULES_YAML

from archrules.engine.rule_loader import load_rules, parse_rules
from archrules.engine.rules import evaluate_rules
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from pathlib import Path

    from archrules.catalog.catalog import TypeCatalog


def _parse(text: str) -> list:
    return parse_rules(yaml.safe_load(text))


class TestLoadRules:
    def test_load_demo_rules(self, tmp_path: Path, demo_catalog: TypeCatalog) -> None:
        path = tmp_path / "rules.yml"
        path.write_text(DEMO_RULES_YAML, encoding="utf-8")
        rules = load_rules(path)
        assert [r.name for r in rules] == [
            "controllers-layering",
            "controller-names",
            "services-pair-interfaces",
        ]
        assert rules[0].description == "Controllers depend on services and never on repositories"
        assert all(r.passed for r in evaluate_rules(demo_catalog, rules))

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text("rules: [unclosed\n", encoding="utf-8")
        with pytest.raises(InvalidRuleDefinition, match="invalid YAML"):
            load_rules(path)


class TestParseRules:
    def test_defaults(self) -> None:
        (rule,) = _parse(
            """
version: 1
rules:
  - name: models
    that: { reside_in_namespace: App.Models }
    should: { have_member: Id }
"""
        )
        assert rule.severity == "error"
        assert rule.quantifier == "all"
        assert rule.description == ""

    def test_should_not(self, demo_catalog: TypeCatalog) -> None:
        (rule,) = _parse(
            """
version: 1
rules:
  - name: repos-isolated
    that: { reside_in_namespace: Architecture.Repositories }
    should_not: { have_dependency_on: Architecture.Services }
"""
        )
        assert rule.evaluate(demo_catalog).passed

    def test_selector_combinators(self, demo_catalog: TypeCatalog) -> None:
        (rule,) = _parse(
            """
version: 1
rules:
  - name: non-generic-repos
    that:
      all:
        - reside_in_namespace: Architecture.Repositories
        - are_classes: true
        - not: { are_generic_type_definitions: true }
    should: { inherit: "Architecture.Repositories.GenericRepository<>" }
"""
        )
        result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.candidate_count == 1

    def test_condition_combinators(self, demo_catalog: TypeCatalog) -> None:
        (rule,) = _parse(
            """
version: 1
rules:
  - name: naming
    that:
      any:
        - reside_in_namespace: Architecture.Controllers
        - reside_in_namespace: Architecture.Services
    should:
      any:
        - have_name_ending_with: Controller
        - have_name_ending_with: Service
"""
        )
        result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.candidate_count == 4

    def test_existence_rule(self, demo_catalog: TypeCatalog) -> None:
        (rule,) = _parse(
            """
version: 1
rules:
  - name: generic-interfaces
    quantifier: any
    severity: warn
    that: { reside_in_namespace: Architecture.Repositories }
    should:
      all:
        - be_generic_type_definition: true
        - have_name_starting_with: I
"""
        )
        assert rule.quantifier == "any"
        assert rule.severity == "warn"
        assert rule.evaluate(demo_catalog).passed

    def test_structured_condition_values(self, demo_catalog: TypeCatalog) -> None:
        rules = _parse(
            """
version: 1
rules:
  - name: annotations
    that: { reside_in_namespace: Architecture.Controllers }
    should:
      have_annotation:
        - Microsoft.AspNetCore.Mvc.ApiControllerAttribute
        - Microsoft.AspNetCore.Mvc.RouteAttribute
  - name: model-id
    that: { reside_in_namespace: Architecture.Models }
    should: { have_member: { name: Id, kind: property } }
  - name: acyclic
    that: { all_types: true }
    should: { be_free_of_cycles: { max_depth: 5 } }
  - name: same-name
    that: { all: [{ reside_in_namespace: Architecture.Services }, { are_classes: true }] }
    should: { implement_same_name_interface: I }
"""
        )
        assert all(r.passed for r in evaluate_rules(demo_catalog, rules))

    def test_empty_rules_list(self) -> None:
        assert _parse("version: 1\nrules: []\n") == []


class TestParseRulesErrors:
    def _rule_yaml(self, body: str) -> str:
        return f"version: 1\nrules:\n  - name: r\n{body}"

    def test_not_a_mapping(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="must be a YAML mapping"):
            parse_rules(["r"])

    def test_missing_version(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="missing required 'version'"):
            parse_rules({"rules": []})

    def test_unsupported_version(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="unsupported version 3"):
            parse_rules({"version": 3, "rules": []})

    @pytest.mark.parametrize("version", [[1], {"major": 1}, True, "1"])
    def test_version_must_be_an_integer(self, version: object) -> None:
        with pytest.raises(InvalidRuleDefinition, match="unsupported version"):
            parse_rules({"version": version, "rules": []})

    def test_missing_name(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="missing required 'name'"):
            _parse("version: 1\nrules:\n  - that: { all_types: true }\n")

    def test_duplicate_name(self) -> None:
        rule = "  - name: r\n    that: { all_types: true }\n    should: { be_public: true }\n"
        with pytest.raises(InvalidRuleDefinition, match="Duplicate rule name 'r'"):
            _parse(f"version: 1\nrules:\n{rule}{rule}")

    def test_unknown_field(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match=r"unknown field\(s\) \['because'\]"):
            _parse(
                self._rule_yaml(
                    "    because: x\n"
                    "    that: { all_types: true }\n"
                    "    should: { be_public: true }\n"
                )
            )

    def test_missing_that(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="missing required 'that'"):
            _parse(self._rule_yaml("    should: { be_public: true }\n"))

    def test_both_should_and_should_not(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="exactly one of 'should' or 'should_not'"):
            _parse(
                self._rule_yaml(
                    "    that: { all_types: true }\n"
                    "    should: { be_public: true }\n"
                    "    should_not: { be_public: true }\n"
                )
            )

    def test_neither_should_nor_should_not(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="exactly one of"):
            _parse(self._rule_yaml("    that: { all_types: true }\n"))

    def test_invalid_severity(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid severity 'info'"):
            _parse(
                self._rule_yaml(
                    "    severity: info\n    that: { all_types: true }\n"
                    "    should: { be_public: true }\n"
                )
            )

    def test_invalid_quantifier(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid quantifier 'some'"):
            _parse(
                self._rule_yaml(
                    "    quantifier: some\n    that: { all_types: true }\n"
                    "    should: { be_public: true }\n"
                )
            )

    def test_unknown_selector(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="unknown selector 'in_layer'"):
            _parse(
                self._rule_yaml("    that: { in_layer: Web }\n    should: { be_public: true }\n")
            )

    def test_unknown_condition(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="unknown condition 'be_sealed'"):
            _parse(
                self._rule_yaml("    that: { all_types: true }\n    should: { be_sealed: true }\n")
            )

    def test_expression_with_two_keys(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="exactly one key"):
            _parse(
                self._rule_yaml(
                    "    that: { are_classes: true, are_public: true }\n"
                    "    should: { be_public: true }\n"
                )
            )

    def test_flag_must_be_true(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="value must be 'true'"):
            _parse(
                self._rule_yaml(
                    "    that: { are_classes: false }\n    should: { be_public: true }\n"
                )
            )

    def test_cycle_depth_rejects_bool(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="integer 'max_depth'"):
            _parse(
                self._rule_yaml(
                    "    that: { all_types: true }\n"
                    "    should: { be_free_of_cycles: { max_depth: true } }\n"
                )
            )

    def test_text_value_required(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="value must be a string"):
            _parse(
                self._rule_yaml(
                    "    that: { reside_in_namespace: [A, B] }\n    should: { be_public: true }\n"
                )
            )

    def test_empty_combinator(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="non-empty list"):
            _parse(self._rule_yaml("    that: { all: [] }\n    should: { be_public: true }\n"))

    def test_invalid_member_kind(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid member kind"):
            _parse(
                self._rule_yaml(
                    "    that: { all_types: true }\n"
                    "    should: { have_member: { name: Id, kind: event } }\n"
                )
            )

    def test_invalid_reference(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="base type identity"):
            _parse(
                self._rule_yaml(
                    "    that: { all_types: true }\n    should: { inherit: 'App.Base<' }\n"
                )
            )
