"""Tests for archrules.engine.rules and conditions: rule evaluation semantics.

Tests cover:
- Each condition against the demo application
- Violators reported by simple and full name, in declaration order
- Vacuous pass for empty selections; existence rules (quantifier "any")
- Parallel evaluation yields the same result as sequential evaluation
- Open generic references checked against the catalog at evaluation time
- evaluate_rules() keeps rule order
"""

from __future__ import annotations

import logging

import pytest

from archrules.catalog.catalog import TypeCatalog
from archrules.catalog.model import Member, make_type, parse_type_ref
from archrules.engine import conditions as c
from archrules.engine import selectors as s
from archrules.engine.rules import QUANTIFIER_ANY, Rule, RuleResult, evaluate_rules
from archrules.errors import InvalidRuleDefinition


def _rule(selector: s.Selector, condition: object, **kwargs: str) -> Rule:
    return Rule(
        name=kwargs.pop("name", "test-rule"),
        selector=selector,
        condition=c.as_condition(condition),
        **kwargs,
    )


def _controllers_catalog() -> TypeCatalog:
    """Three controllers: one badly named, one reaching into repositories."""
    return TypeCatalog(
        [
            make_type("App.Repositories.Repo"),
            make_type("App.Services.Service"),
            make_type(
                "App.Controllers.GoodController",
                members=[
                    Member("_s", "field", (parse_type_ref("App.Services.Service"),))
                ],
            ),
            make_type("App.Controllers.ItemCtrl"),
            make_type(
                "App.Controllers.LeakyController",
                members=[
                    Member("_r", "field", (parse_type_ref("App.Repositories.Repo"),))
                ],
            ),
        ]
    )


# ---------------------------------------------------------------------------
# Rule evaluation
# ---------------------------------------------------------------------------


class TestRuleEvaluation:
    def test_layering_passes(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Controllers"),
            c.all_of(
                c.have_dependency_on("Architecture.Services"),
                c.not_have_dependency_on("Architecture.Repositories"),
            ),
        )
        result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.violating_type_names == ()
        assert result.candidate_count == 1
        assert not result.vacuous

    def test_naming_violation_reported(self) -> None:
        rule = _rule(
            s.reside_in_namespace("App.Controllers"), c.have_name_ending_with("Controller")
        )
        result = rule.evaluate(_controllers_catalog())
        assert result.failed
        assert result.violating_type_names == ("ItemCtrl",)
        assert result.violating_full_names == ("App.Controllers.ItemCtrl",)

    def test_forbidden_dependency_reported(self) -> None:
        rule = _rule(
            s.reside_in_namespace("App.Controllers"),
            c.not_have_dependency_on("App.Repositories"),
        )
        result = rule.evaluate(_controllers_catalog())
        assert result.violating_type_names == ("LeakyController",)

    def test_violators_in_declaration_order(self) -> None:
        rule = _rule(
            s.reside_in_namespace("App.Controllers"),
            c.have_dependency_on("App.Services"),
        )
        result = rule.evaluate(_controllers_catalog())
        assert result.violating_type_names == ("ItemCtrl", "LeakyController")

    def test_empty_selection_passes_vacuously(
        self, demo_catalog: TypeCatalog, caplog: pytest.LogCaptureFixture
    ) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Controllers")
            & s.reside_in_namespace("Architecture.Services"),
            c.be_public(),
        )
        with caplog.at_level(logging.WARNING, logger="archrules.engine.rules"):
            result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.vacuous
        assert result.candidate_count == 0
        assert "passes vacuously" in caplog.text

    def test_evaluation_is_idempotent(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.all_types(), c.have_name_matching(r"^I[A-Z]"))
        assert rule.evaluate(demo_catalog) == rule.evaluate(demo_catalog)

    def test_parallel_matches_sequential(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.all_types(), c.have_name_matching(r"^I[A-Z]"))
        sequential = rule.evaluate(demo_catalog)
        parallel = rule.evaluate(demo_catalog, workers=4)
        assert parallel == sequential
        assert sequential.violating_type_names == (
            "ItemController",
            "ItemService",
            "GenericRepository",
            "ItemRepository",
            "Item",
        )

    def test_describe_defaults_from_parts(self) -> None:
        rule = _rule(
            s.reside_in_namespace("App.Controllers"), c.have_name_ending_with("Controller")
        )
        assert rule.describe() == (
            "Types that reside in namespace 'App.Controllers' "
            "should have name ending with 'Controller'"
        )
        assert _rule(s.all_types(), c.be_public(), description="All public").describe() == (
            "All public"
        )

    def test_result_carries_severity(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.all_types(), c.be_public(), severity="warn")
        assert rule.evaluate(demo_catalog).severity == "warn"

    def test_invalid_severity(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid severity 'fatal'"):
            _rule(s.all_types(), c.be_public(), severity="fatal")

    def test_invalid_quantifier(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid quantifier 'most'"):
            _rule(s.all_types(), c.be_public(), quantifier="most")


class TestExistenceRules:
    def test_one_repository_is_generic(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Repositories") & s.are_classes(),
            c.be_generic_type_definition(),
            quantifier=QUANTIFIER_ANY,
        )
        result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.candidate_count == 2
        assert result.violating_type_names == ()

    def test_failed_existence_lists_every_candidate(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Services"),
            c.be_generic_type_definition(),
            quantifier=QUANTIFIER_ANY,
        )
        result = rule.evaluate(demo_catalog)
        assert result.failed
        assert result.violating_type_names == ("IItemService", "INewService", "ItemService")

    def test_existence_over_empty_selection_fails(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Missing"),
            c.be_public(),
            quantifier=QUANTIFIER_ANY,
        )
        result = rule.evaluate(demo_catalog)
        assert result.failed
        assert not result.vacuous
        assert result.violating_type_names == ()


class TestGenericReferences:
    def test_open_generic_on_non_generic_type_rejected(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.all_types(), c.inherit("Architecture.Models.Item<>"))
        with pytest.raises(InvalidRuleDefinition, match="is not generic"):
            rule.evaluate(demo_catalog)

    def test_open_generic_arity_mismatch_rejected(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.implement_interface("Architecture.Repositories.Interfaces.IGenericRepository<,>"),
            c.be_public(),
        )
        with pytest.raises(InvalidRuleDefinition, match="declares 1"):
            rule.evaluate(demo_catalog)

    def test_open_generic_on_external_type_allowed(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.all_types(), c.not_(c.inherit("System.Collections.Generic.List<>")))
        assert rule.evaluate(demo_catalog).passed


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class TestConditions:
    def test_have_annotation_requires_all(self, demo_catalog: TypeCatalog) -> None:
        controllers = s.reside_in_namespace("Architecture.Controllers")
        both = c.have_annotation(
            "Microsoft.AspNetCore.Mvc.ApiControllerAttribute",
            "Microsoft.AspNetCore.Mvc.RouteAttribute",
        )
        assert _rule(controllers, both).evaluate(demo_catalog).passed
        missing = c.have_annotation(
            "Microsoft.AspNetCore.Mvc.ApiControllerAttribute", "App.AuthorizeAttribute"
        )
        assert _rule(controllers, missing).evaluate(demo_catalog).failed

    def test_inherit_external_base(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Controllers"),
            c.inherit("Microsoft.AspNetCore.Mvc.ControllerBase"),
        )
        assert rule.evaluate(demo_catalog).passed

    def test_inherit_open_generic(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Repositories")
            & s.are_classes()
            & ~s.are_generic_type_definitions(),
            c.inherit("Architecture.Repositories.GenericRepository<>"),
        )
        result = rule.evaluate(demo_catalog)
        assert result.passed
        assert result.candidate_count == 1

    def test_inherit_checks_direct_base_only(self) -> None:
        catalog = TypeCatalog(
            [
                make_type("App.Base"),
                make_type("App.Mid", base="App.Base"),
                make_type("App.Leaf", base="App.Mid"),
            ]
        )
        result = _rule(s.all_types(), c.inherit("App.Base")).evaluate(catalog)
        assert result.violating_type_names == ("Base", "Leaf")

    def test_implement_same_name_interface(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(
            s.reside_in_namespace("Architecture.Repositories") & s.are_classes(),
            c.implement_same_name_interface(),
        )
        assert rule.evaluate(demo_catalog).passed

    def test_same_name_interface_is_exact(self) -> None:
        catalog = TypeCatalog(
            [
                make_type("App.IItemServiceV2", kind="interface"),
                make_type("App.ItemService", interfaces=["App.IItemServiceV2"]),
            ]
        )
        rule = _rule(s.are_classes(), c.implement_same_name_interface())
        assert rule.evaluate(catalog).violating_type_names == ("ItemService",)

    def test_have_member(self, demo_catalog: TypeCatalog) -> None:
        models = s.reside_in_namespace("Architecture.Models")
        condition = c.have_member("Id") & c.have_member("Name") & c.have_member("Description")
        assert _rule(models, condition).evaluate(demo_catalog).passed
        assert _rule(models, c.have_member("Id", "method")).evaluate(demo_catalog).failed

    def test_have_member_invalid_kind(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="invalid member kind"):
            c.have_member("Id", "event")

    def test_name_matching(self, demo_catalog: TypeCatalog) -> None:
        rule = _rule(s.are_interfaces(), c.have_name_matching(r"^I[A-Z]"))
        assert rule.evaluate(demo_catalog).passed

    def test_free_of_cycles(self) -> None:
        catalog = TypeCatalog(
            [
                make_type(
                    "App.A", members=[Member("_b", "field", (parse_type_ref("App.B"),))]
                ),
                make_type(
                    "App.B", members=[Member("_a", "field", (parse_type_ref("App.A"),))]
                ),
                make_type("App.C"),
            ]
        )
        result = _rule(s.all_types(), c.be_free_of_cycles()).evaluate(catalog)
        assert result.violating_type_names == ("A", "B")

    def test_free_of_cycles_requires_positive_depth(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="max_depth must be positive"):
            c.be_free_of_cycles(0)

    def test_any_of(self, demo_catalog: TypeCatalog) -> None:
        condition = c.any_of(c.have_name_ending_with("Service"), c.have_name_ending_with("Item"))
        result = _rule(s.are_classes(), condition).evaluate(demo_catalog)
        assert result.violating_type_names == (
            "ItemController",
            "GenericRepository",
            "ItemRepository",
        )

    def test_not_round_trips(self) -> None:
        condition = c.be_public()
        assert c.not_(c.not_(condition)) == condition

    def test_as_condition_unwraps_selectors(self) -> None:
        assert c.as_condition(s.are_public()) == c.be_public()

    def test_as_condition_rejects_compound_selectors(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="expected a condition"):
            c.as_condition(s.are_public() & s.are_classes())

    def test_empty_combinators_rejected(self) -> None:
        with pytest.raises(InvalidRuleDefinition):
            c.all_of()
        with pytest.raises(InvalidRuleDefinition):
            c.any_of()
        with pytest.raises(InvalidRuleDefinition):
            c.have_annotation()


# ---------------------------------------------------------------------------
# evaluate_rules
# ---------------------------------------------------------------------------


class TestEvaluateRules:
    def _rules(self) -> list[Rule]:
        return [
            _rule(s.all_types(), c.have_name_matching(r"^I[A-Z]"), name="prefix"),
            _rule(s.are_classes(), c.be_public(), name="public"),
            _rule(
                s.reside_in_namespace("Architecture.Controllers"),
                c.have_name_ending_with("Controller"),
                name="suffix",
            ),
        ]

    def test_results_follow_rule_order(self, demo_catalog: TypeCatalog) -> None:
        results = evaluate_rules(demo_catalog, self._rules())
        assert [r.rule_name for r in results] == ["prefix", "public", "suffix"]
        assert [r.passed for r in results] == [False, True, True]
        assert all(isinstance(r, RuleResult) for r in results)

    def test_parallel_results_identical(self, demo_catalog: TypeCatalog) -> None:
        rules = self._rules()
        assert evaluate_rules(demo_catalog, rules, workers=3) == evaluate_rules(
            demo_catalog, rules
        )

    def test_invalid_workers(self, demo_catalog: TypeCatalog) -> None:
        with pytest.raises(ValueError, match="workers must be at least 1"):
            evaluate_rules(demo_catalog, self._rules(), workers=0)

    def test_invalid_rule_aborts_before_evaluation(self, demo_catalog: TypeCatalog) -> None:
        rules = [*self._rules(), _rule(s.all_types(), c.inherit("Architecture.Models.Item<>"))]
        with pytest.raises(InvalidRuleDefinition):
            evaluate_rules(demo_catalog, rules)

    def test_no_rules(self, demo_catalog: TypeCatalog) -> None:
        assert evaluate_rules(demo_catalog, []) == []
