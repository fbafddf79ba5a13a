"""Rules file loader: parse rules.yml into validated Rule objects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

import yaml

from archrules.engine import conditions as c
from archrules.engine import selectors as s
from archrules.engine.rules import VALID_QUANTIFIERS, VALID_RULE_SEVERITIES, Rule
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from pathlib import Path

    from archrules.engine.predicates import Predicate

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

_RULE_KEYS: frozenset[str] = frozenset(
    {"name", "description", "severity", "quantifier", "that", "should", "should_not"}
)


# ---------------------------------------------------------------------------
# Primitive tables
# ---------------------------------------------------------------------------


def _flag(factory: Callable[[], Any]) -> Callable[[object, str], Any]:
    """Wrap a no-argument factory; the YAML value must be ``true``."""

    def build(value: object, context: str) -> Any:
        if value is not True:
            msg = f"{context}: value must be 'true'"
            raise InvalidRuleDefinition(msg)
        return factory()

    return build


def _text(factory: Callable[[str], Any]) -> Callable[[object, str], Any]:
    def build(value: object, context: str) -> Any:
        if not isinstance(value, str):
            msg = f"{context}: value must be a string"
            raise InvalidRuleDefinition(msg)
        return factory(value)

    return build


def _annotations(value: object, context: str) -> Predicate:
    if isinstance(value, str):
        return c.have_annotation(value)
    if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
        return c.have_annotation(*value)
    msg = f"{context}: value must be a string or a non-empty list of strings"
    raise InvalidRuleDefinition(msg)


def _member(value: object, context: str) -> Predicate:
    if isinstance(value, str):
        return c.have_member(value)
    if isinstance(value, dict) and isinstance(value.get("name"), str):
        kind = value.get("kind")
        return c.have_member(value["name"], str(kind) if kind is not None else None)
    msg = f"{context}: value must be a member name or a mapping with 'name' and optional 'kind'"
    raise InvalidRuleDefinition(msg)


def _cycles(value: object, context: str) -> Predicate:
    if value is True:
        return c.be_free_of_cycles()
    if isinstance(value, dict):
        depth = value.get("max_depth")
        if isinstance(depth, int) and not isinstance(depth, bool):
            return c.be_free_of_cycles(depth)
    msg = f"{context}: value must be 'true' or a mapping with an integer 'max_depth'"
    raise InvalidRuleDefinition(msg)


def _same_name_interface(value: object, context: str) -> Predicate:
    if value is True:
        return c.implement_same_name_interface()
    if isinstance(value, str):
        return c.implement_same_name_interface(value)
    msg = f"{context}: value must be 'true' or an interface name prefix"
    raise InvalidRuleDefinition(msg)


SELECTOR_PRIMITIVES: dict[str, Callable[[object, str], s.Selector]] = {
    "all_types": _flag(s.all_types),
    "reside_in_namespace": _text(s.reside_in_namespace),
    "are_classes": _flag(s.are_classes),
    "are_interfaces": _flag(s.are_interfaces),
    "are_generic_type_definitions": _flag(s.are_generic_type_definitions),
    "are_public": _flag(s.are_public),
    "implement_interface": _text(s.implement_interface),
    "have_base_type": _text(s.have_base_type),
    "have_name_starting_with": _text(s.have_name_starting_with),
    "have_name_ending_with": _text(s.have_name_ending_with),
    "have_name_matching": _text(s.have_name_matching),
    "have_annotation": _text(s.have_annotation),
    "have_dependency_on": _text(s.have_dependency_on),
}

CONDITION_PRIMITIVES: dict[str, Callable[[object, str], Predicate]] = {
    "have_dependency_on": _text(c.have_dependency_on),
    "not_have_dependency_on": _text(c.not_have_dependency_on),
    "have_name_ending_with": _text(c.have_name_ending_with),
    "have_name_starting_with": _text(c.have_name_starting_with),
    "have_name_matching": _text(c.have_name_matching),
    "have_annotation": _annotations,
    "be_public": _flag(c.be_public),
    "be_generic_type_definition": _flag(c.be_generic_type_definition),
    "inherit": _text(c.inherit),
    "implement_interface": _text(c.implement_interface),
    "implement_same_name_interface": _same_name_interface,
    "have_member": _member,
    "be_free_of_cycles": _cycles,
}


# ---------------------------------------------------------------------------
# Expression parsing
# ---------------------------------------------------------------------------


def _single_key(data: object, context: str) -> tuple[str, object]:
    if not isinstance(data, dict) or len(data) != 1:
        msg = f"{context}: expression must be a mapping with exactly one key"
        raise InvalidRuleDefinition(msg)
    key, value = next(iter(data.items()))
    return str(key), value


def _operands(value: object, context: str) -> list[object]:
    if not isinstance(value, list) or not value:
        msg = f"{context}: value must be a non-empty list"
        raise InvalidRuleDefinition(msg)
    return value


def _parse_selector(data: object, context: str) -> s.Selector:
    """Parse a selector expression (primitive, ``all``, ``any`` or ``not``)."""
    key, value = _single_key(data, context)
    sub = f"{context}.{key}"
    if key == "all":
        return s.and_(*(_parse_selector(v, sub) for v in _operands(value, sub)))
    if key == "any":
        return s.or_(*(_parse_selector(v, sub) for v in _operands(value, sub)))
    if key == "not":
        return s.not_(_parse_selector(value, sub))
    factory = SELECTOR_PRIMITIVES.get(key)
    if factory is None:
        msg = f"{context}: unknown selector '{key}', must be one of {sorted(SELECTOR_PRIMITIVES)}"
        raise InvalidRuleDefinition(msg)
    return factory(value, sub)


def _parse_condition(data: object, context: str) -> Predicate:
    """Parse a condition expression (primitive, ``all``, ``any`` or ``not``)."""
    key, value = _single_key(data, context)
    sub = f"{context}.{key}"
    if key == "all":
        return c.all_of(*(_parse_condition(v, sub) for v in _operands(value, sub)))
    if key == "any":
        return c.any_of(*(_parse_condition(v, sub) for v in _operands(value, sub)))
    if key == "not":
        return c.not_(_parse_condition(value, sub))
    factory = CONDITION_PRIMITIVES.get(key)
    if factory is None:
        msg = (
            f"{context}: unknown condition '{key}', "
            f"must be one of {sorted(CONDITION_PRIMITIVES)}"
        )
        raise InvalidRuleDefinition(msg)
    return factory(value, sub)


def _parse_rule(rule_data: object, idx: int) -> Rule:
    if not isinstance(rule_data, dict):
        msg = f"rules.yml: rule at index {idx} must be a mapping"
        raise InvalidRuleDefinition(msg)

    name = rule_data.get("name")
    if name is None or not isinstance(name, str) or not name.strip():
        msg = f"rules.yml: rule at index {idx} missing required 'name' field"
        raise InvalidRuleDefinition(msg)

    unknown = sorted(set(rule_data) - _RULE_KEYS)
    if unknown:
        msg = f"Rule '{name}': unknown field(s) {unknown}"
        raise InvalidRuleDefinition(msg)

    severity = str(rule_data.get("severity", "error"))
    if severity not in VALID_RULE_SEVERITIES:
        msg = (
            f"Rule '{name}': invalid severity '{severity}', "
            f"must be one of {sorted(VALID_RULE_SEVERITIES)}"
        )
        raise InvalidRuleDefinition(msg)

    quantifier = str(rule_data.get("quantifier", "all"))
    if quantifier not in VALID_QUANTIFIERS:
        msg = (
            f"Rule '{name}': invalid quantifier '{quantifier}', "
            f"must be one of {sorted(VALID_QUANTIFIERS)}"
        )
        raise InvalidRuleDefinition(msg)

    if "that" not in rule_data:
        msg = f"Rule '{name}': missing required 'that' selector"
        raise InvalidRuleDefinition(msg)
    selector = _parse_selector(rule_data["that"], f"Rule '{name}' that")

    has_should = "should" in rule_data
    has_should_not = "should_not" in rule_data
    if has_should == has_should_not:
        msg = f"Rule '{name}': must have exactly one of 'should' or 'should_not'"
        raise InvalidRuleDefinition(msg)
    if has_should:
        condition = _parse_condition(rule_data["should"], f"Rule '{name}' should")
    else:
        condition = c.not_(_parse_condition(rule_data["should_not"], f"Rule '{name}' should_not"))

    return Rule(
        name=name,
        selector=selector,
        condition=condition,
        description=str(rule_data.get("description", "")),
        severity=severity,
        quantifier=quantifier,
    )


def parse_rules(data: object) -> list[Rule]:
    """Build rules from an already-decoded rules.yml mapping.

    Raises :class:`InvalidRuleDefinition` on any schema error.
    """
    if not isinstance(data, dict):
        msg = "rules.yml must be a YAML mapping"
        raise InvalidRuleDefinition(msg)

    version = data.get("version")
    if version is None:
        msg = "rules.yml: missing required 'version' field"
        raise InvalidRuleDefinition(msg)
    if (
        not isinstance(version, int)
        or isinstance(version, bool)
        or version not in SUPPORTED_SCHEMA_VERSIONS
    ):
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"rules.yml: unsupported version {version}, expected one of {expected}"
        raise InvalidRuleDefinition(msg)

    rules_data = data.get("rules", [])
    if not isinstance(rules_data, list):
        msg = "rules.yml: 'rules' must be a list"
        raise InvalidRuleDefinition(msg)

    seen_names: set[str] = set()
    rules: list[Rule] = []
    for idx, rule_data in enumerate(rules_data):
        rule = _parse_rule(rule_data, idx)
        if rule.name in seen_names:
            msg = f"rules.yml: Duplicate rule name '{rule.name}'"
            raise InvalidRuleDefinition(msg)
        seen_names.add(rule.name)
        rules.append(rule)
    return rules


def load_rules(rules_path: Path) -> list[Rule]:
    """Parse rules.yml and return validated Rule objects."""
    logger.debug("Loading rules from %s", rules_path)
    try:
        with rules_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"{rules_path}: invalid YAML: {exc}"
        raise InvalidRuleDefinition(msg) from exc
    return parse_rules(data)
