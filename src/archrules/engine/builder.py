"""Fluent rule builder.

Every step returns a new immutable builder, so partially built chains can be
shared and extended safely::

    rule = (
        types()
        .that(reside_in_namespace("Architecture.Controllers"))
        .should(have_dependency_on("Architecture.Services"))
        .and_should(not_have_dependency_on("Architecture.Repositories"))
        .named("controllers-layering")
        .build()
    )

Steps combine strictly left to right: each ``and_*`` or ``or_*`` step applies
to everything bound before it.  ``that(a).or_that(b).and_that(c)`` selects
``(a | b) & c``, and ``should(x).or_should(y).and_should(z)`` requires
``(x | y) & z``.  Build the operands with ``and_``/``or_`` and pass the result
to a single step when another grouping is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from archrules.engine import conditions as c
from archrules.engine import selectors as s
from archrules.engine.predicates import Predicate
from archrules.engine.rules import QUANTIFIER_ALL, QUANTIFIER_ANY, Rule
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from archrules.catalog.catalog import TypeCatalog
    from archrules.catalog.model import TypeDescriptor
    from archrules.engine.rules import RuleResult


def _as_selector(value: s.Selector | Predicate) -> s.Selector:
    if isinstance(value, s.Selector):
        return value
    if isinstance(value, Predicate):
        return s.Where(value)
    msg = f"expected a selector, got {type(value).__name__}"
    raise InvalidRuleDefinition(msg)


@dataclass(frozen=True)
class RuleBuilder:
    """Immutable state of a ``that(...).should(...)`` chain."""

    selector: s.Selector | None = None
    condition: Predicate | None = None
    name: str = ""
    description: str = ""
    severity: str = "error"
    quantifier: str = QUANTIFIER_ALL

    # -- selection ----------------------------------------------------------

    def that(self, selector: s.Selector | Predicate) -> RuleBuilder:
        """Bind the candidate selector (intersected with any selector already bound)."""
        if self.condition is not None:
            msg = "that() must come before should()"
            raise InvalidRuleDefinition(msg)
        sel = _as_selector(selector)
        return replace(self, selector=sel if self.selector is None else s.and_(self.selector, sel))

    def and_that(self, selector: s.Selector | Predicate) -> RuleBuilder:
        self._require_selector("and_that()")
        return self.that(selector)

    def or_that(self, selector: s.Selector | Predicate) -> RuleBuilder:
        """Unite the selector bound so far with *selector*."""
        self._require_selector("or_that()")
        if self.condition is not None:
            msg = "or_that() must come before should()"
            raise InvalidRuleDefinition(msg)
        assert self.selector is not None
        return replace(self, selector=s.or_(self.selector, _as_selector(selector)))

    # -- conditions ---------------------------------------------------------

    def should(self, condition: Predicate) -> RuleBuilder:
        """Bind the condition every selected type must satisfy."""
        self._require_selector("should()")
        if self.condition is not None:
            msg = "should() was already called; use and_should() or or_should()"
            raise InvalidRuleDefinition(msg)
        return replace(self, condition=c.as_condition(condition))

    def should_not(self, condition: Predicate) -> RuleBuilder:
        return self.should(c.not_(condition))

    def and_should(self, condition: Predicate) -> RuleBuilder:
        current = self._require_condition("and_should()")
        return replace(self, condition=c.all_of(current, condition))

    def and_should_not(self, condition: Predicate) -> RuleBuilder:
        return self.and_should(c.not_(condition))

    def or_should(self, condition: Predicate) -> RuleBuilder:
        """Accept a candidate satisfying either the conditions so far or *condition*."""
        current = self._require_condition("or_should()")
        return replace(self, condition=c.any_of(current, condition))

    def or_should_not(self, condition: Predicate) -> RuleBuilder:
        return self.or_should(c.not_(condition))

    def at_least_one(self) -> RuleBuilder:
        """Turn the rule into an existence claim over the candidates."""
        return replace(self, quantifier=QUANTIFIER_ANY)

    # -- metadata -----------------------------------------------------------

    def named(self, name: str) -> RuleBuilder:
        return replace(self, name=s.require_text(name, "rule name"))

    def because(self, description: str) -> RuleBuilder:
        return replace(self, description=description)

    def with_severity(self, severity: str) -> RuleBuilder:
        return replace(self, severity=severity)

    # -- terminal steps -------------------------------------------------------

    def build(self) -> Rule:
        """Return the finished :class:`Rule`.

        Raises :class:`InvalidRuleDefinition` when the selector or the
        condition is missing.
        """
        self._require_selector("build()")
        condition = self._require_condition("build()")
        assert self.selector is not None
        rule = Rule(
            name=self.name,
            selector=self.selector,
            condition=condition,
            description=self.description,
            severity=self.severity,
            quantifier=self.quantifier,
        )
        return rule if self.name else replace(rule, name=rule.describe())

    def evaluate(self, catalog: TypeCatalog) -> RuleResult:
        return self.build().evaluate(catalog)

    def get_types(self, catalog: TypeCatalog) -> tuple[TypeDescriptor, ...]:
        """Return the types matched by the bound selector, in declaration order."""
        self._require_selector("get_types()")
        assert self.selector is not None
        return s.select(catalog, self.selector)

    # -- helpers ------------------------------------------------------------

    def _require_selector(self, step: str) -> None:
        if self.selector is None:
            msg = f"{step} requires a selector; call that() first"
            raise InvalidRuleDefinition(msg)

    def _require_condition(self, step: str) -> Predicate:
        if self.condition is None:
            msg = f"{step} requires a condition; call should() first"
            raise InvalidRuleDefinition(msg)
        return self.condition


def types() -> RuleBuilder:
    """Start a new rule chain."""
    return RuleBuilder()
