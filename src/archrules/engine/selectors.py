"""Selectors: composable, order-independent filters that narrow a catalog to candidates."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archrules.catalog.model import KIND_CLASS, KIND_INTERFACE, TypeRef, parse_type_ref
from archrules.engine import predicates as p
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from archrules.catalog.catalog import TypeCatalog
    from archrules.catalog.model import TypeDescriptor


class Selector(ABC):
    """A pure function from a catalog to a set of type identities.

    Intersection and union operands are stored as frozensets, so
    ``and_(a, b) == and_(b, a)`` holds structurally as well as by result.
    """

    @abstractmethod
    def resolve(self, ctx: p.EvaluationContext) -> frozenset[str]:
        """Return the identities of the selected types."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable phrase used in default rule descriptions."""

    def bind(self, catalog: TypeCatalog) -> None:  # noqa: B027
        """Validate catalog-dependent arguments before evaluation."""

    def select(self, catalog: TypeCatalog) -> frozenset[str]:
        self.bind(catalog)
        return self.resolve(p.context_for(catalog))

    def __and__(self, other: Selector) -> Selector:
        return and_(self, other)

    def __or__(self, other: Selector) -> Selector:
        return or_(self, other)

    def __invert__(self) -> Selector:
        return not_(self)


@dataclass(frozen=True)
class Where(Selector):
    """Types of the catalog matching a single predicate."""

    predicate: p.Predicate

    def resolve(self, ctx: p.EvaluationContext) -> frozenset[str]:
        return frozenset(
            t.full_name for t in ctx.catalog if self.predicate.matches(t, ctx)
        )

    def describe(self) -> str:
        return self.predicate.describe()

    def bind(self, catalog: TypeCatalog) -> None:
        self.predicate.bind(catalog)


@dataclass(frozen=True)
class Intersection(Selector):
    operands: frozenset[Selector]

    def resolve(self, ctx: p.EvaluationContext) -> frozenset[str]:
        result: frozenset[str] | None = None
        for operand in self.operands:
            selected = operand.resolve(ctx)
            result = selected if result is None else result & selected
            if not result:
                break
        return result if result is not None else frozenset()

    def describe(self) -> str:
        return " and ".join(sorted(o.describe() for o in self.operands))

    def bind(self, catalog: TypeCatalog) -> None:
        for operand in self.operands:
            operand.bind(catalog)


@dataclass(frozen=True)
class Union(Selector):
    operands: frozenset[Selector]

    def resolve(self, ctx: p.EvaluationContext) -> frozenset[str]:
        result: frozenset[str] = frozenset()
        for operand in self.operands:
            result |= operand.resolve(ctx)
        return result

    def describe(self) -> str:
        return "(" + " or ".join(sorted(o.describe() for o in self.operands)) + ")"

    def bind(self, catalog: TypeCatalog) -> None:
        for operand in self.operands:
            operand.bind(catalog)


@dataclass(frozen=True)
class Complement(Selector):
    operand: Selector

    def resolve(self, ctx: p.EvaluationContext) -> frozenset[str]:
        everything = frozenset(t.full_name for t in ctx.catalog)
        return everything - self.operand.resolve(ctx)

    def describe(self) -> str:
        return f"do not {self.operand.describe()}"

    def bind(self, catalog: TypeCatalog) -> None:
        self.operand.bind(catalog)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def _flatten(
    selectors: tuple[Selector, ...], kind: type[Intersection | Union]
) -> frozenset[Selector]:
    flat: set[Selector] = set()
    for s in selectors:
        if not isinstance(s, Selector):
            msg = f"expected a Selector, got {type(s).__name__}"
            raise InvalidRuleDefinition(msg)
        if isinstance(s, kind):
            flat.update(s.operands)
        else:
            flat.add(s)
    return frozenset(flat)


def and_(*selectors: Selector) -> Selector:
    """Intersect selectors; nested intersections are flattened."""
    if not selectors:
        msg = "and_() requires at least one selector"
        raise InvalidRuleDefinition(msg)
    operands = _flatten(selectors, Intersection)
    if len(operands) == 1:
        return next(iter(operands))
    return Intersection(operands)


def or_(*selectors: Selector) -> Selector:
    """Unite selectors; nested unions are flattened."""
    if not selectors:
        msg = "or_() requires at least one selector"
        raise InvalidRuleDefinition(msg)
    operands = _flatten(selectors, Union)
    if len(operands) == 1:
        return next(iter(operands))
    return Union(operands)


def not_(selector: Selector) -> Selector:
    """Select every catalog type the given selector does not."""
    if not isinstance(selector, Selector):
        msg = f"expected a Selector, got {type(selector).__name__}"
        raise InvalidRuleDefinition(msg)
    if isinstance(selector, Complement):
        return selector.operand
    return Complement(selector)


def select(catalog: TypeCatalog, selector: Selector) -> tuple[TypeDescriptor, ...]:
    """Return the selected descriptors in catalog declaration order."""
    return catalog.in_declaration_order(selector.select(catalog))


# ---------------------------------------------------------------------------
# Argument validation (shared with conditions)
# ---------------------------------------------------------------------------


def require_text(value: object, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = f"{what} must be a non-empty string"
        raise InvalidRuleDefinition(msg)
    return value


def require_ref(value: TypeRef | str, what: str) -> TypeRef:
    if isinstance(value, TypeRef):
        return value
    text = require_text(value, what)
    try:
        return parse_type_ref(text)
    except ValueError as exc:
        msg = f"{what}: {exc}"
        raise InvalidRuleDefinition(msg) from exc


def require_pattern(value: object, what: str) -> str:
    pattern = require_text(value, what)
    try:
        re.compile(pattern)
    except re.error as exc:
        msg = f"{what}: invalid regular expression {pattern!r}: {exc}"
        raise InvalidRuleDefinition(msg) from exc
    return pattern


# ---------------------------------------------------------------------------
# Primitive selectors
# ---------------------------------------------------------------------------


def all_types() -> Selector:
    return Where(p.AnyType())


def reside_in_namespace(namespace: str) -> Selector:
    """Types whose namespace is *namespace* or one of its children."""
    return Where(p.ResideInNamespace(require_text(namespace, "namespace")))


def are_classes() -> Selector:
    return Where(p.IsKind(KIND_CLASS))


def are_interfaces() -> Selector:
    return Where(p.IsKind(KIND_INTERFACE))


def are_generic_type_definitions() -> Selector:
    return Where(p.IsGenericDefinition())


def are_public() -> Selector:
    return Where(p.IsPublic())


def implement_interface(identity: TypeRef | str) -> Selector:
    """Types implementing *identity*; ``Ns.IRepo<>`` matches any instantiation."""
    return Where(p.ImplementsInterface(require_ref(identity, "interface identity")))


def have_base_type(identity: TypeRef | str) -> Selector:
    """Types whose direct base is *identity* (or an instantiation of an open generic)."""
    return Where(p.Inherits(require_ref(identity, "base type identity")))


def have_name_starting_with(prefix: str) -> Selector:
    return Where(p.NameStartsWith(require_text(prefix, "name prefix")))


def have_name_ending_with(suffix: str) -> Selector:
    return Where(p.NameEndsWith(require_text(suffix, "name suffix")))


def have_name_matching(pattern: str) -> Selector:
    return Where(p.NameMatches(require_pattern(pattern, "name pattern")))


def have_annotation(identity: str) -> Selector:
    return Where(p.HasAnnotations((require_text(identity, "annotation identity"),)))


def have_dependency_on(namespace_or_type: str) -> Selector:
    return Where(p.HasDependencyOn(require_text(namespace_or_type, "dependency target")))
