"""Conditions: the assertions a rule checks against every selected candidate.

Each factory validates its arguments and returns a predicate; conditions
compose with ``all_of``/``any_of``/``not_`` or the ``&``, ``|``, ``~`` operators.
"""

from __future__ import annotations

from archrules.catalog.model import VALID_MEMBER_KINDS, TypeRef
from archrules.engine import predicates as p
from archrules.engine.dependencies import DEFAULT_CYCLE_DEPTH
from archrules.engine.selectors import Where, require_pattern, require_ref, require_text
from archrules.errors import InvalidRuleDefinition


def as_condition(value: object) -> p.Predicate:
    """Accept a predicate, or a single-predicate selector, as a condition."""
    if isinstance(value, p.Predicate):
        return value
    if isinstance(value, Where):
        return value.predicate
    msg = f"expected a condition, got {type(value).__name__}"
    raise InvalidRuleDefinition(msg)


def all_of(*conditions: p.Predicate) -> p.Predicate:
    if not conditions:
        msg = "all_of() requires at least one condition"
        raise InvalidRuleDefinition(msg)
    operands = tuple(as_condition(c) for c in conditions)
    return operands[0] if len(operands) == 1 else p.AllOf(operands)


def any_of(*conditions: p.Predicate) -> p.Predicate:
    if not conditions:
        msg = "any_of() requires at least one condition"
        raise InvalidRuleDefinition(msg)
    operands = tuple(as_condition(c) for c in conditions)
    return operands[0] if len(operands) == 1 else p.AnyOf(operands)


def not_(condition: p.Predicate) -> p.Predicate:
    operand = as_condition(condition)
    if isinstance(operand, p.Not):
        return operand.operand
    return p.Not(operand)


# ---------------------------------------------------------------------------
# Dependency conditions
# ---------------------------------------------------------------------------


def have_dependency_on(namespace_or_type: str) -> p.Predicate:
    """Passes for a type with at least one edge into the namespace (or onto the type)."""
    return p.HasDependencyOn(require_text(namespace_or_type, "dependency target"))


def not_have_dependency_on(namespace_or_type: str) -> p.Predicate:
    """Passes for a type with no edge into the namespace (or onto the type)."""
    return p.HasNoDependencyOn(require_text(namespace_or_type, "dependency target"))


def be_free_of_cycles(max_depth: int = DEFAULT_CYCLE_DEPTH) -> p.Predicate:
    if max_depth < 1:
        msg = f"max_depth must be positive, got {max_depth}"
        raise InvalidRuleDefinition(msg)
    return p.FreeOfCycles(max_depth)


# ---------------------------------------------------------------------------
# Naming conditions
# ---------------------------------------------------------------------------


def have_name_ending_with(suffix: str) -> p.Predicate:
    return p.NameEndsWith(require_text(suffix, "name suffix"))


def have_name_starting_with(prefix: str) -> p.Predicate:
    return p.NameStartsWith(require_text(prefix, "name prefix"))


def have_name_matching(pattern: str) -> p.Predicate:
    return p.NameMatches(require_pattern(pattern, "name pattern"))


# ---------------------------------------------------------------------------
# Shape conditions
# ---------------------------------------------------------------------------


def have_annotation(*identities: str) -> p.Predicate:
    """Passes for a type carrying every one of the listed annotations."""
    if not identities:
        msg = "have_annotation() requires at least one annotation identity"
        raise InvalidRuleDefinition(msg)
    return p.HasAnnotations(tuple(require_text(i, "annotation identity") for i in identities))


def be_public() -> p.Predicate:
    return p.IsPublic()


def be_generic_type_definition() -> p.Predicate:
    return p.IsGenericDefinition()


def inherit(identity: TypeRef | str) -> p.Predicate:
    """Direct base type is *identity*.

    ``Ns.GenericRepository<>`` is satisfied by any ``Ns.GenericRepository<X>``
    base.  Inheritance is not followed past the direct base.
    """
    return p.Inherits(require_ref(identity, "base type identity"))


def implement_interface(identity: TypeRef | str) -> p.Predicate:
    return p.ImplementsInterface(require_ref(identity, "interface identity"))


def implement_same_name_interface(prefix: str = "I") -> p.Predicate:
    """Some implemented interface is named ``prefix + <type name>`` (case-sensitive)."""
    return p.ImplementsSameNameInterface(require_text(prefix, "interface prefix"))


def have_member(name: str, kind: str | None = None) -> p.Predicate:
    """Type declares a member called exactly *name*, optionally of the given kind."""
    require_text(name, "member name")
    if kind is not None and kind not in VALID_MEMBER_KINDS:
        msg = f"invalid member kind '{kind}', must be one of {sorted(VALID_MEMBER_KINDS)}"
        raise InvalidRuleDefinition(msg)
    return p.HasMember(name, kind)
