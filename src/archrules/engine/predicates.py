"""Type-level predicates shared by selectors (``that``) and conditions (``should``).

A predicate answers one question about one :class:`TypeDescriptor`.  Selectors
apply predicates to a whole catalog; rules apply them to each candidate.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archrules.catalog.model import TypeRef, namespace_contains
from archrules.engine.dependencies import DEFAULT_CYCLE_DEPTH, graph_for
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from archrules.catalog.catalog import TypeCatalog
    from archrules.catalog.model import TypeDescriptor
    from archrules.engine.dependencies import DependencyGraphBuilder


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a predicate may consult besides the descriptor itself."""

    catalog: TypeCatalog
    graph: DependencyGraphBuilder


def context_for(catalog: TypeCatalog) -> EvaluationContext:
    return EvaluationContext(catalog=catalog, graph=graph_for(catalog))


def check_generic_reference(ref: TypeRef, catalog: TypeCatalog) -> None:
    """Reject an open generic reference that names a non-generic catalog type.

    ``Ns.Repo<>`` against a catalog where ``Ns.Repo`` has no generic parameters
    (or a different number of them) is a rule-definition error.
    """
    if not ref.is_open_generic:
        return
    target = catalog.resolve(ref)
    if target is not None and target.arity != ref.open_arity:
        if target.arity == 0:
            msg = f"'{ref}' names a generic definition but '{target.full_name}' is not generic"
        else:
            msg = (
                f"'{ref}' expects {ref.open_arity} generic parameter(s) but "
                f"'{target.full_name}' declares {target.arity}"
            )
        raise InvalidRuleDefinition(msg)


# ---------------------------------------------------------------------------
# Base class and combinators
# ---------------------------------------------------------------------------


class Predicate(ABC):
    """A pure test over one type descriptor."""

    @abstractmethod
    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        """Return True if *descriptor* satisfies this predicate."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable phrase, e.g. ``have name ending with 'Controller'``."""

    def bind(self, catalog: TypeCatalog) -> None:  # noqa: B027
        """Validate catalog-dependent arguments before evaluation."""

    def __and__(self, other: Predicate) -> Predicate:
        return AllOf((self, other))

    def __or__(self, other: Predicate) -> Predicate:
        return AnyOf((self, other))

    def __invert__(self) -> Predicate:
        return Not(self)


@dataclass(frozen=True)
class AllOf(Predicate):
    operands: tuple[Predicate, ...]

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return all(p.matches(descriptor, ctx) for p in self.operands)

    def describe(self) -> str:
        return " and ".join(p.describe() for p in self.operands)

    def bind(self, catalog: TypeCatalog) -> None:
        for p in self.operands:
            p.bind(catalog)


@dataclass(frozen=True)
class AnyOf(Predicate):
    operands: tuple[Predicate, ...]

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return any(p.matches(descriptor, ctx) for p in self.operands)

    def describe(self) -> str:
        return "(" + " or ".join(p.describe() for p in self.operands) + ")"

    def bind(self, catalog: TypeCatalog) -> None:
        for p in self.operands:
            p.bind(catalog)


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return not self.operand.matches(descriptor, ctx)

    def describe(self) -> str:
        return f"not {self.operand.describe()}"

    def bind(self, catalog: TypeCatalog) -> None:
        self.operand.bind(catalog)


# ---------------------------------------------------------------------------
# Structural predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnyType(Predicate):
    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return True

    def describe(self) -> str:
        return "exist"


@dataclass(frozen=True)
class ResideInNamespace(Predicate):
    namespace: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return namespace_contains(self.namespace, descriptor.namespace)

    def describe(self) -> str:
        return f"reside in namespace '{self.namespace}'"


@dataclass(frozen=True)
class IsKind(Predicate):
    kind: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.kind == self.kind

    def describe(self) -> str:
        return f"be {self.kind}es" if self.kind == "class" else f"be {self.kind}s"


@dataclass(frozen=True)
class IsGenericDefinition(Predicate):
    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.is_generic_definition

    def describe(self) -> str:
        return "be generic type definitions"


@dataclass(frozen=True)
class IsPublic(Predicate):
    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.is_public

    def describe(self) -> str:
        return "be public"


@dataclass(frozen=True)
class NameStartsWith(Predicate):
    prefix: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.name.startswith(self.prefix)

    def describe(self) -> str:
        return f"have name starting with '{self.prefix}'"


@dataclass(frozen=True)
class NameEndsWith(Predicate):
    suffix: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.name.endswith(self.suffix)

    def describe(self) -> str:
        return f"have name ending with '{self.suffix}'"


@dataclass(frozen=True)
class NameMatches(Predicate):
    pattern: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return re.search(self.pattern, descriptor.name) is not None

    def describe(self) -> str:
        return f"have name matching '{self.pattern}'"


@dataclass(frozen=True)
class HasAnnotations(Predicate):
    identities: tuple[str, ...]

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return all(a in descriptor.annotations for a in self.identities)

    def describe(self) -> str:
        return "have annotation " + ", ".join(f"'{a}'" for a in self.identities)


@dataclass(frozen=True)
class Inherits(Predicate):
    """Direct base type equals *base*, or instantiates it when *base* is an open generic."""

    base: TypeRef

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.base_type is not None and self.base.matches(descriptor.base_type)

    def describe(self) -> str:
        return f"inherit '{self.base}'"

    def bind(self, catalog: TypeCatalog) -> None:
        check_generic_reference(self.base, catalog)


@dataclass(frozen=True)
class ImplementsInterface(Predicate):
    interface: TypeRef

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return any(self.interface.matches(i) for i in descriptor.interfaces)

    def describe(self) -> str:
        return f"implement interface '{self.interface}'"

    def bind(self, catalog: TypeCatalog) -> None:
        check_generic_reference(self.interface, catalog)


@dataclass(frozen=True)
class ImplementsSameNameInterface(Predicate):
    """Some implemented interface is named ``prefix + descriptor.name`` exactly."""

    prefix: str = "I"

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        expected = self.prefix + descriptor.name
        return any(i.simple_name == expected for i in descriptor.interfaces)

    def describe(self) -> str:
        return f"implement an interface named '{self.prefix}<TypeName>'"


@dataclass(frozen=True)
class HasMember(Predicate):
    name: str
    kind: str | None = None

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.has_member(self.name, self.kind)

    def describe(self) -> str:
        if self.kind is None:
            return f"have member '{self.name}'"
        return f"have {self.kind} '{self.name}'"


# ---------------------------------------------------------------------------
# Dependency predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HasDependencyOn(Predicate):
    """At least one dependency edge resolves into the target namespace or type."""

    target: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return ctx.graph.depends_on(descriptor.full_name, self.target)

    def describe(self) -> str:
        return f"have dependency on '{self.target}'"


@dataclass(frozen=True)
class HasNoDependencyOn(Predicate):
    """No dependency edge resolves into the target namespace or type."""

    target: str

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return not ctx.graph.depends_on(descriptor.full_name, self.target)

    def describe(self) -> str:
        return f"not have dependency on '{self.target}'"


@dataclass(frozen=True)
class FreeOfCycles(Predicate):
    max_depth: int = DEFAULT_CYCLE_DEPTH

    def matches(self, descriptor: TypeDescriptor, ctx: EvaluationContext) -> bool:
        return descriptor.full_name not in ctx.graph.types_on_cycles(self.max_depth)

    def describe(self) -> str:
        return "be free of dependency cycles"
