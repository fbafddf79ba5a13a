"""Static type metadata: type references, members, and type descriptors."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KIND_CLASS = "class"
KIND_INTERFACE = "interface"
VALID_TYPE_KINDS: frozenset[str] = frozenset({KIND_CLASS, KIND_INTERFACE})

VISIBILITY_PUBLIC = "public"
VISIBILITY_NON_PUBLIC = "non-public"
VALID_VISIBILITIES: frozenset[str] = frozenset({VISIBILITY_PUBLIC, VISIBILITY_NON_PUBLIC})

VALID_MEMBER_KINDS: frozenset[str] = frozenset({"property", "method", "field", "constructor"})

# Dotted identifier; "+" separates nested types, "`" appears in CLR arity suffixes.
_NAME_RE = re.compile(r"^[A-Za-z_][\w`]*(?:[.+][A-Za-z_][\w`]*)*$")


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


def is_valid_name(name: str) -> bool:
    """Return True if *name* is a well-formed (possibly dotted) type name."""
    return bool(_NAME_RE.match(name))


def split_name(full_name: str) -> tuple[str, str]:
    """Split a fully-qualified name into ``(namespace, simple_name)``.

    Nested types (``Outer+Inner``) live in the namespace of their outermost
    type and are known by their innermost name.
    """
    outer, _, _ = full_name.partition("+")
    namespace, _, _ = outer.rpartition(".")
    simple = re.split(r"[.+]", full_name)[-1]
    return namespace, simple


def namespace_contains(namespace: str, candidate: str) -> bool:
    """Return True if *candidate* is *namespace* or one of its child namespaces.

    ``A`` contains ``A`` and ``A.B`` but not ``AB``.
    """
    return candidate == namespace or candidate.startswith(namespace + ".")


# ---------------------------------------------------------------------------
# Type references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeRef:
    """A reference to a type by identity.

    ``name`` is the fully-qualified name of the referenced type; for generic
    types it names the generic definition.  A closed instantiation carries its
    ``type_arguments``; an open definition reference (``Ns.Repo<>``) carries
    only ``open_arity``.
    """

    name: str
    type_arguments: tuple[TypeRef, ...] = ()
    open_arity: int = 0

    def __str__(self) -> str:
        if self.open_arity:
            return f"{self.name}<{',' * (self.open_arity - 1)}>"
        if self.type_arguments:
            return f"{self.name}<{', '.join(str(a) for a in self.type_arguments)}>"
        return self.name

    @property
    def is_open_generic(self) -> bool:
        return self.open_arity > 0

    @property
    def arity(self) -> int:
        """Number of generic parameters this reference binds or leaves open."""
        return self.open_arity or len(self.type_arguments)

    @property
    def simple_name(self) -> str:
        return split_name(self.name)[1]

    def names(self) -> Iterator[str]:
        """Yield this reference's name followed by every type-argument name, depth-first."""
        yield self.name
        for arg in self.type_arguments:
            yield from arg.names()

    def matches(self, other: TypeRef) -> bool:
        """Return True if *other* is the type this reference designates.

        An open generic reference matches every instantiation of the same
        definition with the same arity; any other reference must match exactly.
        """
        if self.name != other.name:
            return False
        if self.open_arity:
            return other.arity == self.open_arity
        return self.type_arguments == other.type_arguments and not other.open_arity


def parse_type_ref(text: str) -> TypeRef:
    """Parse the textual notation of a type reference.

    Accepted forms::

        Ns.Type
        Ns.Generic<Ns.Arg>
        Ns.Pair<Ns.A, Ns.Generic<Ns.B>>
        Ns.Generic<>
        Ns.Pair<,>

    Raises ``ValueError`` when *text* is not a well-formed reference.
    """
    source = text.strip()
    if not source:
        msg = "type reference must not be empty"
        raise ValueError(msg)
    ref, pos = _parse_ref(source, 0)
    pos = _skip_spaces(source, pos)
    if pos != len(source):
        msg = f"unexpected {source[pos]!r} at position {pos} in type reference {text!r}"
        raise ValueError(msg)
    return ref


def _skip_spaces(source: str, pos: int) -> int:
    while pos < len(source) and source[pos] == " ":
        pos += 1
    return pos


def _parse_ref(source: str, pos: int) -> tuple[TypeRef, int]:
    pos = _skip_spaces(source, pos)
    start = pos
    while pos < len(source) and source[pos] not in "<>,":
        pos += 1
    name = source[start:pos].strip()
    if not is_valid_name(name):
        msg = f"invalid type name {name!r} in type reference {source!r}"
        raise ValueError(msg)

    if pos >= len(source) or source[pos] != "<":
        return TypeRef(name=name), pos

    pos += 1
    # Open definition: only commas and spaces up to the closing bracket.
    cursor = pos
    commas = 0
    while cursor < len(source) and source[cursor] in ", ":
        if source[cursor] == ",":
            commas += 1
        cursor += 1
    if cursor < len(source) and source[cursor] == ">":
        return TypeRef(name=name, open_arity=commas + 1), cursor + 1

    args: list[TypeRef] = []
    while True:
        arg, pos = _parse_ref(source, pos)
        args.append(arg)
        pos = _skip_spaces(source, pos)
        if pos >= len(source):
            msg = f"unterminated generic argument list in type reference {source!r}"
            raise ValueError(msg)
        if source[pos] == ",":
            pos += 1
            continue
        if source[pos] == ">":
            return TypeRef(name=name, type_arguments=tuple(args)), pos + 1
        msg = f"unexpected {source[pos]!r} at position {pos} in type reference {source!r}"
        raise ValueError(msg)


def as_type_ref(value: TypeRef | str) -> TypeRef:
    """Coerce a string in type-reference notation to a :class:`TypeRef`."""
    if isinstance(value, TypeRef):
        return value
    return parse_type_ref(value)


# ---------------------------------------------------------------------------
# Members and types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Member:
    """A declared member and the types its signature mentions."""

    name: str
    kind: str = "property"
    type_refs: tuple[TypeRef, ...] = ()


@dataclass(frozen=True)
class TypeDescriptor:
    """Static metadata record for one declared type.

    Identity is ``full_name``; ``namespace`` and ``name`` are derived from it.
    Generic definitions declare their parameter names in ``generic_parameters``.
    """

    full_name: str
    kind: str = KIND_CLASS
    visibility: str = VISIBILITY_PUBLIC
    base_type: TypeRef | None = None
    interfaces: tuple[TypeRef, ...] = ()
    members: tuple[Member, ...] = ()
    annotations: tuple[str, ...] = ()
    generic_parameters: tuple[str, ...] = ()

    @property
    def namespace(self) -> str:
        return split_name(self.full_name)[0]

    @property
    def name(self) -> str:
        return split_name(self.full_name)[1]

    @property
    def arity(self) -> int:
        return len(self.generic_parameters)

    @property
    def is_generic_definition(self) -> bool:
        return bool(self.generic_parameters)

    @property
    def is_class(self) -> bool:
        return self.kind == KIND_CLASS

    @property
    def is_interface(self) -> bool:
        return self.kind == KIND_INTERFACE

    @property
    def is_public(self) -> bool:
        return self.visibility == VISIBILITY_PUBLIC

    @property
    def display_name(self) -> str:
        """Simple name with generic parameters, e.g. ``GenericRepository<T>``."""
        if self.generic_parameters:
            return f"{self.name}<{', '.join(self.generic_parameters)}>"
        return self.name

    def has_member(self, name: str, kind: str | None = None) -> bool:
        return any(m.name == name and (kind is None or m.kind == kind) for m in self.members)

    def references(self) -> Iterator[TypeRef]:
        """Yield every type reference held by this descriptor (base, interfaces, members)."""
        if self.base_type is not None:
            yield self.base_type
        yield from self.interfaces
        for member in self.members:
            yield from member.type_refs


def make_type(
    full_name: str,
    *,
    kind: str = KIND_CLASS,
    visibility: str = VISIBILITY_PUBLIC,
    base: TypeRef | str | None = None,
    interfaces: Iterable[TypeRef | str] = (),
    members: Iterable[Member | str] = (),
    annotations: Iterable[str] = (),
    generic_parameters: Iterable[str] = (),
) -> TypeDescriptor:
    """Build a :class:`TypeDescriptor`, parsing references given in text notation.

    Members given as plain strings are properties with no signature types.
    Raises ``ValueError`` if a reference cannot be parsed.
    """
    member_objs = tuple(m if isinstance(m, Member) else Member(name=m) for m in members)
    return TypeDescriptor(
        full_name=full_name,
        kind=kind,
        visibility=visibility,
        base_type=as_type_ref(base) if base is not None else None,
        interfaces=tuple(as_type_ref(i) for i in interfaces),
        members=member_objs,
        annotations=tuple(annotations),
        generic_parameters=tuple(generic_parameters),
    )
