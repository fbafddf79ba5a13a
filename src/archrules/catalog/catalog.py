"""TypeCatalog: the immutable, validated snapshot every rule is evaluated against."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from archrules.catalog.model import (
    VALID_MEMBER_KINDS,
    VALID_TYPE_KINDS,
    VALID_VISIBILITIES,
    Member,
    TypeDescriptor,
    TypeRef,
    is_valid_name,
    namespace_contains,
    parse_type_ref,
)
from archrules.errors import MalformedMetadata

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


class TypeCatalog:
    """Ordered, read-only collection of :class:`TypeDescriptor` for one analysed unit.

    Declaration order is kept for reporting only; no query result depends on
    it semantically.  Construction validates the whole snapshot and raises
    :class:`MalformedMetadata` instead of producing a partially valid catalog.

    References that do not resolve to a type in the catalog are treated as
    external types.
    """

    def __init__(self, types: Iterable[TypeDescriptor], *, assembly: str = "") -> None:
        self._assembly = assembly
        self._types: tuple[TypeDescriptor, ...] = tuple(types)
        self._by_name: dict[str, TypeDescriptor] = {}
        self._index: dict[str, int] = {}

        for idx, descriptor in enumerate(self._types):
            _check_descriptor_shape(descriptor, idx)
            if descriptor.full_name in self._by_name:
                msg = f"duplicate type identity '{descriptor.full_name}'"
                raise MalformedMetadata(msg)
            self._by_name[descriptor.full_name] = descriptor
            self._index[descriptor.full_name] = idx

        for descriptor in self._types:
            self._check_references(descriptor)

        logger.debug(
            "Catalog %r built with %d types in %d namespaces",
            assembly,
            len(self._types),
            len(self.namespaces()),
        )

    def __repr__(self) -> str:
        return f"TypeCatalog(assembly={self._assembly!r}, types={len(self._types)})"

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(self._types)

    def __contains__(self, identity: object) -> bool:
        if isinstance(identity, TypeRef):
            return identity.name in self._by_name
        if isinstance(identity, str):
            return self.lookup(identity) is not None
        return False

    @property
    def assembly(self) -> str:
        return self._assembly

    # -- queries ------------------------------------------------------------

    def all_types(self) -> tuple[TypeDescriptor, ...]:
        """Return every type in declaration order."""
        return self._types

    def types_in_namespace(self, namespace: str) -> tuple[TypeDescriptor, ...]:
        """Return the types declared in *namespace* or any of its child namespaces."""
        return tuple(t for t in self._types if namespace_contains(namespace, t.namespace))

    def lookup(self, identity: str) -> TypeDescriptor | None:
        """Return the descriptor for *identity*, or ``None`` if it is not in the catalog.

        Generic notation is accepted and stripped to the definition, so
        ``Ns.Repo``, ``Ns.Repo<>`` and ``Ns.Repo<Ns.Item>`` all find ``Ns.Repo``.
        """
        found = self._by_name.get(identity)
        if found is not None:
            return found
        try:
            ref = parse_type_ref(identity)
        except ValueError:
            return None
        return self._by_name.get(ref.name)

    def resolve(self, ref: TypeRef) -> TypeDescriptor | None:
        """Return the catalog descriptor a reference points at, or ``None`` if external."""
        return self._by_name.get(ref.name)

    def is_external(self, ref: TypeRef) -> bool:
        return ref.name not in self._by_name

    def index_of(self, identity: str) -> int:
        """Return the declaration index of a type; raises ``KeyError`` for unknown types."""
        return self._index[identity]

    def in_declaration_order(self, identities: Iterable[str]) -> tuple[TypeDescriptor, ...]:
        """Return descriptors for *identities* sorted by declaration order."""
        return tuple(
            self._types[i] for i in sorted(self._index[identity] for identity in set(identities))
        )

    def namespaces(self) -> tuple[str, ...]:
        """Return the distinct namespaces of the catalog in first-seen order."""
        seen: dict[str, None] = {}
        for descriptor in self._types:
            seen.setdefault(descriptor.namespace, None)
        return tuple(seen)

    # -- validation ---------------------------------------------------------

    def _check_references(self, descriptor: TypeDescriptor) -> None:
        where = f"type '{descriptor.full_name}'"

        if descriptor.base_type is not None:
            base = descriptor.base_type
            if descriptor.is_interface:
                msg = f"{where}: interfaces cannot declare a base type ('{base}')"
                raise MalformedMetadata(msg)
            if base.name == descriptor.full_name:
                msg = f"{where}: a type cannot inherit from itself"
                raise MalformedMetadata(msg)
            target = self.resolve(base)
            if target is not None and target.is_interface:
                msg = f"{where}: base type '{base}' is an interface"
                raise MalformedMetadata(msg)

        for iface in descriptor.interfaces:
            target = self.resolve(iface)
            if target is not None and not target.is_interface:
                msg = f"{where}: implemented interface '{iface}' is a {target.kind}"
                raise MalformedMetadata(msg)

        for ref in descriptor.references():
            self._check_arity(ref, where)

    def _check_arity(self, ref: TypeRef, where: str) -> None:
        if ref.is_open_generic:
            msg = f"{where}: open generic reference '{ref}' cannot appear in metadata"
            raise MalformedMetadata(msg)
        target = self.resolve(ref)
        if target is not None and target.arity != len(ref.type_arguments):
            msg = (
                f"{where}: reference '{ref}' binds {len(ref.type_arguments)} type "
                f"argument(s) but '{target.full_name}' declares {target.arity}"
            )
            raise MalformedMetadata(msg)
        for arg in ref.type_arguments:
            self._check_arity(arg, where)


def _check_descriptor_shape(descriptor: TypeDescriptor, idx: int) -> None:
    """Validate one descriptor in isolation."""
    _check_field_types(descriptor, idx)
    if not is_valid_name(descriptor.full_name):
        msg = f"type at index {idx}: invalid full name '{descriptor.full_name}'"
        raise MalformedMetadata(msg)

    where = f"type '{descriptor.full_name}'"
    if descriptor.kind not in VALID_TYPE_KINDS:
        msg = (
            f"{where}: invalid kind '{descriptor.kind}', "
            f"must be one of {sorted(VALID_TYPE_KINDS)}"
        )
        raise MalformedMetadata(msg)
    if descriptor.visibility not in VALID_VISIBILITIES:
        msg = (
            f"{where}: invalid visibility '{descriptor.visibility}', "
            f"must be one of {sorted(VALID_VISIBILITIES)}"
        )
        raise MalformedMetadata(msg)

    params = descriptor.generic_parameters
    if len(set(params)) != len(params):
        msg = f"{where}: duplicate generic parameter names {list(params)}"
        raise MalformedMetadata(msg)
    for param in params:
        if not is_valid_name(param) or "." in param:
            msg = f"{where}: invalid generic parameter name '{param}'"
            raise MalformedMetadata(msg)

    for member in descriptor.members:
        if not member.name:
            msg = f"{where}: member with empty name"
            raise MalformedMetadata(msg)
        if member.kind not in VALID_MEMBER_KINDS:
            msg = (
                f"{where}: member '{member.name}' has invalid kind '{member.kind}', "
                f"must be one of {sorted(VALID_MEMBER_KINDS)}"
            )
            raise MalformedMetadata(msg)

    for annotation in descriptor.annotations:
        if not is_valid_name(annotation):
            msg = f"{where}: invalid annotation identity '{annotation}'"
            raise MalformedMetadata(msg)


def _check_field_types(descriptor: object, idx: int) -> None:
    """Reject descriptors whose fields do not hold the declared types."""
    if not isinstance(descriptor, TypeDescriptor):
        msg = f"type at index {idx}: expected a TypeDescriptor, got {type(descriptor).__name__}"
        raise MalformedMetadata(msg)
    if not isinstance(descriptor.full_name, str):
        msg = f"type at index {idx}: full name must be a string, got {descriptor.full_name!r}"
        raise MalformedMetadata(msg)

    where = f"type '{descriptor.full_name}'"
    for field_name in ("kind", "visibility"):
        value = getattr(descriptor, field_name)
        if not isinstance(value, str):
            msg = f"{where}: {field_name} must be a string, got {value!r}"
            raise MalformedMetadata(msg)

    if descriptor.base_type is not None:
        _check_ref_type(descriptor.base_type, f"{where}: base type")
    for iface in _as_sequence(descriptor.interfaces, f"{where}: interfaces"):
        _check_ref_type(iface, f"{where}: interface")

    for member in _as_sequence(descriptor.members, f"{where}: members"):
        if not isinstance(member, Member):
            msg = f"{where}: expected a Member, got {member!r}"
            raise MalformedMetadata(msg)
        if not isinstance(member.name, str) or not isinstance(member.kind, str):
            msg = f"{where}: member name and kind must be strings, got {member!r}"
            raise MalformedMetadata(msg)
        for ref in _as_sequence(member.type_refs, f"{where}: member '{member.name}' types"):
            _check_ref_type(ref, f"{where}: member '{member.name}'")

    for field_name in ("annotations", "generic_parameters"):
        for value in _as_sequence(getattr(descriptor, field_name), f"{where}: {field_name}"):
            if not isinstance(value, str):
                msg = f"{where}: {field_name} must hold strings, got {value!r}"
                raise MalformedMetadata(msg)


def _as_sequence(value: object, where: str) -> tuple[object, ...] | list[object]:
    if not isinstance(value, (tuple, list)):
        msg = f"{where} must be a tuple or list, got {type(value).__name__}"
        raise MalformedMetadata(msg)
    return value


def _check_ref_type(ref: object, where: str) -> None:
    if not isinstance(ref, TypeRef):
        msg = f"{where}: expected a TypeRef, got {ref!r}"
        raise MalformedMetadata(msg)
    if not isinstance(ref.name, str) or not is_valid_name(ref.name):
        msg = f"{where}: invalid reference name {ref.name!r}"
        raise MalformedMetadata(msg)
    if not isinstance(ref.open_arity, int) or isinstance(ref.open_arity, bool):
        msg = f"{where}: open arity of '{ref.name}' must be an integer"
        raise MalformedMetadata(msg)
    for arg in _as_sequence(ref.type_arguments, f"{where}: type arguments of '{ref.name}'"):
        _check_ref_type(arg, where)
