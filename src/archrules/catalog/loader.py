"""Snapshot loader: parse an extractor's YAML/JSON type snapshot into a TypeCatalog."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml

from archrules.catalog.catalog import TypeCatalog
from archrules.catalog.model import (
    KIND_CLASS,
    VALID_TYPE_KINDS,
    Member,
    TypeDescriptor,
    TypeRef,
    make_type,
    parse_type_ref,
    split_name,
)
from archrules.errors import MalformedMetadata

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_SNAPSHOT_VERSIONS: frozenset[int] = frozenset({1})

# Shorthand accepted in snapshots: a class that must declare generic parameters.
KIND_GENERIC_DEFINITION = "generic-definition"

_TYPE_KEYS: frozenset[str] = frozenset(
    {
        "full_name",
        "namespace",
        "name",
        "kind",
        "visibility",
        "base",
        "interfaces",
        "annotations",
        "generic_parameters",
        "members",
    }
)


def _str_list(value: object, context: str) -> list[str]:
    """Accept a list of strings (or a single string) and return a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"{context} must be a list of strings"
        raise MalformedMetadata(msg)
    return list(value)


def _parse_ref(text: str, context: str) -> TypeRef:
    try:
        return parse_type_ref(text)
    except ValueError as exc:
        msg = f"{context}: {exc}"
        raise MalformedMetadata(msg) from exc


def _parse_member(data: object, context: str) -> Member:
    """Parse a member given either as a bare name or as a mapping."""
    if isinstance(data, str):
        return Member(name=data)
    if not isinstance(data, dict):
        msg = f"{context} must be a string or a mapping"
        raise MalformedMetadata(msg)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"{context} missing required 'name' field"
        raise MalformedMetadata(msg)
    kind = str(data.get("kind", "property"))
    type_refs = tuple(
        _parse_ref(t, f"{context} type") for t in _str_list(data.get("types"), f"{context}.types")
    )
    return Member(name=name, kind=kind, type_refs=type_refs)


def _parse_type(data: object, idx: int) -> TypeDescriptor:
    """Parse one entry of the ``types`` list."""
    context = f"type at index {idx}"
    if not isinstance(data, dict):
        msg = f"{context} must be a mapping"
        raise MalformedMetadata(msg)

    unknown = sorted(set(data) - _TYPE_KEYS)
    if unknown:
        msg = f"{context}: unknown field(s) {unknown}"
        raise MalformedMetadata(msg)

    full_name = data.get("full_name")
    namespace = data.get("namespace")
    name = data.get("name")

    # full_name may be omitted when namespace + name are given.
    if full_name is None and isinstance(name, str):
        full_name = f"{namespace}.{name}" if namespace else name
    if not isinstance(full_name, str) or not full_name.strip():
        msg = f"{context} missing required 'full_name' field"
        raise MalformedMetadata(msg)
    context = f"type '{full_name}'"

    derived_ns, derived_name = split_name(full_name)
    if namespace is not None and str(namespace) != derived_ns:
        msg = f"{context}: namespace '{namespace}' does not match full name"
        raise MalformedMetadata(msg)
    if name is not None and str(name) != derived_name:
        msg = f"{context}: name '{name}' does not match full name"
        raise MalformedMetadata(msg)

    kind = str(data.get("kind", KIND_CLASS))
    generic_parameters = _str_list(data.get("generic_parameters"), f"{context}.generic_parameters")
    if kind == KIND_GENERIC_DEFINITION:
        if not generic_parameters:
            msg = f"{context}: kind '{KIND_GENERIC_DEFINITION}' requires generic_parameters"
            raise MalformedMetadata(msg)
        kind = KIND_CLASS
    elif kind not in VALID_TYPE_KINDS:
        valid = sorted(VALID_TYPE_KINDS | {KIND_GENERIC_DEFINITION})
        msg = f"{context}: invalid kind '{kind}', must be one of {valid}"
        raise MalformedMetadata(msg)

    base_raw = data.get("base")
    if base_raw is not None and not isinstance(base_raw, str):
        msg = f"{context}.base must be a string"
        raise MalformedMetadata(msg)
    base = _parse_ref(base_raw, f"{context}.base") if base_raw else None

    interfaces = [
        _parse_ref(i, f"{context}.interfaces")
        for i in _str_list(data.get("interfaces"), f"{context}.interfaces")
    ]

    members_raw = data.get("members") or []
    if not isinstance(members_raw, list):
        msg = f"{context}.members must be a list"
        raise MalformedMetadata(msg)
    members = [_parse_member(m, f"{context} member {i}") for i, m in enumerate(members_raw)]

    return make_type(
        full_name,
        kind=kind,
        visibility=str(data.get("visibility", "public")),
        base=base,
        interfaces=interfaces,
        members=members,
        annotations=_str_list(data.get("annotations"), f"{context}.annotations"),
        generic_parameters=generic_parameters,
    )


def parse_catalog(data: object, *, source: str = "<snapshot>") -> TypeCatalog:
    """Build a :class:`TypeCatalog` from an already-decoded snapshot mapping.

    Raises :class:`MalformedMetadata` with *source* in the message on any
    schema or consistency error.
    """
    try:
        if not isinstance(data, dict):
            msg = "snapshot must be a mapping"
            raise MalformedMetadata(msg)

        version = data.get("version")
        if version is None:
            msg = "missing required 'version' field"
            raise MalformedMetadata(msg)
        if (
            not isinstance(version, int)
            or isinstance(version, bool)
            or version not in SUPPORTED_SNAPSHOT_VERSIONS
        ):
            expected = sorted(SUPPORTED_SNAPSHOT_VERSIONS)
            msg = f"unsupported version {version}, expected one of {expected}"
            raise MalformedMetadata(msg)

        types_raw = data.get("types", [])
        if not isinstance(types_raw, list):
            msg = "'types' must be a list"
            raise MalformedMetadata(msg)

        descriptors = [_parse_type(entry, idx) for idx, entry in enumerate(types_raw)]
        return TypeCatalog(descriptors, assembly=str(data.get("assembly", "")))
    except MalformedMetadata as exc:
        msg = f"{source}: {exc}"
        raise MalformedMetadata(msg) from exc


def load_catalog(path: Path) -> TypeCatalog:
    """Read a YAML or JSON snapshot file and return its catalog."""
    logger.debug("Loading type snapshot from %s", path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        msg = f"{path}: cannot read snapshot: {exc}"
        raise MalformedMetadata(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"{path}: invalid YAML/JSON: {exc}"
        raise MalformedMetadata(msg) from exc
    return parse_catalog(data, source=str(path))


def dump_catalog(catalog: TypeCatalog) -> dict[str, object]:
    """Serialize a catalog back to the snapshot mapping accepted by :func:`parse_catalog`."""
    types: list[dict[str, object]] = []
    for t in catalog:
        entry: dict[str, object] = {"full_name": t.full_name, "kind": t.kind}
        if not t.is_public:
            entry["visibility"] = t.visibility
        if t.base_type is not None:
            entry["base"] = str(t.base_type)
        if t.interfaces:
            entry["interfaces"] = [str(i) for i in t.interfaces]
        if t.annotations:
            entry["annotations"] = list(t.annotations)
        if t.generic_parameters:
            entry["generic_parameters"] = list(t.generic_parameters)
        if t.members:
            entry["members"] = [
                {"name": m.name, "kind": m.kind, "types": [str(r) for r in m.type_refs]}
                for m in t.members
            ]
        types.append(entry)
    return {"version": 1, "assembly": catalog.assembly, "types": types}
