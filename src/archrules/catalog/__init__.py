"""Catalog domain: type metadata model, TypeCatalog, and snapshot loader."""

from archrules.catalog.catalog import TypeCatalog
from archrules.catalog.loader import dump_catalog, load_catalog, parse_catalog
from archrules.catalog.model import (
    Member,
    TypeDescriptor,
    TypeRef,
    make_type,
    namespace_contains,
    parse_type_ref,
    split_name,
)

__all__ = [
    "Member",
    "TypeCatalog",
    "TypeDescriptor",
    "TypeRef",
    "dump_catalog",
    "load_catalog",
    "make_type",
    "namespace_contains",
    "parse_catalog",
    "parse_type_ref",
    "split_name",
]
