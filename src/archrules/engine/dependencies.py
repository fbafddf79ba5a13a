"""Dependency graph derived from a TypeCatalog: per-type edges, lookups, and cycles."""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archrules.catalog.model import TypeRef, namespace_contains, split_name

if TYPE_CHECKING:
    from collections.abc import Iterator

    from archrules.catalog.catalog import TypeCatalog
    from archrules.catalog.model import TypeDescriptor

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EDGE_INHERITANCE = "inheritance"
EDGE_INTERFACE = "interface-implementation"
EDGE_MEMBER = "member-signature-reference"
EDGE_ANNOTATION = "annotation"
VALID_EDGE_KINDS: frozenset[str] = frozenset(
    {EDGE_INHERITANCE, EDGE_INTERFACE, EDGE_MEMBER, EDGE_ANNOTATION}
)

DEFAULT_CYCLE_DEPTH = 10


@dataclass(frozen=True)
class DependencyEdge:
    """A directed reference from one catalog type to another type."""

    source: str
    target: str
    kind: str
    target_namespace: str
    external: bool

    def resolves_into(self, namespace_or_type: str) -> bool:
        """Return True if the target is *namespace_or_type* itself or lives inside it."""
        return self.target == namespace_or_type or namespace_contains(
            namespace_or_type, self.target_namespace
        )


class DependencyGraphBuilder:
    """Lazily derive and memoize :class:`DependencyEdge` sets for one catalog.

    Edges are computed per type, never by traversal, so cyclic references
    between application types are harmless.  Generic type arguments produce
    edges of the same kind as the reference that carries them; references to
    the type itself or to its own generic parameters produce none.

    The builder holds its catalog weakly so that the per-catalog memo in
    :func:`graph_for` never keeps a catalog alive; callers keep the catalog.
    """

    def __init__(self, catalog: TypeCatalog) -> None:
        self._catalog_ref = weakref.ref(catalog)
        self._edges: dict[str, tuple[DependencyEdge, ...]] = {}
        self._cycle_members: dict[int, frozenset[str]] = {}

    @property
    def catalog(self) -> TypeCatalog:
        """Return the catalog; raises ``ReferenceError`` once it has been freed."""
        catalog = self._catalog_ref()
        if catalog is None:
            msg = "the catalog of this dependency graph has been freed"
            raise ReferenceError(msg)
        return catalog

    def edges_from(self, identity: str) -> tuple[DependencyEdge, ...]:
        """Return the outgoing edges of a catalog type.

        Raises ``KeyError`` if *identity* is not in the catalog.
        """
        cached = self._edges.get(identity)
        if cached is None:
            descriptor = self.catalog.lookup(identity)
            if descriptor is None:
                msg = f"type '{identity}' is not in the catalog"
                raise KeyError(msg)
            cached = self._compute(descriptor)
            self._edges[identity] = cached
        return cached

    def all_edges(self) -> Iterator[DependencyEdge]:
        """Yield every edge of the catalog, grouped by source in declaration order."""
        for descriptor in self.catalog:
            yield from self.edges_from(descriptor.full_name)

    def depends_on(self, identity: str, namespace_or_type: str) -> bool:
        return any(e.resolves_into(namespace_or_type) for e in self.edges_from(identity))

    def edges_into(self, identity: str, namespace_or_type: str) -> tuple[DependencyEdge, ...]:
        """Return the edges of *identity* whose target resolves into *namespace_or_type*."""
        return tuple(e for e in self.edges_from(identity) if e.resolves_into(namespace_or_type))

    def dependents_of(self, namespace_or_type: str) -> tuple[str, ...]:
        """Return catalog types with at least one edge into *namespace_or_type*."""
        return tuple(
            t.full_name for t in self.catalog if self.depends_on(t.full_name, namespace_or_type)
        )

    # -- cycles ---------------------------------------------------------------

    def _adjacency(self) -> dict[str, list[str]]:
        adj: dict[str, list[str]] = {}
        for descriptor in self.catalog:
            targets: list[str] = []
            for edge in self.edges_from(descriptor.full_name):
                if not edge.external and edge.target not in targets:
                    targets.append(edge.target)
            adj[descriptor.full_name] = targets
        return adj

    def find_cycles(self, max_depth: int = DEFAULT_CYCLE_DEPTH) -> list[tuple[str, ...]]:
        """Return each distinct dependency cycle among catalog types.

        Uses an iterative DFS bounded by *max_depth*.  Cycles are normalized so
        the smallest identity comes first; ``A -> B -> A`` is reported once.
        """
        adj = self._adjacency()
        seen: set[tuple[str, ...]] = set()
        cycles: list[tuple[str, ...]] = []

        for start in adj:
            stack: list[tuple[str, list[str]]] = [(start, [start])]
            while stack:
                current, path = stack.pop()
                for neighbor in adj.get(current, []):
                    if neighbor in path:
                        normalized = _normalize_cycle(path[path.index(neighbor) :])
                        if normalized not in seen:
                            seen.add(normalized)
                            cycles.append(normalized)
                    elif len(path) < max_depth:
                        stack.append((neighbor, [*path, neighbor]))

        if cycles:
            logger.debug("Found %d dependency cycle(s) in %r", len(cycles), self.catalog)
        return cycles

    def types_on_cycles(self, max_depth: int = DEFAULT_CYCLE_DEPTH) -> frozenset[str]:
        """Return identities of every type on at least one cycle (memoized per depth)."""
        members = self._cycle_members.get(max_depth)
        if members is None:
            members = frozenset(name for cycle in self.find_cycles(max_depth) for name in cycle)
            self._cycle_members[max_depth] = members
        return members

    # -- edge computation -----------------------------------------------------

    def _compute(self, descriptor: TypeDescriptor) -> tuple[DependencyEdge, ...]:
        edges: list[DependencyEdge] = []
        seen: set[tuple[str, str]] = set()
        skip = {descriptor.full_name, *descriptor.generic_parameters}

        def add(ref: TypeRef, kind: str) -> None:
            for name in ref.names():
                if name in skip or (name, kind) in seen:
                    continue
                seen.add((name, kind))
                target = self.catalog.lookup(name)
                edges.append(
                    DependencyEdge(
                        source=descriptor.full_name,
                        target=name,
                        kind=kind,
                        target_namespace=target.namespace if target else split_name(name)[0],
                        external=target is None,
                    )
                )

        if descriptor.base_type is not None:
            add(descriptor.base_type, EDGE_INHERITANCE)
        for iface in descriptor.interfaces:
            add(iface, EDGE_INTERFACE)
        for member in descriptor.members:
            for ref in member.type_refs:
                add(ref, EDGE_MEMBER)
        for annotation in descriptor.annotations:
            add(TypeRef(name=annotation), EDGE_ANNOTATION)

        return tuple(edges)


def _normalize_cycle(path: list[str]) -> tuple[str, ...]:
    """Rotate a cycle path so that the smallest element is first."""
    if not path:
        return ()
    min_idx = path.index(min(path))
    return tuple(path[min_idx:] + path[:min_idx])


_builders: weakref.WeakKeyDictionary[TypeCatalog, DependencyGraphBuilder] = (
    weakref.WeakKeyDictionary()
)


def graph_for(catalog: TypeCatalog) -> DependencyGraphBuilder:
    """Return the dependency graph builder memoized for *catalog*."""
    builder = _builders.get(catalog)
    if builder is None:
        builder = DependencyGraphBuilder(catalog)
        _builders[catalog] = builder
    return builder
