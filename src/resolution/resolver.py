"""Version selection over a RequirementGraph.

Requirements are grouped per (name, source) and split by compatibility
class, so ``^1`` and ``^2`` of the same package resolve to two identities.
Classes collapse into a single selection when multiple versions are disabled
or the package declares ``links`` (at most one copy of a native library may
be linked). Each selection is the highest available version satisfying the
intersection of every requirement in it.

A node's manifest was fetched before its version was known, so a selection
may land on a different version than the one the manifest describes.
``stale_pins`` reports those nodes; the caller rebuilds the graph with them
pinned until every node is described by its selected version.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from common.logging_utils import extra_context, is_debug_enabled, Timer
from versioning.parser import highest_matching

from .errors import UnsatisfiableConstraints
from .graph import ROOT_INDEX, NodeKey, RequirementGraph, Requirement
from .models import PackageIdentity, ResolvedEdge, ResolvedGraph, ResolveOptions

logger = logging.getLogger(__name__)


class VersionResolver:
    """Selects one concrete version per partition of the requirement graph."""

    def __init__(self, versions, options: Optional[ResolveOptions] = None):
        self.versions = versions
        self.options = options or ResolveOptions()

    def _partitions(self, graph: RequirementGraph) -> List[List[int]]:
        """Node indices that must share a version, in breadth-first order."""
        groups: Dict[Tuple, Dict[Tuple[int, ...], List[int]]] = {}
        for node in graph.nodes:
            groups.setdefault((node.name, node.source), {}).setdefault(node.compat, []).append(node.index)

        partitions: List[List[int]] = []
        for classes in groups.values():
            members = sorted(i for idxs in classes.values() for i in idxs)
            links = any(graph.node(i).manifest.links for i in members)
            if links or not self.options.allow_multiple_versions:
                partitions.append(members)
            else:
                partitions.extend(sorted(idxs) for idxs in classes.values())

        partitions.sort(key=lambda p: (min(graph.node(i).depth for i in p), p[0]))
        return partitions

    @staticmethod
    def _requirements(graph: RequirementGraph, partition: Sequence[int]) -> List[Requirement]:
        reqs = [r for i in partition for r in graph.node(i).requirements]
        return sorted(reqs, key=lambda r: (graph.node(r.requirer).depth, r.requirer))

    def _candidates(self, graph: RequirementGraph, partition: Sequence[int]) -> List[str]:
        if ROOT_INDEX in partition:
            return [graph.root.version]
        first = graph.node(partition[0])
        return list(self.versions.available_versions(first.name, first.source))

    def _select(self, graph: RequirementGraph, partition: Sequence[int],
                reqs: List[Requirement]) -> Tuple[Optional[str], List[str]]:
        """Return (chosen version or None, versions that were on offer)."""
        candidates = self._candidates(graph, partition)
        if ROOT_INDEX in partition and not reqs:
            return graph.root.version, candidates
        chosen = highest_matching(candidates, [r.declaration.req for r in reqs])
        return chosen, candidates

    def select(self, graph: RequirementGraph) -> Dict[int, PackageIdentity]:
        """Map every node index of ``graph`` to its selected identity.

        Raises:
            UnsatisfiableConstraints: for the first partition, in breadth-first
                order, whose requirements no available version satisfies
        """
        identities: Dict[int, PackageIdentity] = {}
        failure = None
        for partition in self._partitions(graph):
            reqs = self._requirements(graph, partition)
            chosen, candidates = self._select(graph, partition, reqs)
            if chosen is None:
                if failure is None:
                    failure = (partition, reqs, candidates)
                continue
            node = graph.node(partition[0])
            ident = PackageIdentity(node.name, chosen, node.source)
            for i in partition:
                identities[i] = ident
            if is_debug_enabled(logger):
                logger.debug(
                    "Selected version",
                    extra=extra_context(
                        event="decision",
                        component="resolver",
                        action="select",
                        target=node.name,
                        outcome=chosen,
                        count=len(candidates),
                    ),
                )

        if failure is not None:
            partition, reqs, candidates = failure
            raise self.unsatisfiable(graph, identities, partition, reqs, candidates)
        return identities

    @staticmethod
    def stale_pins(graph: RequirementGraph, identities: Dict[int, PackageIdentity]) -> Dict[NodeKey, str]:
        """Nodes whose manifest describes another version than the selected one."""
        return {
            node.key: identities[node.index].version
            for node in graph.nodes
            if node.manifest.version != identities[node.index].version
        }

    @staticmethod
    def assemble(graph: RequirementGraph, identities: Dict[int, PackageIdentity]) -> ResolvedGraph:
        """Collapse the requirement graph onto the selected identities."""
        resolved = ResolvedGraph(root=identities[ROOT_INDEX])
        for node in graph.nodes:
            ident = identities[node.index]
            resolved.manifests.setdefault(ident, node.manifest)
            edges = resolved.edges.setdefault(ident, [])
            for edge in graph.edges_from(node.index):
                resolved_edge = ResolvedEdge(edge.declaration, identities[edge.child])
                if resolved_edge not in edges:
                    edges.append(resolved_edge)
        return resolved

    def resolve(self, graph: RequirementGraph) -> ResolvedGraph:
        """Resolve every node of ``graph`` to a PackageIdentity.

        The result is only faithful when ``stale_pins`` is empty for the
        selection; ``resolve_graph`` takes care of that.

        Raises:
            UnsatisfiableConstraints: see ``select``
        """
        with Timer() as t:
            resolved = self.assemble(graph, self.select(graph))
        logger.debug("Resolved %d packages in %s ms", len(resolved), t.duration_ms())
        return resolved

    def unsatisfiable(self, graph: RequirementGraph, identities: Dict[int, PackageIdentity],
                      partition: Sequence[int], reqs: Optional[List[Requirement]] = None,
                      candidates: Optional[List[str]] = None) -> UnsatisfiableConstraints:
        """Build the conflict error for ``partition``, naming every requirer."""
        if reqs is None:
            reqs = self._requirements(graph, partition)
        if candidates is None:
            candidates = self._candidates(graph, partition)
        name = graph.node(partition[0]).name
        requirers = []
        for r in reqs:
            ident = identities.get(r.requirer)
            requirers.append(str(ident) if ident is not None else graph.node(r.requirer).name)
        ranges = [str(r.declaration.req) for r in reqs]
        logger.debug("Version conflict on %s: %s", name, "; ".join(f"{a} wants {b}" for a, b in zip(requirers, ranges)))
        return UnsatisfiableConstraints(name, requirers, ranges, available=candidates)


def resolve_graph(builder, resolver: VersionResolver, root: PackageIdentity) -> ResolvedGraph:
    """Build and resolve until every identity is described by its own manifest.

    Nodes whose selected version differs from the version their manifest was
    fetched for are pinned and the graph is rebuilt. A pin assignment seen
    twice means selection oscillates between versions with different
    dependencies; that is reported as a conflict on the first oscillating
    package.

    Raises:
        ManifestUnavailable: if a referenced manifest cannot be located
        UnsatisfiableConstraints: if no consistent selection exists
    """
    pins: Dict[NodeKey, str] = {}
    tried = set()
    rounds = 0
    while True:
        rounds += 1
        graph = builder.build(root, pins)
        identities = resolver.select(graph)
        stale = resolver.stale_pins(graph, identities)
        if not stale:
            logger.debug("Version selection settled after %d round(s)", rounds)
            return resolver.assemble(graph, identities)

        tried.add(frozenset(pins.items()))
        pins = dict(pins)
        pins.update(stale)
        if frozenset(pins.items()) in tried:
            key = next(iter(stale))
            partition = [n.index for n in graph.nodes if n.key == key]
            raise resolver.unsatisfiable(graph, identities, partition)
        if is_debug_enabled(logger):
            logger.debug(
                "Re-pinning manifests",
                extra=extra_context(
                    event="decision",
                    component="resolver",
                    action="pin",
                    count=len(stale),
                    outcome=", ".join(f"{k[0]} {v}" for k, v in sorted(stale.items(), key=lambda kv: kv[0][0])),
                ),
            )
