"""Constraint graph construction.

Walks manifests breadth-first from the root and records, for every
(package, source, compatibility class), the manifest that describes it and
every requirement contributed against it. Nodes live in an arena and edges
refer to them by index.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled, Timer
from manifest.models import DepKind, DependencyDeclaration, Manifest, Source
from versioning.models import CompatClass, WILDCARD_CLASS
from versioning.parser import exact, highest_matching

from .errors import ManifestUnavailable, UnsatisfiableConstraints
from .models import PackageIdentity, ResolveOptions

logger = logging.getLogger(__name__)

ROOT_INDEX = 0

NodeKey = Tuple[str, Source, CompatClass]


@dataclass(frozen=True)
class Requirement:
    """A declaration contributed by the node at index ``requirer``."""
    requirer: int
    declaration: DependencyDeclaration


@dataclass
class RequirementNode:
    """One (name, source, compatibility class) slot of the unresolved graph."""
    index: int
    name: str
    source: Source
    compat: CompatClass
    manifest: Manifest
    depth: int
    requirements: List[Requirement] = field(default_factory=list)

    @property
    def key(self) -> NodeKey:
        return (self.name, self.source, self.compat)


@dataclass(frozen=True)
class Edge:
    """Declaration ``declaration`` of node ``parent`` points at node ``child``."""
    parent: int
    child: int
    declaration: DependencyDeclaration


@dataclass
class RequirementGraph:
    """Unresolved requirement graph; node 0 is the root."""
    root: PackageIdentity
    nodes: List[RequirementNode] = field(default_factory=list)
    edges: Dict[int, List[Edge]] = field(default_factory=dict)

    def node(self, index: int) -> RequirementNode:
        return self.nodes[index]

    def edges_from(self, index: int) -> List[Edge]:
        return self.edges.get(index, [])


class ConstraintGraphBuilder:
    """Builds a RequirementGraph through an injected manifest lookup.

    When a version oracle is given, a requirement no available version
    satisfies is reported as UnsatisfiableConstraints rather than as a
    missing manifest.
    """

    def __init__(self, manifests, options: Optional[ResolveOptions] = None, versions=None):
        self.manifests = manifests
        self.options = options or ResolveOptions()
        self.versions = versions

    def _wanted(self, decl: DependencyDeclaration) -> bool:
        if decl.kind == DepKind.DEV:
            return self.options.include_dev
        if decl.kind == DepKind.BUILD:
            return self.options.include_build
        return True

    @staticmethod
    def _class_for(decl: DependencyDeclaration, seen: Dict[Tuple[str, Source], List[CompatClass]]) -> CompatClass:
        """Compatibility class a declaration's requirement belongs to.

        Requirements without a lower bound join the highest class already seen
        for the same package and source.
        """
        compat = decl.req.compat_class
        if compat != WILDCARD_CLASS:
            return compat
        known = seen.get((decl.package, decl.source))
        return max(known) if known else WILDCARD_CLASS

    def _fetch(self, parent: RequirementNode, decl: DependencyDeclaration,
               pinned: Optional[str]) -> Manifest:
        """Manifest for a new node: the pinned version if any, else the declaration's best match."""
        req = exact(pinned) if pinned is not None else decl.req
        try:
            return self.manifests.get_manifest(decl.package, decl.source, req)
        except ManifestUnavailable as exc:
            if pinned is not None or self.versions is None:
                raise
            available = list(self.versions.available_versions(decl.package, decl.source))
            if not available or highest_matching(available, [decl.req]) is not None:
                raise
            requirer = f"{parent.name} {parent.manifest.version}"
            logger.debug("No available version of %s satisfies %s (required by %s)", decl.package, decl.req, requirer)
            raise UnsatisfiableConstraints(decl.package, [requirer], [str(decl.req)], available) from exc

    def build(self, root: PackageIdentity, pins: Optional[Dict[NodeKey, str]] = None) -> RequirementGraph:
        """Walk every manifest reachable from ``root``.

        ``pins`` maps node keys to the version whose manifest must describe
        that node; other nodes use the best match of their first requirement.

        Raises:
            ManifestUnavailable: if a referenced manifest cannot be located
            UnsatisfiableConstraints: if no available version satisfies the
                requirement that introduced a node
        """
        pins = pins or {}
        with Timer() as t:
            root_manifest = self.manifests.get_manifest(root.name, root.source, exact(root.version))
            graph = RequirementGraph(root=root)
            graph.nodes.append(RequirementNode(
                index=ROOT_INDEX,
                name=root.name,
                source=root.source,
                compat=exact(root.version).compat_class,
                manifest=root_manifest,
                depth=0,
            ))
            index: Dict[NodeKey, int] = {graph.nodes[0].key: ROOT_INDEX}
            seen: Dict[Tuple[str, Source], List[CompatClass]] = {(root.name, root.source): [graph.nodes[0].compat]}

            queue = deque([ROOT_INDEX])
            while queue:
                parent = graph.nodes[queue.popleft()]
                for decl in parent.manifest.dependencies:
                    if not self._wanted(decl):
                        continue
                    compat = self._class_for(decl, seen)
                    key = (decl.package, decl.source, compat)
                    child_idx = index.get(key)
                    if child_idx is None:
                        manifest = self._fetch(parent, decl, pins.get(key))
                        child_idx = len(graph.nodes)
                        graph.nodes.append(RequirementNode(
                            index=child_idx,
                            name=decl.package,
                            source=decl.source,
                            compat=compat,
                            manifest=manifest,
                            depth=parent.depth + 1,
                        ))
                        index[key] = child_idx
                        seen.setdefault((decl.package, decl.source), []).append(compat)
                        queue.append(child_idx)
                    graph.nodes[child_idx].requirements.append(Requirement(parent.index, decl))
                    graph.edges.setdefault(parent.index, []).append(Edge(parent.index, child_idx, decl))

        if is_debug_enabled(logger):
            logger.debug(
                "Constraint graph built",
                extra=extra_context(
                    event="function_exit",
                    component="graph",
                    action="build",
                    target=root.name,
                    count=len(graph.nodes),
                    outcome=f"{len(pins)} pinned",
                    duration_ms=t.duration_ms(),
                ),
            )
        return graph
