"""Data models shared by the resolution pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from constants import Constants
from manifest.models import DependencyDeclaration, Manifest, Source
from versioning.parser import parse_version

from .errors import ResolutionError


@dataclass(frozen=True)
class PackageIdentity:
    """Uniqueness key of the resolved graph."""
    name: str
    version: str
    source: Source

    def __str__(self) -> str:
        return f"{self.name} {self.version}"

    def sort_key(self) -> Tuple[Any, ...]:
        """Name, then semantic version ascending, then source."""
        parsed = parse_version(self.version)
        if parsed is None:
            return (self.name, 1, self.version, str(self.source))
        return (self.name, 0, parsed, str(self.source))


# Activated feature names per resolved package.
FeatureSet = Dict[PackageIdentity, Set[str]]


@dataclass(frozen=True)
class CliFeatureSelection:
    """Feature flags requested on the command line.

    ``all_features`` turns on every feature of every resolved package, which
    makes ``no_default_features`` irrelevant.
    """
    all_features: bool = False
    no_default_features: bool = False
    features: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "features", tuple(self.features))

    @classmethod
    def from_strings(cls, values: Optional[Iterable[str]], all_features: bool = False,
                     no_default_features: bool = False) -> "CliFeatureSelection":
        """Build a selection from comma-or-space separated feature lists."""
        tokens: List[str] = []
        for value in values or []:
            for token in re.split(r"[\s,]+", value):
                if token and token not in tokens:
                    tokens.append(token)
        return cls(all_features=all_features, no_default_features=no_default_features, features=tuple(tokens))

    @property
    def uses_default_features(self) -> bool:
        return self.all_features or not self.no_default_features


@dataclass(frozen=True)
class ResolveOptions:
    """Resolver tunables."""
    include_dev: bool = False
    include_build: bool = False
    allow_multiple_versions: bool = True

    @classmethod
    def from_constants(cls) -> "ResolveOptions":
        return cls(
            include_dev=bool(Constants.INCLUDE_DEV),
            include_build=bool(Constants.INCLUDE_BUILD),
            allow_multiple_versions=bool(Constants.ALLOW_MULTIPLE_VERSIONS),
        )


@dataclass(frozen=True)
class ResolvedEdge:
    """A declaration of the requirer bound to the identity it resolved to."""
    declaration: DependencyDeclaration
    target: PackageIdentity


@dataclass
class ResolvedGraph:
    """Arena of resolved packages with index-addressable outgoing edges."""
    root: PackageIdentity
    manifests: Dict[PackageIdentity, Manifest] = field(default_factory=dict)
    edges: Dict[PackageIdentity, List[ResolvedEdge]] = field(default_factory=dict)

    def __contains__(self, pkg: PackageIdentity) -> bool:
        return pkg in self.manifests

    def __len__(self) -> int:
        return len(self.manifests)

    def packages(self) -> List[PackageIdentity]:
        """Every identity in deterministic report order."""
        return sorted(self.manifests, key=PackageIdentity.sort_key)

    def manifest(self, pkg: PackageIdentity) -> Manifest:
        return self.manifests[pkg]

    def edges_of(self, pkg: PackageIdentity) -> List[ResolvedEdge]:
        return self.edges.get(pkg, [])

    def dependencies(self, pkg: PackageIdentity) -> Set[PackageIdentity]:
        """Identities ``pkg`` directly depends on."""
        return {edge.target for edge in self.edges_of(pkg)}

    def restrict(self, present: Set[PackageIdentity],
                 active_edges: Dict[PackageIdentity, Set[int]]) -> "ResolvedGraph":
        """Return a new graph keeping only present packages and active edges."""
        pruned = ResolvedGraph(root=self.root)
        for pkg in self.packages():
            if pkg not in present:
                continue
            pruned.manifests[pkg] = self.manifests[pkg]
            active = active_edges.get(pkg, set())
            pruned.edges[pkg] = [
                edge for idx, edge in enumerate(self.edges_of(pkg))
                if idx in active and edge.target in present
            ]
        return pruned

    def _children(self, pkg: PackageIdentity) -> Iterator[PackageIdentity]:
        return iter(sorted(self.dependencies(pkg), key=PackageIdentity.sort_key))

    def find_cycle(self) -> Optional[List[PackageIdentity]]:
        """Return one dependency cycle (first node repeated at the end), if any.

        Depth-first with an explicit stack, so chain depth is not bounded by
        the interpreter's recursion limit.
        """
        done: Set[PackageIdentity] = set()
        for start in [self.root] + self.packages():
            if start in done or start not in self.manifests:
                continue
            path: List[PackageIdentity] = [start]
            on_path: Set[PackageIdentity] = {start}
            pending: List[Iterator[PackageIdentity]] = [self._children(start)]
            while pending:
                child = next(pending[-1], None)
                if child is None:
                    pending.pop()
                    finished = path.pop()
                    on_path.discard(finished)
                    done.add(finished)
                    continue
                if child in on_path:
                    return path[path.index(child):] + [child]
                if child not in done:
                    path.append(child)
                    on_path.add(child)
                    pending.append(self._children(child))
        return None


@dataclass
class ResolutionRequest:
    """Everything a resolution run needs; collaborators are injected."""
    root: PackageIdentity
    manifests: Any  # manifest.registry.ManifestLookup
    versions: Any  # manifest.registry.VersionOracle
    features: CliFeatureSelection = field(default_factory=CliFeatureSelection)
    options: ResolveOptions = field(default_factory=ResolveOptions)


@dataclass
class ResolutionReport:
    """Final resolved graph and the features activated on each package."""
    graph: ResolvedGraph
    features: FeatureSet

    def packages(self, include_root: bool = False) -> List[PackageIdentity]:
        return [p for p in self.graph.packages() if include_root or p != self.graph.root]

    def features_of(self, pkg: PackageIdentity) -> List[str]:
        """Activated features of ``pkg``, sorted."""
        return sorted(self.features.get(pkg, set()))


@dataclass
class ResolutionOutcome:
    """Result of ``resolve``: a report, or the error that ended the run."""
    report: Optional[ResolutionReport] = None
    error: Optional[ResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ResolutionReport:
        """Return the report, re-raising the stored error if there is one."""
        if self.error is not None:
            raise self.error
        return self.report
