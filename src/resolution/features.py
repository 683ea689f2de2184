"""Feature activation over a resolved graph.

A work queue of (package, feature value) requests is drained until nothing
changes. Feature sets only ever grow, every request is processed at most
once, and the number of distinct requests is bounded by the features and
dependencies declared in the graph, so the loop always terminates.

Which optional dependencies end up present is decided here as well: an
optional edge becomes active only when a feature turns it on, and weak
``dep?/feature`` tokens never activate an edge on their own.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Set, Tuple

from common.logging_utils import extra_context, is_debug_enabled, Timer
from constants import Constants
from manifest.feature_values import (
    DependencyActivation,
    DependencyFeature,
    FeatureValue,
    PlainFeature,
    WeakDependencyFeature,
    parse_feature_value,
)

from .errors import InvalidSelection, UnknownFeature
from .models import CliFeatureSelection, FeatureSet, PackageIdentity, ResolvedEdge, ResolvedGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Arrival:
    """Queue marker: the package just became present."""


_ARRIVAL = _Arrival()


@dataclass
class FeatureActivation:
    """Fixpoint result: features per present package and the active edges."""
    features: FeatureSet = field(default_factory=dict)
    present: Set[PackageIdentity] = field(default_factory=set)
    active_edges: Dict[PackageIdentity, Set[int]] = field(default_factory=dict)


class FeatureActivationEngine:
    """Propagates CLI and manifest feature requests through a ResolvedGraph.

    ``on_activate(package, feature)`` is called for every feature inserted,
    in insertion order.
    """

    def __init__(self, graph: ResolvedGraph, selection: Optional[CliFeatureSelection] = None,
                 on_activate: Optional[Callable[[PackageIdentity, str], None]] = None):
        self.graph = graph
        self.selection = selection or CliFeatureSelection()
        self.on_activate = on_activate
        self._features: FeatureSet = {}
        self._present: Set[PackageIdentity] = set()
        self._active: Dict[PackageIdentity, Set[int]] = {}
        self._parked: Dict[Tuple[PackageIdentity, int], List[str]] = {}
        self._queue: Deque[Tuple[PackageIdentity, object]] = deque()
        self._seen: Set[Tuple[PackageIdentity, object]] = set()
        self._implicit: Dict[PackageIdentity, Set[str]] = {}

    def run(self) -> FeatureActivation:
        """Drain the queue and return the activation result.

        Raises:
            InvalidSelection: if a CLI token names a package outside the graph
            UnknownFeature: if a token names a feature its package lacks
        """
        root = self.graph.root
        seeds = self._validate_selection()

        with Timer() as t:
            self._mark_present(root)
            if self.selection.uses_default_features:
                self._enqueue(root, PlainFeature(Constants.DEFAULT_FEATURE))
            for value in seeds:
                self._enqueue(root, value)

            processed = 0
            while self._queue:
                pkg, value = self._queue.popleft()
                self._process(pkg, value)
                processed += 1

        if is_debug_enabled(logger):
            logger.debug(
                "Feature fixpoint reached",
                extra=extra_context(
                    event="function_exit",
                    component="features",
                    action="run",
                    count=processed,
                    outcome=f"{len(self._present)} present",
                    duration_ms=t.duration_ms(),
                ),
            )
        return FeatureActivation(
            features={pkg: set(self._features.get(pkg, set())) for pkg in self._present},
            present=set(self._present),
            active_edges={pkg: set(idxs) for pkg, idxs in self._active.items()},
        )

    def _validate_selection(self) -> List[FeatureValue]:
        """Parse CLI tokens, rejecting qualifiers that are not dependencies of the root."""
        root = self.graph.root
        dep_names = {e.declaration.name for e in self.graph.edges_of(root)}
        values: List[FeatureValue] = []
        for token in self.selection.features:
            try:
                value = parse_feature_value(token)
            except ValueError as exc:
                raise InvalidSelection(token, str(exc)) from exc
            if isinstance(value, (DependencyFeature, WeakDependencyFeature)):
                if value.dep not in dep_names:
                    if value.dep != root.name:
                        raise InvalidSelection(token, f"`{value.dep}` is not a dependency of `{root.name}`")
                    value = PlainFeature(value.feature)
            elif isinstance(value, DependencyActivation) and value.dep not in dep_names:
                raise InvalidSelection(token, f"`{value.dep}` is not a dependency of `{root.name}`")
            values.append(value)
        return values

    def _enqueue(self, pkg: PackageIdentity, value) -> None:
        key = (pkg, value)
        if key in self._seen:
            return
        self._seen.add(key)
        self._queue.append(key)

    def _insert(self, pkg: PackageIdentity, feature: str) -> None:
        features = self._features.setdefault(pkg, set())
        if feature in features:
            return
        features.add(feature)
        if self.on_activate is not None:
            self.on_activate(pkg, feature)

    def _implicit_features(self, pkg: PackageIdentity) -> Set[str]:
        if pkg not in self._implicit:
            self._implicit[pkg] = self.graph.manifest(pkg).implicit_features()
        return self._implicit[pkg]

    def _parse(self, pkg: PackageIdentity, token: str) -> FeatureValue:
        try:
            return parse_feature_value(token)
        except ValueError as exc:
            raise UnknownFeature(pkg.name, token) from exc

    def _mark_present(self, pkg: PackageIdentity) -> None:
        if pkg in self._present:
            return
        self._present.add(pkg)
        self._features.setdefault(pkg, set())
        self._enqueue(pkg, _ARRIVAL)

    def _arrive(self, pkg: PackageIdentity) -> None:
        """Activate the non-optional edges of a newly present package."""
        if self.selection.all_features:
            for feature in sorted(self.graph.manifest(pkg).feature_universe()):
                self._enqueue(pkg, PlainFeature(feature))
        for idx, edge in enumerate(self.graph.edges_of(pkg)):
            if not edge.declaration.optional:
                self._activate_edge(pkg, idx, edge)

    def _edges_named(self, pkg: PackageIdentity, dep: str, token: str) -> List[Tuple[int, ResolvedEdge]]:
        edges = [(i, e) for i, e in enumerate(self.graph.edges_of(pkg)) if e.declaration.name == dep]
        if not edges and not self.graph.manifest(pkg).dependencies_named(dep):
            raise UnknownFeature(pkg.name, token)
        if not edges:
            logger.debug("Ignoring %s on %s: dependency kind is not resolved", token, pkg)
        return edges

    def _activate_edge(self, pkg: PackageIdentity, idx: int, edge: ResolvedEdge) -> None:
        active = self._active.setdefault(pkg, set())
        if idx in active:
            return
        active.add(idx)
        decl = edge.declaration
        self._mark_present(edge.target)
        if decl.default_features:
            self._enqueue(edge.target, PlainFeature(Constants.DEFAULT_FEATURE))
        for token in decl.features:
            self._enqueue(edge.target, self._parse(edge.target, token))
        for feature in self._parked.pop((pkg, idx), []):
            self._enqueue(edge.target, PlainFeature(feature))

    def _activate_dep(self, pkg: PackageIdentity, dep: str, token: str) -> List[Tuple[int, ResolvedEdge]]:
        edges = self._edges_named(pkg, dep, token)
        for idx, edge in edges:
            self._activate_edge(pkg, idx, edge)
        return edges

    def _process(self, pkg: PackageIdentity, value) -> None:
        if value is _ARRIVAL:
            self._arrive(pkg)
            return

        manifest = self.graph.manifest(pkg)
        if isinstance(value, PlainFeature):
            name = value.name
            if name in manifest.features:
                self._insert(pkg, name)
                for token in manifest.features[name]:
                    self._enqueue(pkg, self._parse(pkg, token))
            elif name in self._implicit_features(pkg):
                self._insert(pkg, name)
                self._activate_dep(pkg, name, name)
            elif name != Constants.DEFAULT_FEATURE:
                raise UnknownFeature(pkg.name, name)
        elif isinstance(value, DependencyActivation):
            self._activate_dep(pkg, value.dep, str(value))
        elif isinstance(value, DependencyFeature):
            if value.dep in self._implicit_features(pkg):
                self._insert(pkg, value.dep)
            for _, edge in self._activate_dep(pkg, value.dep, str(value)):
                self._enqueue(edge.target, PlainFeature(value.feature))
        elif isinstance(value, WeakDependencyFeature):
            active = self._active.get(pkg, set())
            for idx, edge in self._edges_named(pkg, value.dep, str(value)):
                if idx in active:
                    self._enqueue(edge.target, PlainFeature(value.feature))
                else:
                    self._parked.setdefault((pkg, idx), []).append(value.feature)
