"""Dependency resolution package.

- graph.py: constraint graph construction from manifests
- resolver.py: version selection per package and compatibility class
- features.py: feature activation fixpoint
- report.py: deterministic listing, count and export
- service.py: ``resolve`` entry point returning a ResolutionOutcome
"""

from .errors import (
    CyclicDependency,
    InvalidSelection,
    ManifestUnavailable,
    ResolutionError,
    UnknownFeature,
    UnsatisfiableConstraints,
)
from .models import (
    CliFeatureSelection,
    PackageIdentity,
    ResolutionOutcome,
    ResolutionReport,
    ResolutionRequest,
    ResolvedGraph,
    ResolveOptions,
)
from .service import resolve

__all__ = [
    "CliFeatureSelection",
    "CyclicDependency",
    "InvalidSelection",
    "ManifestUnavailable",
    "PackageIdentity",
    "ResolutionError",
    "ResolutionOutcome",
    "ResolutionReport",
    "ResolutionRequest",
    "ResolvedGraph",
    "ResolveOptions",
    "UnknownFeature",
    "UnsatisfiableConstraints",
    "resolve",
]
