"""Data models for package manifests and their dependency declarations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from constants import Constants
from versioning.models import VersionReq
from versioning.parser import parse_requirement

from .feature_values import DependencyActivation, parse_feature_value


class SourceKind(Enum):
    """Where a package comes from."""
    WORKSPACE = "workspace"
    PATH = "path"
    GIT = "git"
    REGISTRY = "registry"


class DepKind(Enum):
    """Dependency table a declaration was found in."""
    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"


@dataclass(frozen=True)
class Source:
    """Source origin of a package: kind plus a kind-specific location."""
    kind: SourceKind
    location: str = Constants.DEFAULT_REGISTRY

    def __str__(self) -> str:
        return f"{self.kind.value}+{self.location}"

    @classmethod
    def registry(cls, location: str = Constants.DEFAULT_REGISTRY) -> "Source":
        return cls(SourceKind.REGISTRY, location)


@dataclass(frozen=True)
class DependencyDeclaration:
    """One dependency as declared by a requirer.

    ``name`` is the key the requirer uses for the dependency (feature tokens
    refer to it), ``package`` the real package name, which differs when the
    dependency is renamed.
    """
    name: str
    req: VersionReq
    package: Optional[str] = None
    kind: DepKind = DepKind.NORMAL
    optional: bool = False
    default_features: bool = True
    features: Tuple[str, ...] = ()
    source: Source = field(default_factory=Source.registry)
    target: Optional[str] = None

    def __post_init__(self):
        if self.package is None:
            object.__setattr__(self, "package", self.name)
        object.__setattr__(self, "features", tuple(self.features))


def dependency(name: str, req: str = "*", **kwargs) -> DependencyDeclaration:
    """Shorthand constructor taking the requirement as text."""
    return DependencyDeclaration(name=name, req=parse_requirement(req), **kwargs)


@dataclass
class Manifest:
    """Declared metadata of one package version."""
    name: str
    version: str
    source: Source = field(default_factory=Source.registry)
    dependencies: List[DependencyDeclaration] = field(default_factory=list)
    features: Dict[str, List[str]] = field(default_factory=dict)
    links: Optional[str] = None

    def dependencies_named(self, dep_name: str) -> List[DependencyDeclaration]:
        """Declarations whose requirer-side key is ``dep_name``."""
        return [d for d in self.dependencies if d.name == dep_name]

    def _explicit_dep_activations(self) -> Set[str]:
        explicit = set()
        for tokens in self.features.values():
            for token in tokens:
                value = parse_feature_value(token)
                if isinstance(value, DependencyActivation):
                    explicit.add(value.dep)
        return explicit

    def implicit_features(self) -> Set[str]:
        """Features implied by optional dependencies.

        Every optional dependency defines a feature of the same name unless a
        ``dep:`` token refers to it, or a declared feature already uses the name.
        """
        explicit = self._explicit_dep_activations()
        return {
            d.name for d in self.dependencies
            if d.optional and d.name not in explicit and d.name not in self.features
        }

    def feature_universe(self) -> Set[str]:
        """Every feature name this package exposes."""
        return set(self.features) | self.implicit_features()
