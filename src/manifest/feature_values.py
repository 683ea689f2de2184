"""Feature activation tokens.

A token inside a ``[features]`` table, a dependency's ``features`` list or a
``--features`` argument is parsed once into one of the tagged values below so
the activation engine never has to look at raw strings.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class PlainFeature:
    """``name``: a feature of the package itself (or an implicit optional-dep feature)."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DependencyActivation:
    """``dep:name``: turn on an optional dependency without exposing a feature."""
    dep: str

    def __str__(self) -> str:
        return f"dep:{self.dep}"


@dataclass(frozen=True)
class DependencyFeature:
    """``dep/feature``: turn on ``dep`` (if optional) and ``feature`` on it."""
    dep: str
    feature: str

    def __str__(self) -> str:
        return f"{self.dep}/{self.feature}"


@dataclass(frozen=True)
class WeakDependencyFeature:
    """``dep?/feature``: enable ``feature`` only if ``dep`` is present anyway."""
    dep: str
    feature: str

    def __str__(self) -> str:
        return f"{self.dep}?/{self.feature}"


FeatureValue = Union[PlainFeature, DependencyActivation, DependencyFeature, WeakDependencyFeature]


def parse_feature_value(token: str) -> FeatureValue:
    """Parse a feature token.

    Raises:
        ValueError: on empty tokens or tokens with empty components
    """
    text = token.strip()
    if not text:
        raise ValueError("Empty feature token")

    if text.startswith("dep:"):
        dep = text[4:]
        if not dep or "/" in dep:
            raise ValueError(f"Invalid dependency activation {token!r}")
        return DependencyActivation(dep)

    if "/" in text:
        dep, feature = text.split("/", 1)
        weak = dep.endswith("?")
        if weak:
            dep = dep[:-1]
        if not dep or not feature or "/" in feature:
            raise ValueError(f"Invalid dependency feature {token!r}")
        if weak:
            return WeakDependencyFeature(dep, feature)
        return DependencyFeature(dep, feature)

    return PlainFeature(text)
