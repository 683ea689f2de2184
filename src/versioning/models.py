"""Data models for version requirements and semver compatibility classes."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import semantic_version


# Semver-compatibility bucket: (major,), (0, minor) or (0, 0, patch).
# The empty tuple is the wildcard class of requirements without a lower bound.
CompatClass = Tuple[int, ...]
WILDCARD_CLASS: CompatClass = ()

# (major, minor, patch) of a requirement's lower bound; missing parts are None.
LowerBound = Tuple[int, Optional[int], Optional[int]]


def compat_class(version: semantic_version.Version) -> CompatClass:
    """Return the compatibility class a concrete version belongs to."""
    if version.major > 0:
        return (version.major,)
    if version.minor > 0:
        return (0, version.minor)
    return (0, 0, version.patch)


@dataclass(frozen=True)
class VersionReq:
    """Normalized version requirement.

    ``raw`` is the requirement as written by the requirer, ``expression`` is
    the equivalent ``semantic_version.SimpleSpec`` expression and ``lower``
    the lowest version the requirement admits (None when unbounded below).
    """
    raw: str
    expression: str
    lower: Optional[LowerBound] = None
    _spec: semantic_version.SimpleSpec = field(default=None, compare=False, repr=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "_spec", semantic_version.SimpleSpec(self.expression))

    def __str__(self) -> str:
        return self.raw

    @property
    def spec(self) -> semantic_version.SimpleSpec:
        return self._spec

    def matches(self, version: semantic_version.Version) -> bool:
        """Return True if ``version`` satisfies this requirement."""
        return self._spec.match(version)

    @property
    def compat_class(self) -> CompatClass:
        """Compatibility class implied by the lower bound of the requirement."""
        if self.lower is None:
            return WILDCARD_CLASS
        major, minor, patch = self.lower
        if major > 0:
            return (major,)
        if minor is None:
            return (0,)
        if minor > 0:
            return (0, minor)
        if patch is None:
            return (0, 0)
        return (0, 0, patch)
