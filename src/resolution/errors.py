"""Typed errors produced by a resolution run.

Components raise these; ``resolution.service.resolve`` turns any of them into
the ``error`` of a ResolutionOutcome so callers receive a value, not an
exception.
"""

from typing import List, Sequence


class ResolutionError(Exception):
    """Base class for every terminal resolution failure."""


class ManifestUnavailable(ResolutionError):
    """A referenced package's manifest cannot be located."""

    def __init__(self, name: str, source=None, reason: str = ""):
        self.name = name
        self.source = source
        self.reason = reason
        where = f" from {source}" if source is not None else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"manifest for package `{name}`{where} is unavailable{detail}")


class UnsatisfiableConstraints(ResolutionError):
    """No available version satisfies every requirement on a package."""

    def __init__(self, name: str, requirers: Sequence[str], ranges: Sequence[str], available: Sequence[str] = ()):
        self.name = name
        self.requirers: List[str] = list(requirers)
        self.ranges: List[str] = list(ranges)
        self.available: List[str] = list(available)
        lines = [f"failed to select a version for `{name}` satisfying every requirement:"]
        for requirer, rng in zip(self.requirers, self.ranges):
            lines.append(f"    `{requirer}` requires `{name} {rng}`")
        if self.available:
            lines.append(f"  available versions: {', '.join(self.available)}")
        else:
            lines.append("  no versions are available")
        super().__init__("\n".join(lines))


class UnknownFeature(ResolutionError):
    """A feature token refers to a feature the target package does not declare."""

    def __init__(self, package: str, feature: str):
        self.package = package
        self.feature = feature
        super().__init__(f"package `{package}` does not have the feature `{feature}`")


class InvalidSelection(ResolutionError):
    """The CLI feature selection contradicts the resolved graph."""

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"invalid feature selection `{token}`: {reason}")


class CyclicDependency(ResolutionError):
    """Normal dependency edges form a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__("cyclic package dependency: " + " -> ".join(self.cycle))
