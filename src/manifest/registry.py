"""Manifest lookup and available-version capabilities.

The resolver never fetches anything itself: it is handed a ManifestLookup and
a VersionOracle. ``InMemoryRegistry`` serves both from manifests registered up
front; ``manifest.workspace.LocalRegistry`` serves them from disk.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from resolution.errors import ManifestUnavailable
from versioning.models import VersionReq
from versioning.parser import highest_matching

from .models import Manifest, Source

logger = logging.getLogger(__name__)


class ManifestLookup(ABC):
    """Produces the manifest of a package admitted by a requirement."""

    @abstractmethod
    def get_manifest(self, name: str, source: Source, req: VersionReq) -> Manifest:
        """Return the manifest for ``name`` from ``source`` matching ``req``.

        Raises:
            ManifestUnavailable: if no such manifest can be located
        """


class VersionOracle(ABC):
    """Lists the versions of a package available from a source."""

    @abstractmethod
    def available_versions(self, name: str, source: Source) -> List[str]:
        """Return every selectable version string (any order)."""


class InMemoryRegistry(ManifestLookup, VersionOracle):
    """Registry holding fully materialized manifests keyed by (name, source)."""

    def __init__(self, manifests=None):
        self._manifests: Dict[Tuple[str, Source], Dict[str, Manifest]] = {}
        for manifest in manifests or []:
            self.add(manifest)

    def add(self, manifest: Manifest) -> Manifest:
        """Register a manifest; a later manifest for the same version replaces it."""
        self._manifests.setdefault((manifest.name, manifest.source), {})[manifest.version] = manifest
        return manifest

    def available_versions(self, name: str, source: Source) -> List[str]:
        return list(self._manifests.get((name, source), {}))

    def get_manifest(self, name: str, source: Source, req: VersionReq) -> Manifest:
        versions = self._manifests.get((name, source))
        if not versions:
            raise ManifestUnavailable(name, source)
        chosen = highest_matching(versions, [req])
        if chosen is None:
            raise ManifestUnavailable(name, source, f"no version matches `{req}`")
        logger.debug("Serving manifest %s %s for requirement %s", name, chosen, req)
        return versions[chosen]
