"""Local project glue: manifest path discovery and an on-disk registry."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from constants import Constants
from resolution.errors import ManifestUnavailable
from versioning.models import VersionReq
from versioning.parser import highest_matching

from .index import IndexReader
from .models import Manifest, Source, SourceKind
from .registry import ManifestLookup, VersionOracle
from .toml_parser import ManifestParseError, parse_manifest

logger = logging.getLogger(__name__)


class ManifestPathError(Exception):
    """The user-supplied project path does not lead to a manifest.

    ``user_path`` is kept exactly as supplied so messages match what the
    user typed rather than its canonical form.
    """

    def __init__(self, user_path: str, reason: str):
        self.user_path = user_path
        self.reason = reason
        super().__init__(f"bad path `{user_path}`: {reason}")


class BadPath(ManifestPathError):
    """The path does not exist or is neither a manifest nor a directory."""


class ManifestNotFound(ManifestPathError):
    """The directory exists but holds no manifest."""

    def __init__(self, user_path: str):
        super().__init__(user_path, f"{Constants.MANIFEST_FILE} not found")


def get_manifest_path(user_path: Optional[str] = None) -> str:
    """Return the canonical manifest path for a file or directory argument.

    Defaults to the current directory. A directory gets the conventional
    manifest filename appended.

    Raises:
        BadPath: if the path cannot be canonicalized or is not a directory/manifest
        ManifestNotFound: if the directory holds no manifest
    """
    raw = user_path if user_path is not None else os.getcwd()
    try:
        path = Path(raw).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise BadPath(raw, str(e)) from e

    if path.name != Constants.MANIFEST_FILE:
        if not path.is_dir():
            raise BadPath(raw, f"not a {Constants.MANIFEST_FILE}")
        path = path / Constants.MANIFEST_FILE

    if path.exists():
        return str(path)
    raise ManifestNotFound(raw)


class LocalRegistry(ManifestLookup, VersionOracle):
    """Serves the workspace root, path dependencies and an optional local index."""

    def __init__(self, manifest_path: str, index_path: Optional[str] = None,
                 registry: str = Constants.DEFAULT_REGISTRY):
        root_dir = os.path.dirname(os.path.abspath(manifest_path))
        self.root = parse_manifest(manifest_path, Source(SourceKind.WORKSPACE, root_dir))
        self.registry_source = Source.registry(registry)
        self.index = IndexReader(index_path, self.registry_source) if index_path else None
        self._path_manifests: Dict[str, Manifest] = {}

    def _path_manifest(self, name: str, source: Source) -> Manifest:
        if source.location not in self._path_manifests:
            manifest_file = os.path.join(source.location, Constants.MANIFEST_FILE)
            if not os.path.isfile(manifest_file):
                raise ManifestUnavailable(name, source, f"{manifest_file} does not exist")
            try:
                self._path_manifests[source.location] = parse_manifest(manifest_file, source)
            except ManifestParseError as e:
                raise ManifestUnavailable(name, source, e.reason) from e
        manifest = self._path_manifests[source.location]
        if manifest.name != name:
            raise ManifestUnavailable(name, source, f"found package `{manifest.name}` instead")
        return manifest

    def _check_registry(self, name: str, source: Source) -> IndexReader:
        if self.index is None:
            raise ManifestUnavailable(name, source, "no registry index configured (use --index)")
        if source != self.registry_source:
            raise ManifestUnavailable(name, source, f"registry `{source.location}` is not configured")
        return self.index

    def get_manifest(self, name: str, source: Source, req: VersionReq) -> Manifest:
        if source.kind == SourceKind.WORKSPACE:
            if name == self.root.name and source == self.root.source:
                return self.root
            raise ManifestUnavailable(name, source, "not the workspace root")
        if source.kind == SourceKind.PATH:
            return self._path_manifest(name, source)
        if source.kind == SourceKind.GIT:
            raise ManifestUnavailable(name, source, "git sources are not fetched")

        index = self._check_registry(name, source)
        chosen = highest_matching(index.versions(name), [req])
        if chosen is None:
            raise ManifestUnavailable(name, source, f"no published version matches `{req}`")
        return index.manifest(name, chosen)

    def available_versions(self, name: str, source: Source) -> List[str]:
        if source.kind == SourceKind.WORKSPACE:
            return [self.root.version] if name == self.root.name else []
        if source.kind == SourceKind.PATH:
            try:
                return [self._path_manifest(name, source).version]
            except ManifestUnavailable as e:
                logger.debug("No versions for %s: %s", name, e)
                return []
        if source.kind == SourceKind.GIT or self.index is None or source != self.registry_source:
            return []
        return self.index.versions(name)
