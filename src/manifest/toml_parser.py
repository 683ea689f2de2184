"""Cargo.toml parser.

Reads the dependency tables and feature table of a manifest into a Manifest.
Dependencies may be given as a bare requirement string or as a table with
``version``, ``path``, ``git``, ``package``, ``optional``,
``default-features`` and ``features`` keys.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from constants import Constants
from versioning.parser import parse_requirement

from .feature_values import parse_feature_value
from .models import DepKind, DependencyDeclaration, Manifest, Source, SourceKind

logger = logging.getLogger(__name__)

_DEP_TABLES = {
    "dependencies": DepKind.NORMAL,
    "build-dependencies": DepKind.BUILD,
    "build_dependencies": DepKind.BUILD,
    "dev-dependencies": DepKind.DEV,
    "dev_dependencies": DepKind.DEV,
}


class ManifestParseError(Exception):
    """A manifest exists but cannot be read or is malformed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"failed to parse manifest at `{path}`: {reason}")


def _load_toml(path: str) -> Dict[str, Any]:
    try:
        import tomllib as toml  # type: ignore
    except ImportError:
        import tomli as toml  # type: ignore

    with open(path, "rb") as f:
        return toml.load(f) or {}


def _dependency(key: str, spec: Any, kind: DepKind, base_dir: str, target: Optional[str]) -> DependencyDeclaration:
    """Build one declaration from a dependency table entry."""
    if isinstance(spec, str):
        return DependencyDeclaration(name=key, req=parse_requirement(spec), kind=kind, target=target)
    if not isinstance(spec, dict):
        raise ValueError(f"dependency `{key}` must be a string or a table")

    if spec.get("workspace") is True:
        logger.warning("Dependency `%s` inherits from the workspace; treating its requirement as `*`", key)

    source = Source.registry(spec.get("registry", Constants.DEFAULT_REGISTRY))
    if "path" in spec:
        source = Source(SourceKind.PATH, os.path.normpath(os.path.join(base_dir, spec["path"])))
    elif "git" in spec:
        source = Source(SourceKind.GIT, spec["git"])

    default_features = spec.get("default-features", spec.get("default_features", True))
    features = spec.get("features", [])
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        raise ValueError(f"`features` of dependency `{key}` must be a list of strings")
    for token in features:
        parse_feature_value(token)

    return DependencyDeclaration(
        name=key,
        req=parse_requirement(spec.get("version")),
        package=spec.get("package", key),
        kind=kind,
        optional=bool(spec.get("optional", False)),
        default_features=bool(default_features),
        features=tuple(features),
        source=source,
        target=target,
    )


def _collect(tables: Dict[str, Any], base_dir: str, target: Optional[str]) -> List[DependencyDeclaration]:
    decls = []
    for table_name, kind in _DEP_TABLES.items():
        table = tables.get(table_name) or {}
        for key, spec in table.items():
            decls.append(_dependency(key, spec, kind, base_dir, target))
    return decls


def parse_manifest_data(data: Dict[str, Any], base_dir: str, source: Source) -> Manifest:
    """Build a Manifest from already-decoded TOML data.

    Raises:
        ValueError: on malformed tables, requirements or feature tokens
    """
    package = data.get("package") or data.get("project") or {}
    name = package.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("missing `package.name`")
    version = package.get("version", "0.0.0")
    if not isinstance(version, str):
        # `version.workspace = true` and friends
        logger.warning("Package `%s` does not declare a literal version; using 0.0.0", name)
        version = "0.0.0"

    dependencies = _collect(data, base_dir, None)
    for target, tables in (data.get("target") or {}).items():
        dependencies.extend(_collect(tables or {}, base_dir, target))

    features = data.get("features") or {}
    for feature, tokens in features.items():
        if not isinstance(tokens, list):
            raise ValueError(f"feature `{feature}` must be a list")
        for token in tokens:
            parse_feature_value(token)

    return Manifest(
        name=name,
        version=version,
        source=source,
        dependencies=dependencies,
        features={k: list(v) for k, v in features.items()},
        links=package.get("links"),
    )


def parse_manifest(path: str, source: Optional[Source] = None) -> Manifest:
    """Parse the Cargo.toml at ``path``.

    ``source`` defaults to a path source rooted at the manifest's directory.

    Raises:
        ManifestParseError: if the file cannot be read or is malformed
    """
    base_dir = os.path.dirname(os.path.abspath(path))
    if source is None:
        source = Source(SourceKind.PATH, base_dir)
    try:
        data = _load_toml(path)
        manifest = parse_manifest_data(data, base_dir, source)
    except OSError as e:
        raise ManifestParseError(path, str(e)) from e
    except ValueError as e:
        # tomllib.TOMLDecodeError is a ValueError
        raise ManifestParseError(path, str(e)) from e
    logger.debug("Parsed manifest %s %s (%d dependencies)", manifest.name, manifest.version, len(manifest.dependencies))
    return manifest
