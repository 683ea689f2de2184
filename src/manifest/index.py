"""Offline reader for a crates.io-style registry index.

The index is a directory tree holding one file per package, with one JSON
object per line and per published version::

    {"name": "foo", "vers": "1.2.0", "deps": [...], "features": {...},
     "yanked": false, "links": null}

Files are laid out by name length: ``1/a``, ``2/ab``, ``3/a/abc`` and
``ab/cd/abcd`` for longer names.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from common.logging_utils import extra_context, is_debug_enabled
from versioning.parser import parse_requirement

from .models import DepKind, DependencyDeclaration, Manifest, Source

logger = logging.getLogger(__name__)

_KINDS = {"normal": DepKind.NORMAL, "build": DepKind.BUILD, "dev": DepKind.DEV}


def index_relpath(name: str) -> str:
    """Relative path of a package's index file."""
    n = name.lower()
    if len(n) == 1:
        return os.path.join("1", n)
    if len(n) == 2:
        return os.path.join("2", n)
    if len(n) == 3:
        return os.path.join("3", n[0], n)
    return os.path.join(n[:2], n[2:4], n)


class IndexReader:
    """Parses index files into manifests, caching each package's entries."""

    def __init__(self, root: str, source: Optional[Source] = None):
        self.root = root
        self.source = source or Source.registry()
        self._cache: Dict[str, List[Manifest]] = {}
        self._yanked: Dict[str, set] = {}

    def _dependency(self, raw: Dict[str, Any]) -> DependencyDeclaration:
        key = raw["name"]
        registry = raw.get("registry")
        return DependencyDeclaration(
            name=key,
            req=parse_requirement(raw.get("req")),
            package=raw.get("package") or key,
            kind=_KINDS.get(raw.get("kind") or "normal", DepKind.NORMAL),
            optional=bool(raw.get("optional", False)),
            default_features=bool(raw.get("default_features", True)),
            features=tuple(raw.get("features") or ()),
            source=Source.registry(registry) if registry else self.source,
            target=raw.get("target"),
        )

    def _entry(self, raw: Dict[str, Any]) -> Manifest:
        features = dict(raw.get("features") or {})
        features.update(raw.get("features2") or {})
        return Manifest(
            name=raw["name"],
            version=raw["vers"],
            source=self.source,
            dependencies=[self._dependency(d) for d in raw.get("deps") or []],
            features={k: list(v) for k, v in features.items()},
            links=raw.get("links"),
        )

    def _load(self, name: str) -> List[Manifest]:
        if name in self._cache:
            return self._cache[name]

        entries: List[Manifest] = []
        yanked = set()
        path = os.path.join(self.root, index_relpath(name))
        try:
            with open(path, "r", encoding="utf-8") as fh:
                lines = fh.readlines()
        except FileNotFoundError:
            lines = []

        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                raw = json.loads(line)
                if raw.get("name", "").lower() != name.lower():
                    logger.warning("Index entry %s:%d names `%s`, expected `%s`", path, lineno, raw.get("name"), name)
                    continue
                manifest = self._entry(raw)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed index entry %s:%d: %s", path, lineno, e)
                continue
            entries.append(manifest)
            if raw.get("yanked"):
                yanked.add(manifest.version)

        if is_debug_enabled(logger):
            logger.debug(
                "Loaded index file",
                extra=extra_context(
                    event="index_load",
                    component="index",
                    action="load",
                    target=name,
                    count=len(entries),
                ),
            )
        self._cache[name] = entries
        self._yanked[name] = yanked
        return entries

    def versions(self, name: str, include_yanked: bool = False) -> List[str]:
        """Published versions of ``name``, yanked ones excluded by default."""
        entries = self._load(name)
        skip = set() if include_yanked else self._yanked.get(name, set())
        return [m.version for m in entries if m.version not in skip]

    def manifest(self, name: str, version: str) -> Optional[Manifest]:
        """Manifest of one published version, or None."""
        for m in self._load(name):
            if m.version == version:
                return m
        return None
