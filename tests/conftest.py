"""Shared fixtures: manifest factories and isolation of global configuration."""

import logging

import pytest

from constants import Constants
from manifest.models import Manifest, Source, SourceKind, dependency
from manifest.registry import InMemoryRegistry
from resolution import CliFeatureSelection, PackageIdentity, ResolutionRequest, ResolveOptions, resolve

WORKSPACE = Source(SourceKind.WORKSPACE, "/work/app")
REGISTRY = Source.registry()

_CONSTANT_NAMES = [
    "INDEX_PATH",
    "INCLUDE_DEV",
    "INCLUDE_BUILD",
    "ALLOW_MULTIPLE_VERSIONS",
    "INCLUDE_ROOT",
    "OUTPUT_FORMAT",
]


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep Constants, env vars, config discovery and logging setup from leaking between tests."""
    for name in _CONSTANT_NAMES:
        monkeypatch.setattr(Constants, name, getattr(Constants, name))
    monkeypatch.delenv(Constants.INDEX_ENV, raising=False)
    monkeypatch.delenv(Constants.LOG_LEVEL_ENV, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def pkg():
    """Factory for registry manifests: pkg(name, version, deps=[...], features={...})."""
    def _make(name, version, deps=(), features=None, links=None, source=REGISTRY):
        return Manifest(
            name=name,
            version=version,
            source=source,
            dependencies=list(deps),
            features=dict(features or {}),
            links=links,
        )
    return _make


@pytest.fixture
def dep():
    """Factory for declarations: dep("foo", "^1.0", optional=True, ...)."""
    return dependency


@pytest.fixture
def run(pkg):
    """Resolve a root manifest against registry manifests and return the outcome."""
    def _run(root_deps=(), registry=(), root_features=None, selection=None, options=None):
        root = pkg("app", "0.1.0", deps=root_deps, features=root_features, source=WORKSPACE)
        reg = InMemoryRegistry([root, *registry])
        request = ResolutionRequest(
            root=PackageIdentity("app", "0.1.0", WORKSPACE),
            manifests=reg,
            versions=reg,
            features=selection or CliFeatureSelection(),
            options=options or ResolveOptions(),
        )
        return resolve(request)
    return _run


def listing(report, include_root=False):
    """(name, version, features) triples in report order."""
    return [
        (p.name, p.version, report.features_of(p))
        for p in report.packages(include_root=include_root)
    ]


@pytest.fixture
def as_listing():
    return listing
