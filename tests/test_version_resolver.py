"""Tests for version selection over the requirement graph."""

import pytest

from conftest import REGISTRY, WORKSPACE
from manifest.registry import InMemoryRegistry
from resolution import PackageIdentity, ResolveOptions, UnsatisfiableConstraints
from resolution.graph import ConstraintGraphBuilder
from resolution.resolver import VersionResolver, resolve_graph

ROOT = PackageIdentity("app", "0.1.0", WORKSPACE)


def resolve_all(manifests, options=None):
    reg = InMemoryRegistry(manifests)
    builder = ConstraintGraphBuilder(reg, options, reg)
    return resolve_graph(builder, VersionResolver(reg, options), ROOT)


def versions_of(resolved, name):
    return sorted(p.version for p in resolved.packages() if p.name == name)


class TestVersionSelection:
    """Highest version satisfying every requirement of a partition."""

    def test_highest_version_wins(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("foo", "^1.0")], source=WORKSPACE),
            pkg("foo", "1.0.0"),
            pkg("foo", "1.2.0"),
            pkg("foo", "2.0.0"),
        ])
        assert versions_of(resolved, "foo") == ["1.2.0"]
        assert resolved.root == ROOT

    def test_intersection_of_requirements(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("shared", "^1.0")]),
            pkg("b", "1.0.0", deps=[dep("shared", ">=1.1, <1.3")]),
            pkg("shared", "1.0.0"),
            pkg("shared", "1.2.0"),
            pkg("shared", "1.3.0"),
        ])
        assert versions_of(resolved, "shared") == ["1.2.0"]

    def test_shared_dependency_is_one_identity(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("shared", "1")]),
            pkg("b", "1.0.0", deps=[dep("shared", "1.1")]),
            pkg("shared", "1.1.0"),
        ])
        shared = PackageIdentity("shared", "1.1.0", REGISTRY)
        a = PackageIdentity("a", "1.0.0", REGISTRY)
        b = PackageIdentity("b", "1.0.0", REGISTRY)
        assert resolved.dependencies(a) == {shared}
        assert resolved.dependencies(b) == {shared}
        assert len(resolved) == 4

    def test_incompatible_majors_coexist(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("shared", "^1")]),
            pkg("b", "1.0.0", deps=[dep("shared", "^2")]),
            pkg("shared", "1.5.0"),
            pkg("shared", "2.1.0"),
        ])
        assert versions_of(resolved, "shared") == ["1.5.0", "2.1.0"]

    def test_zero_minor_classes_coexist(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("x", "0.3"), dep("x4", "0.4", package="x")], source=WORKSPACE),
            pkg("x", "0.3.9"),
            pkg("x", "0.4.2"),
        ])
        assert versions_of(resolved, "x") == ["0.3.9", "0.4.2"]


class TestSelectedManifests:
    """Each identity is described by the manifest of its own version."""

    def test_lower_selection_drops_dependencies_of_higher_version(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("foo", "^1.0"), dep("bar", "1")], source=WORKSPACE),
            pkg("bar", "1.0.0", deps=[dep("foo", "=1.0.0")]),
            pkg("foo", "1.0.0"),
            pkg("foo", "1.2.0", deps=[dep("evil", "1")]),
            pkg("evil", "1.0.0"),
        ])
        foo = PackageIdentity("foo", "1.0.0", REGISTRY)

        assert [str(p) for p in resolved.packages()] == ["app 0.1.0", "bar 1.0.0", "foo 1.0.0"]
        assert resolved.manifest(foo).version == "1.0.0"
        assert resolved.dependencies(foo) == set()

    def test_every_manifest_matches_its_identity(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("shared", "^1.0")]),
            pkg("b", "1.0.0", deps=[dep("shared", ">=1.1, <1.3")]),
            pkg("shared", "1.2.0", features={"old": []}),
            pkg("shared", "1.3.0", features={"new": []}),
        ])
        for ident in resolved.packages():
            assert resolved.manifest(ident).version == ident.version
        shared = PackageIdentity("shared", "1.2.0", REGISTRY)
        assert resolved.manifest(shared).features == {"old": []}

    def test_merged_classes_use_the_selected_manifest(self, pkg, dep):
        resolved = resolve_all([
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("native", "^1")]),
            pkg("b", "1.0.0", deps=[dep("native", ">=0.5")]),
            pkg("native", "0.5.0", links="z"),
            pkg("native", "1.3.0", deps=[dep("modern", "1")], links="z"),
            pkg("native", "2.0.0", deps=[dep("future", "1")], links="z"),
            pkg("modern", "1.0.0"),
            pkg("future", "1.0.0"),
        ])
        native = PackageIdentity("native", "1.3.0", REGISTRY)

        assert versions_of(resolved, "native") == ["1.3.0"]
        assert versions_of(resolved, "future") == []
        assert {p.name for p in resolved.dependencies(native)} == {"modern"}

    def test_oscillating_selection_is_reported(self, pkg, dep):
        with pytest.raises(UnsatisfiableConstraints) as exc:
            resolve_all([
                pkg("app", "0.1.0", deps=[dep("a", ">=1")], source=WORKSPACE),
                pkg("a", "1.0.0"),
                pkg("a", "2.0.0", deps=[dep("c", "=1.0.0")]),
                pkg("c", "1.0.0", deps=[dep("a", "=1.0.0")]),
            ])
        assert exc.value.name == "a"
        assert exc.value.requirers == ["app 0.1.0", "c 1.0.0"]
        assert exc.value.ranges == [">=1", "=1.0.0"]


class TestUnsatisfiable:
    """Conflicts name the package, every requirer and every range."""

    def test_conflict_names_both_requirers(self, pkg, dep):
        with pytest.raises(UnsatisfiableConstraints) as exc:
            resolve_all([
                pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
                pkg("a", "1.0.0", deps=[dep("shared", "=1.0.0")]),
                pkg("b", "1.0.0", deps=[dep("shared", "^1.1")]),
                pkg("shared", "1.0.0"),
                pkg("shared", "1.1.0"),
            ])
        err = exc.value
        assert err.name == "shared"
        assert err.requirers == ["a 1.0.0", "b 1.0.0"]
        assert err.ranges == ["=1.0.0", "^1.1"]
        assert sorted(err.available) == ["1.0.0", "1.1.0"]
        assert "`a 1.0.0` requires `shared =1.0.0`" in str(err)
        assert "`b 1.0.0` requires `shared ^1.1`" in str(err)

    def test_single_version_mode_merges_classes(self, pkg, dep):
        manifests = [
            pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
            pkg("a", "1.0.0", deps=[dep("shared", "^1")]),
            pkg("b", "1.0.0", deps=[dep("shared", "^2")]),
            pkg("shared", "1.5.0"),
            pkg("shared", "2.1.0"),
        ]
        with pytest.raises(UnsatisfiableConstraints) as exc:
            resolve_all(manifests, ResolveOptions(allow_multiple_versions=False))
        assert exc.value.ranges == ["^1", "^2"]

    def test_links_forbid_coexistence(self, pkg, dep):
        with pytest.raises(UnsatisfiableConstraints) as exc:
            resolve_all([
                pkg("app", "0.1.0", deps=[dep("a", "1"), dep("b", "1")], source=WORKSPACE),
                pkg("a", "1.0.0", deps=[dep("native", "^1")]),
                pkg("b", "1.0.0", deps=[dep("native", "^2")]),
                pkg("native", "1.0.0", links="z"),
                pkg("native", "2.0.0", links="z"),
            ])
        assert exc.value.name == "native"

    def test_no_available_version_matches(self, pkg, dep):
        with pytest.raises(UnsatisfiableConstraints) as exc:
            resolve_all([
                pkg("app", "0.1.0", deps=[dep("foo", "^3")], source=WORKSPACE),
                pkg("foo", "1.0.0"),
                pkg("foo", "2.0.0"),
            ])
        assert exc.value.requirers == ["app 0.1.0"]
        assert exc.value.ranges == ["^3"]
        assert sorted(exc.value.available) == ["1.0.0", "2.0.0"]
