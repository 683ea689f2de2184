"""Tests for Cargo requirement parsing and version selection helpers."""

import pytest
import semantic_version

from versioning.models import WILDCARD_CLASS, compat_class
from versioning.parser import exact, highest_matching, parse_requirement, parse_version


def v(text):
    return semantic_version.Version(text)


class TestParseRequirement:
    """Cargo requirement syntax normalized onto SimpleSpec."""

    def test_bare_version_is_caret(self):
        req = parse_requirement("1.2")
        assert req.expression == "^1.2"
        assert req.matches(v("1.9.0"))
        assert not req.matches(v("2.0.0"))
        assert not req.matches(v("1.1.9"))

    def test_caret_on_zero_major_is_minor_bounded(self):
        req = parse_requirement("^0.5")
        assert req.matches(v("0.5.3"))
        assert not req.matches(v("0.6.0"))

    def test_equals_pins_exact_version(self):
        req = parse_requirement("=1.0.0")
        assert req.expression == "==1.0.0"
        assert req.matches(v("1.0.0"))
        assert not req.matches(v("1.0.1"))

    def test_tilde(self):
        req = parse_requirement("~1.2")
        assert req.matches(v("1.2.7"))
        assert not req.matches(v("1.3.0"))

    def test_wildcard_component(self):
        req = parse_requirement("1.*")
        assert req.expression == "==1.*"
        assert req.matches(v("1.7.2"))
        assert not req.matches(v("2.0.0"))

    @pytest.mark.parametrize("raw", [None, "", "   ", "*"])
    def test_missing_requirement_means_any(self, raw):
        req = parse_requirement(raw)
        assert req.expression == "*"
        assert req.lower is None
        assert req.matches(v("0.0.1"))
        assert req.matches(v("42.0.0"))

    def test_comma_separated_comparators_intersect(self):
        req = parse_requirement(">= 1.2, < 1.5")
        assert req.expression == ">=1.2,<1.5"
        assert req.matches(v("1.4.9"))
        assert not req.matches(v("1.5.0"))
        assert not req.matches(v("1.1.0"))

    def test_raw_text_is_kept_for_messages(self):
        assert str(parse_requirement("  ^1.1 ")) == "^1.1"

    @pytest.mark.parametrize("raw", ["abc", "1.2.3.4", "1.0,", ">>1", "1..2"])
    def test_invalid_requirements_raise(self, raw):
        with pytest.raises(ValueError):
            parse_requirement(raw)


class TestCompatibilityClasses:
    """Classes derived from requirement lower bounds and concrete versions."""

    @pytest.mark.parametrize("raw,expected", [
        ("^1.4", (1,)),
        (">=2.0, <3", (2,)),
        ("^0.5", (0, 5)),
        ("0.0.3", (0, 0, 3)),
        ("~0", (0,)),
        ("0.0", (0, 0)),
        ("*", WILDCARD_CLASS),
        ("<2", WILDCARD_CLASS),
    ])
    def test_requirement_class(self, raw, expected):
        assert parse_requirement(raw).compat_class == expected

    @pytest.mark.parametrize("text,expected", [
        ("3.1.4", (3,)),
        ("0.7.1", (0, 7)),
        ("0.0.9", (0, 0, 9)),
    ])
    def test_version_class(self, text, expected):
        assert compat_class(v(text)) == expected

    def test_exact_requirement_class_matches_its_version(self):
        assert exact("0.3.1").compat_class == compat_class(v("0.3.1"))


class TestVersionHelpers:
    """parse_version and highest_matching."""

    def test_parse_version_rejects_non_semver(self):
        assert parse_version("1.0") is None
        assert parse_version("banana") is None
        assert parse_version(" 1.0.0 ") == v("1.0.0")

    def test_highest_matching_picks_maximum(self):
        candidates = ["1.0.0", "1.2.0", "2.0.0", "1.1.5", "not-a-version"]
        assert highest_matching(candidates, [parse_requirement("^1")]) == "1.2.0"

    def test_highest_matching_intersects_requirements(self):
        candidates = ["1.0.0", "1.1.0", "1.2.0"]
        reqs = [parse_requirement("^1.0"), parse_requirement("<1.2")]
        assert highest_matching(candidates, reqs) == "1.1.0"

    def test_highest_matching_without_candidates(self):
        assert highest_matching(["1.0.0"], [parse_requirement("^2")]) is None
        assert highest_matching([], [parse_requirement("*")]) is None
