"""Requirement and version parsing utilities.

Manifest requirements follow Cargo's grammar: a bare version is a caret
requirement, ``=`` pins an exact version, ``*`` / ``x`` wildcards may stand for
trailing components and comma separated comparators must all hold.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

import semantic_version

from .models import LowerBound, VersionReq

logger = logging.getLogger(__name__)

_BLOCK = re.compile(r"^(?P<op><=|>=|<|>|==|=|\^|~=|~)?(?P<version>[0-9xX*][0-9A-Za-z.*+\-]*)$")
_WILDCARDS = ("*", "x", "X")
_LOWER_BOUND_OPS = ("^", "~", "~=", "==", ">=", ">")


def _split_version(text: str) -> Tuple[List[str], str]:
    """Split ``1.2.3-pre+build`` into its numeric components and the suffix."""
    cut = len(text)
    for sep in ("-", "+"):
        pos = text.find(sep)
        if pos != -1:
            cut = min(cut, pos)
    return text[:cut].split("."), text[cut:]


def _normalize_block(block: str) -> Tuple[str, Optional[LowerBound]]:
    """Translate one comparator into SimpleSpec syntax and report its lower bound."""
    if block in _WILDCARDS:
        return "*", None

    m = _BLOCK.match(block)
    if not m:
        raise ValueError(f"Invalid version requirement component: {block!r}")

    op = m.group("op") or ""
    parts, suffix = _split_version(m.group("version"))
    if len(parts) > 3 or any(p == "" for p in parts):
        raise ValueError(f"Invalid version requirement component: {block!r}")
    parts = ["*" if p in _WILDCARDS else p for p in parts]
    if "*" in parts:
        # Everything after the first wildcard is a wildcard as well
        first = parts.index("*")
        parts = parts[:first] + ["*"]
        if first == 0:
            return "*", None
        if op in ("", "=", "=="):
            op = "=="
        suffix = ""
    elif op == "":
        op = "^"
    elif op == "=":
        op = "=="

    expression = op + ".".join(parts) + suffix

    lower = None
    if op in _LOWER_BOUND_OPS:
        numbers = [None if p == "*" else int(p) for p in parts] + [None, None]
        lower = (numbers[0], numbers[1], numbers[2])
    return expression, lower


def parse_requirement(raw: Optional[str]) -> VersionReq:
    """Parse a manifest requirement string into a VersionReq.

    Missing or empty requirements mean "any version".

    Raises:
        ValueError: if the requirement is not valid Cargo requirement syntax
    """
    text = (raw or "").strip() or "*"
    blocks = ["".join(b.split()) for b in text.split(",")]
    if any(not b for b in blocks):
        raise ValueError(f"Invalid version requirement: {raw!r}")

    expressions = []
    lower: Optional[LowerBound] = None
    for block in blocks:
        expression, block_lower = _normalize_block(block)
        expressions.append(expression)
        if lower is None and block_lower is not None:
            lower = block_lower

    try:
        return VersionReq(raw=text, expression=",".join(expressions), lower=lower)
    except ValueError as exc:
        raise ValueError(f"Invalid version requirement {raw!r}: {exc}") from exc


def exact(version: str) -> VersionReq:
    """Requirement matching exactly one concrete version."""
    return parse_requirement(f"={version}")


def parse_version(text: str) -> Optional[semantic_version.Version]:
    """Parse a concrete version, returning None for strings that are not semver."""
    try:
        return semantic_version.Version(text.strip())
    except ValueError:
        logger.debug("Skipping invalid version string %r", text)
        return None


def highest_matching(candidates: Iterable[str], reqs: Iterable[VersionReq]) -> Optional[str]:
    """Return the highest candidate satisfying every requirement, or None."""
    reqs = list(reqs)
    best = None
    best_text = None
    for text in candidates:
        ver = parse_version(text)
        if ver is None:
            continue
        if all(r.matches(ver) for r in reqs) and (best is None or ver > best):
            best, best_text = ver, text
    return best_text
