"""
Semantic version comparison for prompt releases.

Versions are plain ``major.minor.patch`` triples. Parsing is lenient:
missing or non-numeric components read as 0, so every string compares.
"""

import re
from functools import cmp_to_key
from typing import Iterable, NamedTuple


_LEADING_DIGITS = re.compile(r'\s*(\d+)')


class Version(NamedTuple):
    """Parsed version triple."""
    major: int = 0
    minor: int = 0
    patch: int = 0


def _component(part: str) -> int:
    match = _LEADING_DIGITS.match(part)
    return int(match.group(1)) if match else 0


def parse_version(text: str) -> Version:
    """Parse a version string, defaulting bad or missing components to 0."""
    parts = (text or '').split('.')
    components = [_component(p) for p in parts[:3]]
    return Version(*components)


def compare_versions(a: str, b: str) -> int:
    """
    Three-way compare two version strings.

    Returns a negative number when ``a`` is older than ``b``, zero when
    they are equal and a positive number when ``a`` is newer. Major is
    compared first, then minor, then patch.
    """
    va = parse_version(a)
    vb = parse_version(b)

    if va.major != vb.major:
        return va.major - vb.major
    if va.minor != vb.minor:
        return va.minor - vb.minor
    return va.patch - vb.patch


version_key = cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Return versions sorted oldest first (numerically, not as text)."""
    return sorted(versions, key=version_key)


def is_valid_range(from_version: str, to_version: str) -> bool:
    """Check that ``from_version`` is not newer than ``to_version``."""
    return compare_versions(from_version, to_version) <= 0
