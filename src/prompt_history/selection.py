"""
From/to version selection.

A selection always describes a valid range: a "from" version newer than
the current "to" version (or the reverse) is rejected and the previous
choice is kept.
"""

from typing import Iterable

from .errors import EmptyCatalog, UnknownVersion
from .versioning import compare_versions, sort_versions


class VersionSelection:
    """The pair of versions chosen for comparison."""

    def __init__(self, versions: Iterable[str]):
        self.versions = sort_versions(versions)
        if not self.versions:
            raise EmptyCatalog()
        self.from_version = self.versions[0]
        self.to_version = self.versions[-1]

    def _check(self, version: str) -> None:
        if version not in self.versions:
            raise UnknownVersion(version)

    def select_from(self, version: str) -> bool:
        """Choose the older side. Returns False if it would come after "to"."""
        self._check(version)
        if compare_versions(version, self.to_version) > 0:
            return False
        self.from_version = version
        return True

    def select_to(self, version: str) -> bool:
        """Choose the newer side. Returns False if it would come before "from"."""
        self._check(version)
        if compare_versions(self.from_version, version) > 0:
            return False
        self.to_version = version
        return True

    @property
    def range(self) -> tuple[str, str]:
        return self.from_version, self.to_version
