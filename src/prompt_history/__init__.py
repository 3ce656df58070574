"""
prompt-history: Track system prompt changes across CLI tool releases.

A background updater fetches one prompts file per release, publishes an
ordered version catalog, and lets you diff any two versions.
"""

__version__ = "0.1.0"

from .versioning import compare_versions, parse_version, sort_versions, Version
from .repository import scan_versions
from .runner import UpdateRunner
from .service import UpdateService
from .selection import VersionSelection

__all__ = [
    "compare_versions",
    "parse_version",
    "sort_versions",
    "Version",
    "scan_versions",
    "UpdateRunner",
    "UpdateService",
    "VersionSelection",
]
