"""
Exception types.

Update errors are raised inside an update cycle and recorded as the
persisted error state. Selection errors come from consumers choosing
versions to compare.
"""

from typing import Sequence


class UpdateError(Exception):
    """Base class for failures inside one update cycle."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DirectoryScanFailure(UpdateError):
    """The data directory could not be listed."""


class SpawnFailure(UpdateError):
    """An external command could not be launched."""

    def __init__(self, argv: Sequence[str], message: str):
        super().__init__(message)
        self.argv = list(argv)


class FetchStepFailure(UpdateError):
    """An external command exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str):
        super().__init__(f"Command failed with code {returncode}: {stderr}")
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class SelectionError(Exception):
    """Base class for invalid version selections."""


class UnknownVersion(SelectionError):
    def __init__(self, version: str):
        super().__init__(f"Unknown version: {version}")
        self.version = version


class EmptyCatalog(SelectionError):
    def __init__(self):
        super().__init__("No versions available")


class PromptNotFound(Exception):
    """No prompt file exists for the requested version."""

    def __init__(self, version: str, path):
        super().__init__(f"No prompts file for version {version}: {path}")
        self.version = version
        self.path = path
