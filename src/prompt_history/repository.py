"""
Data directory scanning.

The fetch step writes one ``prompts-<version>.md`` file per release into
the data directory. This module recovers the version list from those
filenames and gives read access to individual prompt files.
"""

import re
from pathlib import Path
from typing import Union

from .errors import DirectoryScanFailure, PromptNotFound
from .versioning import sort_versions

PathLike = Union[str, Path]

PROMPT_PREFIX = "prompts-"
PROMPT_SUFFIX = ".md"
PROMPT_FILE_PATTERN = re.compile(r'^prompts-(\d+\.\d+\.\d+)\.md$')


def extract_version(filename: str) -> str | None:
    """Return the version embedded in a prompt filename, or None."""
    match = PROMPT_FILE_PATTERN.match(filename)
    return match.group(1) if match else None


def scan_versions(data_dir: PathLike) -> list[str]:
    """
    List the versions present in ``data_dir``, oldest first.

    Entries that do not follow the prompt file naming convention are
    ignored. Raises DirectoryScanFailure if the directory can't be read.
    """
    try:
        names = [entry.name for entry in Path(data_dir).iterdir()]
    except OSError as exc:
        raise DirectoryScanFailure(
            f"Cannot read data directory {data_dir}: {exc.strerror or exc}"
        ) from exc

    versions = {v for v in map(extract_version, names) if v is not None}
    return sort_versions(versions)


def prompt_path(data_dir: PathLike, version: str) -> Path:
    return Path(data_dir) / f"{PROMPT_PREFIX}{version}{PROMPT_SUFFIX}"


def read_prompt(data_dir: PathLike, version: str) -> str:
    """Read the prompt text recorded for ``version``."""
    path = prompt_path(data_dir, version)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise PromptNotFound(version, path) from exc
