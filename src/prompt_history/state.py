"""
Persisted update state.

The outcome of the latest update cycle is published to the data
directory as either ``versions.json`` (success) or ``error.json``
(failure). A success removes any error record; a failure leaves the
previous catalog in place so consumers keep stale-but-valid data.
Every file is replaced atomically.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

VERSIONS_FILE = "versions.json"
ERROR_FILE = "error.json"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class VersionCatalog:
    """Ordered list of known versions plus when it was produced."""
    versions: list[str]
    last_updated: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict:
        return {
            'versions': [{'version': v} for v in self.versions],
            'lastUpdated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VersionCatalog":
        """Build a catalog from parsed JSON. Raises ValueError if it is malformed."""
        try:
            versions = [str(record['version']) for record in data.get('versions', [])]
            last_updated = str(data.get('lastUpdated', ''))
        except (AttributeError, KeyError, TypeError) as exc:
            raise ValueError(f"Malformed version catalog: {exc!r}") from exc
        return cls(versions=versions, last_updated=last_updated)


@dataclass
class ErrorState:
    """Record of the most recent failed update."""
    error: str
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict:
        return {'error': self.error, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "ErrorState":
        if not isinstance(data, dict):
            raise ValueError(f"Malformed error state: {data!r}")
        return cls(error=str(data.get('error', '')), timestamp=str(data.get('timestamp', '')))


@dataclass
class Success:
    catalog: VersionCatalog


@dataclass
class Failure:
    error: ErrorState


UpdateOutcome = Union[Success, Failure]


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_json_atomic(path: PathLike, data: dict) -> None:
    """Write pretty-printed JSON to ``path`` via a temp file and rename."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        # mkstemp creates 0600; published files get the mode a plain open() would.
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def publish_outcome(data_dir: PathLike, outcome: UpdateOutcome) -> None:
    """Persist the result of an update cycle."""
    data_dir = Path(data_dir)
    if isinstance(outcome, Success):
        write_json_atomic(data_dir / VERSIONS_FILE, outcome.catalog.to_dict())
        (data_dir / ERROR_FILE).unlink(missing_ok=True)
    elif isinstance(outcome, Failure):
        write_json_atomic(data_dir / ERROR_FILE, outcome.error.to_dict())
    else:
        raise TypeError(f"Unknown outcome: {outcome!r}")


def _load(path: Path) -> Optional[dict]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None


def load_catalog(data_dir: PathLike) -> Optional[VersionCatalog]:
    data = _load(Path(data_dir) / VERSIONS_FILE)
    return VersionCatalog.from_dict(data) if data is not None else None


def load_error_state(data_dir: PathLike) -> Optional[ErrorState]:
    data = _load(Path(data_dir) / ERROR_FILE)
    return ErrorState.from_dict(data) if data is not None else None
