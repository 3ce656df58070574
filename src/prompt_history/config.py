"""
Updater configuration.

Defaults mirror the deployed service: prompts live in ``/data`` and are
refreshed every 12 hours using the cchistory fetch tool.
"""

import shlex
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DATA_DIR = "/data"
DEFAULT_UPDATE_INTERVAL_MS = 43_200_000  # 12 hours
DEFAULT_FETCH_COMMAND = "npx -y @mariozechner/cchistory@latest"
DEFAULT_FROM_VERSION = "1.0.0"
LATEST_SENTINEL = "--latest"

# Run before the fetch so the newest CLI release is installed and npm
# doesn't serve a cached package listing.
DEFAULT_PREPARE_COMMANDS = (
    ("npm", "install", "-g", "@anthropic-ai/claude-code"),
    ("npm", "cache", "clean", "--force"),
)


@dataclass(frozen=True)
class UpdaterConfig:
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS
    fetch_command: tuple[str, ...] = tuple(shlex.split(DEFAULT_FETCH_COMMAND))
    from_version: str = DEFAULT_FROM_VERSION
    prepare_commands: tuple[tuple[str, ...], ...] = field(default=DEFAULT_PREPARE_COMMANDS)

    def __post_init__(self):
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {self.interval_ms}")
        if not self.fetch_command:
            raise ValueError("fetch_command must not be empty")
        object.__setattr__(self, 'data_dir', Path(self.data_dir))

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    def fetch_argv(self) -> list[str]:
        """Fetch command plus the version range: from ``from_version`` to the latest."""
        return [*self.fetch_command, self.from_version, LATEST_SENTINEL]
