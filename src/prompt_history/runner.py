"""
One update cycle: fetch prompt files, rescan, publish the outcome.

External commands are streamed live to the parent's stdout/stderr while
their output is also captured for logging and error messages.
"""

import codecs
import logging
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, TextIO

from .config import UpdaterConfig
from .errors import FetchStepFailure, SpawnFailure
from .repository import scan_versions
from .state import ErrorState, Failure, Success, UpdateOutcome, VersionCatalog, publish_outcome

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


@dataclass
class CommandResult:
    """Captured result of a finished command."""
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def _pump(stream: BinaryIO, sink: TextIO, captured: list[str]) -> None:
    """Copy ``stream`` to ``sink`` as it arrives, keeping a copy in ``captured``."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with stream:
        for chunk in iter(lambda: stream.read1(_CHUNK_SIZE), b""):
            text = decoder.decode(chunk)
            if text:
                captured.append(text)
                sink.write(text)
                sink.flush()
    tail = decoder.decode(b"", final=True)
    if tail:
        captured.append(tail)
        sink.write(tail)
        sink.flush()


def run_command(
    argv: Sequence[str],
    cwd: Optional[Path] = None,
    stdout_sink: Optional[TextIO] = None,
    stderr_sink: Optional[TextIO] = None,
) -> CommandResult:
    """
    Run ``argv`` to completion, streaming and capturing both output streams.

    Each pipe is drained by its own thread so neither can fill up and
    stall the child. Raises SpawnFailure if the command can't be started
    and FetchStepFailure on a non-zero exit status.
    """
    argv = list(argv)
    if stdout_sink is None:
        stdout_sink = sys.stdout
    if stderr_sink is None:
        stderr_sink = sys.stderr

    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise SpawnFailure(argv, f"Failed to start {argv[0]}: {exc.strerror or exc}") from exc

    out: list[str] = []
    err: list[str] = []
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, stdout_sink, out), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, stderr_sink, err), daemon=True),
    ]
    for reader in readers:
        reader.start()

    returncode = proc.wait()
    for reader in readers:
        reader.join()

    result = CommandResult(argv=argv, returncode=returncode, stdout="".join(out), stderr="".join(err))
    if returncode != 0:
        raise FetchStepFailure(argv, returncode, result.stderr)
    return result


class UpdateRunner:
    """Runs update cycles against one data directory."""

    def __init__(
        self,
        config: UpdaterConfig,
        stdout_sink: Optional[TextIO] = None,
        stderr_sink: Optional[TextIO] = None,
    ):
        self.config = config
        self.stdout_sink = stdout_sink
        self.stderr_sink = stderr_sink

    @property
    def data_dir(self) -> Path:
        return self.config.data_dir

    def _run(self, argv: Sequence[str]) -> CommandResult:
        return run_command(argv, cwd=self.data_dir, stdout_sink=self.stdout_sink, stderr_sink=self.stderr_sink)

    def fetch(self) -> CommandResult:
        """Run the preparation commands and then the fetch command."""
        for argv in self.config.prepare_commands:
            command = ' '.join(argv)
            logger.info(f"Running {command}...")
            self._run(argv)
            logger.info(f"Finished {command}.")

        logger.info(f"Fetching prompts from {self.config.from_version} to latest...")
        result = self._run(self.config.fetch_argv())
        if result.stderr:
            logger.info(f"Fetch stderr: {result.stderr.strip()}")
        logger.info("Fetch completed.")
        return result

    def run_cycle(self) -> UpdateOutcome:
        """
        Run one full update cycle and publish its outcome.

        Never raises: any failure becomes the persisted error state and
        the previous catalog is left untouched.
        """
        logger.info("Starting update process...")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.fetch()

            versions = scan_versions(self.data_dir)
            logger.info(f"Found {len(versions)} versions: {', '.join(versions)}")

            outcome: UpdateOutcome = Success(VersionCatalog(versions))
            publish_outcome(self.data_dir, outcome)
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
            logger.error(f"Update failed: {message}")
            outcome = Failure(ErrorState(message))
            try:
                publish_outcome(self.data_dir, outcome)
            except OSError as write_exc:
                logger.error(f"Could not record error state: {write_exc}")
            return outcome

        logger.info(f"Update completed successfully. Found {len(versions)} versions.")
        return outcome
