"""
Logging setup.

Messages go to the console through rich and are appended to
``<data_dir>/logs.txt`` as ``[<timestamp>] <message>`` lines.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .state import utc_timestamp

LOG_FILE_NAME = "logs.txt"

_HANDLER_MARK = "_prompt_history_handler"


class TimestampFormatter(logging.Formatter):
    """Formats records as ``[2025-01-01T00:00:00.000Z] message``."""

    def __init__(self):
        super().__init__("[%(asctime)s] %(message)s")

    def formatTime(self, record, datefmt=None):
        return utc_timestamp(datetime.fromtimestamp(record.created, timezone.utc))


def configure_logging(
    data_dir: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the ``prompt_history`` logger.

    Safe to call repeatedly; handlers added by an earlier call are
    replaced. When ``data_dir`` is given it is created if needed so the
    log file can be opened.
    """
    logger = logging.getLogger("prompt_history")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = True

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(rich_handler, _HANDLER_MARK, True)
    logger.addHandler(rich_handler)

    if data_dir is not None:
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(data_dir / LOG_FILE_NAME, encoding="utf-8")
        file_handler.setFormatter(TimestampFormatter())
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)

    return logger
