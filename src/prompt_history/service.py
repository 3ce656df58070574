"""
Periodic update scheduling.

The service runs one cycle as soon as it starts and then one per
interval. At most one cycle runs at a time: a trigger that arrives while
a cycle is still in progress is skipped with a warning.
"""

import logging
import signal
import threading
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class CycleRunner(Protocol):
    def run_cycle(self): ...


def describe_interval(seconds: float) -> str:
    minutes = seconds / 60
    if minutes == int(minutes):
        minutes = int(minutes)
    return f"{minutes} minute{'' if minutes == 1 else 's'}"


class UpdateService:
    """Owns the update timer and the cycle in flight."""

    def __init__(self, runner: CycleRunner, interval: float):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.runner = runner
        self.interval = interval
        self._stopped = threading.Event()
        self._cycle_lock = threading.Lock()
        self._ticker: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._stopped.is_set()

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def start(self) -> None:
        if self._ticker is not None:
            raise RuntimeError("Update service already started")

        logger.info("Update service starting...")
        self.trigger()

        self._ticker = threading.Thread(target=self._tick, name="update-ticker", daemon=True)
        self._ticker.start()
        logger.info(f"Update service running. Will check for updates every {describe_interval(self.interval)}.")

    def _tick(self) -> None:
        while not self._stopped.wait(self.interval):
            self.trigger()

    def trigger(self) -> bool:
        """Start a cycle in the background unless one is already running."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous update is still running; skipping this update.")
            return False

        self._worker = threading.Thread(target=self._run_cycle, name="update-cycle", daemon=True)
        self._worker.start()
        return True

    def _run_cycle(self) -> None:
        try:
            self.runner.run_cycle()
        except Exception:
            logger.exception("Update cycle crashed")
        finally:
            self._cycle_lock.release()

    def join_cycle(self, timeout: Optional[float] = None) -> None:
        """Wait for the cycle in flight, if any, to finish."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)

    def stop(self) -> None:
        """Stop scheduling further cycles. A cycle in flight is not waited for."""
        self._stopped.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the service is stopped."""
        return self._stopped.wait(timeout)


HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def install_signal_handlers(service: UpdateService) -> None:
    """Stop ``service`` on SIGTERM or SIGINT. Must be called from the main thread."""

    def handle(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down gracefully...")
        service.stop()

    for signum in HANDLED_SIGNALS:
        signal.signal(signum, handle)
