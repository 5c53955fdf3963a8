"""Periodic polling of the connected fleet."""

import logging
import signal
import threading
import time
from enum import Enum
from typing import Any, Callable, Sequence

from fleetwatch.collectors.base import BaseCollector
from fleetwatch.display import BaseRenderer
from fleetwatch.models import MetricsSnapshot
from fleetwatch.session import ServerHandle

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0  # seconds


def termination_signals() -> list[signal.Signals]:
    """Signals that stop the poll loop on this platform."""
    names = ("SIGINT", "SIGTERM", "SIGQUIT")
    return [getattr(signal, name) for name in names if hasattr(signal, name)]


class SchedulerState(str, Enum):
    """Lifecycle states of the poll loop."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class PollScheduler:
    """Sweep every live session on a fixed interval until stopped.

    A sweep collects and renders each host in turn. The stop request is
    only observed between sweeps, so a sweep in progress always finishes.
    """

    def __init__(
        self,
        handles: Sequence[ServerHandle],
        collector: BaseCollector,
        renderer: BaseRenderer,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the scheduler.

        Args:
            handles: Live sessions to poll, in display order.
            collector: Produces a snapshot for one handle.
            renderer: Displays each snapshot.
            interval: Seconds between sweeps.
            clock: Monotonic time source.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.handles = list(handles)
        self.collector = collector
        self.renderer = renderer
        self.interval = interval
        self._clock = clock
        self._stop_event = threading.Event()
        self.state = SchedulerState.IDLE
        self.sweep_count = 0

    def sweep(self) -> None:
        """Collect and render every handle once, in order."""
        self.sweep_count += 1
        if not self.handles:
            return

        self.renderer.begin_sweep()

        for handle in self.handles:
            try:
                snapshot = self.collector.collect(handle)
            except Exception as e:
                logger.exception(f"Failed to collect metrics from {handle.name}")
                snapshot = MetricsSnapshot(name=handle.name, error_message=str(e))

            try:
                self.renderer.render(handle.name, snapshot)
            except Exception:
                logger.exception(f"Failed to render metrics for {handle.name}")

    def stop(self) -> None:
        """Ask the loop to exit at the next sweep boundary."""
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _handle_signal(self, signum: int, _frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        self.stop()

    def run(self, install_signal_handlers: bool = True) -> None:
        """Run the sweep loop until :meth:`stop` or a termination signal.

        Signal handlers can only be installed from the main thread; from any
        other thread the loop relies on :meth:`stop` alone.
        """
        if self.state != SchedulerState.IDLE:
            raise RuntimeError(f"Scheduler cannot run from state {self.state.value}")

        previous_handlers: dict[int, Any] = {}
        if install_signal_handlers and threading.current_thread() is threading.main_thread():
            for sig in termination_signals():
                previous_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, self._handle_signal)

        self.state = SchedulerState.RUNNING
        logger.info(f"Polling {len(self.handles)} hosts every {self.interval}s")

        try:
            self.sweep()
            next_tick = self._clock() + self.interval

            while True:
                timeout = max(next_tick - self._clock(), 0.0)
                if self._stop_event.wait(timeout):
                    break

                self.sweep()

                # Ticks missed during a slow sweep are dropped
                now = self._clock()
                next_tick += self.interval
                while next_tick <= now:
                    next_tick += self.interval

            self.state = SchedulerState.DRAINING
        finally:
            for sig, handler in previous_handlers.items():
                signal.signal(sig, handler)
            self.state = SchedulerState.STOPPED
            logger.info(f"Stopped after {self.sweep_count} sweeps")
