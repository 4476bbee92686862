"""
SLA sweep loop.

Runs SlaSchedulerService.sweep on a fixed interval in a background thread.
Every item transition is conditional, so several loops (or a loop plus an
admin-triggered sweep) may run against the same database.
"""

from __future__ import annotations

import logging
import threading

from pubflow.components.scheduler import SlaSchedulerService, SweepReport

logger = logging.getLogger(__name__)


class SlaSweepLoop:
    """Background SLA sweeper."""

    def __init__(
        self,
        scheduler: SlaSchedulerService,
        interval_seconds: float = 60.0,
    ) -> None:
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background loop."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._sweep_loop, daemon=True)
        self._thread.start()
        self._running = True
        logger.info("SLA sweep loop started (interval: %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop the loop, waiting for an in-flight sweep."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("SLA sweep loop stopped")

    def run_forever(self) -> None:
        """Sweep in the calling thread until stop() is called."""
        self._stop_event.clear()
        self._running = True
        logger.info("SLA sweep loop running in foreground (interval: %.1fs)", self._interval)
        self.trigger_now()
        self._sweep_loop()
        self._running = False

    def trigger_now(self) -> SweepReport:
        """Run one sweep immediately."""
        return self._scheduler.sweep()

    @property
    def is_running(self) -> bool:
        return self._running

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self._scheduler.sweep()
            except Exception:
                logger.exception("Error in SLA sweep loop")
