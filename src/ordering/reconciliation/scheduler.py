"""Background scheduler that runs the reconciliation sweep on a fixed interval.

The sweep runs in a worker thread with the domain context pushed. ``stop()``
wakes a sleeping scheduler immediately and is also seen by a running sweep,
which stops before its next order.
"""

import os
import threading
from collections.abc import Callable

import structlog
from protean.domain import Domain

from ordering.reconciliation.sweep import reconcile_all
from ordering.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 300


def sweep_interval() -> float:
    return float(os.environ.get("RECONCILIATION_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS))


class ReconciliationScheduler:
    def __init__(
        self,
        domain: Domain,
        interval: float | None = None,
        sweep: Callable | None = None,
    ) -> None:
        self.domain = domain
        self.interval = sweep_interval() if interval is None else interval
        self.sweep = sweep or reconcile_all
        self.passes = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run_once(self):
        """Run a single sweep in the domain's context and return its report."""
        add_context(sweep_pass=self.passes + 1)
        try:
            with self.domain.domain_context():
                return self.sweep(should_stop=self._stop_event.is_set)
        finally:
            clear_context()

    def run_forever(self) -> None:
        """Sweep, sleep, repeat until stopped. A failed pass never ends the loop."""
        logger.info("Reconciliation scheduler started", interval_seconds=self.interval)

        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as exc:
                logger.exception("Reconciliation pass failed", error=str(exc))
            self.passes += 1
            self._stop_event.wait(self.interval)

        logger.info("Reconciliation scheduler stopped", passes=self.passes)

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="reconciliation-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
