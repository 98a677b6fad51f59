from __future__ import annotations

# Auto-expiry sweeper.
#
# Periodically turns Called customers whose call has outlived the queue's
# no-show timeout into NoShow. It uses the same version-guarded path as a
# staff member pressing "no-show" and gets no priority over other writers:
# on a version conflict it reloads and re-evaluates, because the customer may
# have been served, removed or expired in the meantime.
#
# Each customer is handled on its own; one failure never stops the rest.

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manager import QueueManager

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    expired: int = 0
    skipped: int = 0  # no longer due after reload
    conflicts: int = 0
    failures: int = 0


class AutoExpirySweeper:
    def __init__(self, manager: QueueManager, *, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.manager = manager
        self.max_attempts = max_attempts

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def sweep_once(self) -> SweepReport:
        """Run one pass over every active queue."""
        report = SweepReport()
        now = self.manager.now()
        repository = self.manager.repository

        for queue_id in repository.list_queue_ids(active_only=True):
            loaded = repository.load(queue_id)
            if loaded is None:
                continue
            queue, _version = loaded
            for customer in queue.called_customers():
                try:
                    if queue.is_call_expired(customer.id, now):
                        self._expire(queue_id, customer.id, now, report)
                except Exception:
                    report.failures += 1
                    logger.exception("auto-expiry failed for customer %s in queue %s", customer.id, queue_id)
        return report

    def _expire(self, queue_id: str, customer_id: str, now: datetime, report: SweepReport) -> None:
        for attempt in range(1, self.max_attempts + 1):
            result = self.manager.expire_if_due(queue_id, customer_id, now)
            if result.ok:
                if result.value:
                    report.expired += 1
                    logger.info("customer %s in queue %s marked no-show", customer_id, queue_id)
                else:
                    report.skipped += 1
                return

            assert result.error is not None
            if not result.error.retryable:
                report.failures += 1
                logger.warning("could not expire customer %s in queue %s: %s", customer_id, queue_id, result.error)
                return

            report.conflicts += 1
            logger.warning(
                "concurrency conflict expiring customer %s in queue %s, attempt %d/%d",
                customer_id,
                queue_id,
                attempt,
                self.max_attempts,
            )

        report.failures += 1
        logger.error(
            "gave up expiring customer %s in queue %s after %d attempts", customer_id, queue_id, self.max_attempts
        )

    # -------------------- background loop --------------------

    def start(self, *, interval: float = 30.0) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(interval,), name="auto-expiry-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=1.0)
        self._thread = None

    def _loop(self, interval: float) -> None:
        logger.info("auto-expiry sweeper started (every %.1fs)", interval)
        while not self._stop_event.is_set():
            try:
                report = self.sweep_once()
                if report.expired or report.failures:
                    logger.info(
                        "sweep: expired=%d skipped=%d conflicts=%d failures=%d",
                        report.expired,
                        report.skipped,
                        report.conflicts,
                        report.failures,
                    )
            except Exception:
                # Keep sweeping even if one pass blows up.
                logger.exception("auto-expiry sweep failed")
            self._stop_event.wait(interval)
        logger.info("auto-expiry sweeper stopped")
