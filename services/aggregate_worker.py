"""
Background consumer of the metric WorkQueue.

Runs in its own daemon thread, independent of any request. Each iteration
waits (bounded) for a metric name, averages the stored samples for it and
hands the result to the notification fan-out. A failing iteration is logged
and followed by a longer back-off; only stop() ends the loop.

Processing is at-most-once: an item dequeued just before stop() may be lost.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from models.device_stat import resolve_metric
from services.errors import TransientStoreFailure, UnknownMetric
from services.live import EVENT_METRIC_AVERAGE

logger = logging.getLogger(__name__)

IDLE_INTERVAL = 1.0
ERROR_BACKOFF = 2.0


class AggregateWorker:
    def __init__(
        self,
        work_queue,
        notifications,
        storage,
        *,
        idle_interval: float = IDLE_INTERVAL,
        error_backoff: float = ERROR_BACKOFF,
        notify: bool = True,
    ):
        self.work_queue = work_queue
        self.notifications = notifications
        self.storage = storage
        self.idle_interval = idle_interval
        self.error_backoff = error_backoff
        self.notify = notify
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> threading.Thread:
        if self.is_running:
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, daemon=True, name="AggregateWorker")
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        logger.info("Background calculation service started.")
        while not self._stop.is_set():
            try:
                name = self.work_queue.dequeue(timeout=self.idle_interval)
                if name is None or self._stop.is_set():
                    continue
                self.process(name)
            except TransientStoreFailure as e:
                logger.warning(f"{e}; retrying in {self.error_backoff}s")
                self._stop.wait(self.error_backoff)
            except Exception:
                logger.exception("Error in background calculation service")
                self._stop.wait(self.error_backoff)
            finally:
                self.storage.close()
        logger.info("Background calculation service stopped.")

    def _average(self, column) -> Optional[float]:
        session = self.storage.get_session()
        try:
            return session.query(func.avg(column)).scalar()
        except OperationalError as exc:
            session.rollback()
            raise TransientStoreFailure(f"Storage unavailable while averaging {column.key}") from exc

    @staticmethod
    def _resolve(name: str):
        resolved = resolve_metric(name)
        if resolved is None:
            raise UnknownMetric(f"Unknown column: {name}")
        return resolved

    def process(self, name: str) -> Optional[float]:
        """Average one metric and publish it. Returns None when dropped."""
        try:
            metric, column = self._resolve(name)
        except UnknownMetric as e:
            # the enqueuing request already returned 202; nobody to tell
            logger.warning(str(e))
            return None

        average = self._average(column)
        if average is None:
            logger.warning("No %s samples stored, nothing to average", metric)
            return None

        average = float(average)
        logger.info("Average %s: %s", metric, average)
        if self.notify:
            self.notifications.broadcast_to_all_users(f"Average {metric} is {average:.2f}")
        self.notifications.push_live(EVENT_METRIC_AVERAGE, {"column": metric, "average": average})
        return average
