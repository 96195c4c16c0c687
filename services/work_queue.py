import logging
import queue
from typing import Optional

logger = logging.getLogger(__name__)


class WorkQueue:
    """Unbounded multi-producer FIFO of metric names awaiting aggregation.

    No de-duplication: enqueueing the same name twice yields two items.
    """

    def __init__(self):
        self._queue = queue.Queue()

    def enqueue(self, name: str) -> None:
        self._queue.put_nowait(name)
        logger.info("%s added to queue", name)

    def try_dequeue(self) -> Optional[str]:
        """Non-blocking; None when there is no work."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def dequeue(self, timeout: float) -> Optional[str]:
        """Wait up to `timeout` seconds for an item; None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def __len__(self) -> int:
        return self._queue.qsize()
