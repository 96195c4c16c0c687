"""
Best-effort live push to connected Socket.IO clients.

Persisted notifications are the durable record; a missed live event is never
replayed.
"""
import logging

logger = logging.getLogger(__name__)

EVENT_NEW_NOTIFICATION = "new-notification"
EVENT_METRIC_AVERAGE = "metric-average-computed"
EVENT_ENTITY_CHANGED = "domain-entity-changed"


def user_room(user_id: str) -> str:
    """Socket.IO room every connection of `user_id` joins."""
    return f"user:{user_id}"


class LivePublisher:
    def __init__(self, socketio=None):
        self.socketio = socketio

    def push(self, event: str, payload: dict, room: str | None = None) -> bool:
        """Emit `event` to everyone (or to `room`). Returns False if not delivered."""
        if self.socketio is None:
            logger.debug("No live transport configured, dropping %s", event)
            return False
        try:
            self.socketio.emit(event, payload, to=room)
        except Exception as e:
            logger.warning(f"Live push of {event} failed: {e}")
            return False
        return True
