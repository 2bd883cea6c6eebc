"""
In-process publish/subscribe used to nudge Together clients.

Two kinds of events go through the hub:
  - row changes ("postgres_changes"): the full row after an INSERT/UPDATE or
    the deleted row for a DELETE, scoped to a table and a key;
  - broadcasts: named one-shot signals on a channel.

Events are advisory. The database stays the source of truth and clients
re-read state over HTTP; a row-change payload is always a full snapshot, so a
client that missed intermediate events still converges on the latest one.
"""
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Dict, List, Optional
import itertools
import logging

logger = logging.getLogger(__name__)

ROW_CHANGE = "postgres_changes"
BROADCAST = "broadcast"


@dataclass
class RealtimeEvent:
    kind: str  # ROW_CHANGE or BROADCAST
    topic: str
    event: str  # INSERT / UPDATE / DELETE, or the broadcast name
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        return {"type": self.kind, "topic": self.topic, "event": self.event, "payload": self.payload}


Subscriber = Callable[[RealtimeEvent], None]


class Subscription:
    def __init__(self, hub: "RealtimeHub", topic: str, token: int):
        self._hub = hub
        self.topic = topic
        self._token = token

    def unsubscribe(self) -> None:
        self._hub._remove(self.topic, self._token)


class RealtimeHub:
    def __init__(self):
        self._subscribers: Dict[str, Dict[int, Subscriber]] = {}
        self._lock = Lock()
        self._tokens = itertools.count(1)

    def subscribe(self, topic: str, callback: Subscriber) -> Subscription:
        with self._lock:
            token = next(self._tokens)
            self._subscribers.setdefault(topic, {})[token] = callback
        return Subscription(self, topic, token)

    def _remove(self, topic: str, token: int) -> None:
        with self._lock:
            subscribers = self._subscribers.get(topic)
            if subscribers is None:
                return
            subscribers.pop(token, None)
            if not subscribers:
                del self._subscribers[topic]

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, {}))

    def publish(self, event: RealtimeEvent) -> int:
        """Deliver an event to every subscriber of its topic; returns the number reached."""
        with self._lock:
            callbacks: List[Subscriber] = list(self._subscribers.get(event.topic, {}).values())
        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                # A broken subscriber must not stop delivery to the others
                logger.error(f"Realtime subscriber on '{event.topic}' failed: {str(e)}")
        return delivered

    def publish_row_change(self, topic: str, event: str, row: Optional[Dict[str, Any]]) -> int:
        return self.publish(RealtimeEvent(kind=ROW_CHANGE, topic=topic, event=event, payload={"new": row or {}}))

    def broadcast(self, topic: str, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        return self.publish(RealtimeEvent(kind=BROADCAST, topic=topic, event=event, payload=payload or {}))

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


def session_topic(session_id: int) -> str:
    """Row changes of one together_session row."""
    return f"session:{session_id}"


def participants_topic(session_id: int) -> str:
    """Row changes of the session_participant rows of one session."""
    return f"participants:{session_id}"


def broadcast_topic(session_id: int) -> str:
    """Broadcast channel of one Together session."""
    return f"together:{session_id}"


hub = RealtimeHub()
