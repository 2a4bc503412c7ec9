import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


class EventPublisher(ABC):
    """Outbound side channel for real-time updates to a user.

    Called by the services after a settlement transition has been committed.
    Delivery (websocket, push, polling) lives outside the ledger.
    """

    @abstractmethod
    async def publish(self, user_id: int, event: Dict[str, Any]) -> None:
        ...


class LoggingPublisher(EventPublisher):
    async def publish(self, user_id: int, event: Dict[str, Any]) -> None:
        logger.info("event for user %s: %s", user_id, event.get("type"))


class InMemoryPublisher(EventPublisher):
    def __init__(self):
        self.events: List[Tuple[int, Dict[str, Any]]] = []

    async def publish(self, user_id: int, event: Dict[str, Any]) -> None:
        self.events.append((user_id, event))

    def types_for(self, user_id: int) -> List[str]:
        return [e["type"] for uid, e in self.events if uid == user_id]


_publisher: EventPublisher = LoggingPublisher()


def get_publisher() -> EventPublisher:
    return _publisher
