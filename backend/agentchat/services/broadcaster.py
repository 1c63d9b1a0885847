"""
Real-time broadcaster.

Per-user rooms of live subscriptions. Delivery is at-most-once and best
effort: sessions that are not connected when an event is published never
see it, and there is no replay log.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

MESSAGE_RECEIVED = "message-received"

Handler = Callable[[Dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class Subscription:
    id: int
    user_id: str


def message_received_event(conversation_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": MESSAGE_RECEIVED,
        "data": {"conversationId": conversation_id, "message": message},
    }


class Broadcaster:
    """Publish/subscribe hub keyed by user id."""

    def __init__(self):
        # user_id -> {subscription_id: handler}
        self._rooms: Dict[str, Dict[int, Handler]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, user_id: str, handler: Handler) -> Subscription:
        subscription = Subscription(id=next(self._ids), user_id=user_id)
        self._rooms.setdefault(user_id, {})[subscription.id] = handler
        logger.info(
            f"Session {subscription.id} joined room of user {user_id} "
            f"({self.connection_count(user_id)} live)"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        room = self._rooms.get(subscription.user_id)
        if room is None or subscription.id not in room:
            return
        del room[subscription.id]
        if not room:
            del self._rooms[subscription.user_id]
        logger.info(f"Session {subscription.id} left room of user {subscription.user_id}")

    def connection_count(self, user_id: str) -> int:
        return len(self._rooms.get(user_id, {}))

    async def publish(self, user_id: str, event: Dict[str, Any]) -> int:
        """
        Deliver ``event`` to every live session of ``user_id``.

        A handler that fails is dropped from the room and does not stop
        delivery to the others. Returns the number of successful sends.
        """
        room = self._rooms.get(user_id)
        if not room:
            return 0

        delivered = 0
        dead: List[int] = []
        # Snapshot: handlers may unsubscribe while we await
        for subscription_id, handler in list(room.items()):
            try:
                await handler(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Error sending event to session {subscription_id}: {e}")
                dead.append(subscription_id)

        for subscription_id in dead:
            self.unsubscribe(Subscription(id=subscription_id, user_id=user_id))
        return delivered
