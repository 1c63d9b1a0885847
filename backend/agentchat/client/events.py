"""
WebSocket listener feeding ``message-received`` events into a ChatStore.
"""

import asyncio
import json
import logging
from typing import Optional
from urllib.parse import quote

import websockets

from agentchat.client.state import ChatStore, MessageReceived

logger = logging.getLogger(__name__)


def events_url(base_url: str, token: str) -> str:
    """Turn the REST base URL into the events WebSocket URL."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/api/chat/ws?token={quote(token)}"


def handle_event(store: ChatStore, raw: str) -> bool:
    """Dispatch one raw event. Returns True if it was applied."""
    try:
        event = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed event: {raw[:100]}")
        return False

    if not isinstance(event, dict) or event.get("event") != "message-received":
        return False
    data = event.get("data")
    if not isinstance(data, dict):
        logger.warning(f"Ignoring message-received event without data: {raw[:100]}")
        return False
    conversation_id = data.get("conversationId")
    message = data.get("message")
    if not isinstance(conversation_id, str) or not isinstance(message, dict) or "id" not in message:
        logger.warning(f"Ignoring incomplete message-received event: {raw[:100]}")
        return False

    store.dispatch(MessageReceived(conversation_id, message))
    return True


class SocketListener:
    """
    Joins the user's room and applies broadcast events to ``store``.

    There is no replay: events published while disconnected are lost and
    the conversation has to be reloaded over HTTP.
    """

    def __init__(self, store: ChatStore, base_url: str, token: str):
        self.store = store
        self.url = events_url(base_url, token)
        self._task: Optional[asyncio.Task] = None
        self._connection = None

    async def run(self):
        async with websockets.connect(self.url) as connection:
            self._connection = connection
            logger.info("Socket connected")
            try:
                async for raw in connection:
                    handle_event(self.store, raw)
            finally:
                self._connection = None
                logger.info("Socket disconnected")

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def close(self):
        if self._connection is not None:
            await self._connection.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
