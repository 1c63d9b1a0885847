"""
ChatSession: the client-side controller tying the API client to a store.

Each method mirrors one user action. On failure the error lands in the
store and is re-raised; ``send_message`` additionally keeps the typed text
in ``draft`` so the UI can put it back in the input box.
"""

import logging
from typing import Any, Dict, List, Optional

from agentchat.client.api import ApiClient, ApiError
from agentchat.client.state import (
    AddConversation,
    ChatStore,
    RemoveConversation,
    SetConversations,
    SetCurrentConversation,
    SetError,
    SetLoading,
    SubmitFailed,
    SubmitStarted,
    SubmitSucceeded,
    UpsertConversation,
    summary_of,
)

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(self, api: ApiClient, store: ChatStore):
        self.api = api
        self.store = store
        self.draft: str = ""

    @property
    def state(self):
        return self.store.state

    async def load_conversations(self, page: int = 1, limit: int = 20) -> None:
        self.store.dispatch(SetLoading(True))
        try:
            data = await self.api.list_conversations(page=page, limit=limit)
            self.store.dispatch(SetConversations(tuple(data["conversations"])))
        except ApiError as e:
            self.store.dispatch(SetError(e.detail))
            raise
        finally:
            self.store.dispatch(SetLoading(False))

    async def open_conversation(self, conversation_id: str) -> Dict[str, Any]:
        self.store.dispatch(SetLoading(True))
        try:
            conversation = await self.api.get_conversation(conversation_id)
            self.store.dispatch(SetCurrentConversation(conversation))
            return conversation
        except ApiError as e:
            self.store.dispatch(SetError(e.detail))
            raise
        finally:
            self.store.dispatch(SetLoading(False))

    def close_conversation(self) -> None:
        self.store.dispatch(SetCurrentConversation(None))

    async def create_conversation(self, title: str) -> Dict[str, Any]:
        try:
            conversation = await self.api.create_conversation(title)
        except ApiError as e:
            self.store.dispatch(SetError(e.detail))
            raise
        self.store.dispatch(AddConversation(summary_of(conversation)))
        self.store.dispatch(SetCurrentConversation(conversation))
        return conversation

    async def send_message(
        self,
        text: str,
        conversation_id: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Submit ``text`` to the open (or given) conversation.

        No message is inserted optimistically; the store is updated from
        the server's copy of the conversation once the reply is appended.
        """
        current = self.store.state.current_conversation
        conversation_id = conversation_id or (current["id"] if current else None)
        if conversation_id is None:
            raise ValueError("No conversation is open")

        self.draft = ""
        self.store.dispatch(SubmitStarted(conversation_id))
        try:
            conversation = await self.api.send_message(conversation_id, text, attachments)
        except ApiError as e:
            logger.warning(f"Sending message to {conversation_id} failed: {e}")
            self.draft = text
            self.store.dispatch(SubmitFailed(e.detail))
            raise
        self.store.dispatch(SubmitSucceeded(conversation))
        return conversation

    async def rename_conversation(self, conversation_id: str, title: str) -> Dict[str, Any]:
        try:
            conversation = await self.api.rename_conversation(conversation_id, title)
        except ApiError as e:
            self.store.dispatch(SetError(e.detail))
            raise
        current = self.store.state.current_conversation
        if current is not None and current["id"] == conversation_id:
            self.store.dispatch(SetCurrentConversation(conversation))
        self.store.dispatch(UpsertConversation(summary_of(conversation)))
        return conversation

    async def delete_conversation(self, conversation_id: str) -> None:
        try:
            await self.api.delete_conversation(conversation_id)
        except ApiError as e:
            self.store.dispatch(SetError(e.detail))
            raise
        self.store.dispatch(RemoveConversation(conversation_id))
