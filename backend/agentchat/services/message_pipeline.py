"""
Message Pipeline.

Turns one inbound user message into a durable, broadcast exchange:

    load (id + owner) -> append user message -> generate reply
        -> append assistant message (or fallback) -> broadcast -> return

A failing or slow response generator never fails the call; the user
always gets an assistant turn, degraded to ``FALLBACK_REPLY`` when needed.
Store failures are surfaced. If the user message was already persisted
when the second append fails, it stays persisted and nothing is broadcast.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from agentchat.config import settings
from agentchat.exceptions import ValidationError
from agentchat.models.conversation import Conversation
from agentchat.services.broadcaster import Broadcaster, message_received_event
from agentchat.services.conversation_store import ConversationStore, build_message
from agentchat.services.response_generator import (
    GenerationResult,
    ResponseGenerator,
    UserProfile,
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again."
)


def validate_message_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    max_length = max_length or settings.MAX_MESSAGE_LENGTH
    text = (text or "").strip()
    if not 1 <= len(text) <= max_length:
        raise ValidationError(f"Message must be between 1 and {max_length} characters")
    return text


class MessagePipeline:
    """Orchestrates store, generator and broadcaster for one submission."""

    def __init__(
        self,
        store: ConversationStore,
        generator: ResponseGenerator,
        broadcaster: Broadcaster,
        generator_timeout: Optional[float] = None,
    ):
        self.store = store
        self.generator = generator
        self.broadcaster = broadcaster
        self.generator_timeout = generator_timeout or None

    async def submit_message(
        self,
        conversation_id: str,
        requester: UserProfile,
        text: str,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Conversation:
        """
        Append a user message and its reply to a conversation.

        Args:
            conversation_id: Target conversation
            requester: Profile of the caller; ``requester.id`` is the owner
            text: Message text, 1..MAX_MESSAGE_LENGTH after trimming
            attachments: Optional attachment dicts for the user message

        Returns:
            The conversation after both appends

        Raises:
            ValidationError: bad text or attachment, nothing persisted
            NotFoundError: conversation missing or owned by someone else
            StoreError: persistence failed
        """
        text = validate_message_text(text)
        user_message = build_message("user", text, attachments)

        conversation = self.store.get_by_id(conversation_id, requester.id)

        conversation = self.store.append_message(
            conversation.id, user_message, owner_id=requester.id
        )
        logger.info(
            f"Stored user message {user_message['id']} in conversation {conversation.id}"
        )

        result = await self._generate(list(conversation.messages), requester)
        if result.ok:
            try:
                reply = build_message("assistant", result.content, result.attachments)
            except ValidationError as e:
                result = GenerationResult.failure(f"Malformed reply: {e.message}")
        if not result.ok:
            logger.warning(
                f"Response generation failed for conversation {conversation.id}: "
                f"{result.error}; storing fallback reply"
            )
            reply = build_message("assistant", FALLBACK_REPLY)

        conversation = self.store.append_message(
            conversation.id, reply, owner_id=requester.id
        )
        stored_reply = conversation.messages[-1]
        if stored_reply["id"] != reply["id"]:
            # A concurrent submission appended after us; find our own reply
            stored_reply = next(
                m for m in reversed(conversation.messages) if m["id"] == reply["id"]
            )

        await self._broadcast(requester.id, conversation.id, stored_reply)
        return conversation

    async def _generate(
        self, history: List[Dict[str, Any]], requester: UserProfile
    ) -> GenerationResult:
        try:
            result = await asyncio.wait_for(
                self.generator.generate(history, requester), self.generator_timeout
            )
        except asyncio.TimeoutError:
            return GenerationResult.failure(
                f"Timed out after {self.generator_timeout} seconds"
            )
        except Exception as e:
            logger.error(f"Response generator raised: {e}", exc_info=True)
            return GenerationResult.failure(str(e))

        if not isinstance(result, GenerationResult):
            return GenerationResult.failure(
                f"Generator returned {type(result).__name__} instead of a result"
            )
        if result.ok and (not isinstance(result.content, str) or not result.content.strip()):
            return GenerationResult.failure("Generator returned empty content")
        return result

    async def _broadcast(
        self, user_id: str, conversation_id: str, message: Dict[str, Any]
    ) -> None:
        try:
            delivered = await self.broadcaster.publish(
                user_id, message_received_event(conversation_id, message)
            )
        except Exception as e:
            logger.error(f"Broadcast for conversation {conversation_id} failed: {e}")
            return
        logger.info(
            f"Broadcast message {message['id']} to {delivered} session(s) of user {user_id}"
        )
