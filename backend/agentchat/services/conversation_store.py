"""
Conversation Store.

Persists conversations with their embedded message transcript. Every
lookup that takes a conversation id is scoped by owner in the same query,
and every mutation commits the message array together with the
conversation's ``updated_at`` so readers never see one without the other.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from agentchat.config import settings
from agentchat.exceptions import NotFoundError, StoreError, ValidationError
from agentchat.models.conversation import Conversation

logger = logging.getLogger(__name__)

MESSAGE_ROLES = ("user", "assistant", "system")
ATTACHMENT_TYPES = ("code", "image", "file", "visualization")
APPEND_ATTEMPTS = 3


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with fixed precision, so string order equals time order."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ")


def build_attachment(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize an attachment dict, assigning an id when missing."""
    kind = raw.get("type")
    if kind not in ATTACHMENT_TYPES:
        raise ValidationError(
            f"Attachment type must be one of: {', '.join(ATTACHMENT_TYPES)}"
        )
    attachment = {k: v for k, v in raw.items() if v is not None}
    attachment.setdefault("id", str(uuid.uuid4()))
    return attachment


def build_message(
    role: str,
    content: str,
    attachments: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Create a new message record with a fresh id.

    The timestamp is provisional; ``append_message`` fixes the final
    value at commit time.
    """
    if role not in MESSAGE_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(MESSAGE_ROLES)}")
    return {
        "id": str(uuid.uuid4()),
        "role": role,
        "content": content,
        "timestamp": format_timestamp(datetime.utcnow()),
        "attachments": [build_attachment(a) for a in (attachments or [])],
    }


def validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not 1 <= len(title) <= settings.MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be between 1 and {settings.MAX_TITLE_LENGTH} characters"
        )
    return title


def summarize(conversation: Conversation) -> Dict[str, Any]:
    """Read-only list-view projection of a conversation."""
    messages = conversation.messages or []
    return {
        "id": conversation.id,
        "title": conversation.title,
        "messageCount": len(messages),
        "lastMessage": messages[-1] if messages else None,
        "createdAt": conversation.created_at,
        "updatedAt": conversation.updated_at,
    }


class ConversationStore:
    """SQLAlchemy-backed conversation persistence bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, title: str) -> Conversation:
        """Create an empty conversation."""
        title = validate_title(title)
        now = datetime.utcnow()
        conversation = Conversation(
            user_id=owner_id, title=title, messages=[], created_at=now, updated_at=now
        )
        try:
            self.db.add(conversation)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("create conversation", e)
        self.db.refresh(conversation)
        logger.info(f"Created conversation {conversation.id} for user {owner_id}")
        return conversation

    def get_by_id(self, conversation_id: str, owner_id: str) -> Conversation:
        """Fetch a conversation owned by ``owner_id``."""
        conversation = self._query(conversation_id, owner_id).first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def list_by_owner(
        self, owner_id: str, limit: int = 50, offset: int = 0
    ) -> List[Conversation]:
        """Conversations of one owner, most recently updated first."""
        return (
            self.db.query(Conversation)
            .filter(Conversation.user_id == owner_id)
            .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    def count_by_owner(self, owner_id: str) -> int:
        return (
            self.db.query(Conversation).filter(Conversation.user_id == owner_id).count()
        )

    def append_message(
        self,
        conversation_id: str,
        message: Dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Conversation:
        """
        Append one message and bump ``updated_at`` in a single transaction.

        The row is read with ``FOR UPDATE`` where the backend supports it,
        and the write is guarded by the conversation's version counter. If
        another append committed in between, the read-modify-write is
        redone on fresh data, up to ``APPEND_ATTEMPTS`` times. The message
        timestamp is clamped so the transcript never goes backwards in time.

        Raises:
            NotFoundError: conversation vanished (or is not owned by owner_id)
            StoreError: the write failed; nothing was committed
        """
        for attempt in range(1, APPEND_ATTEMPTS + 1):
            try:
                conversation = self._append_once(conversation_id, message, owner_id)
                break
            except StaleDataError as e:
                self.db.rollback()
                if attempt == APPEND_ATTEMPTS:
                    self._fail(f"append message to conversation {conversation_id}", e)
                logger.warning(
                    f"Concurrent append to conversation {conversation_id}, "
                    f"retrying ({attempt}/{APPEND_ATTEMPTS})"
                )
            except SQLAlchemyError as e:
                self._fail(f"append message to conversation {conversation_id}", e)

        self.db.refresh(conversation)
        return conversation

    def _append_once(
        self, conversation_id: str, message: Dict[str, Any], owner_id: Optional[str]
    ) -> Conversation:
        conversation = self._query(conversation_id, owner_id).with_for_update().first()
        if conversation is None:
            self.db.rollback()
            raise NotFoundError("Conversation not found")

        messages = list(conversation.messages or [])
        now = datetime.utcnow()
        if messages:
            previous = parse_timestamp(messages[-1]["timestamp"])
            if previous > now:
                now = previous

        stored = dict(message)
        stored["timestamp"] = format_timestamp(now)
        messages.append(stored)

        # New list object so the JSON column is flagged dirty
        conversation.messages = messages
        conversation.updated_at = now
        self.db.commit()
        return conversation

    def rename(
        self, conversation_id: str, title: str, owner_id: Optional[str] = None
    ) -> Conversation:
        """Change the title and bump ``updated_at``."""
        title = validate_title(title)
        conversation = self._query(conversation_id, owner_id).first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        try:
            conversation.title = title
            conversation.updated_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"rename conversation {conversation_id}", e)
        self.db.refresh(conversation)
        return conversation

    def delete(self, conversation_id: str, owner_id: Optional[str] = None) -> None:
        """Hard delete a conversation."""
        conversation = self._query(conversation_id, owner_id).first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        try:
            self.db.delete(conversation)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"delete conversation {conversation_id}", e)
        logger.info(f"Deleted conversation {conversation_id}")

    def delete_by_owner(self, owner_id: str) -> int:
        """Delete every conversation of a user. Returns the number removed."""
        try:
            count = (
                self.db.query(Conversation)
                .filter(Conversation.user_id == owner_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"delete conversations of user {owner_id}", e)
        logger.info(f"Deleted {count} conversations of user {owner_id}")
        return count

    def _query(self, conversation_id: str, owner_id: Optional[str]):
        query = self.db.query(Conversation).filter(Conversation.id == conversation_id)
        if owner_id is not None:
            query = query.filter(Conversation.user_id == owner_id)
        return query

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Failed to {action}: {error}", exc_info=True)
        raise StoreError("Failed to save conversation") from error
