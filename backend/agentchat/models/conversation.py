"""
Conversation database model.

Messages are embedded as an ordered JSON array; they are never queried
independently of their conversation.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship

from agentchat.database import Base


class Conversation(Base):
    """Conversation model."""

    __tablename__ = "conversations"
    __table_args__ = (
        Index("idx_conversation_user_updated", "user_id", "updated_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    # [{id, role, content, timestamp, attachments}, ...] in send order
    messages = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # Optimistic lock counter; SQLite ignores FOR UPDATE
    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="conversations")

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "messages": list(self.messages or []),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self):
        return f"<Conversation(id={self.id}, user_id={self.user_id}, title={self.title!r})>"
