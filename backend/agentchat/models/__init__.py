"""
Database models for AgentChat.

All SQLAlchemy models are imported here so metadata sees every table.
"""

from agentchat.models.user import User
from agentchat.models.conversation import Conversation
from agentchat.models.api_config import ApiConfig

__all__ = [
    "User",
    "Conversation",
    "ApiConfig",
]
