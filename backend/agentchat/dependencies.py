"""
Shared API dependencies.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from agentchat.config import settings
from agentchat.core import security
from agentchat.database import get_db
from agentchat.models.user import User
from agentchat.services.auth_service import auth_service
from agentchat.services.broadcaster import Broadcaster
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.message_pipeline import MessagePipeline
from agentchat.services.response_generator import (
    ResponseGenerator,
    build_response_generator,
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

# One hub per process; every WebSocket session registers here
broadcaster = Broadcaster()


def resolve_user(db: Session, token: str):
    """Return the active user a token belongs to, or None."""
    user_id = security.decode_access_token(token) if token else None
    if not user_id:
        return None
    user = auth_service.get_user_by_id(db, user_id=user_id)
    if user is None or not user.is_active or user.is_deleted:
        return None
    return user


async def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)
) -> User:
    """
    Validate access token and return current user.
    """
    user = resolve_user(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_broadcaster() -> Broadcaster:
    return broadcaster


@lru_cache
def get_response_generator() -> ResponseGenerator:
    return build_response_generator(settings)


def get_conversation_store(db: Session = Depends(get_db)) -> ConversationStore:
    return ConversationStore(db)


def get_message_pipeline(
    store: ConversationStore = Depends(get_conversation_store),
    generator: ResponseGenerator = Depends(get_response_generator),
    hub: Broadcaster = Depends(get_broadcaster),
) -> MessagePipeline:
    return MessagePipeline(
        store, generator, hub, generator_timeout=settings.GENERATOR_TIMEOUT
    )
