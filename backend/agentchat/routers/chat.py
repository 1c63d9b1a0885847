"""
Conversation and message endpoints, plus the real-time WebSocket channel.
"""

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Body,
    Depends,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from agentchat.config import settings
from agentchat.database import get_db
from agentchat.dependencies import (
    get_broadcaster,
    get_conversation_store,
    get_current_user,
    get_message_pipeline,
    resolve_user,
)
from agentchat.models.user import User
from agentchat.schemas import ConversationCreate, ConversationUpdate, SendMessageRequest
from agentchat.services.api_config_service import api_config_service
from agentchat.services.broadcaster import Broadcaster
from agentchat.services.conversation_store import ConversationStore, summarize
from agentchat.services.message_pipeline import MessagePipeline
from agentchat.services.response_generator import UserProfile

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/conversations")
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
):
    """List the caller's conversations, most recently updated first."""
    offset = (page - 1) * limit
    conversations = store.list_by_owner(current_user.id, limit=limit, offset=offset)
    total = store.count_by_owner(current_user.id)

    return {
        "conversations": [summarize(c) for c in conversations],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "hasMore": offset + len(conversations) < total,
        },
    }


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
):
    conversation = store.get_by_id(conversation_id, current_user.id)
    return {"conversation": conversation.to_dict()}


@router.post("/conversations", status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: ConversationCreate = Body(default=ConversationCreate()),
    current_user: User = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
):
    """Create a new, empty conversation."""
    conversation = store.create(current_user.id, request.title)
    return {
        "message": "Conversation created successfully",
        "conversation": conversation.to_dict(),
    }


@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """Send a message to a conversation and get the AI response."""
    requester = UserProfile.from_user(
        current_user, api_config_service.provider_names(db, current_user.id)
    )
    conversation = await pipeline.submit_message(
        conversation_id,
        requester,
        request.message,
        [a.to_record() for a in request.attachments],
    )
    return {
        "message": "Message sent successfully",
        "conversation": conversation.to_dict(),
    }


@router.put("/conversations/{conversation_id}")
async def rename_conversation(
    conversation_id: str,
    request: ConversationUpdate,
    current_user: User = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
):
    conversation = store.rename(conversation_id, request.title, owner_id=current_user.id)
    return {
        "message": "Conversation updated successfully",
        "conversation": conversation.to_dict(),
    }


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
):
    store.delete(conversation_id, owner_id=current_user.id)
    return {"message": "Conversation deleted successfully"}


@router.websocket("/ws")
async def websocket_events(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    hub: Broadcaster = Depends(get_broadcaster),
):
    """
    Real-time channel. Joins the authenticated user's room and forwards
    every published event until the client disconnects.
    """
    user = resolve_user(db, token)
    if user is None:
        await websocket.close(code=4401)
        return
    user_id = user.id

    await websocket.accept()

    async def forward(event: dict):
        await websocket.send_json(event)

    subscription = hub.subscribe(user_id, forward)
    try:
        await websocket.send_json(
            {"event": "connected", "data": {"userId": user_id}}
        )
        # Client messages are ignored; the loop only keeps the socket open
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {user_id}")
    finally:
        hub.unsubscribe(subscription)
