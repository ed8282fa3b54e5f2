"""API routes for tutoring chats."""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import func, select

from studybuddy.api.deps import CurrentOwner, DbSession, Orchestrator
from studybuddy.db.models import Chat
from studybuddy.schemas.chat import (
    ChatCreateRequest,
    ChatListResponse,
    ChatMessageResponse,
    ChatResponse,
    ChatTurnRequest,
    ChatTurnResponse,
    ChatWithMessages,
)
from studybuddy.services.context_store import ContextStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


# =============================================================================
# CHAT MANAGEMENT
# =============================================================================


@router.post("/chats", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: ChatCreateRequest,
    db: DbSession,
    owner: CurrentOwner,
):
    """Start a new chat, titled 'New Chat' until its first turn completes."""
    chat = await ContextStore(db).create_chat(owner, request.subject)
    await db.commit()
    return ChatResponse.model_validate(chat)


@router.get("/chats", response_model=ChatListResponse)
async def list_chats(
    db: DbSession,
    owner: CurrentOwner,
    skip: int = 0,
    limit: int = 50,
):
    """List the caller's chats, most recently active first."""
    count_stmt = select(func.count()).select_from(Chat).where(Chat.user_id == owner)
    total = (await db.execute(count_stmt)).scalar() or 0

    chats = await ContextStore(db).list_chats(owner, skip=skip, limit=limit)
    return ChatListResponse(
        chats=[ChatResponse.model_validate(c) for c in chats],
        total=total,
    )


@router.get("/chats/{chat_id}", response_model=ChatWithMessages)
async def get_chat(
    chat_id: UUID,
    db: DbSession,
    owner: CurrentOwner,
):
    """Get a chat with its full message history, oldest first."""
    store = ContextStore(db)
    chat = await store.get_chat(owner, chat_id)
    messages = await store.list_messages(chat.id)

    return ChatWithMessages(
        **ChatResponse.model_validate(chat).model_dump(),
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
    )


@router.delete("/chats/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat_id: UUID,
    db: DbSession,
    owner: CurrentOwner,
):
    """Delete a chat and all its messages."""
    await ContextStore(db).delete_chat(owner, chat_id)
    await db.commit()
    return None


# =============================================================================
# CHAT TURNS
# =============================================================================


@router.post("/chats/{chat_id}/messages", response_model=ChatTurnResponse)
async def send_message(
    chat_id: UUID,
    request: ChatTurnRequest,
    owner: CurrentOwner,
    orchestrator: Orchestrator,
):
    """
    Send a message and wait for the tutor's reply.

    The user message is stored even if generation fails; resubmitting then
    adds a second copy of it.
    """
    result = await orchestrator.send_turn(
        owner,
        chat_id,
        request.message,
        language=request.language,
        is_voice=request.is_voice,
    )
    return ChatTurnResponse(
        chat=ChatResponse.model_validate(result.chat),
        user_message=ChatMessageResponse.model_validate(result.user_message),
        assistant_message=ChatMessageResponse.model_validate(result.assistant_message),
    )
