"""Pydantic schemas for chat operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from studybuddy.db.models import Language, Subject
from studybuddy.schemas.base import BaseSchema, IDMixin, TimestampMixin


# Request schemas
class ChatCreateRequest(BaseModel):
    """Request to start a new chat."""

    subject: Subject | None = None


class ChatTurnRequest(BaseModel):
    """Request to send a chat message and get the tutor's reply."""

    message: str = Field(..., min_length=1, max_length=10000)
    language: Language = Language.ENGLISH
    is_voice: bool = False


# Response schemas
class ChatMessageResponse(BaseSchema, IDMixin):
    """Chat message response."""

    chat_id: UUID
    role: str
    content: str
    is_voice: bool
    language: str
    created_at: datetime


class ChatResponse(BaseSchema, IDMixin, TimestampMixin):
    """Chat response."""

    user_id: UUID
    title: str
    subject: str | None = None


class ChatWithMessages(ChatResponse):
    """Chat with message history."""

    messages: list[ChatMessageResponse]


class ChatListResponse(BaseModel):
    """List of chats."""

    chats: list[ChatResponse]
    total: int


class ChatTurnResponse(BaseModel):
    """Both sides of a completed turn, plus the chat as it stands afterwards."""

    chat: ChatResponse
    user_message: ChatMessageResponse
    assistant_message: ChatMessageResponse
