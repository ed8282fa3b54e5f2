"""Durable chat and message history, scoped per owner."""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.db.models import (
    CHAT_TITLE_PLACEHOLDER,
    Chat,
    ChatMessage,
    ChatRole,
    Language,
    Subject,
    utcnow,
)
from studybuddy.errors import NotFound

logger = logging.getLogger(__name__)

CHAT_TITLE_MAX_CHARS = 30
CHAT_TITLE_ELLIPSIS = "..."


def derive_chat_title(first_message: str) -> str:
    """Title for a chat, taken from its first user message."""
    if len(first_message) > CHAT_TITLE_MAX_CHARS:
        return first_message[:CHAT_TITLE_MAX_CHARS] + CHAT_TITLE_ELLIPSIS
    return first_message


class ContextStore:
    """
    Chats and their append-only message logs.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_chat(self, owner: UUID, subject: Subject | None = None) -> Chat:
        """Start a chat with the placeholder title."""
        chat = Chat(
            user_id=owner,
            title=CHAT_TITLE_PLACEHOLDER,
            subject=Subject(subject).value if subject else None,
        )
        self.db.add(chat)
        await self.db.flush()
        await self.db.refresh(chat)
        return chat

    async def list_chats(self, owner: UUID, skip: int = 0, limit: int = 50) -> list[Chat]:
        """Owner's chats, most recently updated first."""
        stmt = (
            select(Chat)
            .where(Chat.user_id == owner)
            .order_by(Chat.updated_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_chat(self, owner: UUID, chat_id: UUID) -> Chat:
        """Fetch a chat the owner holds, or raise NotFound."""
        result = await self.db.execute(
            select(Chat).where(Chat.id == chat_id, Chat.user_id == owner)
        )
        chat = result.scalar_one_or_none()
        if chat is None:
            raise NotFound("chat", chat_id)
        return chat

    async def _require_chat(self, chat_id: UUID) -> None:
        result = await self.db.execute(select(Chat.id).where(Chat.id == chat_id))
        if result.scalar_one_or_none() is None:
            raise NotFound("chat", chat_id)

    async def append_message(
        self,
        chat_id: UUID,
        role: ChatRole,
        content: str,
        language: Language = Language.ENGLISH,
        is_voice: bool = False,
    ) -> ChatMessage:
        """
        Append a message and bump the chat's updated_at.

        Raises:
            NotFound: chat_id does not exist
        """
        await self._require_chat(chat_id)

        now = utcnow()
        message = ChatMessage(
            chat_id=chat_id,
            role=ChatRole(role).value,
            content=content,
            language=Language(language).value,
            is_voice=is_voice,
            created_at=now,
        )
        self.db.add(message)
        await self.db.execute(
            update(Chat).where(Chat.id == chat_id).values(updated_at=now)
        )
        await self.db.flush()
        return message

    async def list_messages(
        self,
        chat_id: UUID,
        limit: int | None = None,
        up_to: ChatMessage | None = None,
    ) -> list[ChatMessage]:
        """
        Messages of a chat, oldest first.

        With limit, only the `limit` most recent messages are returned (still
        oldest first). With up_to, messages created after that one are left
        out, so a concurrent turn cannot leak into this turn's context.
        """
        await self._require_chat(chat_id)

        stmt = select(ChatMessage).where(ChatMessage.chat_id == chat_id)
        if up_to is not None:
            stmt = stmt.where(ChatMessage.created_at <= up_to.created_at)

        if limit is None:
            result = await self.db.execute(stmt.order_by(ChatMessage.created_at.asc()))
            return list(result.scalars().all())

        stmt = (
            stmt
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def first_user_message(self, chat_id: UUID) -> ChatMessage | None:
        """Earliest user message in a chat, if any."""
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id, ChatMessage.role == ChatRole.USER.value)
            .order_by(ChatMessage.created_at.asc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def rename_chat_once(self, chat_id: UUID, derived_title: str) -> bool:
        """
        Set the title only if it is still the placeholder.

        Compare-and-set: a concurrent rename that already happened wins.
        Returns True when this call applied the rename.
        """
        await self._require_chat(chat_id)

        result = await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id, Chat.title == CHAT_TITLE_PLACEHOLDER)
            .values(title=derived_title)
            .execution_options(synchronize_session="fetch")
        )
        renamed = result.rowcount == 1
        if renamed:
            logger.info("Chat %s titled %r", chat_id, derived_title)
        return renamed

    async def delete_chat(self, owner: UUID, chat_id: UUID) -> None:
        """Delete a chat together with its messages."""
        chat = await self.get_chat(owner, chat_id)
        await self.db.delete(chat)
        await self.db.flush()
