"""
SQLAlchemy 2.0 Models for Study Buddy.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys. Column types are portable (JSON falls
back from JSONB, Uuid from the native PostgreSQL type) so the same models
run against SQLite in tests.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybuddy.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware current time; used for ordering timestamps."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class Subject(str, PyEnum):
    """JEE subject a chat, test or material is tagged with."""

    PHYSICS = "physics"
    CHEMISTRY = "chemistry"
    MATHEMATICS = "mathematics"


class ChatRole(str, PyEnum):
    """Role in chat conversation."""

    USER = "user"
    ASSISTANT = "assistant"


class Language(str, PyEnum):
    """Response language requested for a turn."""

    ENGLISH = "english"
    HINDI = "hindi"
    MIXED = "mixed"


class Difficulty(str, PyEnum):
    """Difficulty level of a generated test."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


CHAT_TITLE_PLACEHOLDER = "New Chat"


# =============================================================================
# MODELS
# =============================================================================


class Chat(Base):
    """
    Tutoring conversation owned by one user.

    The title starts as CHAT_TITLE_PLACEHOLDER and is rewritten at most once,
    from the first user message.
    """

    __tablename__ = "chats"
    __table_args__ = (Index("idx_chats_user_id_updated_at", "user_id", "updated_at"),)

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid(), nullable=False)
    title: Mapped[str] = mapped_column(
        String(), nullable=False, default=CHAT_TITLE_PLACEHOLDER, server_default=CHAT_TITLE_PLACEHOLDER
    )
    subject: Mapped[Optional[str]] = mapped_column(String(), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )


class ChatMessage(Base):
    """
    Individual turn in a chat.

    Append-only: rows are never updated after insert.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (Index("idx_chat_messages_chat_id_created_at", "chat_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    chat_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(), nullable=False)  # 'user' or 'assistant'
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_voice: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false())
    language: Mapped[str] = mapped_column(
        String(), nullable=False, default=Language.ENGLISH.value, server_default=Language.ENGLISH.value
    )

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")


class MockTest(Base):
    """
    Generated multiple-choice test.

    Questions are stored inline as a JSON list; the row is written once,
    together with all of its questions.
    """

    __tablename__ = "tests"
    __table_args__ = (
        CheckConstraint("total_questions > 0", name="ck_tests_total_questions_positive"),
        Index("idx_tests_user_id", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid(), nullable=False)
    title: Mapped[str] = mapped_column(String(), nullable=False)
    subject: Mapped[str] = mapped_column(String(), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(), nullable=False)
    total_questions: Mapped[int] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)

    # [{text, options, correct_label, explanation, topic, difficulty_rationale}]
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class TestAttempt(Base):
    """
    Immutable record of one completed test.

    test_id is a weak reference (no foreign key): the test may be deleted
    later and attempts must survive it.
    """

    __tablename__ = "test_attempts"
    __table_args__ = (
        CheckConstraint(
            "correct_answers >= 0 AND correct_answers <= total_questions",
            name="ck_test_attempts_correct_answers_range",
        ),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_test_attempts_score_range"),
        Index("idx_test_attempts_user_id_completed_at", "user_id", "completed_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid(), nullable=False)
    test_id: Mapped[UUID] = mapped_column(Uuid(), nullable=False)
    score: Mapped[int] = mapped_column(nullable=False)  # percentage, 0-100
    total_questions: Mapped[int] = mapped_column(nullable=False)
    correct_answers: Mapped[int] = mapped_column(nullable=False)
    time_taken_minutes: Mapped[Optional[int]] = mapped_column(nullable=True)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class StudyMaterial(Base):
    """
    Summary and flashcards generated from an uploaded PDF.

    file_path is the S3 key of the source document.
    """

    __tablename__ = "study_materials"
    __table_args__ = (Index("idx_study_materials_user_id", "user_id"),)

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid(), nullable=False)
    title: Mapped[str] = mapped_column(String(), nullable=False)
    file_name: Mapped[str] = mapped_column(String(), nullable=False)
    file_path: Mapped[str] = mapped_column(String(), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # [{front, back, topic}]
    flashcards: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    key_topics: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
