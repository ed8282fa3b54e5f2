"""Initial schema: chats, messages, tests, attempts, study materials.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Changes:
- Create chats table (owner-scoped conversations, one-time title rewrite)
- Create chat_messages table (append-only turn log)
- Create tests table (generated questions stored inline as JSONB)
- Create test_attempts table (weak reference to tests, no foreign key)
- Create study_materials table (summary + flashcards from uploaded PDFs)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # CHATS TABLE
    # ==========================================================================
    op.create_table(
        "chats",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(), nullable=False, server_default="New Chat"),
        sa.Column("subject", sa.String(), nullable=True),  # physics, chemistry, mathematics

        # Timestamps
        sa.Column("created_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("idx_chats_user_id_updated_at", "chats", ["user_id", "updated_at"])

    # ==========================================================================
    # CHAT MESSAGES TABLE
    # ==========================================================================
    op.create_table(
        "chat_messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("chat_id", UUID(as_uuid=True), sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(), nullable=False),  # 'user' or 'assistant'
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_voice", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("language", sa.String(), nullable=False, server_default="english"),  # english, hindi, mixed

        # Timestamp
        sa.Column("created_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("idx_chat_messages_chat_id_created_at", "chat_messages", ["chat_id", "created_at"])

    # ==========================================================================
    # TESTS TABLE
    # ==========================================================================
    op.create_table(
        "tests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("difficulty", sa.String(), nullable=False),  # easy, medium, hard
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("questions", JSONB(), nullable=False),
        sa.Column("created_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.CheckConstraint("total_questions > 0", name="ck_tests_total_questions_positive"),
    )
    op.create_index("idx_tests_user_id", "tests", ["user_id"])

    # ==========================================================================
    # TEST ATTEMPTS TABLE
    # ==========================================================================
    op.create_table(
        "test_attempts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        # No foreign key: attempts outlive deleted tests
        sa.Column("test_id", UUID(as_uuid=True), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("correct_answers", sa.Integer(), nullable=False),
        sa.Column("time_taken_minutes", sa.Integer(), nullable=True),
        sa.Column("completed_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.CheckConstraint(
            "correct_answers >= 0 AND correct_answers <= total_questions",
            name="ck_test_attempts_correct_answers_range",
        ),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_test_attempts_score_range"),
    )
    op.create_index(
        "idx_test_attempts_user_id_completed_at", "test_attempts", ["user_id", "completed_at"]
    )

    # ==========================================================================
    # STUDY MATERIALS TABLE
    # ==========================================================================
    op.create_table(
        "study_materials",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_path", sa.String(), nullable=False),  # S3 key
        sa.Column("subject", sa.String(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("flashcards", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("key_topics", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("idx_study_materials_user_id", "study_materials", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_study_materials_user_id", table_name="study_materials")
    op.drop_table("study_materials")

    op.drop_index("idx_test_attempts_user_id_completed_at", table_name="test_attempts")
    op.drop_table("test_attempts")

    op.drop_index("idx_tests_user_id", table_name="tests")
    op.drop_table("tests")

    op.drop_index("idx_chat_messages_chat_id_created_at", table_name="chat_messages")
    op.drop_table("chat_messages")

    op.drop_index("idx_chats_user_id_updated_at", table_name="chats")
    op.drop_table("chats")
