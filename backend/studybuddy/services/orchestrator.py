"""
End-to-end handling of one tutoring request.

Each entry point is a single pass:

    load context -> build prompt -> call model -> validate -> persist

Nothing survives a failed pass. If persisting fails after the model
answered, the answer is dropped and the caller has to resubmit, which
repeats the model call. There is no retry and no cache anywhere in here.
"""

import logging
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.config import get_settings
from studybuddy.db.models import (
    CHAT_TITLE_PLACEHOLDER,
    Chat,
    ChatMessage,
    ChatRole,
    Difficulty,
    Language,
    MockTest,
    StudyMaterial,
    Subject,
    TestAttempt,
)
from studybuddy.errors import PersistenceFailed, Unauthenticated
from studybuddy.services.context_store import ContextStore, derive_chat_title
from studybuddy.services.prompt_builder import (
    TRAILING_CONTEXT_WINDOW,
    PromptPayload,
    TaskKind,
    build_material_prompt,
    build_test_generation_prompt,
    build_tutor_prompt,
)
from studybuddy.services.response_validator import validate
from studybuddy.services.scoring import grade_answers
from studybuddy.services.study_store import StudyStore

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_QUESTION_COUNT = 15
MINUTES_PER_QUESTION = 2
MIN_TEST_DURATION_MINUTES = 30

_TITLE_SEPARATORS = re.compile(r"[-_]")


class TextGenerator(Protocol):
    """Anything that turns a prompt payload into raw model text."""

    async def generate(self, payload: PromptPayload) -> str: ...


@dataclass(frozen=True)
class MaterialSource:
    """Where an uploaded document lives: its original name and its blob key."""

    file_name: str
    file_path: str


@dataclass
class ChatTurnResult:
    chat: Chat
    user_message: ChatMessage
    assistant_message: ChatMessage
    title_updated: bool = False


def compute_duration_minutes(total_questions: int) -> int:
    """Two minutes per question, never less than half an hour."""
    return max(MINUTES_PER_QUESTION * total_questions, MIN_TEST_DURATION_MINUTES)


def build_test_title(subject: Subject, difficulty: Difficulty) -> str:
    return f"{subject.value.capitalize()} - {difficulty.value.capitalize()} Level"


def derive_material_title(file_name: str) -> str:
    """'organic_chem-notes.pdf' -> 'organic chem notes'."""
    base = PurePosixPath(file_name.replace("\\", "/")).name
    stem = re.sub(r"\.[^/.]+$", "", base)
    return _TITLE_SEPARATORS.sub(" ", stem)


def _require_owner(owner: UUID | None) -> UUID:
    if owner is None:
        raise Unauthenticated()
    return owner


class SessionOrchestrator:
    """
    Drives chat turns, test generation and material ingestion.

    One instance per request: it shares the request's database session and
    commits at the end of each persisting step.
    """

    def __init__(self, db: AsyncSession, gateway: TextGenerator):
        self.db = db
        self.gateway = gateway
        self.contexts = ContextStore(db)
        self.studies = StudyStore(db)

    @asynccontextmanager
    async def _persisting(self, what: str) -> AsyncIterator[None]:
        """Run a write step; database errors become PersistenceFailed."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception("Persisting %s failed", what)
            await self.db.rollback()
            raise PersistenceFailed(f"Failed to save {what}") from e

    # =========================================================================
    # CHAT TURN
    # =========================================================================

    async def send_turn(
        self,
        owner: UUID | None,
        chat_id: UUID,
        text: str,
        language: Language = Language.ENGLISH,
        is_voice: bool = False,
    ) -> ChatTurnResult:
        """
        Answer one user message in a chat.

        The user message is committed before the model is called, so it stays
        in the history even when generation fails. The chat title is rewritten
        from the first user message on the first turn that completes.

        Raises:
            Unauthenticated: no owner
            NotFound: chat absent or not owned by owner
            GenerationFailed, MalformedGeneration: model call or reply unusable
            PersistenceFailed: a write failed
        """
        owner = _require_owner(owner)
        language = Language(language)
        chat = await self.contexts.get_chat(owner, chat_id)

        async with self._persisting("user message"):
            user_message = await self.contexts.append_message(
                chat.id, ChatRole.USER, text, language, is_voice
            )
            await self.db.commit()

        trailing = await self.contexts.list_messages(
            chat.id, limit=TRAILING_CONTEXT_WINDOW + 1, up_to=user_message
        )
        history = [msg for msg in trailing if msg.id != user_message.id]
        payload = build_tutor_prompt(chat.subject, language, [*history, user_message])
        logger.info(
            "Chat %s: sending turn with %d context messages", chat.id, len(payload.messages) - 1
        )

        raw = await self.gateway.generate(payload)
        reply = validate(TaskKind.CHAT, raw)

        async with self._persisting("assistant message"):
            assistant_message = await self.contexts.append_message(
                chat.id, ChatRole.ASSISTANT, reply, language
            )
            title_updated = False
            if chat.title == CHAT_TITLE_PLACEHOLDER:
                first = await self.contexts.first_user_message(chat.id)
                if first is not None:
                    title_updated = await self.contexts.rename_chat_once(
                        chat.id, derive_chat_title(first.content)
                    )
            await self.db.commit()
            await self.db.refresh(chat)

        return ChatTurnResult(
            chat=chat,
            user_message=user_message,
            assistant_message=assistant_message,
            title_updated=title_updated,
        )

    # =========================================================================
    # TEST GENERATION
    # =========================================================================

    async def generate_test(
        self,
        owner: UUID | None,
        subject: Subject | str,
        difficulty: Difficulty | str,
        question_count: int = DEFAULT_QUESTION_COUNT,
    ) -> MockTest:
        """
        Generate and store a multiple-choice test.

        Raises:
            Unauthenticated: no owner
            GenerationFailed: model call failed
            MalformedGeneration: reply did not decode into valid questions
            PersistenceFailed: the test could not be saved
        """
        owner = _require_owner(owner)
        subject = Subject(subject)
        difficulty = Difficulty(difficulty)

        logger.info(
            "Generating %d %s %s questions for user %s",
            question_count, difficulty.value, subject.value, owner,
        )
        payload = build_test_generation_prompt(subject, difficulty, question_count)
        raw = await self.gateway.generate(payload)
        generated = validate(TaskKind.TEST, raw)

        questions = [question.model_dump() for question in generated.questions]
        if len(questions) != question_count:
            logger.warning(
                "Model returned %d questions, %d requested; keeping what was returned",
                len(questions), question_count,
            )

        async with self._persisting("test"):
            test = await self.studies.create_test(
                owner,
                title=build_test_title(subject, difficulty),
                subject=subject.value,
                difficulty=difficulty.value,
                duration_minutes=compute_duration_minutes(len(questions)),
                questions=questions,
            )
            await self.db.commit()

        logger.info("Test created: %s (%d questions)", test.id, test.total_questions)
        return test

    # =========================================================================
    # MATERIAL INGESTION
    # =========================================================================

    async def ingest_material(
        self,
        owner: UUID | None,
        source: MaterialSource,
        extracted_text: str,
        subject: Subject | str | None = None,
    ) -> StudyMaterial:
        """
        Turn already-extracted document text into a study material.

        Undecodable model output is not an error here; the material is saved
        with a placeholder summary and no flashcards.

        Raises:
            Unauthenticated: no owner
            GenerationFailed: model call failed
            PersistenceFailed: the material could not be saved
        """
        owner = _require_owner(owner)
        subject = Subject(subject) if subject else None

        logger.info("Processing %s for user %s", source.file_name, owner)
        payload = build_material_prompt(
            extracted_text, subject, max_chars=settings.material_context_max_chars
        )
        raw = await self.gateway.generate(payload)
        generated = validate(TaskKind.MATERIAL, raw)

        async with self._persisting("study material"):
            material = await self.studies.create_material(
                owner,
                title=derive_material_title(source.file_name),
                file_name=source.file_name,
                file_path=source.file_path,
                subject=subject.value if subject else None,
                summary=generated.summary,
                flashcards=[card.model_dump() for card in generated.flashcards],
                key_topics=generated.key_topics,
            )
            await self.db.commit()

        logger.info(
            "Study material created: %s (%d flashcards%s)",
            material.id,
            len(material.flashcards),
            ", fallback summary" if generated.is_fallback else "",
        )
        return material

    # =========================================================================
    # TEST ATTEMPTS
    # =========================================================================

    async def record_attempt(
        self,
        owner: UUID | None,
        test_id: UUID,
        answers: Sequence[str | None],
        time_taken_minutes: int | None = None,
    ) -> TestAttempt:
        """
        Grade submitted answers against a stored test and save the attempt.

        Raises:
            Unauthenticated: no owner
            NotFound: test absent or not owned by owner
            ValueError: more answers than questions
            PersistenceFailed: the attempt could not be saved
        """
        owner = _require_owner(owner)
        test = await self.studies.get_test(owner, test_id)
        grade = grade_answers(test.questions, answers)

        async with self._persisting("test attempt"):
            attempt = await self.studies.create_attempt(
                owner,
                test_id=test.id,
                score=grade.score,
                total_questions=grade.total_questions,
                correct_answers=grade.correct_answers,
                time_taken_minutes=time_taken_minutes,
            )
            await self.db.commit()
        return attempt
