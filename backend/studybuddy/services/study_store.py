"""Durable tests, test attempts and study materials, scoped per owner."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.db.models import MockTest, StudyMaterial, TestAttempt
from studybuddy.errors import NotFound


class StudyStore:
    """
    Persistence for generated study artifacts.

    Like ContextStore, methods flush but leave committing to the caller.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # TESTS
    # =========================================================================

    async def create_test(
        self,
        owner: UUID,
        *,
        title: str,
        subject: str,
        difficulty: str,
        duration_minutes: int,
        questions: list[dict],
    ) -> MockTest:
        """Insert a test with all of its questions in one row."""
        test = MockTest(
            user_id=owner,
            title=title,
            subject=subject,
            difficulty=difficulty,
            total_questions=len(questions),
            duration_minutes=duration_minutes,
            questions=questions,
        )
        self.db.add(test)
        await self.db.flush()
        await self.db.refresh(test)
        return test

    async def get_test(self, owner: UUID, test_id: UUID) -> MockTest:
        result = await self.db.execute(
            select(MockTest).where(MockTest.id == test_id, MockTest.user_id == owner)
        )
        test = result.scalar_one_or_none()
        if test is None:
            raise NotFound("test", test_id)
        return test

    async def list_tests(self, owner: UUID, skip: int = 0, limit: int = 50) -> tuple[list[MockTest], int]:
        """Owner's tests, newest first, with the total count."""
        count_stmt = select(func.count()).select_from(MockTest).where(MockTest.user_id == owner)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(MockTest)
            .where(MockTest.user_id == owner)
            .order_by(MockTest.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def delete_test(self, owner: UUID, test_id: UUID) -> None:
        """Delete a test. Its attempts are kept."""
        test = await self.get_test(owner, test_id)
        await self.db.delete(test)
        await self.db.flush()

    # =========================================================================
    # ATTEMPTS
    # =========================================================================

    async def create_attempt(
        self,
        owner: UUID,
        *,
        test_id: UUID,
        score: int,
        total_questions: int,
        correct_answers: int,
        time_taken_minutes: int | None = None,
    ) -> TestAttempt:
        attempt = TestAttempt(
            user_id=owner,
            test_id=test_id,
            score=score,
            total_questions=total_questions,
            correct_answers=correct_answers,
            time_taken_minutes=time_taken_minutes,
        )
        self.db.add(attempt)
        await self.db.flush()
        await self.db.refresh(attempt)
        return attempt

    async def list_attempts(
        self, owner: UUID, limit: int = 10
    ) -> list[tuple[TestAttempt, MockTest | None]]:
        """
        Most recent attempts with their tests.

        The join is outer: an attempt whose test was deleted comes back
        paired with None.
        """
        stmt = (
            select(TestAttempt, MockTest)
            .outerjoin(
                MockTest,
                (MockTest.id == TestAttempt.test_id) & (MockTest.user_id == TestAttempt.user_id),
            )
            .where(TestAttempt.user_id == owner)
            .order_by(TestAttempt.completed_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [(attempt, test) for attempt, test in result.all()]

    # =========================================================================
    # STUDY MATERIALS
    # =========================================================================

    async def create_material(
        self,
        owner: UUID,
        *,
        title: str,
        file_name: str,
        file_path: str,
        subject: str | None,
        summary: str | None,
        flashcards: list[dict],
        key_topics: list[str],
    ) -> StudyMaterial:
        material = StudyMaterial(
            user_id=owner,
            title=title,
            file_name=file_name,
            file_path=file_path,
            subject=subject,
            summary=summary,
            flashcards=flashcards,
            key_topics=key_topics,
        )
        self.db.add(material)
        await self.db.flush()
        await self.db.refresh(material)
        return material

    async def get_material(self, owner: UUID, material_id: UUID) -> StudyMaterial:
        result = await self.db.execute(
            select(StudyMaterial).where(
                StudyMaterial.id == material_id, StudyMaterial.user_id == owner
            )
        )
        material = result.scalar_one_or_none()
        if material is None:
            raise NotFound("study material", material_id)
        return material

    async def list_materials(
        self, owner: UUID, skip: int = 0, limit: int = 100
    ) -> tuple[list[StudyMaterial], int]:
        """Owner's materials, newest first, with the total count."""
        count_stmt = (
            select(func.count()).select_from(StudyMaterial).where(StudyMaterial.user_id == owner)
        )
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(StudyMaterial)
            .where(StudyMaterial.user_id == owner)
            .order_by(StudyMaterial.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def delete_material(self, material: StudyMaterial) -> None:
        await self.db.delete(material)
        await self.db.flush()
