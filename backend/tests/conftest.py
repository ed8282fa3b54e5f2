"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; give the required ones harmless values.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret")
os.environ.setdefault("AWS_S3_BUCKET", "studybuddy-test")

import json
from collections.abc import AsyncGenerator, Callable
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studybuddy.api.deps import (
    create_access_token,
    get_blob_store,
    get_document_extractor,
    get_model_gateway,
)
from studybuddy.db.base import Base
from studybuddy.db.session import get_db
from studybuddy.errors import GenerationFailed
from studybuddy.main import app
from studybuddy.services.pdf_processor import ExtractionResult
from studybuddy.services.prompt_builder import PromptPayload
from studybuddy.services.s3 import BlobStoreError, S3Service


# =============================================================================
# MODEL STUBS
# =============================================================================


def make_question(index: int = 0, **overrides) -> dict:
    """A question shaped like the test-generation prompt asks for."""
    question = {
        "question": f"Question {index}: what is the SI unit of force?",
        "options": {"A": "Joule", "B": "Newton", "C": "Watt", "D": "Pascal"},
        "correct_answer": "B",
        "explanation": "Force is measured in newtons.",
        "topic": "Units and measurements",
        "difficulty_reason": "Direct recall of a definition",
    }
    question.update(overrides)
    return question


def questions_reply(count: int = 15) -> str:
    return json.dumps({"questions": [make_question(i) for i in range(count)]})


def material_reply() -> str:
    return json.dumps(
        {
            "summary": "Newton's laws relate force, mass and acceleration.",
            "flashcards": [
                {"front": "Newton's second law", "back": "F = ma", "topic": "Laws of motion"},
                {"front": "Unit of force", "back": "Newton", "topic": "Units"},
            ],
            "key_topics": ["Laws of motion", "Units"],
        }
    )


class StubGateway:
    """
    Stand-in for ModelGateway.

    `reply` is a string, a callable taking the payload, or an exception to
    raise. Every payload is recorded.
    """

    def __init__(self, reply: str | Callable[[PromptPayload], str] | Exception = "Sure, let's work through it."):
        self.reply = reply
        self.payloads: list[PromptPayload] = []

    async def generate(self, payload: PromptPayload) -> str:
        self.payloads.append(payload)
        if isinstance(self.reply, Exception):
            raise self.reply
        if callable(self.reply):
            return self.reply(payload)
        return self.reply


class FakeBlobStore:
    """In-memory replacement for S3Service."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []

    new_material_key = staticmethod(S3Service.new_material_key)
    owns_key = staticmethod(S3Service.owns_key)

    async def generate_presigned_upload_url(self, file_key: str, content_type: str = "application/pdf", expiration: int = 300) -> dict:
        return {"url": "https://s3.test/studybuddy-test", "fields": {"key": file_key}}

    async def download(self, file_key: str) -> bytes:
        if file_key not in self.objects:
            raise BlobStoreError(f"missing {file_key}")
        return self.objects[file_key]

    async def delete(self, file_key: str) -> None:
        self.objects.pop(file_key, None)
        self.deleted.append(file_key)


class FakeExtractor:
    """Treats any bytes starting with %PDF as a PDF whose text is the rest."""

    async def validate_pdf(self, pdf_bytes: bytes) -> bool:
        return pdf_bytes.startswith(b"%PDF")

    async def extract_text(self, pdf_bytes: bytes) -> ExtractionResult:
        return ExtractionResult(text=pdf_bytes[4:].decode(), page_count=1)


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'studybuddy.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def owner() -> UUID:
    return uuid4()


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
async def client(session_factory, gateway, blob_store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_model_gateway] = lambda: gateway
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_document_extractor] = lambda: FakeExtractor()
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(owner) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(owner)}"}


@pytest.fixture
def failing_gateway() -> StubGateway:
    return StubGateway(GenerationFailed("Model API error: 503", upstream_status=503))
