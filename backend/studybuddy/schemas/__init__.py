"""Pydantic schemas for API request/response validation."""

from studybuddy.schemas.chat import (
    ChatCreateRequest,
    ChatListResponse,
    ChatMessageResponse,
    ChatResponse,
    ChatTurnRequest,
    ChatTurnResponse,
    ChatWithMessages,
)
from studybuddy.schemas.generation import (
    Flashcard,
    GeneratedMaterial,
    GeneratedQuestion,
    GeneratedTest,
)
from studybuddy.schemas.materials import (
    MaterialIngestRequest,
    MaterialUploadURLRequest,
    MaterialUploadURLResponse,
    StudyMaterialListResponse,
    StudyMaterialRead,
)
from studybuddy.schemas.mock_tests import (
    AttemptCreate,
    AttemptListResponse,
    AttemptRead,
    AttemptStatsResponse,
    AttemptWithTest,
    GenerateTestRequest,
    MockTestListResponse,
    MockTestRead,
    MockTestSummary,
)

__all__ = [
    # Chat
    "ChatCreateRequest",
    "ChatListResponse",
    "ChatMessageResponse",
    "ChatResponse",
    "ChatTurnRequest",
    "ChatTurnResponse",
    "ChatWithMessages",
    # Generation
    "Flashcard",
    "GeneratedMaterial",
    "GeneratedQuestion",
    "GeneratedTest",
    # Materials
    "MaterialIngestRequest",
    "MaterialUploadURLRequest",
    "MaterialUploadURLResponse",
    "StudyMaterialListResponse",
    "StudyMaterialRead",
    # Tests
    "AttemptCreate",
    "AttemptListResponse",
    "AttemptRead",
    "AttemptStatsResponse",
    "AttemptWithTest",
    "GenerateTestRequest",
    "MockTestListResponse",
    "MockTestRead",
    "MockTestSummary",
]
