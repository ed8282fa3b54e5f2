"""Pydantic schemas for study material operations."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from studybuddy.db.models import Subject
from studybuddy.schemas.base import BaseSchema, CreatedAtMixin, IDMixin


# Request schemas
class MaterialUploadURLRequest(BaseModel):
    """Request for presigned upload URL."""

    filename: str = Field(..., min_length=1, max_length=255)

    @field_validator("filename")
    @classmethod
    def _must_be_pdf(cls, filename: str) -> str:
        if not filename.lower().endswith(".pdf"):
            raise ValueError("Only PDF files can be uploaded")
        return filename


class MaterialIngestRequest(BaseModel):
    """Request to turn an uploaded PDF into study material."""

    file_path: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    subject: Subject | None = None


# Response schemas
class MaterialUploadURLResponse(BaseModel):
    """Response with presigned upload URL."""

    upload_url: str
    fields: dict
    file_path: str


class FlashcardRead(BaseSchema):
    """Stored flashcard."""

    front: str
    back: str
    topic: str = ""


class StudyMaterialRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Full study material response."""

    user_id: UUID
    title: str
    file_name: str
    file_path: str
    subject: str | None = None
    summary: str | None = None
    flashcards: list[FlashcardRead]
    key_topics: list[str]


class StudyMaterialListResponse(BaseModel):
    """List of study materials."""

    materials: list[StudyMaterialRead]
    total: int
