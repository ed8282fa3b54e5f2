"""API routes for PDF upload and study material generation."""

import logging
from uuid import UUID

from fastapi import APIRouter, status

from studybuddy.api.deps import BlobStore, CurrentOwner, DbSession, DocumentExtractor, Orchestrator
from studybuddy.errors import InvalidDocument, NotFound, StorageFailed
from studybuddy.schemas.materials import (
    MaterialIngestRequest,
    MaterialUploadURLRequest,
    MaterialUploadURLResponse,
    StudyMaterialListResponse,
    StudyMaterialRead,
)
from studybuddy.services.orchestrator import MaterialSource
from studybuddy.services.s3 import BlobStoreError
from studybuddy.services.study_store import StudyStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["materials"])


# =============================================================================
# UPLOAD & INGESTION
# =============================================================================


@router.post("/upload-url", response_model=MaterialUploadURLResponse)
async def get_upload_url(
    request: MaterialUploadURLRequest,
    owner: CurrentOwner,
    blob_store: BlobStore,
):
    """
    Generate presigned URL for direct PDF upload to S3.

    Flow:
    1. Client calls this endpoint with filename
    2. Client uploads the file directly to S3 using the presigned POST
    3. Client calls /materials/ingest with the returned file_path
    """
    file_key = blob_store.new_material_key(owner, request.filename)
    try:
        presigned = await blob_store.generate_presigned_upload_url(file_key)
    except BlobStoreError as e:
        logger.error("Could not presign upload for %s: %s", file_key, e)
        raise StorageFailed("Failed to prepare upload") from e

    return MaterialUploadURLResponse(
        upload_url=presigned["url"],
        fields=presigned["fields"],
        file_path=file_key,
    )


@router.post("/ingest", response_model=StudyMaterialRead, status_code=status.HTTP_201_CREATED)
async def ingest_material(
    request: MaterialIngestRequest,
    owner: CurrentOwner,
    orchestrator: Orchestrator,
    blob_store: BlobStore,
    extractor: DocumentExtractor,
):
    """
    Turn an uploaded PDF into a summary and flashcards.

    Downloads the file, extracts its text, and hands the text to the
    generation pipeline. If the model's reply cannot be decoded the material
    is still created, with a placeholder summary and no flashcards.
    """
    if not blob_store.owns_key(owner, request.file_path):
        raise NotFound("file", request.file_path)

    try:
        logger.info("Downloading material from S3: %s", request.file_path)
        pdf_bytes = await blob_store.download(request.file_path)
    except BlobStoreError as e:
        logger.error("Failed to download %s: %s", request.file_path, e, exc_info=True)
        raise StorageFailed("Failed to read uploaded file") from e

    if not await extractor.validate_pdf(pdf_bytes):
        logger.error("File is not a valid PDF: %s", request.file_name)
        raise InvalidDocument("The uploaded file is not a valid PDF")

    extraction = await extractor.extract_text(pdf_bytes)
    if not extraction.ok:
        logger.error("Text extraction failed for %s: %s", request.file_name, extraction.error)
        raise InvalidDocument("Text could not be extracted from the PDF")
    logger.info(
        "Extracted %d chars from %d pages of %s",
        len(extraction.text), extraction.page_count, request.file_name,
    )

    material = await orchestrator.ingest_material(
        owner,
        MaterialSource(file_name=request.file_name, file_path=request.file_path),
        extraction.text,
        request.subject,
    )
    return StudyMaterialRead.model_validate(material)


# =============================================================================
# MATERIAL MANAGEMENT
# =============================================================================


@router.get("/", response_model=StudyMaterialListResponse)
async def list_materials(
    db: DbSession,
    owner: CurrentOwner,
    skip: int = 0,
    limit: int = 100,
):
    """List the caller's study materials, newest first."""
    materials, total = await StudyStore(db).list_materials(owner, skip=skip, limit=limit)
    return StudyMaterialListResponse(
        materials=[StudyMaterialRead.model_validate(m) for m in materials],
        total=total,
    )


@router.get("/{material_id}", response_model=StudyMaterialRead)
async def get_material(
    material_id: UUID,
    db: DbSession,
    owner: CurrentOwner,
):
    """Get a study material with its flashcards."""
    material = await StudyStore(db).get_material(owner, material_id)
    return StudyMaterialRead.model_validate(material)


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    material_id: UUID,
    db: DbSession,
    owner: CurrentOwner,
    blob_store: BlobStore,
):
    """
    Delete a study material and its source file.

    Deletes from S3 first, then from the database. If S3 deletion fails,
    the database record is preserved to avoid orphaning S3 files.
    """
    store = StudyStore(db)
    material = await store.get_material(owner, material_id)

    try:
        await blob_store.delete(material.file_path)
    except BlobStoreError as e:
        logger.error("Failed to delete from S3 (key=%s): %s", material.file_path, e, exc_info=True)
        raise StorageFailed("Failed to delete file from storage") from e

    await store.delete_material(material)
    await db.commit()
    return None
