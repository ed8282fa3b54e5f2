"""
Error taxonomy for the tutoring core.

Exception Hierarchy:
    StudyBuddyError (base)
    ├── Unauthenticated        caller has no verified identity
    ├── NotFound               chat/test/material absent or not owned by caller
    ├── GenerationFailed       the model call itself failed
    ├── MalformedGeneration    the model answered but output failed validation
    ├── PersistenceFailed      store write failed after a successful model call
    ├── InvalidRequest         request validated but cannot be applied
    ├── InvalidDocument        uploaded file is not a readable PDF
    └── StorageFailed          blob store operation failed

Caller errors (Unauthenticated, NotFound, InvalidRequest, InvalidDocument)
are never worth resubmitting. The remaining kinds are retryable by
resubmitting the whole request; the core never retries on its own.

Usage:
    from studybuddy.errors import NotFound

    if chat is None:
        raise NotFound("chat", chat_id)
"""

from typing import Optional

from fastapi import status


class StudyBuddyError(Exception):
    """
    Base exception for all tutoring-core errors.

    Subclasses set `kind` (the machine-readable tag returned to clients)
    and `status_code` (the HTTP status used by the API layer).
    """

    kind: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Serialize as the `{kind, message}` error object."""
        return {"kind": self.kind, "message": self.message}


class Unauthenticated(StudyBuddyError):
    """Raised when an entry point is invoked without a verified owner."""

    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotFound(StudyBuddyError):
    """Raised when a referenced resource is absent or owned by someone else."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: object = None):
        message = f"{resource.capitalize()} not found"
        super().__init__(message, {"resource": resource, "id": str(resource_id)})
        self.resource = resource
        self.resource_id = resource_id


class GenerationFailed(StudyBuddyError):
    """Raised when the generation model call fails or returns no content."""

    kind = "generation_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    retryable = True

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message, {"upstream_status": upstream_status})
        self.upstream_status = upstream_status


class MalformedGeneration(StudyBuddyError):
    """Raised when model output cannot be decoded into the expected shape."""

    kind = "malformed_generation"
    status_code = status.HTTP_502_BAD_GATEWAY
    retryable = True

    def __init__(self, task_kind: str, reason: str):
        super().__init__(f"Model returned malformed output for {task_kind}: {reason}")
        self.task_kind = task_kind
        self.reason = reason


class PersistenceFailed(StudyBuddyError):
    """Raised when saving a generated artifact fails."""

    kind = "persistence_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = True


class InvalidRequest(StudyBuddyError):
    """Raised when a request is well-formed but cannot be applied."""

    kind = "invalid_request"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidDocument(StudyBuddyError):
    """Raised when an uploaded file is not a readable PDF."""

    kind = "invalid_document"
    status_code = status.HTTP_400_BAD_REQUEST


class StorageFailed(StudyBuddyError):
    """Raised when the blob store rejects an upload slot, download or delete."""

    kind = "storage_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = True
