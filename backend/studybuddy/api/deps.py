"""
FastAPI Dependencies for identity and service wiring.

Key patterns:
1. get_current_owner: validates the JWT issued by the login service and
   returns the caller's owner id
2. User-scoped queries: every store method takes the owner id explicitly
3. No global "current user" state - always pass the owner explicitly

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- The token's `sub` claim is the owner id; it is trusted once the
  signature and expiry check out
- Ownership checks happen in the stores, not middleware
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.config import get_settings
from studybuddy.db.session import get_db
from studybuddy.errors import Unauthenticated
from studybuddy.services.model_gateway import ModelGateway, model_gateway
from studybuddy.services.orchestrator import SessionOrchestrator
from studybuddy.services.pdf_processor import PDFProcessor, pdf_processor
from studybuddy.services.s3 import S3Service, s3_service

settings = get_settings()


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(owner_id: UUID) -> str:
    """
    Create a JWT access token for an owner.

    Token payload contains:
    - sub: owner id as string (standard JWT subject claim)
    - exp: expiration timestamp
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(owner_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """
    Decode and validate a JWT access token.

    Returns the owner id if valid, None if invalid/expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        owner_id = payload.get("sub")
        if owner_id is None:
            return None
        return UUID(owner_id)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Supports two methods (in order of preference):
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise Unauthenticated()


async def get_current_owner(
    token: Annotated[str, Depends(get_token_from_request)],
) -> UUID:
    """
    Validate the JWT and return the caller's owner id.

    Raises Unauthenticated if the token is invalid or expired.
    """
    owner_id = decode_access_token(token)
    if owner_id is None:
        raise Unauthenticated("Could not validate credentials")
    return owner_id


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================


def get_model_gateway() -> ModelGateway:
    return model_gateway


def get_blob_store() -> S3Service:
    return s3_service


def get_document_extractor() -> PDFProcessor:
    return pdf_processor


def get_orchestrator(
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[ModelGateway, Depends(get_model_gateway)],
) -> SessionOrchestrator:
    """One orchestrator per request, bound to the request's session."""
    return SessionOrchestrator(db, gateway)


# Type aliases for dependency injection
CurrentOwner = Annotated[UUID, Depends(get_current_owner)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Orchestrator = Annotated[SessionOrchestrator, Depends(get_orchestrator)]
BlobStore = Annotated[S3Service, Depends(get_blob_store)]
DocumentExtractor = Annotated[PDFProcessor, Depends(get_document_extractor)]
