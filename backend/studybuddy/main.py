"""
Study Buddy FastAPI Application Entry Point.

Run with: uvicorn studybuddy.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studybuddy.config import get_settings, sanitize_error
from studybuddy.api.routes import chat, materials, mock_tests
from studybuddy.errors import StudyBuddyError

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    yield
    # Shutdown


app = FastAPI(
    title=settings.app_name,
    description="JEE tutoring chat, mock tests and study materials API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudyBuddyError)
async def study_buddy_error_handler(request: Request, exc: StudyBuddyError) -> JSONResponse:
    """Render core errors as {kind, message}."""
    body = exc.to_dict()
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
        body["message"] = sanitize_error(exc, generic_message="The request could not be completed. Please try again.")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


# Statuses FastAPI itself raises, outside any route
_HTTP_ERROR_KINDS = {
    status.HTTP_401_UNAUTHORIZED: "unauthenticated",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) as {kind, message}."""
    body = {
        "kind": _HTTP_ERROR_KINDS.get(exc.status_code, "http_error"),
        "message": str(exc.detail),
    }
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/query validation failures as {kind, message}."""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    body = {"kind": "invalid_request", "message": "; ".join(problems) or "Invalid request"}
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


# Include routers
app.include_router(chat.router)
app.include_router(mock_tests.router)
app.include_router(materials.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
