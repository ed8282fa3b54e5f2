"""API routes package."""

from studybuddy.api.routes import (
    chat,
    materials,
    mock_tests,
)

__all__ = [
    "chat",
    "materials",
    "mock_tests",
]
