"""
Retrieval exceptions.
"""

from typing import Any


class GroundragError(Exception):
    """Base exception for retrieval errors."""

    status_code = 500

    def __init__(self, message: str, data: Any = None):
        self.message = message
        self.data = data
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Client-safe error payload."""
        return {"error": "There was an error processing your request"}


class UserError(GroundragError):
    """Raised when caller-supplied input is invalid."""

    status_code = 400

    def __init__(self, message: str, data: Any = None, category: str = "invalid_request"):
        self.category = category
        super().__init__(message, data)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message, "category": self.category, "data": self.data}


class FlaggedContentError(UserError):
    """Raised when the moderation pre-check flags the query."""

    def __init__(self, categories: dict[str, bool] | None = None):
        super().__init__(
            "Flagged content",
            data={"flagged": True, "categories": categories or {}},
            category="flagged",
        )


class ApplicationError(GroundragError):
    """Raised for system faults. Details never reach the caller."""


class EmbeddingFailure(ApplicationError):
    """Raised when the embedding service errors or returns a bad vector."""

    def __init__(self, message: str = "Failed to create embedding for question", data: Any = None):
        super().__init__(message, data)


class StoreUnavailableError(ApplicationError):
    """Raised when the passage store cannot be queried."""

    def __init__(self, message: str = "Passage store unavailable", data: Any = None):
        super().__init__(message, data)


class ConfigurationError(ApplicationError):
    """Raised when required credentials or connection parameters are missing."""
