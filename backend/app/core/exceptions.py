"""
Custom Exception Hierarchy

Only configuration problems are allowed to escape the quality-assurance
services; everything request-specific degrades to a safe result instead.
"""
from typing import Any, Dict, Optional


class PGxQualityError(Exception):
    """Base exception for all quality-assurance errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(PGxQualityError):
    """Deployment-level misconfiguration, e.g. missing provider credentials."""

    def __init__(
        self,
        message: str,
        setting: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details={"setting": setting, **(details or {})}
        )
        self.setting = setting


class GenerationError(PGxQualityError):
    """A single text-generation attempt failed or returned unusable text."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        attempt: int = 0,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="GENERATION_ERROR",
            details={"provider": provider, "attempt": attempt, **(details or {})}
        )
        self.provider = provider
        self.attempt = attempt
