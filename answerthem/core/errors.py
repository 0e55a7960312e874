"""Exceptions raised by the core services.

Each error carries the HTTP status the API layer answers with, so the server
can translate the whole hierarchy with a single handler.
"""

from __future__ import annotations


class AnswerThemError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 500


class ValidationError(AnswerThemError, ValueError):
    status_code = 400


class InvalidCodeError(AnswerThemError, ValueError):
    """Raised when a join code does not match the quiz."""

    status_code = 400


class ConfigurationError(AnswerThemError, RuntimeError):
    """Raised when a required external service is not configured or rejects credentials."""

    status_code = 400


class AuthenticationError(AnswerThemError, PermissionError):
    status_code = 401


class PermissionDeniedError(AnswerThemError, PermissionError):
    status_code = 403


class NotFoundError(AnswerThemError, LookupError):
    status_code = 404


class ConflictError(AnswerThemError, RuntimeError):
    status_code = 409


class ExternalServiceError(AnswerThemError, RuntimeError):
    """Raised when Twitter or the text-generation API fails."""

    status_code = 502


class GenerationFailedError(ExternalServiceError):
    """Raised when no usable text could be obtained from the language model."""
