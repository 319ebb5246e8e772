"""Centralized exception classes for sofy-shorts.

This module provides a hierarchy of exceptions for better error handling
and user-friendly error messages throughout the application.

Propagation rules:
    - ConfigurationError aborts before any job is created.
    - RateLimitError/QuotaExceededError are consumed by service adapters
      (rotate the key, retry) and never reach the pipeline.
    - TransientServiceError is consumed by service adapters and replaced
      with a fallback artifact.
    - StepFailure reaches the pipeline and fails the job.
"""


class SofyError(Exception):
    """Base exception for all sofy-shorts errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: str | None = None):
        """Initialize the exception.

        Args:
            message: User-friendly error message.
            details: Additional technical details for debugging.
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class ConfigurationError(SofyError):
    """Raised when configuration or credentials are missing or invalid."""

    pass


class APIError(SofyError):
    """Base class for external service errors."""

    pass


class RateLimitError(APIError):
    """Raised when an API rate limit is hit for the current credential."""

    pass


class QuotaExceededError(RateLimitError):
    """Raised when the quota of the current credential is exhausted."""

    pass


class TransientServiceError(APIError):
    """Raised for non rate-limit service failures that can be degraded."""

    pass


class StepFailure(SofyError):
    """Raised when a pipeline step produced nothing usable."""

    pass


class UnknownJobError(SofyError, KeyError):
    """Raised when a job id does not exist."""

    pass


class ValidationError(SofyError):
    """Raised when input validation fails."""

    pass
