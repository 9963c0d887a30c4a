"""
Domain exceptions.

Typed exceptions for explicit error handling across the recognition
pipeline. Provider errors carry the HTTP-equivalent status and whether
the vision client may retry them.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Allows catching every pipeline error with a single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# MEAL DOMAIN EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class MealDomainError(DomainError):
    """Base exception for meal domain."""

    pass


class RecognitionError(MealDomainError):
    """
    AI food recognition failed.

    Malformed model output is never a RecognitionError: the normalizer
    always degrades to fallback items instead.
    """

    pass


class AnalysisFailedError(RecognitionError):
    """
    Vision analysis could not be performed after all retries.

    Raised by the vision client once the retry budget is exhausted on
    retryable errors. Callers may catch it to show a degraded experience.

    Attributes:
        last_error: Last classified provider error
        attempts: Number of attempts made

    Example:
        >>> raise AnalysisFailedError(
        ...     "Vision analysis failed after 2 attempts",
        ...     last_error=RetryableProviderError("503", status_code=503),
        ...     attempts=2,
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        last_error: Optional[Exception] = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Example:
        >>> raise ValidationError("Description cannot be empty")
    """

    pass


class ImageValidationError(ValidationError):
    """
    Uploaded image rejected.

    Raised when:
    - MIME type not supported (JPEG, PNG, WebP only)
    - File larger than the configured limit
    - Bytes cannot be decoded as an image

    Example:
        >>> raise ImageValidationError("Unsupported image type: image/gif")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for all external service errors.
    """

    pass


class VisionProviderError(ExternalServiceError):
    """
    Vision provider call failed.

    Attributes:
        status_code: HTTP-equivalent status (None for transport errors)
        retryable: Whether the vision client may retry the call
    """

    retryable: bool = False

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FatalProviderError(VisionProviderError):
    """
    Provider rejected the request (4xx: bad input, auth, quota).

    Never retried; propagates to the caller immediately.

    Example:
        >>> raise FatalProviderError("Gemini API error: 400", status_code=400)
    """

    retryable = False


class RetryableProviderError(VisionProviderError):
    """
    Transient provider failure (5xx or network error).

    Example:
        >>> raise RetryableProviderError("Gemini API error: 503", status_code=503)
    """

    retryable = True


class ProviderTimeoutError(RetryableProviderError):
    """
    Provider call exceeded the hard timeout.

    Modelled as a server-class error (HTTP 504 equivalent).

    Example:
        >>> raise ProviderTimeoutError("Vision call timed out after 20.0s")
    """

    def __init__(self, message: str, *, status_code: Optional[int] = 504) -> None:
        super().__init__(message, status_code=status_code)


class CompositionDatabaseError(ExternalServiceError):
    """
    Food composition database lookup failed.

    Always swallowed by the enrichment service (fail open).

    Example:
        >>> raise CompositionDatabaseError("Supabase query failed for '鶏肉'")
    """

    pass


def classify_status(status_code: int, message: str) -> VisionProviderError:
    """Map an HTTP status onto the provider error taxonomy.

    5xx is retryable; everything else (4xx, odd codes) is fatal.
    """
    if 500 <= status_code < 600:
        return RetryableProviderError(message, status_code=status_code)
    return FatalProviderError(message, status_code=status_code)
