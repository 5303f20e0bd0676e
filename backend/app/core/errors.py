"""Failure taxonomy for the roast pipeline and the table that maps it to responses.

Every stage raises one of the ``RoastError`` subclasses below. Only the
exception handlers in ``app.main`` turn them into HTTP responses, through
``classify``; anything that is not a ``RoastError`` collapses to a generic 500.
"""

from __future__ import annotations

import enum

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class FailureKind(str, enum.Enum):
    UNCLASSIFIED = "unclassified"
    INPUT_VALIDATION = "input_validation"
    PRIVACY_VIOLATION = "privacy_violation"
    CAPTURE_FAILURE = "capture_failure"
    GENERATION_FAILURE = "generation_failure"
    STORAGE_FAILURE = "storage_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"


class CaptureFailureKind(str, enum.Enum):
    UNRESOLVABLE = "unresolvable"
    TIMEOUT = "timeout"
    BLOCKED = "blocked"


CAPTURE_MESSAGES: dict[CaptureFailureKind, str] = {
    CaptureFailureKind.UNRESOLVABLE: (
        "This website address does not seem to exist. Please check the URL for typos."
    ),
    CaptureFailureKind.TIMEOUT: (
        "This website took too long to load. It might be down, very slow, or protected."
    ),
    CaptureFailureKind.BLOCKED: (
        "Could not capture a screenshot. The website may be offline or blocking automated tools."
    ),
}

URL_REQUIRED_MESSAGE = "URL is required."
INVALID_URL_MESSAGE = "Invalid URL format. A valid URL (including http:// or https://) is required."
NOT_PUBLIC_MESSAGE = "This URL is not publicly accessible."
GENERATION_FAILED_MESSAGE = "Failed to analyze the screenshot. Please try again later."
RATE_LIMITED_MESSAGE = "Are you trying to bankrupt me? Slow down!"


class RoastError(Exception):
    """Base class. ``public_message`` is the only text a caller ever sees."""

    kind: FailureKind = FailureKind.UNCLASSIFIED
    status_code: int = 500
    public_message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, detail: str = "", *, public_message: str | None = None) -> None:
        if public_message is not None:
            self.public_message = public_message
        self.detail = detail or self.public_message
        super().__init__(self.detail)


class InputValidationError(RoastError):
    kind = FailureKind.INPUT_VALIDATION
    status_code = 400
    public_message = INVALID_URL_MESSAGE


class PrivacyViolationError(RoastError):
    kind = FailureKind.PRIVACY_VIOLATION
    status_code = 400
    public_message = NOT_PUBLIC_MESSAGE


class CaptureFailure(RoastError):
    kind = FailureKind.CAPTURE_FAILURE
    status_code = 400

    def __init__(self, capture_kind: CaptureFailureKind, detail: str = "") -> None:
        self.capture_kind = capture_kind
        super().__init__(detail, public_message=CAPTURE_MESSAGES[capture_kind])


class GenerationFailure(RoastError):
    kind = FailureKind.GENERATION_FAILURE
    public_message = GENERATION_FAILED_MESSAGE


class StorageFailure(RoastError):
    kind = FailureKind.STORAGE_FAILURE


class PersistenceFailure(RoastError):
    kind = FailureKind.PERSISTENCE_FAILURE


class RateLimitedError(RoastError):
    kind = FailureKind.RATE_LIMITED
    status_code = 429
    public_message = RATE_LIMITED_MESSAGE


class NotFoundError(RoastError):
    kind = FailureKind.NOT_FOUND
    status_code = 404
    public_message = "Roast not found."


def classify(exc: BaseException) -> tuple[int, str]:
    """Return ``(status_code, caller-visible message)`` for *exc*."""
    if isinstance(exc, RoastError):
        return exc.status_code, exc.public_message
    return 500, GENERIC_ERROR_MESSAGE
