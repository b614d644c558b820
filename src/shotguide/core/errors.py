"""Exception hierarchy for the Shot Guide generation pipeline.

Every failure the text-generation flow can surface derives from
:class:`ShotguideError`, so the API layer can map the whole family to a
single user-visible error state with one exception handler.  Sketch
failures never reach this hierarchy: the dispatcher degrades them to an
absent image for the affected card.

Taxonomy
--------
ConfigurationError
    The API key is missing.  Fatal for the whole operation, never retried.
BackendError
    Transport failure or non-success HTTP status from a backend.  Carries
    the status code (``None`` for transport failures) and the decoded body.
EmptyResponseError
    The text backend answered successfully but produced no text.
MalformedResponseError
    A payload was extracted but could not be parsed even after repair.
    Carries both the raw and the repaired text for diagnostics.
PlanValidationError
    A parsed plan record is missing required fields (strict policy only).
"""

from __future__ import annotations


class ShotguideError(Exception):
    """Base class for all plan-generation failures."""

    code: str = "SHOTGUIDE_ERROR"


class ConfigurationError(ShotguideError):
    """Raised when required configuration (the API key) is absent."""

    code = "CONFIGURATION_ERROR"


class BackendError(ShotguideError):
    """Raised for transport failures and non-success HTTP responses.

    Attributes:
        status_code: HTTP status returned by the backend, or ``None`` when
            the request never produced a response.
        body: Decoded response body (JSON or truncated text), if any.
    """

    code = "BACKEND_ERROR"

    def __init__(self, message: str, status_code: int | None = None, body: object | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyResponseError(ShotguideError):
    """Raised when the text backend returned no text content."""

    code = "EMPTY_RESPONSE"

    def __init__(self, message: str = "The model returned nothing.") -> None:
        super().__init__(message)


class MalformedResponseError(ShotguideError):
    """Raised when the backend payload cannot be parsed, even after repair.

    Attributes:
        raw_text: The text exactly as the backend returned it.
        cleaned_text: The text after the repair pipeline ran.
    """

    code = "MALFORMED_RESPONSE"

    def __init__(self, message: str, raw_text: str, cleaned_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.cleaned_text = cleaned_text


class PlanValidationError(ShotguideError):
    """Raised when a plan record lacks required fields under the strict policy.

    Attributes:
        index: Zero-based position of the offending record in the plan list.
        missing: Names of the fields that were absent or empty.
    """

    code = "PLAN_VALIDATION_ERROR"

    def __init__(self, index: int, missing: list[str]) -> None:
        super().__init__(
            f"Plan #{index + 1} is missing required fields: {', '.join(missing) or 'unknown'}"
        )
        self.index = index
        self.missing = missing
