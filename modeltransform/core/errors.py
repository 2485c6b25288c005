from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from modeltransform.client.http import HttpResponse


class ModelTransformError(Exception):
    """Base class for every failure surfaced by the transform client."""


class ModelFileError(ModelTransformError):
    """The model file could not be opened."""


class ModelEncodingError(ModelTransformError):
    """The multipart request body could not be built.

    The message is deliberately uniform; the failing stage is only logged.
    """


class TransportError(ModelTransformError):
    """No HTTP response was obtained."""


class HttpStatusError(ModelTransformError):
    """The service answered with a non-success status."""

    def __init__(self, message: str, *, status: int, body: str):
        super().__init__(message)
        self.status = status
        self.body = body


@dataclass(frozen=True, slots=True)
class ErrorCause:
    """A failure cause recognized from an HTTP response."""

    status: int
    message_id: str
    description: str

    def __str__(self) -> str:
        return f"{self.message_id}: {self.description}"


class ClassifiedHttpError(HttpStatusError):
    """A non-success status whose cause was recognized."""

    def __init__(self, message: str, *, status: int, body: str, cause: ErrorCause):
        super().__init__(message, status=status, body=body)
        self.cause = cause


def _structured_body(response: HttpResponse) -> Optional[tuple[str, str]]:
    """Extract (messageId, messageDescription) from a JSON error body."""

    if not response.body_bytes:
        return None
    try:
        payload = response.json()
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    mid = payload.get("messageId")
    desc = payload.get("messageDescription")
    if not isinstance(mid, str) or not mid.strip():
        return None
    if not isinstance(desc, str) or not desc.strip():
        return None
    return mid.strip(), desc.strip()


def handle_common_errors(response: HttpResponse) -> Optional[ErrorCause]:
    """Map a failed HTTP response to a known cause, or None if unrecognized.

    Policy:
    - 2xx is never an error.
    - 401 always means the token is invalid or expired.
    - Any other status is recognized only when the body carries the
      service's structured error (messageId + messageDescription).

    """

    status = int(response.status)
    if 200 <= status < 300:
        return None

    structured = _structured_body(response)

    if status == 401:
        desc = "the access token is invalid or has expired; login again"
        if structured:
            desc = f"{structured[1]}; login again"
        return ErrorCause(status=status, message_id="unauthorized", description=desc)

    if structured:
        return ErrorCause(status=status, message_id=structured[0], description=structured[1])

    return None
