"""Error taxonomy for document loading and remote purification."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"


class PurifierError(Exception):
    """Base class for every error surfaced to the user."""


class DocumentError(PurifierError):
    pass


class UnsupportedFormat(DocumentError):
    pass


class ExtractionFailed(DocumentError):
    pass


class MissingCredential(PurifierError):
    pass


class EmptyResponse(PurifierError):
    pass


class MalformedResponse(PurifierError):
    pass


class RateLimitExceeded(PurifierError):
    pass


class RemoteCallFailed(PurifierError):
    pass


class RemoteError(Exception):
    """Raised by a backend when the remote call itself fails.

    The backend is responsible for translating its library's exceptions into
    an ErrorKind so retry decisions never depend on message wording.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
