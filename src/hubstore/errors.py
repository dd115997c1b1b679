"""Exceptions raised by HubStore."""

from typing import Optional


class HubStoreError(Exception):
    """Base exception for HubStore errors."""


class TransportError(HubStoreError):
    """Raised when the remote answers with an unexpected HTTP status.

    Attributes:
        status: HTTP status code, or None when no response was received
        message: Message reported by the remote, if any
    """

    def __init__(self, status: Optional[int], message: Optional[str] = None) -> None:
        self.status = status
        self.message = message
        if status is None:
            text = f"Request failed: {message}"
        else:
            text = f"Invalid HTTP response: {status} {message or ''}".rstrip()
        super().__init__(text)


class ObjectNotFoundError(HubStoreError):
    """Raised when an object cannot be found on the remote."""

    pass


class EncodingError(HubStoreError, TypeError):
    """Raised when an object cannot be encoded or decoded."""

    pass


class InputError(HubStoreError, ValueError):
    """Raised for malformed caller input such as an invalid ref name."""

    pass


class IntegrityMismatch(HubStoreError):
    """Raised when a loaded object does not hash to the hash it was loaded by."""

    def __init__(self, object_type: str, expected: str, actual: str) -> None:
        self.object_type = object_type
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{object_type} hash mismatch: expected {expected}, got {actual}"
        )
