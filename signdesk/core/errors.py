"""Exception hierarchy shared across the package."""
from __future__ import annotations


class SignDeskError(RuntimeError):
    """Base class for errors raised by signdesk."""


class RequestError(SignDeskError):
    """Raised when a gateway call fails at the transport or server level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnknownDocumentError(SignDeskError, LookupError):
    """Raised when an operation names a document outside the loaded list."""

    def __init__(self, document_id: object) -> None:
        super().__init__(f"document {document_id} is not in the current list")
        self.document_id = document_id


class ViewDisposedError(SignDeskError):
    """Raised when a disposed document view is asked to do more work."""


__all__ = ["RequestError", "SignDeskError", "UnknownDocumentError", "ViewDisposedError"]
