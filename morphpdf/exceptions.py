"""
Custom exceptions for morphpdf.

Errors fall into three families:

* selection errors (:class:`SelectionError`): bad user input in a page
  selection expression. Their message echoes the offending token so the
  caller can point at it.
* processing errors (:class:`ProcessingError`): rendering, encoding,
  assembling or packaging failed. Fatal for the request and never retried.
  :attr:`MorphPDFError.public_message` hides the internal detail.
* input acquisition errors (:class:`DocumentOpenError`).
"""

from __future__ import annotations

from typing import Optional


class MorphPDFError(Exception):
    """Base exception for all morphpdf errors."""

    stage = "request"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown document transformation error occurred."

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def public_message(self) -> str:
        """Message that is safe to show to an end user."""
        return self.message


class LimitExceededError(MorphPDFError):
    """Raised when an input is larger than the configured ceilings."""

    stage = "validation"

    @property
    def default_message(self) -> str:
        return "Input exceeds the configured size or page limits."


class RequestCancelled(MorphPDFError):
    """Raised inside a request once its cancellation token is set."""

    @property
    def default_message(self) -> str:
        return "The request was cancelled."


class RequestTimeout(MorphPDFError):
    """Raised by callers waiting on a request that ran past its deadline."""

    @property
    def default_message(self) -> str:
        return "The request did not finish in time and was cancelled."


# ----------------------------------------------------------------------
# Selection-stage errors
# ----------------------------------------------------------------------
class SelectionError(MorphPDFError):
    """Base class for page selection errors."""

    stage = "selection"

    def __init__(self, message: str = "", token: Optional[str] = None) -> None:
        super().__init__(message)
        self.token = token


class EmptyExpression(SelectionError):
    """Raised when a page selection expression is blank."""

    @property
    def default_message(self) -> str:
        return "No ranges provided"


class InvalidToken(SelectionError):
    """Raised when a segment is neither ``n`` nor ``n-m``."""

    def __init__(self, token: str) -> None:
        shown = token if token else "(empty segment)"
        super().__init__(f"Invalid token: {shown}", token=token)


class OutOfRange(SelectionError):
    """Raised when a segment points outside the document or is reversed."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Out of range: {token}", token=token)


# ----------------------------------------------------------------------
# Input acquisition
# ----------------------------------------------------------------------
class DocumentOpenError(MorphPDFError):
    """Raised when an input document cannot be opened."""

    stage = "loading"

    def __init__(self, message: str = "", name: Optional[str] = None) -> None:
        super().__init__(message)
        self.name = name

    @property
    def default_message(self) -> str:
        return "Invalid or corrupted PDF file."


# ----------------------------------------------------------------------
# Processing-stage errors
# ----------------------------------------------------------------------
class ProcessingError(MorphPDFError):
    """Base class for failures while producing output."""

    @property
    def public_message(self) -> str:
        return f"Processing failed during {self.stage}."


class PageRenderError(ProcessingError):
    """Raised when a page cannot be rendered to a raster surface."""

    stage = "rendering"

    def __init__(self, message: str = "", page_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_number = page_number

    @property
    def default_message(self) -> str:
        return "Failed to render page."


class EncodeError(ProcessingError):
    """Raised when the image encoder produces no data."""

    stage = "compressing"

    def __init__(self, message: str = "", page_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_number = page_number

    @property
    def default_message(self) -> str:
        return "Image encoder returned no data."


class AssemblyError(ProcessingError):
    """Raised when an output document cannot be built."""

    stage = "assembling"

    @property
    def default_message(self) -> str:
        return "Cannot build a document with zero pages."


class PackagingError(ProcessingError):
    """Raised when multiple artifacts cannot be bundled into an archive."""

    stage = "packaging"

    @property
    def default_message(self) -> str:
        return "Failed to create ZIP file"


__all__ = [
    "MorphPDFError",
    "LimitExceededError",
    "RequestCancelled",
    "RequestTimeout",
    "SelectionError",
    "EmptyExpression",
    "InvalidToken",
    "OutOfRange",
    "DocumentOpenError",
    "ProcessingError",
    "PageRenderError",
    "EncodeError",
    "AssemblyError",
    "PackagingError",
]
