from __future__ import annotations


class DocdeskError(Exception):
    """Base class for recoverable, user-facing failures."""

    status_code = 400


class SessionNotFoundError(DocdeskError):
    status_code = 404


class UnknownFileError(DocdeskError):
    status_code = 404


class DownloadNotFoundError(DocdeskError):
    status_code = 404


class UploadRejectedError(DocdeskError):
    """Raised when an upload carries nothing that can be accepted."""


class BatchRejectedError(DocdeskError):
    """Raised before any processing when a batch request cannot start."""


class ChatRejectedError(DocdeskError):
    """Raised when a question is refused without contacting the model."""


class ContextOverflowError(ChatRejectedError):
    """Raised when the document set exceeds the prompt budget under the reject policy."""


class PdfCreationRejectedError(DocdeskError):
    pass


class OperationFailedError(DocdeskError):
    """Raised when a single-shot toolkit call fails after the request was accepted."""

    status_code = 500


__all__ = [
    "BatchRejectedError",
    "ChatRejectedError",
    "ContextOverflowError",
    "DocdeskError",
    "DownloadNotFoundError",
    "OperationFailedError",
    "PdfCreationRejectedError",
    "SessionNotFoundError",
    "UnknownFileError",
    "UploadRejectedError",
]
