"""Exceptions raised by the chunk-processing pipeline."""

from __future__ import annotations


class ChatRecallError(Exception):
    """Base class for all chatrecall errors."""


class ConfigurationError(ChatRecallError):
    """A required setting (credential, endpoint) is missing."""


class StorageError(ChatRecallError):
    """A cache partition could not be read or written, or an entry is corrupt."""

    def __init__(self, message: str, key: tuple[str, int] | None = None):
        self.key = key
        if key is not None:
            message = f"{message} (chat={key[0]!r}, index={key[1]})"
        super().__init__(message)


class ExternalServiceError(ChatRecallError):
    """The analysis service failed or returned no completion."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        detail: str | None = None,
    ):
        self.status = status
        self.detail = detail
        if status is not None:
            message = f"{message} {status}"
            if detail:
                message += f": {detail}"
        super().__init__(message)
