from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    IO = "io"
    DECODE = "decode"
    NETWORK = "network"
    REMOTE = "remote"


class JournalImportError(Exception):
    """Base class for every failure raised while importing a journal."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        return f"{self.kind.value} error: {self.message}"


class ExportIOError(JournalImportError):
    """A local export or asset file is missing or unreadable."""

    kind = ErrorKind.IO


class DecodeError(JournalImportError):
    """Malformed JSON, or a document that does not match the expected schema."""

    kind = ErrorKind.DECODE


class NetworkError(JournalImportError):
    """The Joplin service could not be reached or did not answer in time."""

    kind = ErrorKind.NETWORK


class RemoteError(JournalImportError):
    """Joplin answered with a non-success HTTP status."""

    kind = ErrorKind.REMOTE

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def describe(self) -> str:
        return f"{self.kind.value} error: {self.message} (HTTP {self.status_code}): {self.body}"
