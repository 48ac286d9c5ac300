"""Domain errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import NodeList


@dataclass(eq=False)
class StorageError(RuntimeError):
    """Base class for everything the file storage client raises.

    When a multi-page listing fails part way through, ``partial`` holds the
    nodes collected before the failure together with the last known total.
    """

    partial: NodeList | None = field(default=None, kw_only=True)


@dataclass(eq=False)
class TransportError(StorageError):
    """Raised on a connection failure or a non-success response."""

    method: str
    url: str
    status_code: int | None = None
    response_text: str = ""

    def __str__(self) -> str:
        if self.status_code is None:
            return f"File storage request failed for {self.method} {self.url}: {self.response_text}"
        return (
            f"File storage API error {self.status_code} for {self.method} {self.url}: "
            f"{self.response_text}"
        )


@dataclass(eq=False)
class DecodingError(StorageError):
    """Raised when a response body is not the JSON document we expect."""

    method: str
    url: str
    detail: str

    def __str__(self) -> str:
        return f"Malformed response for {self.method} {self.url}: {self.detail}"


@dataclass(eq=False)
class CancellationError(StorageError):
    """Raised when the caller's cancel event is set before a page fetch."""

    bucket_id: str

    def __str__(self) -> str:
        return f"Listing of bucket {self.bucket_id} was cancelled"
