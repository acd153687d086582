"""Records emitted for files flagged as likely encrypted."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field

from encdetect.ingestion.models import FileDescriptor

MODULE_NAME = "Encryption Detection"


class EncryptionFinding(BaseModel):
    """A file suspected of holding encrypted content.

    Attributes:
        path: Identity of the flagged file.
        parent_path: Parent location with a trailing separator.
        name: Base name of the file.
        size_bytes: Logical size of the content.
        entropy: Entropy computed for the content, in bits per byte.
        detected_at: When the finding was produced.
    """

    path: str
    parent_path: str
    name: str
    size_bytes: int
    entropy: float
    detected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_descriptor(cls, descriptor: FileDescriptor, entropy: float) -> "EncryptionFinding":
        return cls(
            path=str(descriptor.path),
            parent_path=descriptor.parent_path,
            name=descriptor.name,
            size_bytes=descriptor.size_bytes,
            entropy=entropy,
        )

    @property
    def title(self) -> str:
        """Return the short inbox subject line."""
        return f"Encryption Detected Match: {self.name}"

    @property
    def summary(self) -> str:
        """Return the human-readable details of the finding."""
        return f"File: {self.parent_path}{self.name}\nEntropy: {self.entropy}"


class FindingSink(Protocol):
    """Destination for findings (artifact store or notification channel)."""

    def publish(self, finding: EncryptionFinding) -> None: ...


__all__ = ["MODULE_NAME", "EncryptionFinding", "FindingSink"]
