"""Content stream providers."""

from __future__ import annotations

from typing import BinaryIO, Protocol

from .models import FileDescriptor


class ContentProvider(Protocol):
    """Open the logical content of a file as a sequential byte stream.

    The caller owns the returned stream and closes it exactly once.
    """

    def open(self, descriptor: FileDescriptor) -> BinaryIO: ...


class LocalContentProvider:
    """Serve content straight from the local filesystem."""

    def open(self, descriptor: FileDescriptor) -> BinaryIO:
        return descriptor.path.open("rb")


__all__ = ["ContentProvider", "LocalContentProvider"]
