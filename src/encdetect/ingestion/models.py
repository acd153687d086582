"""Data models describing files handed to the encryption classifier."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """Storage kind of a file-like object extracted from an image or collection."""

    FS = "fs"
    LOCAL = "local"
    DERIVED = "derived"
    CARVED = "carved"
    LAYOUT_FILE = "layout_file"
    SLACK = "slack"
    UNALLOC_BLOCKS = "unalloc_blocks"
    UNUSED_BLOCKS = "unused_blocks"
    VIRTUAL_DIR = "virtual_dir"
    LOCAL_DIR = "local_dir"


class KnownStatus(str, Enum):
    """Result of the known-file hash lookup."""

    KNOWN = "known"
    KNOWN_BAD = "known_bad"
    UNKNOWN = "unknown"


class FileDescriptor(BaseModel):
    """Read-only metadata about a single file.

    Attributes:
        path: Location used to open the content and to identify the file in reports.
        content_type: Storage kind of the object.
        known_status: Outcome of the hash-set lookup.
        size_bytes: Logical size of the content.
        parent_path: Parent location with a trailing separator (e.g. ``/evidence/``).
        name: Base name of the file.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    content_type: ContentType = ContentType.LOCAL
    known_status: KnownStatus = KnownStatus.UNKNOWN
    size_bytes: int = Field(ge=0)
    parent_path: str = ""
    name: str = ""

    @classmethod
    def for_path(
        cls,
        path: Path,
        *,
        size_bytes: int,
        content_type: ContentType = ContentType.LOCAL,
        known_status: KnownStatus = KnownStatus.UNKNOWN,
    ) -> "FileDescriptor":
        """Build a descriptor whose parent path and name are derived from ``path``."""
        parent = path.parent.as_posix()
        if not parent.endswith("/"):
            parent += "/"
        return cls(
            path=path,
            content_type=content_type,
            known_status=known_status,
            size_bytes=size_bytes,
            parent_path=parent,
            name=path.name,
        )

    @property
    def display_path(self) -> str:
        """Return ``parent_path`` joined with ``name``."""
        return f"{self.parent_path}{self.name}"


__all__ = ["ContentType", "KnownStatus", "FileDescriptor"]
