"""Discovery, content access and type detection for files under analysis."""

from .content import ContentProvider, LocalContentProvider
from .detectors import OCTET_STREAM, HashComputer, KnownHashSet, MimeDetector, TypeDetector
from .discovery import DirectoryScanner
from .models import ContentType, FileDescriptor, KnownStatus

__all__ = [
    "ContentProvider",
    "LocalContentProvider",
    "OCTET_STREAM",
    "HashComputer",
    "KnownHashSet",
    "MimeDetector",
    "TypeDetector",
    "DirectoryScanner",
    "ContentType",
    "FileDescriptor",
    "KnownStatus",
]
