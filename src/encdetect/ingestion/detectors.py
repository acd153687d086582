"""File type detection and known-file hash lookup."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

try:  # pragma: no cover - libmagic availability depends on the host
    import magic
except ImportError:  # pragma: no cover - executed when libmagic is missing
    magic = None

from encdetect.errors import DetectionFailure, StartupFailure

from .content import ContentProvider, LocalContentProvider
from .models import FileDescriptor, KnownStatus

LOGGER = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
_HASH_CHUNK_SIZE = 1024 * 1024


class MimeDetector(Protocol):
    """Report the MIME type of a file's content."""

    def detect(self, descriptor: FileDescriptor) -> str: ...


class TypeDetector:
    """Identify MIME types with python-magic by sniffing the head of each file.

    Construction fails with :class:`StartupFailure` when libmagic cannot be
    loaded, since no file can be qualified without it.
    """

    def __init__(
        self,
        provider: ContentProvider | None = None,
        *,
        sample_bytes: int = 64 * 1024,
    ) -> None:
        if magic is None:
            raise StartupFailure("Failed to create file type detector: libmagic is not available.")
        try:
            self._magic = magic.Magic(mime=True)
        except magic.MagicException as exc:
            raise StartupFailure(f"Failed to create file type detector: {exc}") from exc
        self._provider = provider or LocalContentProvider()
        self._sample_bytes = sample_bytes

    def detect(self, descriptor: FileDescriptor) -> str:
        """Return the MIME type detected for the descriptor's content.

        Raises:
            DetectionFailure: If the content cannot be sampled or libmagic errors.
        """
        try:
            with self._provider.open(descriptor) as stream:
                head = stream.read(self._sample_bytes)
            return self._magic.from_buffer(head)
        except (OSError, magic.MagicException) as exc:
            raise DetectionFailure(
                f"Failed to detect the file type of '{descriptor.display_path}': {exc}"
            ) from exc


class HashComputer:
    """Compute MD5 digests, the key used by NSRL-style hash sets."""

    def compute(self, path: Path) -> str:
        """Return the hex digest of the file contents."""
        digest = hashlib.md5()
        with path.open("rb") as fh:
            for chunk in iter(lambda: fh.read(_HASH_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()


class KnownHashSet:
    """In-memory known-file hash set.

    The text format holds one digest per line, optionally followed by a comma
    and a status (``known`` or ``known_bad``). Blank lines and ``#`` comments
    are ignored.
    """

    def __init__(self, entries: Optional[Dict[str, KnownStatus]] = None) -> None:
        self._entries: Dict[str, KnownStatus] = {
            digest.lower(): status for digest, status in (entries or {}).items()
        }

    @classmethod
    def load(cls, path: Path) -> "KnownHashSet":
        """Read a hash list from disk.

        Raises:
            StartupFailure: If the file cannot be read or contains an unknown status.
        """
        try:
            text = path.expanduser().read_text(encoding="utf-8")
        except OSError as exc:
            raise StartupFailure(f"Unable to read known hash set {path}: {exc}") from exc

        entries: Dict[str, KnownStatus] = {}
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            digest, _, status = (part.strip() for part in line.partition(","))
            try:
                entries[digest.lower()] = KnownStatus(status or KnownStatus.KNOWN.value)
            except ValueError as exc:
                raise StartupFailure(f"{path}:{lineno}: unknown hash status '{status}'") from exc
        LOGGER.info("Loaded %d known hashes from %s", len(entries), path)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, digest: str) -> KnownStatus:
        """Return the status recorded for ``digest`` or ``UNKNOWN``."""
        return self._entries.get(digest.lower(), KnownStatus.UNKNOWN)


__all__ = [
    "OCTET_STREAM",
    "MimeDetector",
    "TypeDetector",
    "HashComputer",
    "KnownHashSet",
]
