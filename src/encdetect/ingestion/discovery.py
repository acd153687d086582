"""File discovery utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .detectors import HashComputer, KnownHashSet
from .models import ContentType, FileDescriptor, KnownStatus

LOGGER = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class DirectoryScanner:
    """Describe the files and directories under a root as ``FileDescriptor`` objects.

    Directories are yielded as ``LOCAL_DIR`` entries and left for the
    qualification gate to reject. When a known hash set is supplied, each file
    is hashed so its known status is resolved before classification.
    """

    def __init__(
        self,
        *,
        recursive: bool,
        include_hidden: bool,
        follow_symlinks: bool,
        known_hashes: Optional[KnownHashSet] = None,
        hasher: Optional[HashComputer] = None,
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.known_hashes = known_hashes
        self.hasher = hasher or HashComputer()

    def scan(self, root: Path) -> Iterator[FileDescriptor]:
        """Yield descriptors discovered under root respecting configured filters."""
        root = root.expanduser().resolve()
        if not root.exists():
            return

        for path in self._iter_paths(root):
            if path.is_symlink() and not self.follow_symlinks:
                continue
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if not self.include_hidden and _is_hidden(relative):
                continue
            try:
                stat = path.stat()
            except OSError as exc:
                LOGGER.warning("Skipping %s: %s", path, exc)
                continue

            if path.is_dir():
                yield FileDescriptor.for_path(
                    path, size_bytes=0, content_type=ContentType.LOCAL_DIR
                )
            elif path.is_file():
                yield FileDescriptor.for_path(
                    path,
                    size_bytes=stat.st_size,
                    known_status=self._known_status(path),
                )

    def _known_status(self, path: Path) -> KnownStatus:
        if not self.known_hashes:
            return KnownStatus.UNKNOWN
        try:
            return self.known_hashes.lookup(self.hasher.compute(path))
        except OSError as exc:
            LOGGER.warning("Unable to hash %s; treating as unknown: %s", path, exc)
            return KnownStatus.UNKNOWN

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        """Internal helper to iterate candidate paths."""
        if root.is_file():
            yield root
            return

        if self.recursive:
            yield from sorted(root.rglob("*"))
        else:
            yield from sorted(root.iterdir())
