"""Qualification rules deciding which files are worth an entropy pass."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from encdetect.config.models import DetectionSettings
from encdetect.errors import DetectionFailure
from encdetect.ingestion.detectors import OCTET_STREAM, MimeDetector
from encdetect.ingestion.models import ContentType, FileDescriptor, KnownStatus

LOGGER = logging.getLogger(__name__)

FILE_SIZE_MODULUS = 512

EXCLUDED_CONTENT_TYPES = frozenset(
    {
        ContentType.UNALLOC_BLOCKS,
        ContentType.UNUSED_BLOCKS,
        ContentType.VIRTUAL_DIR,
        ContentType.LOCAL_DIR,
    }
)


class RejectionReason(str, Enum):
    """Why a file failed qualification."""

    EXCLUDED_TYPE = "excluded_type"
    SLACK_NOT_ALLOWED = "slack_not_allowed"
    KNOWN_FILE = "known_file"
    TOO_SMALL = "too_small"
    SIZE_NOT_SECTOR_MULTIPLE = "size_not_sector_multiple"
    RECOGNIZED_FORMAT = "recognized_format"


_Check = Callable[[FileDescriptor, DetectionSettings], bool]


def _not_excluded_type(descriptor: FileDescriptor, settings: DetectionSettings) -> bool:
    return descriptor.content_type not in EXCLUDED_CONTENT_TYPES


def _slack_allowed(descriptor: FileDescriptor, settings: DetectionSettings) -> bool:
    return descriptor.content_type is not ContentType.SLACK or settings.slack_files_allowed


def _not_known(descriptor: FileDescriptor, settings: DetectionSettings) -> bool:
    return descriptor.known_status is not KnownStatus.KNOWN


def _large_enough(descriptor: FileDescriptor, settings: DetectionSettings) -> bool:
    return descriptor.size_bytes >= settings.minimum_file_size


def _sector_multiple(descriptor: FileDescriptor, settings: DetectionSettings) -> bool:
    if not settings.file_size_multiple_enforced:
        return True
    return descriptor.size_bytes % FILE_SIZE_MODULUS == 0


# Ordered cheapest first; the MIME check runs only after all of these pass.
METADATA_CHECKS: Sequence[Tuple[RejectionReason, _Check]] = (
    (RejectionReason.EXCLUDED_TYPE, _not_excluded_type),
    (RejectionReason.SLACK_NOT_ALLOWED, _slack_allowed),
    (RejectionReason.KNOWN_FILE, _not_known),
    (RejectionReason.TOO_SMALL, _large_enough),
    (RejectionReason.SIZE_NOT_SECTOR_MULTIPLE, _sector_multiple),
)


class QualificationGate:
    """Cheap pre-filter run before the entropy pass.

    A file qualifies when every metadata check passes and its content is
    detected as ``application/octet-stream``, i.e. no known format could be
    recognized in it.
    """

    def __init__(self, settings: DetectionSettings, detector: MimeDetector) -> None:
        self.settings = settings
        self.detector = detector

    def evaluate(self, descriptor: FileDescriptor) -> Optional[RejectionReason]:
        """Return the first failed rule, or ``None`` when the file qualifies.

        Raises:
            DetectionFailure: If the MIME detector fails.
        """
        for reason, check in METADATA_CHECKS:
            if not check(descriptor, self.settings):
                return reason

        try:
            mime_type = self.detector.detect(descriptor)
        except DetectionFailure:
            raise
        except Exception as exc:
            raise DetectionFailure(
                f"Failed to detect the file type of '{descriptor.display_path}': {exc}"
            ) from exc

        if mime_type != OCTET_STREAM:
            LOGGER.debug("%s detected as %s", descriptor.display_path, mime_type)
            return RejectionReason.RECOGNIZED_FORMAT
        return None

    def qualifies(self, descriptor: FileDescriptor) -> bool:
        """Return whether the file is a candidate for entropy analysis."""
        return self.evaluate(descriptor) is None


__all__ = [
    "FILE_SIZE_MODULUS",
    "EXCLUDED_CONTENT_TYPES",
    "METADATA_CHECKS",
    "RejectionReason",
    "QualificationGate",
]
