"""Combine qualification, entropy and the configured threshold into a verdict."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from encdetect.config.models import DetectionSettings
from encdetect.errors import IoFailure
from encdetect.ingestion.content import ContentProvider, LocalContentProvider
from encdetect.ingestion.detectors import MimeDetector
from encdetect.ingestion.models import FileDescriptor

from .entropy import DEFAULT_CHUNK_SIZE, compute_entropy
from .gate import QualificationGate
from .results import Analyzed, ClassificationResult, Unqualified

LOGGER = logging.getLogger(__name__)


class EncryptionClassifier:
    """Decide whether a single file is likely encrypted.

    The content stream is opened only for files that pass the gate, and is
    owned (and closed) by the entropy pass.
    """

    def __init__(
        self,
        settings: DetectionSettings,
        detector: MimeDetector,
        provider: ContentProvider | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.settings = settings
        self.gate = QualificationGate(settings, detector)
        self.provider = provider or LocalContentProvider()
        self.chunk_size = chunk_size

    def classify(
        self,
        descriptor: FileDescriptor,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> ClassificationResult:
        """Classify one file.

        Args:
            descriptor: File to classify; never mutated.
            cancel: Optional event that interrupts the entropy pass.

        Returns:
            ClassificationResult: ``Unqualified`` or ``Analyzed``.

        Raises:
            DetectionFailure: If the MIME detector fails.
            IoFailure: If the content cannot be opened, read or closed.
            InsufficientContentError: If the file is too small to normalize.
            Cancelled: If ``cancel`` is set mid-read.
        """
        reason = self.gate.evaluate(descriptor)
        if reason is not None:
            return Unqualified(reason)

        entropy = self.entropy_of(descriptor, cancel=cancel)
        verdict = entropy >= self.settings.minimum_entropy
        LOGGER.debug(
            "%s entropy=%.6f threshold=%.3f encrypted=%s",
            descriptor.display_path,
            entropy,
            self.settings.minimum_entropy,
            verdict,
        )
        return Analyzed(entropy=entropy, is_likely_encrypted=verdict)

    def entropy_of(
        self,
        descriptor: FileDescriptor,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> float:
        """Compute the entropy of a file without consulting the gate."""
        try:
            stream = self.provider.open(descriptor)
        except Exception as exc:
            raise IoFailure(f"Unable to open '{descriptor.display_path}': {exc}") from exc
        return compute_entropy(
            stream, descriptor.size_bytes, cancel=cancel, chunk_size=self.chunk_size
        )


__all__ = ["EncryptionClassifier"]
