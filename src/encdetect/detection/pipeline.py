"""Per-file orchestration of classification and reporting."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Generator, Iterable, Optional, Sequence, Tuple

from encdetect.config.models import DetectionSettings
from encdetect.errors import Cancelled, DetectionFailure, InsufficientContentError, IoFailure
from encdetect.ingestion.content import ContentProvider
from encdetect.ingestion.detectors import MimeDetector
from encdetect.ingestion.models import FileDescriptor
from encdetect.reporting.models import EncryptionFinding, FindingSink
from encdetect.reporting.store import StoreError

from .classifier import EncryptionClassifier
from .entropy import DEFAULT_CHUNK_SIZE
from .results import Analyzed, Failed, FailureKind, FileOutcome, Unqualified

_ERROR_KINDS: Tuple[Tuple[type[Exception], FailureKind], ...] = (
    (DetectionFailure, FailureKind.DETECTION),
    (InsufficientContentError, FailureKind.CONTENT),
    (IoFailure, FailureKind.IO),
)


@dataclass(slots=True)
class FileReport:
    """Outcome of one file, paired with the descriptor it belongs to.

    Attributes:
        descriptor: File that was processed.
        outcome: ``Unqualified``, ``Analyzed`` or ``Failed``.
        finding: Record published for the file when it was flagged.
    """

    descriptor: FileDescriptor
    outcome: FileOutcome
    finding: Optional[EncryptionFinding] = None


@dataclass(slots=True)
class DetectionReport:
    """Aggregated results of a detection job.

    Attributes:
        files: Per-file reports in completion order.
        cancelled: Whether the job stopped before every file was processed.
    """

    files: list[FileReport] = field(default_factory=list)
    cancelled: bool = False

    @property
    def findings(self) -> list[EncryptionFinding]:
        return [entry.finding for entry in self.files if entry.finding is not None]

    @property
    def failures(self) -> list[FileReport]:
        return [entry for entry in self.files if isinstance(entry.outcome, Failed)]

    @property
    def counts(self) -> dict[str, int]:
        """Return summary metrics for the job."""
        return {
            "processed": len(self.files),
            "flagged": len(self.findings),
            "analyzed": sum(isinstance(entry.outcome, Analyzed) for entry in self.files),
            "unqualified": sum(isinstance(entry.outcome, Unqualified) for entry in self.files),
            "failed": len(self.failures),
        }

    @property
    def json_payload(self) -> dict[str, Any]:
        """Return a JSON-ready description of the job."""
        return {
            "counts": self.counts,
            "cancelled": self.cancelled,
            "findings": [finding.model_dump(mode="json") for finding in self.findings],
            "errors": [
                {
                    "path": entry.descriptor.display_path,
                    "kind": entry.outcome.kind.value,
                    "message": entry.outcome.message,
                }
                for entry in self.failures
                if isinstance(entry.outcome, Failed)
            ],
        }


class DetectionPipeline:
    """Classify files, publish findings, and contain per-file failures.

    Each file is classified independently; a failure is logged with the file
    path, recorded as ``Failed`` and processing moves on. Cancellation stops
    the job and is reported on the returned ``DetectionReport``.
    """

    def __init__(
        self,
        settings: DetectionSettings,
        detector: MimeDetector,
        provider: ContentProvider | None = None,
        *,
        store: FindingSink | None = None,
        notifiers: Sequence[FindingSink] = (),
        workers: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel_event: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Detection thresholds shared by every classification.
            detector: MIME type detector consulted by the gate.
            provider: Source of content streams; defaults to the local filesystem.
            store: Artifact store receiving each finding; a failure here fails the file.
            notifiers: Channels informed of each finding; failures are only logged.
            workers: Number of threads classifying files concurrently.
            chunk_size: Read size used while building byte histograms.
            cancel_event: Event that stops the job when set.
            logger: Logger used for per-file errors and job events.
        """
        self.classifier = EncryptionClassifier(settings, detector, provider, chunk_size=chunk_size)
        self.store = store
        self.notifiers = list(notifiers)
        self.workers = max(1, workers)
        self.cancel_event = cancel_event or threading.Event()
        self.logger = logger or logging.getLogger(__name__)

    def cancel(self) -> None:
        """Ask running and pending classifications to stop."""
        self.cancel_event.set()

    def process(self, descriptor: FileDescriptor) -> FileOutcome:
        """Classify and report a single file.

        Raises:
            Cancelled: If the job is stopped before or during the file.
        """
        return self._process(descriptor).outcome

    def run(
        self,
        descriptors: Iterable[FileDescriptor],
        *,
        report: DetectionReport | None = None,
    ) -> DetectionReport:
        """Process every descriptor and return the aggregated report.

        Args:
            descriptors: Files to process; consumed lazily.
            report: Report to fill in; pass one to keep partial results when the
                run is interrupted (e.g. by ``KeyboardInterrupt``).

        Raises:
            BaseException: Anything escaping the run (such as
                ``KeyboardInterrupt``) is re-raised after in-flight files have
                been cancelled and their streams released; ``report`` is marked
                cancelled first.
        """
        report = report if report is not None else DetectionReport()
        if self.workers == 1:
            entries = self._run_inline(descriptors)
        else:
            entries = self._run_pooled(descriptors)
        try:
            for entry in entries:
                report.files.append(entry)
        except Cancelled:
            report.cancelled = True
        except BaseException:
            self.cancel()
            entries.close()
            report.cancelled = True
            self.logger.info(
                "Encryption detection interrupted after %d file(s).", len(report.files)
            )
            raise
        if self.cancel_event.is_set():
            report.cancelled = True
        if report.cancelled:
            self.logger.info(
                "Encryption detection cancelled after %d file(s).", len(report.files)
            )
        return report

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _run_inline(
        self, descriptors: Iterable[FileDescriptor]
    ) -> Generator[FileReport, None, None]:
        for descriptor in descriptors:
            yield self._process(descriptor)

    def _run_pooled(
        self, descriptors: Iterable[FileDescriptor]
    ) -> Generator[FileReport, None, None]:
        """Yield reports as workers finish, keeping a bounded number of files in flight."""
        source = iter(descriptors)
        limit = self.workers * 2
        pending: set[Future[FileReport]] = set()
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="encdetect") as pool:
            try:
                while True:
                    while len(pending) < limit and not self.cancel_event.is_set():
                        descriptor = next(source, None)
                        if descriptor is None:
                            break
                        pending.add(pool.submit(self._process, descriptor))
                    if not pending:
                        return
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        try:
                            yield future.result()
                        except Cancelled:
                            # The file was interrupted mid-read; it has no outcome.
                            self.cancel_event.set()
            except BaseException:
                # Workers stop at their next chunk, so the pool shuts down promptly.
                self.cancel_event.set()
                raise

    def _process(self, descriptor: FileDescriptor) -> FileReport:
        if self.cancel_event.is_set():
            raise Cancelled(f"Job stopped before '{descriptor.display_path}' was processed.")

        try:
            result = self.classifier.classify(descriptor, cancel=self.cancel_event)
        except Cancelled:
            raise
        except (DetectionFailure, InsufficientContentError, IoFailure) as exc:
            return FileReport(descriptor, self._failure(descriptor, exc))

        if not (isinstance(result, Analyzed) and result.is_likely_encrypted):
            return FileReport(descriptor, result)

        finding = EncryptionFinding.from_descriptor(descriptor, result.entropy)
        if self.store is not None:
            try:
                self.store.publish(finding)
            except (StoreError, OSError) as exc:
                self.logger.error(
                    "Failed to record finding for '%s'.", descriptor.display_path, exc_info=exc
                )
                return FileReport(descriptor, Failed(FailureKind.REPORT, str(exc)))

        for notifier in self.notifiers:
            try:
                notifier.publish(finding)
            except Exception as exc:  # notification channels are best effort
                self.logger.error(
                    "Unable to send notification for '%s'.", descriptor.display_path, exc_info=exc
                )
        return FileReport(descriptor, result, finding)

    def _failure(self, descriptor: FileDescriptor, exc: Exception) -> Failed:
        kind = next(kind for error_type, kind in _ERROR_KINDS if isinstance(exc, error_type))
        self.logger.error(
            "Unable to process file '%s'", descriptor.display_path, exc_info=exc
        )
        return Failed(kind, str(exc))


__all__ = ["FileReport", "DetectionReport", "DetectionPipeline"]
