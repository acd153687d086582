"""Byte histograms and Shannon entropy estimation.

The estimator reads a stream exactly once, front to back, and keeps only a
256-slot counter array, so memory use does not depend on file size.

The probability denominator is ``declared_size - 1`` rather than
``declared_size``, matching scores produced by earlier releases. The raw sum
can therefore fall marginally outside ``[0, 8]`` (an all-zero stream gives a
tiny negative value), and results are clamped into that range.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import Counter
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Sequence

from encdetect.errors import Cancelled, InsufficientContentError, IoFailure

LOGGER = logging.getLogger(__name__)

BYTE_VALUES = 256
MAX_ENTROPY = 8.0
DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteHistogram:
    """Occurrence counts for each of the 256 byte values seen in a stream."""

    __slots__ = ("_counts", "_total")

    def __init__(self) -> None:
        self._counts = [0] * BYTE_VALUES
        self._total = 0

    @property
    def counts(self) -> tuple[int, ...]:
        """Return a snapshot of the 256 slots, indexed by byte value."""
        return tuple(self._counts)

    @property
    def total(self) -> int:
        """Return the number of bytes consumed so far."""
        return self._total

    def update(self, chunk: bytes) -> None:
        """Add the bytes of ``chunk`` to the counters."""
        for value, count in Counter(chunk).items():
            self._counts[value] += count
        self._total += len(chunk)

    def consume(
        self,
        stream: BinaryIO,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """Read ``stream`` to end-of-stream and count every byte.

        Args:
            stream: Sequential binary stream; never seeked.
            chunk_size: Number of bytes requested per read.
            cancel: Event checked before each read.

        Returns:
            int: Total number of bytes counted.

        Raises:
            Cancelled: If ``cancel`` is set before the stream is exhausted.
            Exception: Any error raised by the stream propagates unchanged.
        """
        while True:
            if cancel is not None and cancel.is_set():
                raise Cancelled(f"Entropy analysis cancelled after {self._total} bytes.")
            chunk = stream.read(chunk_size)
            if not chunk:
                return self._total
            self.update(chunk)


def shannon_entropy(counts: Sequence[int], declared_size: int) -> float:
    """Return the entropy, in bits per byte, of a completed histogram.

    Args:
        counts: Occurrence count per byte value.
        declared_size: Size reported for the content, used for normalization.

    Raises:
        InsufficientContentError: If ``declared_size`` is 1 or less.
    """
    if declared_size <= 1:
        raise InsufficientContentError(
            f"Cannot compute entropy for content of {declared_size} byte(s)."
        )

    denominator = declared_size - 1
    accumulator = 0.0
    for count in counts:
        if count > 0:
            probability = count / denominator
            accumulator += probability * math.log2(probability)
    return min(max(-accumulator, 0.0), MAX_ENTROPY)


def compute_entropy(
    stream: BinaryIO,
    declared_size: int,
    *,
    cancel: Optional[threading.Event] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> float:
    """Compute the Shannon entropy of ``stream`` in one sequential pass.

    The stream is owned by this call and is closed on every exit path.

    Args:
        stream: Binary stream positioned at the start of the content.
        declared_size: Size reported for the content.
        cancel: Optional event that interrupts the read when set.
        chunk_size: Number of bytes requested per read.

    Returns:
        float: Entropy in ``[0, 8]``.

    Raises:
        IoFailure: If the stream cannot be read to the end or closed.
        InsufficientContentError: If ``declared_size`` is 1 or less.
        Cancelled: If ``cancel`` is set during the read.
    """
    histogram = ByteHistogram()
    with _owned(stream):
        if declared_size <= 1:
            raise InsufficientContentError(
                f"Cannot compute entropy for content of {declared_size} byte(s)."
            )
        try:
            histogram.consume(stream, chunk_size=chunk_size, cancel=cancel)
        except Cancelled:
            raise
        except Exception as exc:
            raise IoFailure(f"Unable to read content stream: {exc}") from exc

    if histogram.total != declared_size:
        LOGGER.debug(
            "Read %d bytes but %d were declared; normalizing by the declared size.",
            histogram.total,
            declared_size,
        )
    return shannon_entropy(histogram.counts, declared_size)


@contextmanager
def _owned(stream: BinaryIO) -> Iterator[BinaryIO]:
    """Close ``stream`` on exit; a close error only surfaces if nothing else failed."""
    try:
        yield stream
    except BaseException:
        try:
            stream.close()
        except Exception as exc:
            LOGGER.debug("Ignoring close failure after an earlier error: %s", exc)
        raise
    try:
        stream.close()
    except Exception as exc:
        raise IoFailure(f"Failed to close content stream: {exc}") from exc


__all__ = [
    "BYTE_VALUES",
    "MAX_ENTROPY",
    "DEFAULT_CHUNK_SIZE",
    "ByteHistogram",
    "shannon_entropy",
    "compute_entropy",
]
