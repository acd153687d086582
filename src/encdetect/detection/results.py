"""Per-file classification outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .gate import RejectionReason


class FailureKind(str, Enum):
    """Category of a per-file failure."""

    IO = "io"
    DETECTION = "detection"
    CONTENT = "content"
    REPORT = "report"


@dataclass(frozen=True, slots=True)
class Unqualified:
    """The gate rejected the file; no entropy was computed."""

    reason: RejectionReason

    @property
    def is_likely_encrypted(self) -> bool:
        return False

    @property
    def computed_entropy(self) -> Optional[float]:
        return None


@dataclass(frozen=True, slots=True)
class Analyzed:
    """The file qualified and its entropy was computed.

    Attributes:
        entropy: Shannon entropy in bits per byte.
        is_likely_encrypted: Whether ``entropy`` met the configured threshold.
    """

    entropy: float
    is_likely_encrypted: bool

    @property
    def computed_entropy(self) -> Optional[float]:
        return self.entropy


@dataclass(frozen=True, slots=True)
class Failed:
    """The file could not be classified; no verdict is available."""

    kind: FailureKind
    message: str

    @property
    def is_likely_encrypted(self) -> bool:
        return False

    @property
    def computed_entropy(self) -> Optional[float]:
        return None


ClassificationResult = Union[Unqualified, Analyzed]
FileOutcome = Union[Unqualified, Analyzed, Failed]


__all__ = [
    "FailureKind",
    "Unqualified",
    "Analyzed",
    "Failed",
    "ClassificationResult",
    "FileOutcome",
]
