"""Encryption detection: qualification gate, entropy estimator and pipeline driver."""

from encdetect.errors import (
    Cancelled,
    DetectionFailure,
    EncryptionDetectionError,
    InsufficientContentError,
    IoFailure,
    StartupFailure,
)

from .classifier import EncryptionClassifier
from .entropy import ByteHistogram, compute_entropy, shannon_entropy
from .gate import QualificationGate, RejectionReason
from .pipeline import DetectionPipeline, DetectionReport, FileReport
from .results import Analyzed, ClassificationResult, Failed, FailureKind, FileOutcome, Unqualified

__all__ = [
    "Cancelled",
    "DetectionFailure",
    "EncryptionDetectionError",
    "InsufficientContentError",
    "IoFailure",
    "StartupFailure",
    "EncryptionClassifier",
    "ByteHistogram",
    "compute_entropy",
    "shannon_entropy",
    "QualificationGate",
    "RejectionReason",
    "DetectionPipeline",
    "DetectionReport",
    "FileReport",
    "Analyzed",
    "ClassificationResult",
    "Failed",
    "FailureKind",
    "FileOutcome",
    "Unqualified",
]
