"""Exceptions raised while qualifying and analyzing files."""


class EncryptionDetectionError(Exception):
    """Base exception for encryption detection failures."""


class IoFailure(EncryptionDetectionError):
    """Raised when file content cannot be fully read or closed."""


class DetectionFailure(EncryptionDetectionError):
    """Raised when the MIME type detector cannot classify a file."""


class InsufficientContentError(EncryptionDetectionError):
    """Raised when a file is too small for its entropy to be normalized."""


class StartupFailure(EncryptionDetectionError):
    """Raised when a collaborator required by the whole job cannot be initialized."""


class Cancelled(EncryptionDetectionError):
    """Raised when the surrounding job is stopped mid-analysis."""


__all__ = [
    "EncryptionDetectionError",
    "IoFailure",
    "DetectionFailure",
    "InsufficientContentError",
    "StartupFailure",
    "Cancelled",
]
