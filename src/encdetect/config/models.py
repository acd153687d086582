"""Configuration models describing encdetect settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MINIMUM_ENTROPY = 7.5
DEFAULT_MINIMUM_FILE_SIZE = 5_242_880  # 5 MiB
DEFAULT_FILE_SIZE_MULTIPLE_ENFORCED = True
DEFAULT_SLACK_FILES_ALLOWED = True


class EncDetectBaseModel(BaseModel):
    """Shared configuration for encdetect Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class DetectionSettings(EncDetectBaseModel):
    """Tunables for the encryption classifier.

    A single instance is built per job and shared read-only by every worker,
    so the model is frozen.

    Attributes:
        minimum_entropy: Entropy (bits/byte) at or above which a file is flagged.
        minimum_file_size: Smallest file size, in bytes, considered for analysis.
        file_size_multiple_enforced: Require sizes to be a multiple of 512 bytes.
        slack_files_allowed: Whether slack-space files may be analyzed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    minimum_entropy: float = Field(default=DEFAULT_MINIMUM_ENTROPY, gt=0, le=8)
    minimum_file_size: int = Field(default=DEFAULT_MINIMUM_FILE_SIZE, ge=0)
    file_size_multiple_enforced: bool = DEFAULT_FILE_SIZE_MULTIPLE_ENFORCED
    slack_files_allowed: bool = DEFAULT_SLACK_FILES_ALLOWED


class ProcessingOptions(EncDetectBaseModel):
    """Processing options governing discovery and the worker pool.

    Attributes:
        recurse_directories: Whether to recurse into subdirectories.
        process_hidden_files: Whether hidden files should be included.
        follow_symlinks: Whether to traverse symbolic links.
        workers: Number of worker threads classifying files concurrently.
        chunk_size_kb: Read size used while building byte histograms.
        known_hashes_path: Optional path to a known-file hash list.
    """

    recurse_directories: bool = False
    process_hidden_files: bool = False
    follow_symlinks: bool = False
    workers: int = Field(default=4, ge=1)
    chunk_size_kb: int = Field(default=64, ge=1)
    known_hashes_path: Optional[str] = None


class LoggingSettings(EncDetectBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; enables a rotating file handler.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(EncDetectBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class EncDetectConfig(EncDetectBaseModel):
    """Top-level configuration struct for encdetect.

    Attributes:
        detection: Classifier thresholds and qualification switches.
        processing: Discovery and worker settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    processing: ProcessingOptions = Field(default_factory=ProcessingOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_MINIMUM_ENTROPY",
    "DEFAULT_MINIMUM_FILE_SIZE",
    "DEFAULT_FILE_SIZE_MULTIPLE_ENFORCED",
    "DEFAULT_SLACK_FILES_ALLOWED",
    "EncDetectBaseModel",
    "DetectionSettings",
    "ProcessingOptions",
    "LoggingSettings",
    "CLIOptions",
    "EncDetectConfig",
]
