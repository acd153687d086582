"""Persistent JSON store for encryption findings."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .models import EncryptionFinding

DEFAULT_STATE_DIRNAME = ".encdetect"
FINDINGS_FILENAME = "findings.json"


class StoreError(Exception):
    """Raised when findings cannot be persisted or loaded."""


class FindingStore:
    """Keep the findings of a scan in a JSON document.

    Publishing rewrites the whole document through a temporary file so a
    reader never observes a half-written list. Safe to share between worker
    threads.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document.
        """
        self._path = path
        self._lock = threading.Lock()

    @classmethod
    def for_root(cls, root: Path, base_dirname: str = DEFAULT_STATE_DIRNAME) -> "FindingStore":
        """Return a store kept in the state directory under ``root``."""
        return cls(root / base_dirname / FINDINGS_FILENAME)

    @property
    def path(self) -> Path:
        """Return the location of the JSON document."""
        return self._path

    def load(self) -> List[EncryptionFinding]:
        """Return the stored findings, or an empty list when none exist.

        Raises:
            StoreError: If the document cannot be parsed.
        """
        with self._lock:
            return self._read()

    def publish(self, finding: EncryptionFinding) -> None:
        """Append a finding and persist the document.

        Raises:
            StoreError: If the document cannot be read or written.
        """
        with self._lock:
            findings = self._read()
            findings = [item for item in findings if item.path != finding.path]
            findings.append(finding)
            self._write(findings)

    def clear(self) -> None:
        """Remove every stored finding."""
        with self._lock:
            self._write([])

    def _read(self) -> List[EncryptionFinding]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return [EncryptionFinding.model_validate(item) for item in data]
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
            raise StoreError(f"Invalid findings data at {self._path}: {exc}") from exc

    def _write(self, findings: List[EncryptionFinding]) -> None:
        payload = [finding.model_dump(mode="json") for finding in findings]
        tmp_path = self._path.with_suffix(".json.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise StoreError(f"Unable to write findings to {self._path}: {exc}") from exc


__all__ = ["DEFAULT_STATE_DIRNAME", "FINDINGS_FILENAME", "StoreError", "FindingStore"]
