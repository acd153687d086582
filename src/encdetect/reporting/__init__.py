"""Reporting of findings to the artifact store and notification channels."""

from .models import MODULE_NAME, EncryptionFinding, FindingSink
from .notifier import ConsoleNotifier
from .store import DEFAULT_STATE_DIRNAME, FindingStore, StoreError

__all__ = [
    "MODULE_NAME",
    "EncryptionFinding",
    "FindingSink",
    "ConsoleNotifier",
    "DEFAULT_STATE_DIRNAME",
    "FindingStore",
    "StoreError",
]
