"""Service layer helpers (settings and document persistence)."""

from .document_store import DocumentStore, PersistenceReporter, WriteResult
from .settings import Settings, SettingsStore

__all__ = [
    "DocumentStore",
    "PersistenceReporter",
    "Settings",
    "SettingsStore",
    "WriteResult",
]
