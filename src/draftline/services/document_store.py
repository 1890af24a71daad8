"""JSON persistence for documents and their pasted ranges."""

from __future__ import annotations

import errno
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Literal, Mapping

from ..editor.document_model import DocumentState
from .settings import SETTINGS_DIR

__all__ = ["DocumentStore", "PersistenceReporter", "WriteResult"]

LOGGER = logging.getLogger(__name__)
_STORE_FILENAME = "documents.json"
_STORE_VERSION = 1
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}
_UNAVAILABLE_ERRNOS = {errno.EACCES, errno.EPERM, errno.EROFS, errno.ENOENT, errno.ENOTDIR, errno.EISDIR, errno.EEXIST}

FailureReason = Literal["unavailable", "quota", "unknown"]


@dataclass(slots=True, frozen=True)
class WriteResult:
    """Outcome of a persistence attempt."""

    ok: bool
    reason: FailureReason | None = None

    @classmethod
    def success(cls) -> WriteResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: FailureReason) -> WriteResult:
        return cls(ok=False, reason=reason)


def _default_store_path() -> Path:
    return SETTINGS_DIR / _STORE_FILENAME


class DocumentStore:
    """Stores ``{text, pastedRanges}`` snapshots keyed by document id."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _default_store_path()

    @property
    def path(self) -> Path:
        return self._path

    def load_document(self, document_id: str) -> DocumentState | None:
        payload = self._read_payload().get(document_id)
        if not isinstance(payload, Mapping):
            return None
        return DocumentState.from_snapshot(payload, document_id=document_id)

    def write(self, document: DocumentState) -> WriteResult:
        """Persist ``document``; failures are returned rather than raised."""

        documents = self._read_payload()
        entry = document.snapshot()
        entry["title"] = document.title
        entry["updatedAt"] = document.updated_at.isoformat()
        documents[document.document_id] = entry
        try:
            body = json.dumps({"version": _STORE_VERSION, "documents": documents}, indent=2, sort_keys=True)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            tmp_path.write_text(body, encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            reason = _classify_os_error(exc)
            LOGGER.debug("Writing %s failed (%s): %s", self._path, reason, exc)
            return WriteResult.failure(reason)
        except (TypeError, ValueError) as exc:
            LOGGER.debug("Document %s is not serialisable: %s", document.document_id, exc)
            return WriteResult.failure("unknown")
        return WriteResult.success()

    def _read_payload(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except OSError as exc:
            LOGGER.warning("Document store %s is unreadable: %s", self._path, exc)
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Document store %s is not valid JSON: %s", self._path, exc)
            return {}
        documents = data.get("documents") if isinstance(data, Mapping) else None
        if not isinstance(documents, Mapping):
            return {}
        return dict(documents)


class PersistenceReporter:
    """Surfaces the first persistence failure of a session and mutes the rest."""

    _MESSAGES: Mapping[str, str] = {
        "quota": "Draftline could not save because storage is full. Changes exist only in memory.",
        "unavailable": "Draftline could not reach its storage. Changes exist only in memory.",
        "unknown": "Draftline could not save your document. Changes exist only in memory.",
    }

    def __init__(self, notify: Callable[[str], None] | None = None) -> None:
        self._notify = notify
        self._reported = False

    @property
    def reported(self) -> bool:
        return self._reported

    def report(self, result: WriteResult) -> bool:
        """Handle ``result``; return ``True`` when a notification was emitted."""

        if result.ok or self._reported:
            return False
        self._reported = True
        reason = result.reason or "unknown"
        LOGGER.warning("Failed to persist document (reason=%s); further failures are suppressed", reason)
        if self._notify is not None:
            self._notify(self._MESSAGES.get(reason, self._MESSAGES["unknown"]))
        return True


def _classify_os_error(exc: OSError) -> FailureReason:
    if exc.errno in _QUOTA_ERRNOS:
        return "quota"
    if exc.errno in _UNAVAILABLE_ERRNOS:
        return "unavailable"
    return "unknown"
