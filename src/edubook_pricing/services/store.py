"""
Document Store - per-user persistence of uploads, ledger and snapshots.

Each user owns one document shaped like the original collections:

    {
        "uploads": {upload_id: UploadSession},
        "frequent_book_data": {identity: LedgerEntry},
        "snapshots": {upload_id: {"textbooks": [...], "notebooks": [...]}}
    }

``InMemoryStore`` keeps documents in a dict (tests, anonymous demos);
``JsonFileStore`` keeps one JSON file per user under the data directory.
"""
import json
import logging
import re
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from ..config.settings import Settings, get_settings
from ..engine.errors import PersistenceUnavailable, PersistenceWriteFailure
from ..engine.models import (
    BookRecord, DenormalizedBook, LedgerEntry, UploadMeta, UploadSession, LIST_NAMES,
)

logger = logging.getLogger(__name__)


def _empty_document() -> dict:
    return {"uploads": {}, "frequent_book_data": {}, "snapshots": {}}


class DocumentStore:
    """
    Base store: implements the collaborator operations on top of
    ``_read``/``_write`` of a whole user document.
    """
    
    def __init__(self):
        self._lock = threading.RLock()
    
    # Subclasses provide raw document access
    def _read(self, user_id: str) -> dict:
        raise NotImplementedError
    
    def _write(self, user_id: str, document: dict):
        raise NotImplementedError
    
    def _require_user(self, user_id: Optional[str]) -> str:
        if not user_id:
            raise PersistenceUnavailable("Sign in to save and load pricing data")
        return user_id
    
    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------
    def get_ledger(self, user_id: Optional[str]) -> dict[str, LedgerEntry]:
        """All ledger entries for a user, keyed by identity."""
        user_id = self._require_user(user_id)
        with self._lock:
            document = self._read(user_id)
        return {
            identity: LedgerEntry.from_dict(data)
            for identity, data in document["frequent_book_data"].items()
        }
    
    def upsert_ledger_entry(self, user_id: Optional[str], identity: str, entry: LedgerEntry):
        """Merge an entry into the user's ledger (provided fields overwrite)."""
        self.bulk_upsert_ledger(user_id, {identity: entry})
    
    def bulk_upsert_ledger(self, user_id: Optional[str], entries: dict[str, LedgerEntry]) -> int:
        """Merge many entries in one document write. Returns the number written."""
        user_id = self._require_user(user_id)
        entries = {k: v for k, v in entries.items() if k}
        if not entries:
            return 0
        
        with self._lock:
            document = self._read(user_id)
            ledger = document["frequent_book_data"]
            for identity, entry in entries.items():
                merged = dict(ledger.get(identity, {}))
                merged.update(entry.to_dict())
                merged['id'] = identity
                merged['userId'] = user_id
                ledger[identity] = merged
            self._write(user_id, document)
        return len(entries)
    
    def delete_all_ledger_entries(self, user_id: Optional[str]) -> int:
        """Wipe the user's ledger. Returns how many entries were removed."""
        user_id = self._require_user(user_id)
        with self._lock:
            document = self._read(user_id)
            removed = len(document["frequent_book_data"])
            document["frequent_book_data"] = {}
            self._write(user_id, document)
        logger.info(f"Deleted {removed} ledger entries for user {user_id}")
        return removed
    
    # ------------------------------------------------------------------
    # Uploads and snapshots
    # ------------------------------------------------------------------
    def create_upload_session(self, user_id: Optional[str], meta: UploadMeta) -> UploadSession:
        """Record a new upload and return it with its generated id."""
        user_id = self._require_user(user_id)
        upload = UploadSession(
            id=uuid.uuid4().hex,
            meta=meta,
            created_at=datetime.now().isoformat(),
            user_id=user_id,
        )
        with self._lock:
            document = self._read(user_id)
            document["uploads"][upload.id] = upload.to_dict()
            self._write(user_id, document)
        logger.info(f"Created upload {upload.id} (Class {meta.class_name}, {meta.course})")
        return upload
    
    def list_uploads(self, user_id: Optional[str]) -> list[UploadSession]:
        user_id = self._require_user(user_id)
        with self._lock:
            document = self._read(user_id)
        return [UploadSession.from_dict(u) for u in document["uploads"].values()]
    
    def save_snapshot(self, user_id: Optional[str], upload_id: str, book_type: str, records: Sequence[BookRecord]):
        """Replace the saved snapshot of one working list for an upload."""
        user_id = self._require_user(user_id)
        with self._lock:
            document = self._read(user_id)
            if upload_id not in document["uploads"]:
                raise PersistenceWriteFailure(f"Upload '{upload_id}' does not exist")
            snapshot = document["snapshots"].setdefault(upload_id, {})
            snapshot[LIST_NAMES[book_type]] = [r.to_dict() for r in records]
            self._write(user_id, document)
    
    def query_all_snapshots(self, user_id: Optional[str], class_name: Optional[str] = None) -> list[DenormalizedBook]:
        """
        Every saved book across the user's uploads, enriched with the
        upload's class, course and timestamp. Newest uploads first.
        """
        user_id = self._require_user(user_id)
        with self._lock:
            document = self._read(user_id)
        
        uploads = sorted(
            (UploadSession.from_dict(u) for u in document["uploads"].values()),
            key=lambda u: u.created_at,
            reverse=True,
        )
        books = []
        for upload in uploads:
            if class_name and upload.meta.class_name != class_name:
                continue
            snapshot = document["snapshots"].get(upload.id, {})
            for list_name in LIST_NAMES.values():
                for data in snapshot.get(list_name, []):
                    books.append(DenormalizedBook(
                        record=BookRecord.from_dict(data),
                        upload_class=upload.meta.class_name,
                        upload_course=upload.meta.course,
                        upload_timestamp=upload.created_at,
                    ))
        return books


class InMemoryStore(DocumentStore):
    """Store that lives only as long as the process."""
    
    def __init__(self):
        super().__init__()
        self.documents: dict[str, dict] = {}
    
    def _read(self, user_id: str) -> dict:
        # Deep copy through JSON so callers never share state with the store
        return json.loads(json.dumps(self.documents.get(user_id, _empty_document())))
    
    def _write(self, user_id: str, document: dict):
        self.documents[user_id] = json.loads(json.dumps(document))


class JsonFileStore(DocumentStore):
    """Store keeping ``<data_dir>/users/<user_id>.json`` per user."""
    
    def __init__(self, data_dir: Path):
        super().__init__()
        self.users_dir = Path(data_dir) / 'users'
    
    def _path(self, user_id: str) -> Path:
        safe_id = re.sub(r'[^A-Za-z0-9_.-]', '_', user_id)
        return self.users_dir / f"{safe_id}.json"
    
    def _read(self, user_id: str) -> dict:
        path = self._path(user_id)
        if not path.exists():
            return _empty_document()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceUnavailable(f"Could not read data for user {user_id}: {e}") from e
        
        for key, value in _empty_document().items():
            document.setdefault(key, value)
        return document
    
    def _write(self, user_id: str, document: dict):
        path = self._path(user_id)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceWriteFailure(f"Could not save data for user {user_id}: {e}") from e


def build_store(settings: Optional[Settings] = None) -> DocumentStore:
    """Create the store configured in settings."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        return InMemoryStore()
    return JsonFileStore(settings.data_dir)
