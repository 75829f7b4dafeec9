"""
Persistence Worker - consumes write-through commands off a queue.

Pricing code never talks to the store: it emits ``LedgerUpsert`` and
``SnapshotSave`` commands and hands them to this worker. Store failures
become notices; they never undo the in-memory change that produced the
command.
"""
import logging
import queue
from dataclasses import dataclass
from typing import Iterable, Optional

from ..engine.errors import EduBookError
from ..engine.ledger import dedupe_entries
from ..engine.models import BookRecord, Notice
from ..engine.mutations import LedgerUpsert
from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotSave:
    """Persist a full working list under an upload."""
    upload_id: str
    book_type: str
    records: tuple[BookRecord, ...]


def coalesce(commands: Iterable) -> tuple[dict, list]:
    """
    Split a batch into deduplicated ledger writes and the remaining commands.
    
    Several upserts for one identity in the same batch collapse to the last.
    """
    ledger_writes = []
    others = []
    for command in commands:
        if isinstance(command, LedgerUpsert):
            ledger_writes.append((command.identity, command.entry))
        else:
            others.append(command)
    return dedupe_entries(ledger_writes), others


class PersistenceWorker:
    """
    Queue-backed writer for one user's store operations.
    
    Commands are batched until ``drain()``, which coalesces repeated
    ledger writes and processes the batch in one pass.
    """
    
    def __init__(self, store: Optional[DocumentStore], user_id: Optional[str]):
        self.store = store
        self.user_id = user_id
        self._queue: queue.Queue = queue.Queue()
        self._notices: list[Notice] = []
    
    @property
    def enabled(self) -> bool:
        return self.store is not None and bool(self.user_id)
    
    def submit(self, commands: Iterable):
        """Queue commands. Without a user or store they are dropped."""
        commands = list(commands)
        if not commands:
            return
        if not self.enabled:
            logger.debug(f"Persistence unavailable, dropping {len(commands)} commands")
            return
        for command in commands:
            self._queue.put(command)
    
    def pending(self) -> int:
        return self._queue.qsize()
    
    def drain(self) -> list[Notice]:
        """Process everything queued right now and return any new notices."""
        batch = []
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        if batch:
            self._process(batch)
        return self.take_notices()
    
    def take_notices(self) -> list[Notice]:
        notices, self._notices = self._notices, []
        return notices
    
    def _notify(self, notice: Notice):
        self._notices.append(notice)
    
    def _process(self, batch: list):
        ledger_writes, others = coalesce(batch)
        
        for command in others:
            if isinstance(command, SnapshotSave):
                try:
                    self.store.save_snapshot(self.user_id, command.upload_id, command.book_type, command.records)
                    logger.info(f"Saved {len(command.records)} {command.book_type} records to upload {command.upload_id}")
                except EduBookError as e:
                    logger.error(f"Snapshot save failed: {e}")
                    self._notify(Notice("error", "Save failed", str(e)))
            else:
                logger.warning(f"Ignoring unknown persistence command {command!r}")
        
        if ledger_writes:
            try:
                written = self.store.bulk_upsert_ledger(self.user_id, ledger_writes)
                logger.info(f"Updated {written} frequent book entries")
            except EduBookError as e:
                logger.error(f"Ledger write failed: {e}")
                self._notify(Notice("error", "Could not update frequent book data", str(e)))
    
