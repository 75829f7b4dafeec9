"""
Calculator Service - one user's calculator session.

Owns the current CalculatorSession, the user's ledger view and the
persistence worker. Every action replaces the session with a new value:
imports start a new generation, edits build on the current one.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

from ..config.settings import Settings, get_settings
from ..data.mock_data import NOTEBOOKS_MOCK, TEXTBOOKS_MOCK
from ..data.tabular import Source, export_filename, export_workbook, import_workbook
from ..engine.aggregate import Summary, Totals, apply_filters, compute_summary, compute_totals
from ..engine.errors import EduBookError, NoActiveSession, PersistenceUnavailable
from ..engine.ledger import FrequentPriceLedger
from ..engine.models import (
    BookFilters, BookRecord, CalculatorSession, Notice, RawRow, UploadMeta, NOTEBOOK, TEXTBOOK,
)
from ..engine.mutations import (
    MutationResult, apply_publisher_discount, apply_to_all, bulk_edit_by_name,
    ledger_command, update_field,
)
from ..engine.reconciler import reconcile
from .persistence import PersistenceWorker, SnapshotSave
from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class SessionView:
    """What the calculator screen shows: filtered lists, totals and summaries."""
    session: CalculatorSession
    textbooks: list[BookRecord]
    notebooks: list[BookRecord]
    totals: Totals
    textbook_summary: Summary
    notebook_summary: Summary


class CalculatorService:
    """
    Calculator workflow for a single (possibly anonymous) user.
    
    Without a user id the service runs in degraded mode: no ledger merge,
    no upload records, edits are not persisted, and ``save()`` raises
    PersistenceUnavailable.
    """
    
    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        user_id: Optional[str] = None,
        settings: Optional[Settings] = None,
        worker: Optional[PersistenceWorker] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.user_id = user_id or None
        self.worker = worker or PersistenceWorker(store, self.user_id)
        self.ledger = FrequentPriceLedger()
        self.session: Optional[CalculatorSession] = None
        self._generation = 0
        self.notices: list[Notice] = []
    
    @property
    def signed_in(self) -> bool:
        return self.store is not None and self.user_id is not None
    
    def default_meta(self) -> UploadMeta:
        s = self.settings
        return UploadMeta(
            class_name=s.default_class,
            course=s.default_course,
            textbook_discount=s.textbook_discount,
            textbook_tax=s.textbook_tax,
            notebook_discount=s.notebook_discount,
            notebook_tax=s.notebook_tax,
        )
    
    def take_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices
    
    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------
    def load_ledger(self) -> FrequentPriceLedger:
        """Read the user's ledger from the store (empty in degraded mode)."""
        if not self.signed_in:
            self.ledger = FrequentPriceLedger()
            return self.ledger
        try:
            self.ledger = FrequentPriceLedger(self.store.get_ledger(self.user_id))
        except EduBookError as e:
            logger.error(f"Could not load frequent book data: {e}")
            self.notices.append(Notice("warning", "Frequent book data unavailable", str(e)))
            self.ledger = FrequentPriceLedger()
        return self.ledger
    
    def _create_upload(self, meta: UploadMeta) -> str:
        if not self.signed_in:
            return ""
        try:
            return self.store.create_upload_session(self.user_id, meta).id
        except EduBookError as e:
            logger.error(f"Could not record upload: {e}")
            self.notices.append(Notice("warning", "Upload not recorded", str(e)))
            return ""
    
    def _start(self, raw_textbooks: Sequence[RawRow], raw_notebooks: Sequence[RawRow], meta: UploadMeta,
               warnings: Optional[list] = None) -> CalculatorSession:
        ledger = self.load_ledger()
        upload_id = self._create_upload(meta)
        result = reconcile(raw_textbooks, raw_notebooks, meta, ledger if self.signed_in else None, upload_id)
        
        self._generation += 1
        self.session = CalculatorSession(
            meta=meta,
            textbooks=tuple(result.textbooks),
            notebooks=tuple(result.notebooks),
            upload_id=upload_id,
            generation=self._generation,
            warnings=tuple(warnings or ()),
        )
        logger.info(
            f"Session {self._generation}: {len(result.textbooks)} textbooks, "
            f"{len(result.notebooks)} notebooks, {result.ledger_hits} priced from frequent data"
        )
        return self.session
    
    def start_from_mock(self, meta: Optional[UploadMeta] = None) -> CalculatorSession:
        """Load the built-in book lists."""
        session = self._start(TEXTBOOKS_MOCK, NOTEBOOKS_MOCK, meta or self.default_meta())
        self.notices.append(Notice("success", "Success", "Mock data loaded successfully."))
        return session
    
    def start_from_workbook(self, source: Source, meta: Optional[UploadMeta] = None) -> CalculatorSession:
        """
        Import a workbook.
        
        InvalidFileFormat propagates and the current session is kept.
        """
        imported = import_workbook(source)
        session = self._start(imported.textbooks, imported.notebooks, meta or self.default_meta(), imported.warnings)
        self.notices.append(Notice("success", "Success", "Excel file processed successfully."))
        for warning in imported.warnings:
            self.notices.append(Notice("warning", "Value replaced", str(warning)))
        return session
    
    def reset(self):
        """Drop the working lists and go back to setup."""
        self._generation += 1
        self.session = None
    
    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _require_session(self) -> CalculatorSession:
        if self.session is None:
            raise NoActiveSession("No book list loaded. Upload a file or use mock data first.")
        return self.session
    
    def _is_stale(self, generation: Optional[int]) -> bool:
        return generation is not None and (self.session is None or generation != self.session.generation)
    
    def _commit(self, book_type: str, result: MutationResult) -> CalculatorSession:
        """Swap in the new list, then hand the ledger writes to the worker."""
        self.session = self._require_session().with_list(book_type, result.records)
        for command in result.commands:
            self.ledger.upsert(command.identity, command.entry)
        self._persist(result.commands)
        return self.session
    
    def _persist(self, commands: list):
        self.worker.submit(commands)
        self.notices.extend(self.worker.drain())
    
    def _mutate(self, book_type: str, generation: Optional[int], operation, *args) -> Optional[MutationResult]:
        """Run an operation on the current list; None when the edit targets a stale session."""
        if self._is_stale(generation):
            logger.info(f"Discarding edit for stale session generation {generation}")
            self.notices.append(Notice("info", "Edit discarded", "The book list was replaced before this edit arrived."))
            return None
        records = self._require_session().records_for(book_type)
        result = operation(records, *args)
        self._commit(book_type, result)
        return result
    
    def update_field(self, book_type: str, record_id, field_name: str, value: Any,
                     generation: Optional[int] = None) -> CalculatorSession:
        self._mutate(book_type, generation, update_field, record_id, field_name, value)
        return self.session
    
    def apply_to_all(self, book_type: str, field_name: str, value: Any,
                     generation: Optional[int] = None) -> CalculatorSession:
        self._mutate(book_type, generation, apply_to_all, field_name, value)
        return self.session
    
    def apply_publisher_discount(self, book_type: str, publisher: str, discount: Any,
                                 generation: Optional[int] = None) -> CalculatorSession:
        result = self._mutate(book_type, generation, apply_publisher_discount, publisher, discount)
        if result is not None:
            self.notices.append(Notice("success", "Discount applied", f"Updated {result.updated_count} books from {publisher}."))
        return self.session
    
    def bulk_edit(self, book_type: str, names: Sequence[str], price: Any = None, discount: Any = None,
                  tax: Any = None, generation: Optional[int] = None) -> tuple[CalculatorSession, int]:
        """Bulk edit by name. Returns (session, number of records updated)."""
        result = self._mutate(book_type, generation, bulk_edit_by_name, names, price, discount, tax)
        if result is None:
            return self.session, 0
        self.notices.append(Notice("success", "Bulk update", f"Updated {result.updated_count} books."))
        return self.session, result.updated_count
    
    # ------------------------------------------------------------------
    # Views, save and export
    # ------------------------------------------------------------------
    def view(self, filters: Optional[BookFilters] = None) -> SessionView:
        session = self._require_session()
        textbooks = apply_filters(session.textbooks, filters)
        notebooks = apply_filters(session.notebooks, filters)
        return SessionView(
            session=session,
            textbooks=textbooks,
            notebooks=notebooks,
            totals=compute_totals(textbooks, notebooks),
            textbook_summary=compute_summary(textbooks),
            notebook_summary=compute_summary(notebooks),
        )
    
    def save(self) -> list[Notice]:
        """
        Persist both full working lists as a snapshot and refresh the ledger.
        
        Filters never apply here. Raises PersistenceUnavailable when signed out.
        """
        if not self.signed_in:
            raise PersistenceUnavailable("Sign in to save your book lists")
        session = self._require_session()
        
        if not session.upload_id:
            upload_id = self.store.create_upload_session(self.user_id, session.meta).id
            session = replace(
                session,
                upload_id=upload_id,
                textbooks=tuple(replace(r, upload_id=upload_id) for r in session.textbooks),
                notebooks=tuple(replace(r, upload_id=upload_id) for r in session.notebooks),
            )
            self.session = session
        
        commands: list = [
            SnapshotSave(session.upload_id, TEXTBOOK, session.textbooks),
            SnapshotSave(session.upload_id, NOTEBOOK, session.notebooks),
        ]
        for record in session.all_records():
            command = ledger_command(record)
            if command is not None:
                self.ledger.upsert(command.identity, command.entry)
                commands.append(command)
        
        self.worker.submit(commands)
        notices = self.worker.drain()
        if not any(n.level == "error" for n in notices):
            notices.append(Notice("success", "Saved", f"Book lists saved for Class {session.meta.class_name}."))
        return notices
    
    def export(self, filters: Optional[BookFilters] = None) -> tuple[str, bytes]:
        """Workbook of the (filtered) lists, with its download filename."""
        view = self.view(filters)
        meta = view.session.meta
        return export_filename(meta.class_name, meta.course), export_workbook(view.textbooks, view.notebooks)
    
    def wipe_ledger(self) -> int:
        """Delete every frequent book entry for the user."""
        if not self.signed_in:
            raise PersistenceUnavailable("Sign in to manage frequent book data")
        removed = self.store.delete_all_ledger_entries(self.user_id)
        self.ledger.clear()
        return removed
