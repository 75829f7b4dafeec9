"""
Data models for the book pricing engine.

Uses dataclasses for structured, type-safe data representation. Records are
frozen: every mutation produces a new record through ``dataclasses.replace``.
Field names are snake_case in Python and camelCase on the wire/in the store
(``to_dict``/``from_dict``) so existing persisted documents stay readable.
"""
from dataclasses import dataclass, replace
from typing import Optional, Union

TEXTBOOK = "Textbook"
NOTEBOOK = "Notebook"
BOOK_TYPES = (TEXTBOOK, NOTEBOOK)

# Working-list name used by the spreadsheet sheets and the store collections
LIST_NAMES = {TEXTBOOK: "textbooks", NOTEBOOK: "notebooks"}

RecordId = Union[int, str]


def normalize_book_type(value: str) -> str:
    """Accept 'Textbook'/'textbooks'/'notebook'... and return the canonical type."""
    text = str(value or "").strip().lower().rstrip('s')
    if text == "textbook":
        return TEXTBOOK
    if text == "notebook":
        return NOTEBOOK
    raise ValueError(f"Unknown book type '{value}'. Expected one of {', '.join(BOOK_TYPES)}")


@dataclass(frozen=True)
class RawRow:
    """A row as it comes out of a spreadsheet sheet or the mock dataset."""
    book_name: str = ""
    subject: str = "N/A"
    publisher: str = "N/A"
    price: float = 0.0
    pages: Optional[int] = None
    row_id: Optional[RecordId] = None


@dataclass(frozen=True)
class BookRecord:
    """One priced line item in a working list."""
    id: RecordId
    book_name: str
    subject: str = "N/A"
    publisher: str = "N/A"
    price: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    final_price: float = 0.0  # derived, see engine.pricing
    pages: Optional[int] = None
    upload_id: str = ""
    type: str = TEXTBOOK
    
    def to_dict(self) -> dict:
        """Convert to the camelCase document format."""
        data = {
            'id': self.id,
            'bookName': self.book_name,
            'subject': self.subject,
            'publisher': self.publisher,
            'price': self.price,
            'discount': self.discount,
            'tax': self.tax,
            'finalPrice': self.final_price,
            'uploadId': self.upload_id,
            'type': self.type,
        }
        if self.pages is not None:
            data['pages'] = self.pages
        return data
    
    @classmethod
    def from_dict(cls, data: dict) -> 'BookRecord':
        """Create a BookRecord from a camelCase document."""
        return cls(
            id=data.get('id', ''),
            book_name=data.get('bookName', ''),
            subject=data.get('subject') or 'N/A',
            publisher=data.get('publisher') or 'N/A',
            price=float(data.get('price', 0) or 0),
            discount=float(data.get('discount', 0) or 0),
            tax=float(data.get('tax', 0) or 0),
            final_price=float(data.get('finalPrice', 0) or 0),
            pages=int(data['pages']) if data.get('pages') is not None else None,
            upload_id=data.get('uploadId', '') or '',
            type=data.get('type', TEXTBOOK),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """Last-known pricing for one distinct book, keyed by its identity."""
    book_name: str
    publisher: str
    price: float
    discount: float
    tax: float
    type: str
    pages: Optional[int] = None
    
    @classmethod
    def from_record(cls, record: BookRecord) -> 'LedgerEntry':
        return cls(
            book_name=record.book_name,
            publisher=record.publisher,
            price=record.price,
            discount=record.discount,
            tax=record.tax,
            type=record.type,
            pages=record.pages,
        )
    
    def to_dict(self) -> dict:
        data = {
            'bookName': self.book_name,
            'publisher': self.publisher,
            'price': self.price,
            'discount': self.discount,
            'tax': self.tax,
            'type': self.type,
        }
        if self.pages is not None:
            data['pages'] = self.pages
        return data
    
    @classmethod
    def from_dict(cls, data: dict) -> 'LedgerEntry':
        return cls(
            book_name=data.get('bookName', ''),
            publisher=data.get('publisher', 'N/A'),
            price=float(data.get('price', 0) or 0),
            discount=float(data.get('discount', 0) or 0),
            tax=float(data.get('tax', 0) or 0),
            type=data.get('type', TEXTBOOK),
            pages=int(data['pages']) if data.get('pages') is not None else None,
        )


@dataclass(frozen=True)
class UploadMeta:
    """Class/course metadata and category defaults chosen before an import."""
    class_name: str = "12"
    course: str = "Science"
    textbook_discount: float = 10.0
    textbook_tax: float = 5.0
    notebook_discount: float = 15.0
    notebook_tax: float = 5.0
    
    def defaults_for(self, book_type: str) -> tuple[float, float]:
        """Return (discount, tax) defaults for a category."""
        if book_type == NOTEBOOK:
            return self.notebook_discount, self.notebook_tax
        return self.textbook_discount, self.textbook_tax
    
    def to_dict(self) -> dict:
        return {
            'class': self.class_name,
            'courseCombination': self.course,
            'textbookDiscount': self.textbook_discount,
            'textbookTax': self.textbook_tax,
            'notebookDiscount': self.notebook_discount,
            'notebookTax': self.notebook_tax,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> 'UploadMeta':
        return cls(
            class_name=str(data.get('class', '')),
            course=str(data.get('courseCombination', '')),
            textbook_discount=float(data.get('textbookDiscount', 0) or 0),
            textbook_tax=float(data.get('textbookTax', 0) or 0),
            notebook_discount=float(data.get('notebookDiscount', 0) or 0),
            notebook_tax=float(data.get('notebookTax', 0) or 0),
        )


@dataclass(frozen=True)
class UploadSession:
    """A persisted upload: metadata plus creation time."""
    id: str
    meta: UploadMeta
    created_at: str  # ISO timestamp
    user_id: Optional[str] = None
    
    def to_dict(self) -> dict:
        data = {'id': self.id, 'userId': self.user_id, 'createdAt': self.created_at}
        data.update(self.meta.to_dict())
        return data
    
    @classmethod
    def from_dict(cls, data: dict) -> 'UploadSession':
        return cls(
            id=data.get('id', ''),
            meta=UploadMeta.from_dict(data),
            created_at=data.get('createdAt', ''),
            user_id=data.get('userId'),
        )


@dataclass(frozen=True)
class BookFilters:
    """Per-column substring filters, matched case-insensitively."""
    book_name: str = ""
    subject: str = ""
    publisher: str = ""
    
    @property
    def is_empty(self) -> bool:
        return not (self.book_name or self.subject or self.publisher)


@dataclass(frozen=True)
class DenormalizedBook:
    """A saved BookRecord snapshot enriched with its upload's metadata."""
    record: BookRecord
    upload_class: str = ""
    upload_course: str = ""
    upload_timestamp: str = ""
    
    # Aggregation helpers read these directly
    @property
    def book_name(self) -> str:
        return self.record.book_name
    
    @property
    def subject(self) -> str:
        return self.record.subject
    
    @property
    def publisher(self) -> str:
        return self.record.publisher
    
    @property
    def discount(self) -> float:
        return self.record.discount
    
    @property
    def tax(self) -> float:
        return self.record.tax
    
    @property
    def final_price(self) -> float:
        return self.record.final_price
    
    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data.update({
            'uploadClass': self.upload_class,
            'uploadCourse': self.upload_course,
            'uploadTimestamp': self.upload_timestamp,
        })
        return data


@dataclass
class Notice:
    """A user-facing message (success, info, warning or error)."""
    level: str
    title: str
    message: str = ""


@dataclass(frozen=True)
class CalculatorSession:
    """
    The working lists of one import, plus the metadata they were priced with.
    
    Sessions are treated as values: operations build a new session with
    ``with_list`` instead of mutating the lists in place.
    """
    meta: UploadMeta
    textbooks: tuple[BookRecord, ...] = ()
    notebooks: tuple[BookRecord, ...] = ()
    upload_id: str = ""
    generation: int = 0
    warnings: tuple = ()
    
    def records_for(self, book_type: str) -> tuple[BookRecord, ...]:
        return self.notebooks if book_type == NOTEBOOK else self.textbooks
    
    def with_list(self, book_type: str, records) -> 'CalculatorSession':
        """Return a copy of this session with one working list replaced."""
        if book_type == NOTEBOOK:
            return replace(self, notebooks=tuple(records))
        return replace(self, textbooks=tuple(records))
    
    def all_records(self) -> list[BookRecord]:
        return list(self.textbooks) + list(self.notebooks)
