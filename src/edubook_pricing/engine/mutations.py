"""
Mutation Engine - point and bulk edits over a working list.

Every edit is a command value reduced by ``apply_command``. Operations never
touch the store: they return the new records together with the
``LedgerUpsert`` commands for each touched record, and the caller decides
when those are persisted.
"""
import math
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional, Sequence

from .errors import MissingSelection, NoMatchingRecords
from .identity import identity_of
from .models import BookRecord, LedgerEntry, RecordId
from .pricing import reprice


# ============================================================================
# COMMANDS
# ============================================================================

@dataclass(frozen=True)
class SetPrice:
    record_id: RecordId
    value: float
    target = 'price'


@dataclass(frozen=True)
class SetDiscount:
    record_id: RecordId
    value: float
    target = 'discount'


@dataclass(frozen=True)
class SetTax:
    record_id: RecordId
    value: float
    target = 'tax'


@dataclass(frozen=True)
class SetSubject:
    record_id: RecordId
    value: str
    target = 'subject'


@dataclass(frozen=True)
class SetPublisher:
    record_id: RecordId
    value: str
    target = 'publisher'


@dataclass(frozen=True)
class SetPages:
    record_id: RecordId
    value: Optional[int]
    target = 'pages'


@dataclass(frozen=True)
class Rename:
    record_id: RecordId
    value: str
    target = 'book_name'


@dataclass(frozen=True)
class LedgerUpsert:
    """Write-through request: store ``entry`` under ``identity``."""
    identity: str
    entry: LedgerEntry


# Field names accepted by update_field, both wire (camelCase) and Python names
FIELD_COMMANDS = {
    'price': SetPrice,
    'discount': SetDiscount,
    'tax': SetTax,
    'subject': SetSubject,
    'publisher': SetPublisher,
    'pages': SetPages,
    'bookName': Rename,
    'book_name': Rename,
}

APPLY_ALL_FIELDS = ('discount', 'tax')


@dataclass
class MutationResult:
    """New working list plus the ledger writes it implies."""
    records: list[BookRecord]
    commands: list[LedgerUpsert] = field(default_factory=list)
    updated_count: int = 0


# ============================================================================
# REDUCER
# ============================================================================

def apply_command(record: BookRecord, command) -> BookRecord:
    """
    Apply one edit command to a record.
    
    Renames keep the current final price; every other edit recomputes it.
    """
    if isinstance(command, Rename):
        return replace(record, book_name=command.value)
    return reprice(replace(record, **{command.target: command.value}))


def ledger_command(record: BookRecord) -> Optional[LedgerUpsert]:
    """Build the write-through for a record, or None when its identity is empty."""
    identity = identity_of(record)
    if not identity:
        return None
    return LedgerUpsert(identity=identity, entry=LedgerEntry.from_record(record))


def _write_through(records: Iterable[BookRecord]) -> list[LedgerUpsert]:
    commands = []
    for record in records:
        command = ledger_command(record)
        if command is not None:
            commands.append(command)
    return commands


def build_command(field_name: str, record_id: RecordId, value: Any):
    """Map a dynamic field name onto its command, coercing the value."""
    command_cls = FIELD_COMMANDS.get(field_name)
    if command_cls is None:
        raise ValueError(f"Field '{field_name}' cannot be edited")
    
    if command_cls in (SetPrice, SetDiscount, SetTax):
        value = _to_number(value)
    elif command_cls is SetPages:
        value = _to_pages(value)
    else:
        value = "" if value is None else str(value)
    return command_cls(record_id=record_id, value=value)


def _to_number(value: Any) -> float:
    # Same leniency as the edit form: anything unparseable counts as 0
    parsed = parse_finite(value)
    return parsed if parsed is not None else 0.0


def _to_pages(value: Any) -> Optional[int]:
    parsed = parse_finite(value)
    if parsed is None:
        return None
    return int(parsed)


def parse_finite(value: Any) -> Optional[float]:
    """Parse a number, returning None for blanks, junk, NaN and infinities."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


# ============================================================================
# OPERATIONS
# ============================================================================

def apply_to_record(records: Sequence[BookRecord], command) -> MutationResult:
    """Apply a command to the record it targets."""
    updated = []
    touched = []
    for record in records:
        if record.id == command.record_id:
            record = apply_command(record, command)
            touched.append(record)
        updated.append(record)
    return MutationResult(records=updated, commands=_write_through(touched), updated_count=len(touched))


def update_field(records: Sequence[BookRecord], record_id: RecordId, field_name: str, value: Any) -> MutationResult:
    """
    Set one field on the record with ``record_id``.
    
    An unknown id leaves the list unchanged and emits no ledger writes.
    """
    return apply_to_record(records, build_command(field_name, record_id, value))


def apply_to_all(records: Sequence[BookRecord], field_name: str, value: Any) -> MutationResult:
    """Set discount or tax on every record in the list."""
    if field_name not in APPLY_ALL_FIELDS:
        raise ValueError(f"Apply-to-all only supports {', '.join(APPLY_ALL_FIELDS)}, not '{field_name}'")
    
    updated = [apply_command(r, build_command(field_name, r.id, value)) for r in records]
    return MutationResult(records=updated, commands=_write_through(updated), updated_count=len(updated))


def apply_publisher_discount(records: Sequence[BookRecord], publisher: Optional[str], discount: Any) -> MutationResult:
    """
    Set ``discount`` on every record whose publisher matches exactly.
    
    Raises MissingSelection when publisher or discount is unset and
    NoMatchingRecords when no record has that publisher.
    """
    value = parse_finite(discount)
    if not publisher or value is None:
        raise MissingSelection("Select a publisher and enter a discount first")
    
    updated = []
    touched = []
    for record in records:
        if record.publisher == publisher:
            record = apply_command(record, SetDiscount(record_id=record.id, value=value))
            touched.append(record)
        updated.append(record)
    
    if not touched:
        raise NoMatchingRecords(f"No books found for publisher '{publisher}'")
    
    return MutationResult(records=updated, commands=_write_through(touched), updated_count=len(touched))


def bulk_edit_by_name(
    records: Sequence[BookRecord],
    selected_names: Sequence[str],
    price: Any = None,
    discount: Any = None,
    tax: Any = None,
) -> MutationResult:
    """
    Edit price/discount/tax on every record whose name is selected.
    
    Names match after trimming, case-insensitively. Only values that parse to
    a finite number are applied. Records that are not selected are returned
    as the very same objects.
    """
    names = {str(n).strip().lower() for n in (selected_names or []) if str(n).strip()}
    if not names:
        raise MissingSelection("Select at least one book to edit")
    
    values = {
        'price': parse_finite(price),
        'discount': parse_finite(discount),
        'tax': parse_finite(tax),
    }
    values = {k: v for k, v in values.items() if v is not None}
    if not values:
        raise MissingSelection("Enter a price, discount or tax to apply")
    
    updated = []
    touched = []
    for record in records:
        if record.book_name.strip().lower() in names:
            for field_name, value in values.items():
                record = apply_command(record, FIELD_COMMANDS[field_name](record_id=record.id, value=value))
            touched.append(record)
        updated.append(record)
    
    if not touched:
        raise NoMatchingRecords("None of the selected books are in this list")
    
    return MutationResult(records=updated, commands=_write_through(touched), updated_count=len(touched))
