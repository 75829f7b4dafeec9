"""
Pydantic request/response models and conversions for the API.
"""
from typing import Any, Optional, Union

from fastapi import HTTPException
from pydantic import BaseModel

from ..engine.aggregate import Summary, Totals
from ..engine.errors import (
    EduBookError, InvalidFileFormat, MissingSelection, NoActiveSession, NoMatchingRecords,
    PersistenceUnavailable, PersistenceWriteFailure,
)
from ..engine.models import Notice, UploadMeta
from ..services.calculator_service import SessionView


class MetaRequest(BaseModel):
    """Setup form: class, course and category defaults."""
    class_name: str = "12"
    course: str = "Science"
    textbook_discount: float = 10
    textbook_tax: float = 5
    notebook_discount: float = 15
    notebook_tax: float = 5
    
    def to_meta(self) -> UploadMeta:
        return UploadMeta(**self.model_dump())


class FieldUpdate(BaseModel):
    field: str
    value: Union[float, int, str, None] = None
    generation: Optional[int] = None


class ApplyAllRequest(BaseModel):
    field: str
    value: float
    generation: Optional[int] = None


class PublisherDiscountRequest(BaseModel):
    publisher: str
    discount: Optional[float] = None
    generation: Optional[int] = None


class BulkEditRequest(BaseModel):
    names: list[str]
    price: Optional[Union[float, str]] = None
    discount: Optional[Union[float, str]] = None
    tax: Optional[Union[float, str]] = None
    generation: Optional[int] = None


def totals_to_dict(totals: Totals) -> dict:
    return {
        'textbookTotal': totals.textbook_total,
        'notebookTotal': totals.notebook_total,
        'grandTotal': totals.grand_total,
    }


def summary_to_dict(summary: Summary) -> dict:
    return {
        'count': summary.count,
        'totalValue': summary.total_value,
        'avgDiscount': summary.avg_discount,
        'avgTax': summary.avg_tax,
    }


def notices_to_list(notices: list[Notice]) -> list[dict]:
    return [{'level': n.level, 'title': n.title, 'message': n.message} for n in notices]


def view_to_dict(view: SessionView, notices: Optional[list[Notice]] = None) -> dict[str, Any]:
    session = view.session
    return {
        'uploadId': session.upload_id,
        'generation': session.generation,
        'meta': session.meta.to_dict(),
        'textbooks': [r.to_dict() for r in view.textbooks],
        'notebooks': [r.to_dict() for r in view.notebooks],
        'totals': totals_to_dict(view.totals),
        'summary': {
            'textbooks': summary_to_dict(view.textbook_summary),
            'notebooks': summary_to_dict(view.notebook_summary),
        },
        'warnings': [str(w) for w in session.warnings],
        'notices': notices_to_list(notices or []),
    }


ERROR_STATUS = {
    InvalidFileFormat: 400,
    MissingSelection: 400,
    NoMatchingRecords: 404,
    NoActiveSession: 409,
    PersistenceUnavailable: 401,
    PersistenceWriteFailure: 503,
}


def http_error(error: Exception) -> HTTPException:
    """Map a package error onto an HTTPException."""
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=str(error))
    if isinstance(error, (EduBookError, ValueError)):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
