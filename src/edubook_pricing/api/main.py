from typing import Optional

from fastapi import FastAPI, File, Form, Header, HTTPException, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from ..config.logging_setup import configure_logging
from ..config.settings import get_settings
from ..engine.errors import EduBookError
from ..engine.models import BookFilters, UploadMeta, normalize_book_type
from . import state
from .explorer_api import router as explorer_router
from .schemas import (
    ApplyAllRequest, BulkEditRequest, FieldUpdate, MetaRequest, PublisherDiscountRequest,
    http_error, notices_to_list, view_to_dict,
)

configure_logging(get_settings().log_level)

app = FastAPI(
    title="EduBook Pricing API",
    description="Backend API for the school book list price calculator",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)

app.include_router(explorer_router)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _view(calculator, filters: Optional[BookFilters] = None) -> dict:
    return view_to_dict(calculator.view(filters), calculator.take_notices())


def _loading_calculator(response: Response, x_user_id: Optional[str], x_session_id: Optional[str]):
    """Calculator for a load request; anonymous callers without a token get a new one."""
    if not (x_user_id or "").strip() and not (x_session_id or "").strip():
        x_session_id = state.new_session_id()
    if x_session_id:
        response.headers["X-Session-Id"] = x_session_id
    return state.get_calculator(x_user_id, x_session_id)


@app.get("/")
async def root():
    return {"status": "online", "message": "EduBook Pricing API Active"}


@app.get("/settings/defaults")
async def get_defaults():
    meta = state.get_calculator(None).default_meta()
    return meta.to_dict()


@app.post("/session/mock")
async def start_mock(
    req: MetaRequest,
    response: Response,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = _loading_calculator(response, x_user_id, x_session_id)
    try:
        calculator.start_from_mock(req.to_meta())
        return _view(calculator)
    except EduBookError as e:
        raise http_error(e)


@app.post("/session/upload")
async def start_upload(
    response: Response,
    file: UploadFile = File(...),
    class_name: str = Form("12"),
    course: str = Form("Science"),
    textbook_discount: float = Form(10),
    textbook_tax: float = Form(5),
    notebook_discount: float = Form(15),
    notebook_tax: float = Form(5),
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = _loading_calculator(response, x_user_id, x_session_id)
    meta = UploadMeta(
        class_name=class_name,
        course=course,
        textbook_discount=textbook_discount,
        textbook_tax=textbook_tax,
        notebook_discount=notebook_discount,
        notebook_tax=notebook_tax,
    )
    try:
        calculator.start_from_workbook(await file.read(), meta)
        return _view(calculator)
    except EduBookError as e:
        raise http_error(e)


@app.get("/session")
async def get_session(
    book_name: str = "",
    subject: str = "",
    publisher: str = "",
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        return _view(calculator, BookFilters(book_name=book_name, subject=subject, publisher=publisher))
    except EduBookError as e:
        raise http_error(e)


@app.delete("/session")
async def reset_session(x_user_id: Optional[str] = Header(None), x_session_id: Optional[str] = Header(None)):
    state.get_calculator(x_user_id, x_session_id).reset()
    return {"success": True}


@app.patch("/session/{book_type}/{record_id}")
async def update_book(
    book_type: str, record_id: str, req: FieldUpdate,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        book_type = normalize_book_type(book_type)
        # Path ids are strings; records imported with numeric ids keep int ids
        target = int(record_id) if record_id.isdigit() else record_id
        calculator.update_field(book_type, target, req.field, req.value, req.generation)
        return _view(calculator)
    except (EduBookError, ValueError) as e:
        raise http_error(e)


@app.post("/session/{book_type}/apply-all")
async def apply_all(
    book_type: str, req: ApplyAllRequest,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        calculator.apply_to_all(normalize_book_type(book_type), req.field, req.value, req.generation)
        return _view(calculator)
    except (EduBookError, ValueError) as e:
        raise http_error(e)


@app.post("/session/{book_type}/publisher-discount")
async def publisher_discount(
    book_type: str, req: PublisherDiscountRequest,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        calculator.apply_publisher_discount(normalize_book_type(book_type), req.publisher, req.discount, req.generation)
        return _view(calculator)
    except (EduBookError, ValueError) as e:
        raise http_error(e)


@app.post("/session/{book_type}/bulk-edit")
async def bulk_edit(
    book_type: str, req: BulkEditRequest,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        _, updated = calculator.bulk_edit(
            normalize_book_type(book_type), req.names, req.price, req.discount, req.tax, req.generation
        )
        result = _view(calculator)
        result['updatedCount'] = updated
        return result
    except (EduBookError, ValueError) as e:
        raise http_error(e)


@app.post("/session/save")
async def save_session(x_user_id: Optional[str] = Header(None), x_session_id: Optional[str] = Header(None)):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        notices = calculator.save()
    except EduBookError as e:
        raise http_error(e)
    if any(n.level == "error" for n in notices):
        raise HTTPException(status_code=503, detail=notices_to_list(notices))
    return {"success": True, "uploadId": calculator.session.upload_id, "notices": notices_to_list(notices)}


@app.get("/session/export")
async def export_session(
    book_name: str = "",
    subject: str = "",
    publisher: str = "",
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
):
    calculator = state.get_calculator(x_user_id, x_session_id)
    try:
        filename, data = calculator.export(BookFilters(book_name=book_name, subject=subject, publisher=publisher))
    except EduBookError as e:
        raise http_error(e)
    return Response(
        content=data,
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
