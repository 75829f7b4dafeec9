"""
Explorer API - FastAPI router for saved snapshots and frequent book data.
"""
from typing import Optional

from fastapi import APIRouter, Header

from ..engine.errors import EduBookError, PersistenceUnavailable
from ..services.explorer_service import ExplorerService
from . import state
from .schemas import http_error, summary_to_dict

router = APIRouter(tags=["explorer"])


def _explorer(user_id: Optional[str]) -> ExplorerService:
    if not user_id:
        raise http_error(PersistenceUnavailable("Sign in to browse saved data"))
    return ExplorerService(state.store, user_id)


@router.get("/explorer/snapshots")
async def list_snapshots(class_name: str = "all", publisher: str = "", x_user_id: Optional[str] = Header(None)):
    """Saved books with their upload's class, course and timestamp."""
    explorer = _explorer(x_user_id)
    try:
        books = explorer.snapshots(class_name, publisher)
        return {
            "books": [b.to_dict() for b in books],
            "classes": explorer.classes(),
            "publishers": explorer.publishers(),
        }
    except EduBookError as e:
        raise http_error(e)


@router.get("/explorer/summary")
async def snapshot_summary(class_name: str = "all", publisher: str = "", x_user_id: Optional[str] = Header(None)):
    explorer = _explorer(x_user_id)
    try:
        return summary_to_dict(explorer.summary(explorer.snapshots(class_name, publisher)))
    except EduBookError as e:
        raise http_error(e)


@router.get("/explorer/groups")
async def snapshot_groups(by: str = "class", class_name: str = "all", publisher: str = "",
                          x_user_id: Optional[str] = Header(None)):
    """Total final price per class, publisher, course or type."""
    explorer = _explorer(x_user_id)
    try:
        groups = explorer.groups(explorer.snapshots(class_name, publisher), by)
    except (EduBookError, ValueError) as e:
        raise http_error(e)
    return [{"key": g.key, "totalFinalPrice": g.total_final_price, "count": g.count} for g in groups]


@router.get("/ledger")
async def list_ledger(publisher: str = "", x_user_id: Optional[str] = Header(None)):
    explorer = _explorer(x_user_id)
    try:
        return [dict(entry.to_dict(), id=identity) for identity, entry in explorer.ledger_entries(publisher)]
    except EduBookError as e:
        raise http_error(e)


@router.delete("/ledger")
async def wipe_ledger(x_user_id: Optional[str] = Header(None)):
    """Delete every frequent book entry for the user."""
    calculator = state.get_calculator(x_user_id)
    try:
        removed = calculator.wipe_ledger()
    except EduBookError as e:
        raise http_error(e)
    return {"success": True, "deleted": removed}
