"""
Shared API state: the configured store and one calculator per caller.

Signed-in callers are keyed by user id. Anonymous callers are keyed by the
session token handed out when they load a book list, so two anonymous
clients never share working lists.
"""
import uuid
from typing import Optional

from ..config.settings import get_settings
from ..services.calculator_service import CalculatorService
from ..services.store import build_store

store = build_store(get_settings())
_calculators: dict[str, CalculatorService] = {}


def new_session_id() -> str:
    return uuid.uuid4().hex


def get_calculator(user_id: Optional[str], session_id: Optional[str] = None) -> CalculatorService:
    """
    Calculator for a caller, created on first use.

    An anonymous caller without a session token gets a fresh, unregistered
    calculator with no working lists.
    """
    user_id = (user_id or "").strip()
    session_id = (session_id or "").strip()
    if user_id:
        key = f"user:{user_id}"
    elif session_id:
        key = f"anon:{session_id}"
    else:
        return CalculatorService(store=store, user_id=None)

    if key not in _calculators:
        _calculators[key] = CalculatorService(store=store, user_id=user_id or None)
    return _calculators[key]


def reset_state(new_store=None):
    """Drop every calculator, optionally switching store (used by tests)."""
    global store
    if new_store is not None:
        store = new_store
    _calculators.clear()
