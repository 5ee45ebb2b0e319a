"""
Demo session endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_store, unwrap
from .schemas import LoginRequest
from ..store import LedgerStore


router = APIRouter()


@router.post("/login")
async def login(request: LoginRequest, store: LedgerStore = Depends(get_store)):
    """Log in with the demo credentials"""
    return unwrap(store.login(request.email, request.password))


@router.post("/logout")
async def logout(store: LedgerStore = Depends(get_store)):
    return unwrap(store.logout())


@router.get("")
async def session_status(store: LedgerStore = Depends(get_store)):
    return {"is_authenticated": store.is_authenticated()}
