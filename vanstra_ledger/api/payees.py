"""
Saved biller and recipient endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_store, unwrap
from .schemas import CreateBillerRequest
from ..store import LedgerStore


router = APIRouter()


@router.get("/billers")
async def list_billers(store: LedgerStore = Depends(get_store)):
    return {"billers": [biller.to_dict() for biller in store.get_billers()]}


@router.post("/billers", status_code=status.HTTP_201_CREATED)
async def add_biller(request: CreateBillerRequest, store: LedgerStore = Depends(get_store)):
    return unwrap(store.add_biller(request.name, request.category, request.account_number))


@router.get("/recipients")
async def list_recipients(store: LedgerStore = Depends(get_store)):
    return {"recipients": [recipient.to_dict() for recipient in store.get_recipients()]}
