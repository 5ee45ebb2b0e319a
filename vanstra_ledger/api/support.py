"""
Support ticket endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import get_store, unwrap
from .schemas import CreateTicketRequest
from ..store import LedgerStore


router = APIRouter()


@router.get("")
async def list_tickets(store: LedgerStore = Depends(get_store)):
    return {"tickets": [ticket.to_dict() for ticket in store.get_tickets()]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_ticket(request: CreateTicketRequest, store: LedgerStore = Depends(get_store)):
    """Open a support ticket"""
    try:
        result = store.submit_ticket(
            subject=request.subject,
            category=request.category,
            message=request.message,
            priority=request.priority
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return unwrap(result)
