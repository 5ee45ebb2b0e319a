"""
Transaction log and money movement endpoints
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query, status

from .dependencies import get_store, unwrap
from .schemas import BillPaymentRequest, DepositRequest, TransferRequest
from ..store import LedgerStore


router = APIRouter()


@router.get("/transactions")
async def list_transactions(
    limit: Optional[int] = Query(None, ge=0),
    store: LedgerStore = Depends(get_store)
):
    """Newest-first transaction log"""
    transactions = store.get_transactions(limit)
    return {
        "transactions": [txn.to_dict() for txn in transactions],
        "count": len(transactions)
    }


@router.get("/transactions/{transaction_id}")
async def get_transaction(transaction_id: str, store: LedgerStore = Depends(get_store)):
    transaction = store.get_transaction(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction.to_dict()


@router.post("/transfers", status_code=status.HTTP_201_CREATED)
async def transfer(request: TransferRequest, store: LedgerStore = Depends(get_store)):
    """Transfer between own accounts or to an external recipient"""
    try:
        result = store.transfer(
            from_account=request.from_account,
            amount=request.amount,
            to_account=request.to_account,
            transfer_type=request.transfer_type,
            recipient_name=request.recipient_name,
            recipient_bank=request.recipient_bank,
            recipient_account=request.recipient_account,
            note=request.note
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return unwrap(result)


@router.post("/deposits", status_code=status.HTTP_201_CREATED)
async def submit_deposit(request: DepositRequest, store: LedgerStore = Depends(get_store)):
    """Submit a mobile check deposit"""
    try:
        result = store.submit_deposit(
            amount=request.amount,
            front_image=request.front_image,
            back_image=request.back_image,
            to_account=request.to_account
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return unwrap(result)


@router.get("/deposits/pending")
async def pending_deposits(store: LedgerStore = Depends(get_store)):
    return {"deposits": [deposit.to_dict() for deposit in store.get_pending_deposits()]}


@router.post("/bills", status_code=status.HTTP_201_CREATED)
async def pay_bill(request: BillPaymentRequest, store: LedgerStore = Depends(get_store)):
    """Pay a bill from checking"""
    try:
        result = store.pay_bill(
            biller_name=request.biller_name,
            amount=request.amount,
            category=request.category,
            reference_number=request.reference_number
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return unwrap(result)
