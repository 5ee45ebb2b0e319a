"""
Account balance endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_store
from ..store import LedgerStore


router = APIRouter()


@router.get("")
async def list_accounts(store: LedgerStore = Depends(get_store)):
    """All accounts with the combined balance"""
    document = store.load()
    total = document.total_balance()
    return {
        "accounts": [account.to_dict() for account in document.accounts.values()],
        "total_balance": str(total),
        "total_balance_display": store.format_currency(total)
    }
