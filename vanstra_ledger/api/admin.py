"""
Admin endpoints (demo reset, legacy import)
"""

from fastapi import APIRouter, HTTPException, Depends

from .dependencies import get_store
from .schemas import ImportDocumentRequest
from ..store import LedgerStore


router = APIRouter()


@router.post("/reset")
async def reset(store: LedgerStore = Depends(get_store)):
    """Restore the demo document"""
    document = store.reset()
    return {
        "message": "Ledger reset to demo data",
        "transactions": len(document.transactions)
    }


@router.post("/import")
async def import_document(request: ImportDocumentRequest, store: LedgerStore = Depends(get_store)):
    """Adopt a document exported by a legacy front-end"""
    try:
        document = store.import_legacy(request.document)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "message": "Legacy document imported",
        "schema_version": document.schema_version,
        "transactions": len(document.transactions)
    }
