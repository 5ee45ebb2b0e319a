"""
User profile endpoints
"""

from fastapi import APIRouter, HTTPException, Depends

from .dependencies import get_store, unwrap
from .schemas import AvatarRequest, UpdateProfileRequest
from ..store import LedgerStore


router = APIRouter()


@router.get("")
async def get_profile(store: LedgerStore = Depends(get_store)):
    """Current user with account status"""
    return store.get_current_user()


@router.patch("")
async def update_profile(
    request: UpdateProfileRequest,
    store: LedgerStore = Depends(get_store)
):
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No profile fields given")
    return unwrap(store.update_profile(**updates))


@router.put("/avatar")
async def update_avatar(request: AvatarRequest, store: LedgerStore = Depends(get_store)):
    return unwrap(store.update_avatar(request.image_data))
