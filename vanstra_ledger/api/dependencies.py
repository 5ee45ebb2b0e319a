"""
Request dependencies and result handling shared by the routers
"""

from fastapi import HTTPException, Request, status

from ..models import FailureKind, OperationResult
from ..store import LedgerStore


FAILURE_STATUS = {
    FailureKind.INSUFFICIENT_FUNDS: status.HTTP_400_BAD_REQUEST,
    FailureKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
}


def get_store(request: Request) -> LedgerStore:
    return request.app.state.store


def unwrap(result: OperationResult) -> dict:
    """Turn a failed OperationResult into an HTTP error"""
    if not result.success:
        raise HTTPException(
            status_code=FAILURE_STATUS.get(result.failure, status.HTTP_400_BAD_REQUEST),
            detail=result.error
        )
    return result.to_dict()
