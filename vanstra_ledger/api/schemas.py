"""
Pydantic schemas for API requests
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AvatarRequest(BaseModel):
    image_data: Optional[str] = Field(None, description="Opaque image string, e.g. a data URL")


class TransferRequest(BaseModel):
    from_account: str = Field(..., description="Source account (checking, savings, investment)")
    amount: str = Field(..., description="Decimal amount as string")
    to_account: Optional[str] = None
    transfer_type: Optional[str] = Field(None, description="internal or external")
    recipient_name: Optional[str] = None
    recipient_bank: Optional[str] = None
    recipient_account: Optional[str] = None
    note: str = ""


class DepositRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    front_image: Optional[str] = None
    back_image: Optional[str] = None
    to_account: str = "checking"


class BillPaymentRequest(BaseModel):
    biller_name: str
    amount: str = Field(..., description="Decimal amount as string")
    category: Optional[str] = None
    reference_number: Optional[str] = None


class CreateBillerRequest(BaseModel):
    name: str
    category: str
    account_number: str


class CreateTicketRequest(BaseModel):
    subject: str
    category: str
    message: str
    priority: str = "medium"


class ImportDocumentRequest(BaseModel):
    document: Dict[str, Any] = Field(..., description="Legacy ledger document as exported from browser storage")
