"""
Identifier generation for ledger records.

Record identifiers carry a full UUID4 so rapid successive calls never
collide. References are short human-facing codes and may repeat.
"""

import uuid


def _token() -> str:
    return uuid.uuid4().hex.upper()


def generate_transaction_id() -> str:
    return f"TXN-{_token()}"


def generate_ticket_id() -> str:
    return f"TKT-{_token()}"


def generate_biller_id() -> str:
    return f"BLR-{_token()}"


def generate_recipient_id() -> str:
    return f"RCP-{_token()}"


def generate_reference() -> str:
    """Eight-character reference code shown on receipts"""
    return f"REF-{uuid.uuid4().hex[:8].upper()}"
