"""
Document Schema Migration System

Upgrades stored ledger documents to the current schema. Two legacy shapes
exist from the browser front-end:

- v0, the "banking" shape: top-level ``account``, ``savings`` and
  ``investments`` entries and credit/debit typed transactions.
- v1, the "bank" shape: camelCase keys, an ``accounts`` mapping and
  transfer/payment/deposit typed transactions.

v2 is the canonical snake_case document with an explicit
``schema_version``. Each step is a function from one plain dict to the
next, so migrations never depend on the current dataclasses.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .currency import to_decimal
from .formatting import parse_timestamp
from .logging_config import get_logger
from .models import SCHEMA_VERSION


logger = get_logger("vanstra.migrations")

UpgradeFunc = Callable[[Dict[str, Any], datetime], Dict[str, Any]]

LEGACY_ACCOUNT_NAMES = {
    "checking": ("ACC-CHK", "Premium Checking"),
    "savings": ("ACC-SAV", "High-Yield Savings"),
    "investment": ("ACC-INV", "Investment Portfolio"),
}

DEFAULT_SUBTYPES = {
    "transfer": "external",
    "payment": "purchase",
    "deposit": "direct",
}


class Migration:
    """Represents a single schema upgrade step"""

    def __init__(self, version: int, name: str, upgrade: UpgradeFunc):
        self.version = version
        self.name = name
        self.upgrade = upgrade

    def __str__(self) -> str:
        return f"Migration v{self.version:03d}: {self.name}"

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, name='{self.name}')"


def _amount(value: Any) -> str:
    return str(to_decimal(value if value is not None else 0))


def _legacy_account_id(kind: str, number: Optional[str]) -> str:
    prefix, _ = LEGACY_ACCOUNT_NAMES[kind]
    digits = "".join(ch for ch in (number or "") if ch.isdigit())
    return f"{prefix}-{digits}" if digits else prefix


def _classify_banking_transaction(txn: Dict[str, Any]) -> Tuple[str, str]:
    category = txn.get("category")
    if category == "Transfer":
        return "transfer", txn.get("transferType") or "external"
    if category == "Bills":
        return "payment", "bill"
    if category == "Deposit":
        return "deposit", "check"
    if txn.get("type") == "credit":
        return "deposit", "direct"
    return "payment", "purchase"


def upgrade_banking_to_bank(data: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """v0 -> v1: reshape the "banking" document into the "bank" document"""
    account = data.get("account", {})
    savings = data.get("savings", {})
    investments = data.get("investments", {})
    currency = account.get("currency", "EUR")

    user = dict(data.get("user", {}))
    user.setdefault("id", "USR-001")
    user.setdefault("avatar", None)

    accounts = {
        "checking": {
            "id": _legacy_account_id("checking", account.get("accountNumber")),
            "name": account.get("accountType", LEGACY_ACCOUNT_NAMES["checking"][1]),
            "number": account.get("accountNumber", ""),
            "balance": account.get("balance", 0),
            "currency": currency,
        },
        "savings": {
            "id": _legacy_account_id("savings", savings.get("accountNumber")),
            "name": LEGACY_ACCOUNT_NAMES["savings"][1],
            "number": savings.get("accountNumber", ""),
            "balance": savings.get("balance", 0),
            "apy": savings.get("apy"),
            "currency": currency,
        },
        "investment": {
            "id": _legacy_account_id("investment", investments.get("accountNumber")),
            "name": LEGACY_ACCOUNT_NAMES["investment"][1],
            "number": investments.get("accountNumber", ""),
            "balance": investments.get("balance", 0),
            "ytdReturn": investments.get("ytdReturn"),
            "currency": currency,
        },
    }

    transactions = []
    for txn in data.get("transactions", []):
        txn_type, subtype = _classify_banking_transaction(txn)
        amount = txn.get("amount", 0)
        account_name = txn.get("account", "checking")
        is_debit = to_decimal(amount) < 0
        transactions.append({
            "id": txn["id"],
            "date": txn["date"],
            "type": txn_type,
            "subtype": subtype,
            "description": txn.get("description", ""),
            "amount": amount,
            "currency": currency,
            "fromAccount": account_name if is_debit else None,
            "toAccount": None if is_debit else account_name,
            "recipientName": txn.get("recipient"),
            "recipientBank": txn.get("recipientBank"),
            "recipientAccount": txn.get("recipientAccount") or txn.get("referenceNumber"),
            "status": txn.get("status", "completed"),
            "reference": "",
            "category": txn.get("billerCategory") or txn.get("category"),
            "note": txn.get("description_note") or None,
        })

    pending = []
    for deposit in data.get("pendingDeposits", []):
        pending.append({
            **deposit,
            "toAccount": deposit.get("toAccount", "checking"),
            "currency": currency,
            "reference": deposit.get("reference", ""),
        })

    return {
        "isAuthenticated": False,
        "user": user,
        "accounts": accounts,
        "transactions": transactions,
        "pendingDeposits": pending,
        "supportTickets": list(data.get("supportTickets", [])),
        "billers": list(data.get("billers", [])),
        "recipients": list(data.get("recipients", [])),
    }


def _upgrade_transaction(txn: Dict[str, Any], currency: str) -> Dict[str, Any]:
    txn_type = txn.get("type", "payment")
    return {
        "id": txn["id"],
        "date": txn["date"],
        "transaction_type": txn_type,
        "subtype": txn.get("subtype") or DEFAULT_SUBTYPES.get(txn_type, "purchase"),
        "description": txn.get("description", ""),
        "amount": _amount(txn.get("amount")),
        "currency": txn.get("currency") or currency,
        "status": txn.get("status", "completed"),
        "reference": txn.get("reference") or "",
        "from_account": txn.get("fromAccount"),
        "to_account": txn.get("toAccount"),
        "recipient_name": txn.get("recipientName"),
        "recipient_bank": txn.get("recipientBank"),
        "recipient_account": txn.get("recipientAccount"),
        "sender_name": txn.get("senderName"),
        "category": txn.get("category"),
        "note": txn.get("note") or None,
        "estimated_clearance": txn.get("estimatedClearance"),
    }


def _upgrade_pending_deposit(deposit: Dict[str, Any], currency: str) -> Dict[str, Any]:
    clearance = deposit.get("estimatedClearance")
    if not clearance:
        clearance = (parse_timestamp(deposit["date"]) + timedelta(days=2)).isoformat()
    return {
        "id": deposit["id"],
        "date": deposit["date"],
        "amount": _amount(deposit.get("amount")),
        "currency": deposit.get("currency") or currency,
        "to_account": deposit.get("toAccount") or "checking",
        "reference": deposit.get("reference") or "",
        "estimated_clearance": clearance,
        "status": deposit.get("status", "pending"),
        "front_image": deposit.get("frontImage"),
        "back_image": deposit.get("backImage"),
    }


def upgrade_bank_to_canonical(data: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """v1 -> v2: snake_case keys, keyed payees, decimal strings"""
    accounts = {}
    for kind, account in data.get("accounts", {}).items():
        if kind not in LEGACY_ACCOUNT_NAMES:
            logger.warning(f"Dropping unknown legacy account {kind!r}")
            continue
        accounts[kind] = {
            "id": account.get("id") or _legacy_account_id(kind, account.get("number")),
            "kind": kind,
            "name": account.get("name") or LEGACY_ACCOUNT_NAMES[kind][1],
            "number": account.get("number", ""),
            "balance": _amount(account.get("balance")),
            "currency": account.get("currency", "EUR"),
            "apy": _amount(account["apy"]) if account.get("apy") is not None else None,
            "ytd_return": _amount(account["ytdReturn"]) if account.get("ytdReturn") is not None else None,
        }
    currency = accounts.get("checking", {}).get("currency", "EUR")

    user = data.get("user", {})
    canonical_user = {
        "id": user.get("id") or "USR-001",
        "first_name": user.get("firstName", ""),
        "last_name": user.get("lastName", ""),
        "email": user.get("email", ""),
        "phone": user.get("phone", ""),
        "avatar": user.get("avatar"),
        "account_created": user.get("accountCreated") or now.isoformat(),
    }

    billers = {}
    for biller in data.get("billers", []):
        biller_id = str(biller["id"])
        billers[biller_id] = {
            "id": biller_id,
            "name": biller.get("name", ""),
            "category": biller.get("category", ""),
            "account_number": biller.get("accountNumber", ""),
        }

    recipients = {}
    for recipient in data.get("recipients", []):
        recipient_id = str(recipient["id"])
        recipients[recipient_id] = {
            "id": recipient_id,
            "name": recipient.get("name", ""),
            "bank": recipient.get("bank", ""),
            "account_number": recipient.get("accountNumber", ""),
            "recipient_type": recipient.get("type", "external"),
        }

    tickets = [
        {
            "id": ticket["id"],
            "date": ticket["date"],
            "subject": ticket.get("subject", ""),
            "category": ticket.get("category", ""),
            "message": ticket.get("message", ""),
            "priority": ticket.get("priority") or "medium",
            "status": "open",
        }
        for ticket in data.get("supportTickets", [])
    ]

    return {
        "schema_version": 2,
        "is_authenticated": bool(data.get("isAuthenticated", False)),
        "user": canonical_user,
        "accounts": accounts,
        "transactions": [_upgrade_transaction(t, currency) for t in data.get("transactions", [])],
        "pending_deposits": [_upgrade_pending_deposit(d, currency) for d in data.get("pendingDeposits", [])],
        "billers": billers,
        "recipients": recipients,
        "support_tickets": tickets,
    }


class DocumentMigrator:
    """Detects a document's schema version and applies pending upgrades"""

    def __init__(self):
        self.migrations: List[Migration] = []
        self.add_migration(1, "Unify banking shape into bank shape", upgrade_banking_to_bank)
        self.add_migration(2, "Canonical snake_case schema", upgrade_bank_to_canonical)

    def add_migration(self, version: int, name: str, upgrade: UpgradeFunc) -> None:
        """Register an upgrade that produces the given version"""
        self.migrations.append(Migration(version, name, upgrade))
        self.migrations.sort(key=lambda m: m.version)

    @property
    def latest_version(self) -> int:
        return max((m.version for m in self.migrations), default=SCHEMA_VERSION)

    @staticmethod
    def detect_version(data: Dict[str, Any]) -> int:
        """
        Work out which schema a raw document uses.

        Raises:
            ValueError: If the document matches no known shape
        """
        if "schema_version" in data:
            return int(data["schema_version"])
        if "accounts" in data:
            return 1
        if "account" in data:
            return 0
        raise ValueError("Unrecognized ledger document shape")

    def get_pending_migrations(self, current_version: int) -> List[Migration]:
        return [m for m in self.migrations if m.version > current_version]

    def needs_migration(self, data: Dict[str, Any]) -> bool:
        return self.detect_version(data) < self.latest_version

    def migrate(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Tuple[Dict[str, Any], List[Migration]]:
        """
        Upgrade a raw document to the latest schema.

        Returns:
            The upgraded document and the migrations that were applied

        Raises:
            ValueError: If the document is from a newer, unknown schema
        """
        now = now or datetime.now(timezone.utc)
        version = self.detect_version(data)
        if version > self.latest_version:
            raise ValueError(
                f"Document schema v{version} is newer than supported v{self.latest_version}"
            )

        applied = []
        for migration in self.get_pending_migrations(version):
            logger.info(f"Applying {migration}")
            data = migration.upgrade(data, now)
            applied.append(migration)

        return data, applied
