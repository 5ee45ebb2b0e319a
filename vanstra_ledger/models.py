"""
Ledger Data Model

Typed records for the single ledger document: user profile, the three
fixed accounts, the transaction log, pending deposits, saved payees and
support tickets. Monetary values are Decimal in memory and decimal
strings once serialized; timestamps are UTC datetimes / ISO-8601 strings.
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .currency import Currency, Money, to_decimal, validate_decimal_precision
from .formatting import parse_timestamp


SCHEMA_VERSION = 2


class AccountKind(Enum):
    """The fixed set of accounts every document carries"""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class TransactionType(Enum):
    TRANSFER = "transfer"
    PAYMENT = "payment"
    DEPOSIT = "deposit"


class TransactionSubtype(Enum):
    INTERNAL = "internal"    # Between two of the user's accounts
    EXTERNAL = "external"    # To another bank
    BILL = "bill"
    PURCHASE = "purchase"
    DIRECT = "direct"        # Direct deposit, e.g. salary
    CHECK = "check"          # Mobile check deposit


class TransactionStatus(Enum):
    COMPLETED = "completed"
    PENDING = "pending"


class RecipientType(Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class TicketPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(Enum):
    OPEN = "open"


class FailureKind(Enum):
    """Domain failures reported through OperationResult"""
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_CREDENTIALS = "invalid_credentials"


def _encode(value: Any) -> Any:
    """Convert a value produced by asdict() into plain JSON types"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Currency):
        return value.code
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return to_decimal(value) if value is not None else None


def _optional_timestamp(value: Any) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


class Record:
    """Base class for document records"""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary"""
        return _encode(asdict(self))


@dataclass
class UserProfile(Record):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    account_created: datetime
    avatar: Optional[str] = None

    EDITABLE_FIELDS = ("first_name", "last_name", "email", "phone")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        return cls(
            id=data['id'],
            first_name=data['first_name'],
            last_name=data['last_name'],
            email=data['email'],
            phone=data.get('phone', ''),
            account_created=parse_timestamp(data['account_created']),
            avatar=data.get('avatar')
        )


@dataclass
class Account(Record):
    """One of the user's three accounts"""
    id: str
    kind: AccountKind
    name: str
    number: str  # Masked, e.g. ****4567
    balance: Decimal
    currency: Currency
    apy: Optional[Decimal] = None         # Savings only
    ytd_return: Optional[Decimal] = None  # Investment only

    def __post_init__(self):
        self.balance = validate_decimal_precision(to_decimal(self.balance), self.currency)

    @property
    def money(self) -> Money:
        return Money(self.balance, self.currency)

    def can_cover(self, amount: Decimal) -> bool:
        """Check whether the balance covers a debit of amount"""
        return not Money(amount, self.currency) > self.money

    def debit(self, amount: Decimal) -> None:
        self.balance = (self.money - Money(amount, self.currency)).amount

    def credit(self, amount: Decimal) -> None:
        self.balance = (self.money + Money(amount, self.currency)).amount

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=data['id'],
            kind=AccountKind(data['kind']),
            name=data['name'],
            number=data['number'],
            balance=to_decimal(data['balance']),
            currency=Currency.from_code(data['currency']),
            apy=_optional_decimal(data.get('apy')),
            ytd_return=_optional_decimal(data.get('ytd_return'))
        )


@dataclass
class Transaction(Record):
    """
    Entry in the transaction log. Amount is signed: negative for debits.
    """
    id: str
    date: datetime
    transaction_type: TransactionType
    subtype: TransactionSubtype
    description: str
    amount: Decimal
    currency: Currency
    status: TransactionStatus
    reference: str
    from_account: Optional[str] = None
    to_account: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_bank: Optional[str] = None
    recipient_account: Optional[str] = None
    sender_name: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None
    estimated_clearance: Optional[datetime] = None

    @property
    def is_debit(self) -> bool:
        return Money(self.amount, self.currency).is_negative()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            date=parse_timestamp(data['date']),
            transaction_type=TransactionType(data['transaction_type']),
            subtype=TransactionSubtype(data['subtype']),
            description=data['description'],
            amount=to_decimal(data['amount']),
            currency=Currency.from_code(data['currency']),
            status=TransactionStatus(data['status']),
            reference=data.get('reference', ''),
            from_account=data.get('from_account'),
            to_account=data.get('to_account'),
            recipient_name=data.get('recipient_name'),
            recipient_bank=data.get('recipient_bank'),
            recipient_account=data.get('recipient_account'),
            sender_name=data.get('sender_name'),
            category=data.get('category'),
            note=data.get('note'),
            estimated_clearance=_optional_timestamp(data.get('estimated_clearance'))
        )


@dataclass
class PendingDeposit(Record):
    """Check deposit awaiting clearance; shares its id with the log entry"""
    id: str
    date: datetime
    amount: Decimal
    currency: Currency
    to_account: str
    reference: str
    estimated_clearance: datetime
    status: TransactionStatus = TransactionStatus.PENDING
    front_image: Optional[str] = None
    back_image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PendingDeposit':
        return cls(
            id=data['id'],
            date=parse_timestamp(data['date']),
            amount=to_decimal(data['amount']),
            currency=Currency.from_code(data['currency']),
            to_account=data['to_account'],
            reference=data.get('reference', ''),
            estimated_clearance=parse_timestamp(data['estimated_clearance']),
            status=TransactionStatus(data.get('status', 'pending')),
            front_image=data.get('front_image'),
            back_image=data.get('back_image')
        )


@dataclass
class Biller(Record):
    id: str
    name: str
    category: str
    account_number: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Biller':
        return cls(**{f.name: data[f.name] for f in fields(cls)})


@dataclass
class Recipient(Record):
    id: str
    name: str
    bank: str
    account_number: str
    recipient_type: RecipientType = RecipientType.EXTERNAL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recipient':
        return cls(
            id=data['id'],
            name=data['name'],
            bank=data.get('bank', ''),
            account_number=data['account_number'],
            recipient_type=RecipientType(data.get('recipient_type', 'external'))
        )


@dataclass
class SupportTicket(Record):
    id: str
    date: datetime
    subject: str
    category: str
    message: str
    priority: TicketPriority = TicketPriority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SupportTicket':
        return cls(
            id=data['id'],
            date=parse_timestamp(data['date']),
            subject=data['subject'],
            category=data['category'],
            message=data['message'],
            priority=TicketPriority(data.get('priority', 'medium')),
            status=TicketStatus(data.get('status', 'open'))
        )


@dataclass
class LedgerDocument(Record):
    """
    The whole persisted state of one installation.

    Lists are ordered newest first. Billers and recipients are keyed by id
    and keep insertion order.
    """
    user: UserProfile
    accounts: Dict[str, Account]
    transactions: List[Transaction] = field(default_factory=list)
    pending_deposits: List[PendingDeposit] = field(default_factory=list)
    billers: Dict[str, Biller] = field(default_factory=dict)
    recipients: Dict[str, Recipient] = field(default_factory=dict)
    support_tickets: List[SupportTicket] = field(default_factory=list)
    is_authenticated: bool = False
    schema_version: int = SCHEMA_VERSION

    def account(self, name: str) -> Account:
        """Look up an account by kind name (checking, savings, investment)"""
        try:
            return self.accounts[name]
        except KeyError:
            raise ValueError(f"Account {name!r} not found")

    def total_balance(self) -> Decimal:
        return sum((account.balance for account in self.accounts.values()), Decimal('0'))

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def find_recipient_by_account_number(self, account_number: str) -> Optional[Recipient]:
        for recipient in self.recipients.values():
            if recipient.account_number == account_number:
                return recipient
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerDocument':
        return cls(
            user=UserProfile.from_dict(data['user']),
            accounts={name: Account.from_dict(acc) for name, acc in data['accounts'].items()},
            transactions=[Transaction.from_dict(t) for t in data.get('transactions', [])],
            pending_deposits=[PendingDeposit.from_dict(d) for d in data.get('pending_deposits', [])],
            billers={key: Biller.from_dict(b) for key, b in data.get('billers', {}).items()},
            recipients={key: Recipient.from_dict(r) for key, r in data.get('recipients', {}).items()},
            support_tickets=[SupportTicket.from_dict(t) for t in data.get('support_tickets', [])],
            is_authenticated=bool(data.get('is_authenticated', False)),
            schema_version=data.get('schema_version', SCHEMA_VERSION)
        )


@dataclass
class OperationResult:
    """
    Outcome of a mutating store operation: a success flag, an optional
    message for the user, and the record the operation created.
    """
    success: bool
    error: Optional[str] = None
    failure: Optional[FailureKind] = None
    transaction: Optional[Transaction] = None
    deposit: Optional[PendingDeposit] = None
    ticket: Optional[SupportTicket] = None
    biller: Optional[Biller] = None
    user: Optional[UserProfile] = None

    @classmethod
    def ok(cls, **records) -> 'OperationResult':
        return cls(success=True, **records)

    @classmethod
    def fail(cls, failure: FailureKind, message: str) -> 'OperationResult':
        return cls(success=False, error=message, failure=failure)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.error:
            result["error"] = self.error
        if self.failure:
            result["failure"] = self.failure.value
        for name in ("transaction", "deposit", "ticket", "biller", "user"):
            record = getattr(self, name)
            if record is not None:
                result[name] = record.to_dict()
        return result
