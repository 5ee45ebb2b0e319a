"""
Demo seed document.

Every call builds a brand-new document, so callers never share mutable
default state.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from .config import LedgerConfig, get_config
from .currency import Currency
from .identifiers import generate_reference, generate_transaction_id
from .models import (
    Account, AccountKind, Biller, LedgerDocument, Recipient, RecipientType,
    Transaction, TransactionStatus, TransactionSubtype, TransactionType,
    UserProfile
)


SEED_BALANCES = {
    AccountKind.CHECKING: Decimal('127543.82'),
    AccountKind.SAVINGS: Decimal('45230.15'),
    AccountKind.INVESTMENT: Decimal('69466.00'),
}

SEED_BILLERS = [
    ("BLR-001", "E.ON Energy", "Electricity", "EON-12345678"),
    ("BLR-002", "Vodafone", "Internet", "VOD-87654321"),
    ("BLR-003", "Sky Deutschland", "Cable", "SKY-11223344"),
    ("BLR-004", "Berliner Wasserbetriebe", "Water", "BWB-55667788"),
    ("BLR-005", "Telekom", "Phone", "TK-99887766"),
]

SEED_RECIPIENTS = [
    ("RCP-001", "Maria Schmidt", "Deutsche Bank", "DE89 3704 0044 0532 0130 00", RecipientType.EXTERNAL),
    ("RCP-002", "Hans Weber", "Commerzbank", "DE15 1203 0000 0012 3456 7890", RecipientType.EXTERNAL),
    ("RCP-003", "Investment Account", "Vanstra Capital", "****7890", RecipientType.INTERNAL),
]


def _seed_accounts(currency: Currency):
    return {
        AccountKind.CHECKING.value: Account(
            id="ACC-CHK-4567",
            kind=AccountKind.CHECKING,
            name="Premium Checking",
            number="****4567",
            balance=SEED_BALANCES[AccountKind.CHECKING],
            currency=currency
        ),
        AccountKind.SAVINGS.value: Account(
            id="ACC-SAV-7890",
            kind=AccountKind.SAVINGS,
            name="High-Yield Savings",
            number="****7890",
            balance=SEED_BALANCES[AccountKind.SAVINGS],
            currency=currency,
            apy=Decimal('4.85')
        ),
        AccountKind.INVESTMENT.value: Account(
            id="ACC-INV-1122",
            kind=AccountKind.INVESTMENT,
            name="Investment Portfolio",
            number="****1122",
            balance=SEED_BALANCES[AccountKind.INVESTMENT],
            currency=currency,
            ytd_return=Decimal('7654.00')
        ),
    }


def _seed_transactions(now: datetime, currency: Currency):
    day = timedelta(days=1)
    return [
        Transaction(
            id=generate_transaction_id(),
            date=now,
            transaction_type=TransactionType.TRANSFER,
            subtype=TransactionSubtype.INTERNAL,
            description="Transfer to Savings",
            amount=Decimal('-1000.00'),
            currency=currency,
            status=TransactionStatus.COMPLETED,
            reference=generate_reference(),
            from_account="checking",
            to_account="savings",
            recipient_name="Savings Account",
            recipient_account="****7890"
        ),
        Transaction(
            id=generate_transaction_id(),
            date=now - day,
            transaction_type=TransactionType.PAYMENT,
            subtype=TransactionSubtype.BILL,
            description="Electricity Bill",
            amount=Decimal('-127.45'),
            currency=currency,
            status=TransactionStatus.COMPLETED,
            reference=generate_reference(),
            from_account="checking",
            recipient_name="E.ON Energy",
            recipient_account="EON-12345678",
            category="Electricity"
        ),
        Transaction(
            id=generate_transaction_id(),
            date=now - 2 * day,
            transaction_type=TransactionType.DEPOSIT,
            subtype=TransactionSubtype.DIRECT,
            description="Salary Deposit",
            amount=Decimal('5240.00'),
            currency=currency,
            status=TransactionStatus.COMPLETED,
            reference=generate_reference(),
            to_account="checking",
            recipient_name="Alexander Mitchell",
            sender_name="Vanstra Capital Ltd."
        ),
        Transaction(
            id=generate_transaction_id(),
            date=now - 3 * day,
            transaction_type=TransactionType.TRANSFER,
            subtype=TransactionSubtype.EXTERNAL,
            description="Transfer to Maria Schmidt",
            amount=Decimal('-500.00'),
            currency=currency,
            status=TransactionStatus.COMPLETED,
            reference=generate_reference(),
            from_account="checking",
            recipient_name="Maria Schmidt",
            recipient_bank="Deutsche Bank",
            recipient_account="DE89 3704 0044 0532 0130 00"
        ),
        Transaction(
            id=generate_transaction_id(),
            date=now - 4 * day,
            transaction_type=TransactionType.PAYMENT,
            subtype=TransactionSubtype.PURCHASE,
            description="Amazon.de",
            amount=Decimal('-89.99'),
            currency=currency,
            status=TransactionStatus.COMPLETED,
            reference=generate_reference(),
            from_account="checking",
            recipient_name="Amazon.de"
        ),
    ]


def build_seed_document(config: Optional[LedgerConfig] = None,
                        now: Optional[datetime] = None) -> LedgerDocument:
    """
    Build the demo document: one user, three accounts with fixed balances,
    five sample transactions, saved billers and recipients.
    """
    config = config or get_config()
    now = now or datetime.now(timezone.utc)
    currency = Currency.from_code(config.default_currency)

    user = UserProfile(
        id="USR-001",
        first_name="Alexander",
        last_name="Mitchell",
        email=config.demo_email,
        phone="+49 170 123 4567",
        account_created=datetime(2023, 8, 15, 10, 30, tzinfo=timezone.utc)
    )

    return LedgerDocument(
        user=user,
        accounts=_seed_accounts(currency),
        transactions=_seed_transactions(now, currency),
        billers={
            biller_id: Biller(id=biller_id, name=name, category=category, account_number=number)
            for biller_id, name, category, number in SEED_BILLERS
        },
        recipients={
            recipient_id: Recipient(
                id=recipient_id, name=name, bank=bank,
                account_number=number, recipient_type=recipient_type
            )
            for recipient_id, name, bank, number, recipient_type in SEED_RECIPIENTS
        }
    )
