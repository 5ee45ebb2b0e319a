"""
Ledger Store Module

Owns the single persisted ledger document and every operation on it:
session flag, profile, transfers, check deposits, bill payments, saved
payees and support tickets. Each operation loads the whole document,
mutates the loaded copy and writes it back in one step, so a failed
write never leaves a half-applied change behind.

Operations are serialized in-process by a re-entrant lock. Every write
is a compare-and-swap against the revision that was loaded; a writer in
another process that got there first surfaces as
ConcurrentModificationError.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import threading

from .config import LedgerConfig, get_config
from .currency import Currency, Money, to_decimal
from .formatting import format_currency, format_date, format_date_time
from .identifiers import (
    generate_biller_id, generate_recipient_id, generate_reference,
    generate_ticket_id, generate_transaction_id
)
from .logging_config import get_logger, log_action
from .migrations import DocumentMigrator
from .models import (
    AccountKind, Biller, FailureKind, LedgerDocument, OperationResult,
    PendingDeposit, Recipient, SupportTicket, TicketPriority, Transaction,
    TransactionStatus, TransactionSubtype, TransactionType, UserProfile
)
from .seed import build_seed_document
from .storage import StorageInterface, create_storage


INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class LedgerStore:
    """
    Ledger state store over one storage slot
    """

    def __init__(
        self,
        storage: StorageInterface,
        config: Optional[LedgerConfig] = None,
        migrator: Optional[DocumentMigrator] = None
    ):
        self.storage = storage
        self.config = config or get_config()
        self.storage_key = self.config.storage_key
        self.currency = Currency.from_code(self.config.default_currency)
        self.migrator = migrator or DocumentMigrator()
        self.logger = get_logger("vanstra.store")
        self._lock = threading.RLock()

        if self.config.backend_configured:
            self.logger.info(
                f"Remote backend configured at {self.config.backend_url}; "
                "no integration is installed, ledger stays local"
            )

    # ------------------------------------------------------------------
    # Persistence

    def _read(self) -> Tuple[LedgerDocument, int]:
        """Load the document and its revision, seeding or migrating as needed"""
        stored = self.storage.load(self.storage_key)

        if stored is None:
            seed = build_seed_document(self.config)
            self.storage.save(self.storage_key, seed.to_dict(), expected_revision=0)
            log_action(
                self.logger, "info", "Seeded demo ledger document",
                action="seed_document", resource=f"document:{self.storage_key}"
            )
            # Return the decoded persisted copy so later loads compare equal
            stored = self.storage.load(self.storage_key)
            return LedgerDocument.from_dict(stored.data), stored.revision

        data = stored.data
        if self.migrator.needs_migration(data):
            data, applied = self.migrator.migrate(data)
            revision = self.storage.save(self.storage_key, data, expected_revision=stored.revision)
            log_action(
                self.logger, "info", "Migrated ledger document",
                action="migrate_document", resource=f"document:{self.storage_key}",
                extra={"migrations": [m.version for m in applied]}
            )
            return LedgerDocument.from_dict(data), revision

        return LedgerDocument.from_dict(data), stored.revision

    def _write(self, document: LedgerDocument, revision: int) -> int:
        return self.storage.save(self.storage_key, document.to_dict(), expected_revision=revision)

    def load(self) -> LedgerDocument:
        """Return the current document, creating the demo document on first access"""
        with self._lock:
            document, _ = self._read()
            return document

    def save(self, document: LedgerDocument) -> None:
        """Overwrite the stored document unconditionally"""
        with self._lock:
            self.storage.save(self.storage_key, document.to_dict())

    def reset(self) -> LedgerDocument:
        """Replace the stored document with a fresh demo document"""
        with self._lock:
            self.storage.save(self.storage_key, build_seed_document(self.config).to_dict())
            log_action(
                self.logger, "info", "Ledger reset to demo data",
                action="reset_document", resource=f"document:{self.storage_key}"
            )
            return self.load()

    def import_legacy(self, raw: Union[str, Dict[str, Any]]) -> LedgerDocument:
        """
        Adopt a document exported by either legacy front-end.

        Args:
            raw: The JSON blob (or its decoded dict) from browser storage

        Returns:
            The upgraded document, now stored under this store's key

        Raises:
            ValueError: If the blob is not JSON or matches no known shape
        """
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"Legacy document is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError("Legacy document must be a JSON object")

        try:
            data, applied = self.migrator.migrate(raw)
            document = LedgerDocument.from_dict(data)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Legacy document is incomplete: {e}") from e
        with self._lock:
            self.storage.save(self.storage_key, document.to_dict())
        log_action(
            self.logger, "info", "Imported legacy ledger document",
            action="import_document", resource=f"document:{self.storage_key}",
            extra={"migrations": [m.version for m in applied]}
        )
        return document

    # ------------------------------------------------------------------
    # Session

    def login(self, email: str, password: str) -> OperationResult:
        """Demo login against the configured credential pair"""
        if email != self.config.demo_email or password != self.config.demo_password:
            log_action(
                self.logger, "warning", "Login rejected",
                action="login", resource="session", extra={"email": email}
            )
            return OperationResult.fail(FailureKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        with self._lock:
            document, revision = self._read()
            document.is_authenticated = True
            self._write(document, revision)

        log_action(
            self.logger, "info", "User logged in",
            user_id=document.user.id, action="login", resource="session"
        )
        return OperationResult.ok(user=document.user)

    def logout(self) -> OperationResult:
        with self._lock:
            document, revision = self._read()
            document.is_authenticated = False
            self._write(document, revision)

        log_action(
            self.logger, "info", "User logged out",
            user_id=document.user.id, action="logout", resource="session"
        )
        return OperationResult.ok()

    def is_authenticated(self) -> bool:
        return self.load().is_authenticated

    # ------------------------------------------------------------------
    # Profile

    def update_profile(self, **updates: str) -> OperationResult:
        """
        Merge profile fields (first_name, last_name, email, phone).

        Raises:
            ValueError: If an unknown field is given
        """
        unknown = set(updates) - set(UserProfile.EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        with self._lock:
            document, revision = self._read()
            for name, value in updates.items():
                setattr(document.user, name, value)
            self._write(document, revision)

        log_action(
            self.logger, "info", "Profile updated",
            user_id=document.user.id, action="update_profile",
            resource=f"user:{document.user.id}", extra={"fields": sorted(updates)}
        )
        return OperationResult.ok(user=document.user)

    def update_avatar(self, image_data: Optional[str]) -> OperationResult:
        """Store an opaque avatar string (e.g. a data URL); None clears it"""
        with self._lock:
            document, revision = self._read()
            document.user.avatar = image_data
            self._write(document, revision)
        return OperationResult.ok(user=document.user)

    def get_current_user(self) -> Dict[str, Any]:
        """
        Profile merged with the account status from the user registry slot.

        The registry maps user ids to entries with ``email``,
        ``account_status`` and ``is_online``. Without a matching entry the
        status is ``active``.
        """
        document = self.load()
        profile = document.user.to_dict()
        profile["account_status"] = "active"

        registry = self.storage.load(self.config.users_key)
        if registry is None:
            return profile

        for entry in registry.data.values():
            if isinstance(entry, dict) and entry.get("email") == document.user.email:
                profile["account_status"] = entry.get("account_status") or "active"
                profile["is_online"] = entry.get("is_online")
                profile["id"] = entry.get("id", profile["id"])
                break
        return profile

    # ------------------------------------------------------------------
    # Money movement

    def _validate_amount(self, amount: Union[Decimal, int, float, str]) -> Decimal:
        """Round to currency precision; the rounded amount must be positive"""
        money = Money(to_decimal(amount), self.currency)
        if not money.is_positive():
            raise ValueError(f"Amount must be positive, got {amount}")
        return money.amount

    def _insufficient_funds(self, action: str, account: str, amount: Decimal) -> OperationResult:
        log_action(
            self.logger, "warning", f"{action} rejected: insufficient funds",
            action=action, resource=f"account:{account}",
            extra={"amount": Money(amount, self.currency).to_string()}
        )
        return OperationResult.fail(FailureKind.INSUFFICIENT_FUNDS, INSUFFICIENT_FUNDS_MESSAGE)

    def _log_transaction(self, message: str, action: str, document: LedgerDocument,
                         transaction: Transaction) -> None:
        log_action(
            self.logger, "info", message,
            user_id=document.user.id, action=action,
            resource=f"transaction:{transaction.id}",
            extra={
                "amount": Money(transaction.amount, transaction.currency).to_string(),
                "from_account": transaction.from_account,
                "to_account": transaction.to_account,
                "direction": "debit" if transaction.is_debit else "credit",
                "status": transaction.status.value,
                "reference": transaction.reference
            }
        )

    def get_total_balance(self) -> Decimal:
        return self.load().total_balance()

    def transfer(
        self,
        from_account: str,
        amount: Union[Decimal, int, float, str],
        to_account: Optional[str] = None,
        transfer_type: Optional[str] = None,
        recipient_name: Optional[str] = None,
        recipient_bank: Optional[str] = None,
        recipient_account: Optional[str] = None,
        note: str = ""
    ) -> OperationResult:
        """
        Move money out of one of the user's accounts.

        Internal transfers credit another of the user's accounts; external
        transfers only debit the source and remember the recipient when no
        saved recipient has the same account number.

        Args:
            from_account: Source account name
            amount: Positive amount to move
            to_account: Destination account name (internal transfers)
            transfer_type: "internal" or "external"; inferred from
                to_account when omitted
            recipient_name: Payee name (external transfers)
            recipient_bank: Payee bank (external transfers)
            recipient_account: Payee account number, e.g. an IBAN
            note: Free-text note for the statement

        Returns:
            OperationResult with the new transaction, or an insufficient
            funds failure

        Raises:
            ValueError: On a non-positive amount, unknown accounts, or
                missing destination details
        """
        amount = self._validate_amount(amount)
        if transfer_type is None:
            transfer_type = "internal" if to_account else "external"
        subtype = TransactionSubtype(transfer_type)
        if subtype not in (TransactionSubtype.INTERNAL, TransactionSubtype.EXTERNAL):
            raise ValueError(f"Unsupported transfer type: {transfer_type}")

        with self._lock:
            document, revision = self._read()
            source = document.account(from_account)

            destination = None
            if subtype == TransactionSubtype.INTERNAL:
                if not to_account:
                    raise ValueError("Internal transfers need a destination account")
                if to_account == from_account:
                    raise ValueError("Cannot transfer to the same account")
                destination = document.account(to_account)
            elif not recipient_name or not recipient_account:
                raise ValueError("External transfers need a recipient name and account")

            if not source.can_cover(amount):
                return self._insufficient_funds("transfer", from_account, amount)

            source.debit(amount)
            if destination:
                destination.credit(amount)
                payee_name = destination.name
                payee_account = destination.number
            else:
                payee_name = recipient_name
                payee_account = recipient_account

            transaction = Transaction(
                id=generate_transaction_id(),
                date=datetime.now(timezone.utc),
                transaction_type=TransactionType.TRANSFER,
                subtype=subtype,
                description=f"Transfer to {payee_name}",
                amount=(-Money(amount, source.currency)).amount,
                currency=source.currency,
                status=TransactionStatus.COMPLETED,
                reference=generate_reference(),
                from_account=from_account,
                to_account=to_account if destination else None,
                recipient_name=payee_name,
                recipient_bank=recipient_bank,
                recipient_account=payee_account,
                note=note or None
            )
            document.transactions.insert(0, transaction)

            if subtype == TransactionSubtype.EXTERNAL and \
                    document.find_recipient_by_account_number(recipient_account) is None:
                recipient = Recipient(
                    id=generate_recipient_id(),
                    name=recipient_name,
                    bank=recipient_bank or "",
                    account_number=recipient_account
                )
                document.recipients[recipient.id] = recipient

            self._write(document, revision)

        self._log_transaction(f"Transfer completed: {subtype.value}", "transfer", document, transaction)
        return OperationResult.ok(transaction=transaction)

    def submit_deposit(
        self,
        amount: Union[Decimal, int, float, str],
        front_image: Optional[str] = None,
        back_image: Optional[str] = None,
        to_account: str = AccountKind.CHECKING.value
    ) -> OperationResult:
        """
        Record a mobile check deposit awaiting clearance.

        The balance is not credited; the deposit shows up as a pending
        transaction and a pending-deposit record sharing one id.
        """
        amount = self._validate_amount(amount)

        with self._lock:
            document, revision = self._read()
            account = document.account(to_account)

            now = datetime.now(timezone.utc)
            clearance = now + timedelta(days=self.config.deposit_clearance_days)
            transaction_id = generate_transaction_id()
            reference = generate_reference()

            transaction = Transaction(
                id=transaction_id,
                date=now,
                transaction_type=TransactionType.DEPOSIT,
                subtype=TransactionSubtype.CHECK,
                description="Mobile Check Deposit",
                amount=amount,
                currency=account.currency,
                status=TransactionStatus.PENDING,
                reference=reference,
                to_account=to_account,
                estimated_clearance=clearance
            )
            deposit = PendingDeposit(
                id=transaction_id,
                date=now,
                amount=amount,
                currency=account.currency,
                to_account=to_account,
                reference=reference,
                estimated_clearance=clearance,
                front_image=front_image,
                back_image=back_image
            )
            document.pending_deposits.insert(0, deposit)
            document.transactions.insert(0, transaction)
            self._write(document, revision)

        self._log_transaction("Check deposit submitted", "submit_deposit", document, transaction)
        return OperationResult.ok(transaction=transaction, deposit=deposit)

    def pay_bill(
        self,
        biller_name: str,
        amount: Union[Decimal, int, float, str],
        category: Optional[str] = None,
        reference_number: Optional[str] = None
    ) -> OperationResult:
        """Pay a bill from checking"""
        amount = self._validate_amount(amount)
        source_name = AccountKind.CHECKING.value

        with self._lock:
            document, revision = self._read()
            checking = document.account(source_name)

            if not checking.can_cover(amount):
                return self._insufficient_funds("pay_bill", source_name, amount)

            checking.debit(amount)
            transaction = Transaction(
                id=generate_transaction_id(),
                date=datetime.now(timezone.utc),
                transaction_type=TransactionType.PAYMENT,
                subtype=TransactionSubtype.BILL,
                description=biller_name,
                amount=(-Money(amount, checking.currency)).amount,
                currency=checking.currency,
                status=TransactionStatus.COMPLETED,
                reference=generate_reference(),
                from_account=source_name,
                recipient_name=biller_name,
                recipient_account=reference_number,
                category=category
            )
            document.transactions.insert(0, transaction)
            self._write(document, revision)

        self._log_transaction("Bill paid", "pay_bill", document, transaction)
        return OperationResult.ok(transaction=transaction)

    # ------------------------------------------------------------------
    # Payees and support

    def add_biller(self, name: str, category: str, account_number: str) -> OperationResult:
        biller = Biller(
            id=generate_biller_id(),
            name=name,
            category=category,
            account_number=account_number
        )
        with self._lock:
            document, revision = self._read()
            document.billers[biller.id] = biller
            self._write(document, revision)

        log_action(
            self.logger, "info", "Biller added",
            user_id=document.user.id, action="add_biller", resource=f"biller:{biller.id}"
        )
        return OperationResult.ok(biller=biller)

    def submit_ticket(self, subject: str, category: str, message: str,
                      priority: str = TicketPriority.MEDIUM.value) -> OperationResult:
        """Open a support ticket. Tickets have no workflow beyond creation."""
        ticket = SupportTicket(
            id=generate_ticket_id(),
            date=datetime.now(timezone.utc),
            subject=subject,
            category=category,
            message=message,
            priority=TicketPriority(priority or TicketPriority.MEDIUM.value)
        )
        with self._lock:
            document, revision = self._read()
            document.support_tickets.insert(0, ticket)
            self._write(document, revision)

        log_action(
            self.logger, "info", "Support ticket opened",
            user_id=document.user.id, action="submit_ticket", resource=f"ticket:{ticket.id}",
            extra={"priority": ticket.priority.value, "category": category}
        )
        return OperationResult.ok(ticket=ticket)

    # ------------------------------------------------------------------
    # Read accessors

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self.load().find_transaction(transaction_id)

    def get_transactions(self, limit: Optional[int] = None) -> List[Transaction]:
        """Newest-first slice of the transaction log"""
        if limit is None:
            limit = self.config.transaction_page_size
        if limit < 0:
            raise ValueError("Limit must not be negative")
        return self.load().transactions[:limit]

    def get_pending_deposits(self) -> List[PendingDeposit]:
        return self.load().pending_deposits

    def get_billers(self) -> List[Biller]:
        return list(self.load().billers.values())

    def get_recipients(self) -> List[Recipient]:
        return list(self.load().recipients.values())

    def get_tickets(self) -> List[SupportTicket]:
        return self.load().support_tickets

    # ------------------------------------------------------------------
    # Formatting

    def format_currency(self, amount: Union[Decimal, int, float, str]) -> str:
        return format_currency(amount, self.currency)

    @staticmethod
    def format_date(value: Union[str, datetime], now: Optional[datetime] = None,
                    include_year: bool = False) -> str:
        return format_date(value, now=now, include_year=include_year)

    @staticmethod
    def format_date_time(value: Union[str, datetime]) -> str:
        return format_date_time(value)


def create_store(config: Optional[LedgerConfig] = None) -> LedgerStore:
    """Build a store over the storage backend named in config"""
    config = config or get_config()
    storage = create_storage(config.storage_backend, config.storage_path)
    return LedgerStore(storage, config)
