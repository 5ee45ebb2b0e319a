"""
Tests for legacy document migrations
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from vanstra_ledger.config import LedgerConfig
from vanstra_ledger.currency import Currency
from vanstra_ledger.migrations import DocumentMigrator, Migration
from vanstra_ledger.models import (
    LedgerDocument, RecipientType, SCHEMA_VERSION, TicketPriority,
    TransactionStatus, TransactionSubtype, TransactionType
)
from vanstra_ledger.seed import build_seed_document

from legacy_documents import bank_shape_document, banking_shape_document


NOW = datetime(2024, 3, 11, 8, 0, tzinfo=timezone.utc)


class TestVersionDetection:
    """Test schema detection"""

    def setup_method(self):
        self.migrator = DocumentMigrator()

    def test_detect_versions(self):
        assert self.migrator.detect_version(banking_shape_document()) == 0
        assert self.migrator.detect_version(bank_shape_document()) == 1
        canonical = build_seed_document(LedgerConfig(storage_backend="memory")).to_dict()
        assert self.migrator.detect_version(canonical) == SCHEMA_VERSION

    def test_unknown_shape(self):
        with pytest.raises(ValueError, match="Unrecognized"):
            self.migrator.detect_version({"something": "else"})

    def test_latest_version_and_pending(self):
        assert self.migrator.latest_version == SCHEMA_VERSION
        assert [m.version for m in self.migrator.get_pending_migrations(0)] == [1, 2]
        assert [m.version for m in self.migrator.get_pending_migrations(1)] == [2]
        assert self.migrator.get_pending_migrations(SCHEMA_VERSION) == []

    def test_needs_migration(self):
        assert self.migrator.needs_migration(bank_shape_document())
        canonical = build_seed_document(LedgerConfig(storage_backend="memory")).to_dict()
        assert not self.migrator.needs_migration(canonical)

    def test_migration_repr(self):
        migration = self.migrator.migrations[0]
        assert isinstance(migration, Migration)
        assert str(migration) == "Migration v001: Unify banking shape into bank shape"


class TestBankShapeMigration:
    """Test upgrading the camelCase "bank" shape"""

    def setup_method(self):
        self.migrator = DocumentMigrator()
        data, applied = self.migrator.migrate(bank_shape_document(), now=NOW)
        self.data = data
        self.applied = applied
        self.document = LedgerDocument.from_dict(data)

    def test_applied_steps(self):
        assert [m.version for m in self.applied] == [2]
        assert self.data["schema_version"] == SCHEMA_VERSION

    def test_accounts(self):
        checking = self.document.account("checking")
        assert checking.id == "ACC-CHK-4567"
        assert checking.balance == Decimal('127543.82')
        assert checking.currency == Currency.EUR
        assert self.document.account("savings").apy == Decimal('4.85')
        assert self.document.account("investment").ytd_return == Decimal('7654.00')
        assert self.data["accounts"]["checking"]["balance"] == "127543.82"

    def test_user_and_session(self):
        assert self.document.is_authenticated
        assert self.document.user.first_name == "Alexander"
        assert self.document.user.account_created == datetime(2023, 8, 15, 10, 30, tzinfo=timezone.utc)

    def test_transactions(self):
        deposit, transfer = self.document.transactions
        assert transfer.transaction_type == TransactionType.TRANSFER
        assert transfer.subtype == TransactionSubtype.INTERNAL
        assert transfer.amount == Decimal('-1000.00')
        assert transfer.from_account == "checking"
        assert transfer.to_account == "savings"
        assert transfer.note is None

        assert deposit.status == TransactionStatus.PENDING
        assert deposit.estimated_clearance == datetime(2024, 3, 12, 10, 0, tzinfo=timezone.utc)

    def test_pending_deposits(self):
        deposit = self.document.pending_deposits[0]
        assert deposit.id == self.document.transactions[0].id
        assert deposit.amount == Decimal('250')
        assert deposit.to_account == "checking"
        assert deposit.front_image == "data:image/png;base64,FRONT"

    def test_tickets(self):
        ticket = self.document.support_tickets[0]
        assert ticket.priority == TicketPriority.HIGH
        assert ticket.subject == "Card not arriving"

    def test_missing_account_created_uses_migration_time(self):
        legacy = bank_shape_document()
        del legacy["user"]["accountCreated"]
        data, _ = self.migrator.migrate(legacy, now=NOW)
        assert LedgerDocument.from_dict(data).user.account_created == NOW


class TestBankingShapeMigration:
    """Test upgrading the older "banking" shape through both steps"""

    def setup_method(self):
        self.migrator = DocumentMigrator()
        data, applied = self.migrator.migrate(banking_shape_document(), now=NOW)
        self.applied = applied
        self.document = LedgerDocument.from_dict(data)

    def test_applied_steps(self):
        assert [m.version for m in self.applied] == [1, 2]

    def test_accounts(self):
        checking = self.document.account("checking")
        assert checking.id == "ACC-CHK-4567"
        assert checking.name == "Premium Checking"
        assert checking.balance == Decimal('127543.82')

        savings = self.document.account("savings")
        assert savings.id == "ACC-SAV-7890"
        assert savings.apy == Decimal('4.85')

        investment = self.document.account("investment")
        assert investment.id == "ACC-INV"
        assert investment.number == ""
        assert investment.ytd_return == Decimal('7654.0')
        assert self.document.total_balance() == Decimal('242239.97')

    def test_user_defaults(self):
        assert self.document.user.id == "USR-001"
        assert self.document.user.avatar is None
        assert self.document.user.account_created == NOW
        assert not self.document.is_authenticated

    def test_credit_becomes_direct_deposit(self):
        salary = self.document.transactions[0]
        assert salary.transaction_type == TransactionType.DEPOSIT
        assert salary.subtype == TransactionSubtype.DIRECT
        assert salary.to_account == "checking"
        assert salary.from_account is None
        assert salary.amount == Decimal('5240.00')

    def test_bill_payment(self):
        bill = self.document.transactions[1]
        assert bill.transaction_type == TransactionType.PAYMENT
        assert bill.subtype == TransactionSubtype.BILL
        assert bill.category == "Internet"
        assert bill.recipient_account == "VOD-87654321"
        assert bill.from_account == "checking"

    def test_external_transfer(self):
        transfer = self.document.transactions[2]
        assert transfer.transaction_type == TransactionType.TRANSFER
        assert transfer.subtype == TransactionSubtype.EXTERNAL
        assert transfer.recipient_bank == "Deutsche Bank"
        assert transfer.note == "Rent"

    def test_pending_deposit(self):
        deposit = self.document.pending_deposits[0]
        assert deposit.to_account == "checking"
        assert deposit.currency == Currency.EUR
        assert deposit.amount == Decimal('300')

    def test_payees_keyed_by_id(self):
        assert list(self.document.billers) == ["1", "2"]
        assert self.document.billers["2"].account_number == "VOD-87654321"
        assert self.document.recipients["3"].recipient_type == RecipientType.INTERNAL


class TestMigrationGuards:
    """Test documents that must not be migrated"""

    def setup_method(self):
        self.migrator = DocumentMigrator()

    def test_current_document_unchanged(self):
        canonical = build_seed_document(LedgerConfig(storage_backend="memory")).to_dict()
        data, applied = self.migrator.migrate(canonical)
        assert applied == []
        assert data == canonical

    def test_newer_schema_rejected(self):
        with pytest.raises(ValueError, match="newer than supported"):
            self.migrator.migrate({"schema_version": SCHEMA_VERSION + 1})

    def test_unknown_legacy_account_dropped(self):
        legacy = bank_shape_document()
        legacy["accounts"]["crypto"] = {"balance": 1.0}
        data, _ = self.migrator.migrate(legacy, now=NOW)
        assert set(data["accounts"]) == {"checking", "savings", "investment"}
