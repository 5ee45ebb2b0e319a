"""
Tests for the ledger document model and the demo seed
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from vanstra_ledger.config import LedgerConfig
from vanstra_ledger.currency import Currency, Money
from vanstra_ledger.models import (
    Account, AccountKind, FailureKind, LedgerDocument, OperationResult,
    SCHEMA_VERSION, TransactionStatus, TransactionSubtype, TransactionType
)
from vanstra_ledger.seed import build_seed_document


NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestSeedDocument:
    """Test the demo document"""

    def setup_method(self):
        self.config = LedgerConfig(storage_backend="memory")
        self.document = build_seed_document(self.config, now=NOW)

    def test_balances(self):
        accounts = self.document.accounts
        assert accounts["checking"].balance == Decimal('127543.82')
        assert accounts["savings"].balance == Decimal('45230.15')
        assert accounts["investment"].balance == Decimal('69466.00')
        assert self.document.total_balance() == Decimal('242239.97')

    def test_account_details(self):
        savings = self.document.account("savings")
        assert savings.kind == AccountKind.SAVINGS
        assert savings.apy == Decimal('4.85')
        assert self.document.account("investment").ytd_return == Decimal('7654.00')
        assert self.document.account("checking").number == "****4567"
        assert all(a.currency == Currency.EUR for a in self.document.accounts.values())

    def test_transactions_newest_first(self):
        transactions = self.document.transactions
        assert len(transactions) == 5
        dates = [t.date for t in transactions]
        assert dates == sorted(dates, reverse=True)
        assert transactions[0].date == NOW
        assert transactions[0].subtype == TransactionSubtype.INTERNAL
        assert transactions[0].amount == Decimal('-1000.00')

    def test_transaction_ids_unique(self):
        ids = [t.id for t in self.document.transactions]
        assert len(set(ids)) == len(ids)
        assert all(i.startswith("TXN-") for i in ids)

    def test_payees(self):
        assert len(self.document.billers) == 5
        assert self.document.billers["BLR-001"].name == "E.ON Energy"
        assert len(self.document.recipients) == 3
        assert self.document.recipients["RCP-001"].name == "Maria Schmidt"

    def test_initial_state(self):
        assert not self.document.is_authenticated
        assert self.document.pending_deposits == []
        assert self.document.support_tickets == []
        assert self.document.schema_version == SCHEMA_VERSION
        assert self.document.user.full_name == "Alexander Mitchell"
        assert self.document.user.email == self.config.demo_email

    def test_each_call_builds_a_fresh_document(self):
        other = build_seed_document(self.config, now=NOW)
        self.document.accounts["checking"].debit(Decimal('100.00'))
        self.document.transactions.clear()
        self.document.billers.clear()

        assert other.accounts["checking"].balance == Decimal('127543.82')
        assert len(other.transactions) == 5
        assert len(other.billers) == 5

    def test_configured_currency(self):
        config = LedgerConfig(storage_backend="memory", default_currency="CHF")
        document = build_seed_document(config, now=NOW)
        assert document.account("checking").currency == Currency.CHF
        assert document.transactions[0].currency == Currency.CHF


class TestDocumentSerialization:
    """Test conversion to and from plain JSON types"""

    def setup_method(self):
        self.document = build_seed_document(LedgerConfig(storage_backend="memory"), now=NOW)

    def test_amounts_serialize_as_strings(self):
        data = self.document.to_dict()
        assert data["accounts"]["checking"]["balance"] == "127543.82"
        assert data["accounts"]["checking"]["currency"] == "EUR"
        assert data["transactions"][0]["amount"] == "-1000.00"
        assert data["transactions"][0]["transaction_type"] == "transfer"
        assert data["schema_version"] == SCHEMA_VERSION

    def test_timestamps_serialize_as_iso(self):
        data = self.document.to_dict()
        assert data["transactions"][0]["date"] == NOW.isoformat()
        assert data["user"]["account_created"] == "2023-08-15T10:30:00+00:00"

    def test_from_dict_restores_equal_document(self):
        restored = LedgerDocument.from_dict(self.document.to_dict())
        assert restored == self.document

    def test_lookup_helpers(self):
        first = self.document.transactions[0]
        assert self.document.find_transaction(first.id) is first
        assert self.document.find_transaction("TXN-MISSING") is None
        recipient = self.document.find_recipient_by_account_number("DE89 3704 0044 0532 0130 00")
        assert recipient.name == "Maria Schmidt"
        assert self.document.find_recipient_by_account_number("DE00") is None

    def test_unknown_account(self):
        with pytest.raises(ValueError, match="not found"):
            self.document.account("brokerage")


class TestAccount:
    """Test balance arithmetic"""

    def test_balance_is_quantized(self):
        account = Account(
            id="ACC-1", kind=AccountKind.CHECKING, name="Checking", number="****0001",
            balance=Decimal('10.005'), currency=Currency.EUR
        )
        assert account.balance == Decimal('10.01')

    def test_debit_credit(self):
        account = Account(
            id="ACC-1", kind=AccountKind.CHECKING, name="Checking", number="****0001",
            balance=Decimal('100.00'), currency=Currency.EUR
        )
        assert account.can_cover(Decimal('100.00'))
        assert not account.can_cover(Decimal('100.01'))

        account.debit(Decimal('0.10'))
        account.credit(Decimal('0.20'))
        assert account.balance == Decimal('100.10')

    def test_arithmetic_keeps_currency_precision(self):
        account = Account(
            id="ACC-2", kind=AccountKind.CHECKING, name="Checking", number="****0002",
            balance=Decimal('100'), currency=Currency.JPY
        )
        account.debit(Decimal('0.6'))
        assert account.balance == Decimal('99')
        assert account.money == Money(Decimal('99'), Currency.JPY)
        assert not account.can_cover(Decimal('99.5'))


class TestOperationResult:
    """Test result envelopes"""

    def test_failure_to_dict(self):
        result = OperationResult.fail(FailureKind.INSUFFICIENT_FUNDS, "Insufficient funds")
        assert not result.success
        assert result.to_dict() == {
            "success": False,
            "error": "Insufficient funds",
            "failure": "insufficient_funds"
        }

    def test_success_to_dict_includes_records(self):
        document = build_seed_document(LedgerConfig(storage_backend="memory"), now=NOW)
        transaction = document.transactions[0]
        result = OperationResult.ok(transaction=transaction)

        data = result.to_dict()
        assert data["success"] is True
        assert data["transaction"]["id"] == transaction.id
        assert data["transaction"]["status"] == TransactionStatus.COMPLETED.value
        assert "error" not in data
        assert "deposit" not in data

    def test_transaction_flags(self):
        document = build_seed_document(LedgerConfig(storage_backend="memory"), now=NOW)
        salary = [t for t in document.transactions if t.transaction_type == TransactionType.DEPOSIT][0]
        assert not salary.is_debit
        assert document.transactions[0].is_debit
