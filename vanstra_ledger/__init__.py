"""
Vanstra Ledger

Client-side state store for the Vanstra demo bank: account balances,
transactions, deposits, bills and support tickets kept in a single
versioned document. All monetary values use Decimal.
"""

__version__ = "1.0.0"
