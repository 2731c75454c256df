"""Confirmation, wallet and transaction execution."""

from .confirmation import ConfirmationDecision, ConfirmationGate
from .executor import TransactionExecutor, classify_ledger_error
from .history import RECEIVED, SENT, TransactionFilter, TransactionLedgerView, summarize
from .ledger import (
    DEMO_CONTACTS,
    DEMO_WALLET_ADDRESS,
    InMemoryLedger,
    LedgerClient,
    LedgerError,
    create_demo_ledger,
)
from .wallet import WalletSession

__all__ = [
    "ConfirmationDecision",
    "ConfirmationGate",
    "DEMO_CONTACTS",
    "DEMO_WALLET_ADDRESS",
    "InMemoryLedger",
    "LedgerClient",
    "LedgerError",
    "RECEIVED",
    "SENT",
    "TransactionExecutor",
    "TransactionFilter",
    "TransactionLedgerView",
    "WalletSession",
    "classify_ledger_error",
    "create_demo_ledger",
    "summarize",
]
