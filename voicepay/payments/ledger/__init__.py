"""Ledger collaborator contract and the in-memory implementation."""

from .base import LedgerClient, LedgerError
from .memory import (
    DEMO_CONTACTS,
    DEMO_WALLET_ADDRESS,
    InMemoryLedger,
    create_demo_ledger,
)

__all__ = [
    "DEMO_CONTACTS",
    "DEMO_WALLET_ADDRESS",
    "InMemoryLedger",
    "LedgerClient",
    "LedgerError",
    "create_demo_ledger",
]
