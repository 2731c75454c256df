"""Ledger address helpers."""

import re
from typing import Optional

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
ADDRESS_SEARCH_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")
TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")

ZERO_ADDRESS = "0x" + "0" * 40


def is_valid_address(address: Optional[str]) -> bool:
    """Shape check only: ``0x`` followed by 40 hex digits."""
    return bool(address) and ADDRESS_PATTERN.match(address.strip()) is not None


def is_zero_address(address: Optional[str]) -> bool:
    return bool(address) and address.strip().lower() == ZERO_ADDRESS


def is_valid_transaction_hash(tx_hash: Optional[str]) -> bool:
    return bool(tx_hash) and TX_HASH_PATTERN.match(tx_hash) is not None


def format_address(address: Optional[str], chars: int = 4) -> str:
    """Shorten an address for display, e.g. ``0x1234...7890``."""
    if not address:
        return ""
    if len(address) <= 2 + chars * 2:
        return address
    return f"{address[:chars + 2]}...{address[-chars:]}"
