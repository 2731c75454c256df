"""Ledger and wallet data models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class TransactionStatus(str, Enum):
    """Lifecycle of a submitted transfer."""
    PENDING = "pending"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Allowed forward moves; terminal states have none
_STATUS_TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.CONFIRMING,
        TransactionStatus.CONFIRMED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.CONFIRMING: frozenset({
        TransactionStatus.CONFIRMED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.CONFIRMED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}


@dataclass
class Transaction:
    """A stablecoin transfer known to this wallet."""
    id: str
    hash: str
    from_address: str
    to_address: str
    amount: Decimal
    status: TransactionStatus = TransactionStatus.PENDING
    timestamp: datetime = field(default_factory=datetime.now)
    fee: Decimal = Decimal("0")
    confirmations: int = 0
    block_number: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def advance(self, status: TransactionStatus) -> None:
        """Move to ``status``. Back-transitions and moves out of a terminal state raise."""
        if status == self.status:
            return
        if status not in _STATUS_TRANSITIONS[self.status]:
            raise ValueError(f"Illegal transaction status change: {self.status.value} -> {status.value}")
        self.status = status

    @property
    def is_terminal(self) -> bool:
        return not _STATUS_TRANSITIONS[self.status]


@dataclass(frozen=True)
class WalletBalance:
    """Wallet balance snapshot."""
    usdc: Decimal
    native: Decimal
    last_updated: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TransferHandle:
    """Pending transfer as returned by the ledger on submission."""
    hash: str
    from_address: str
    to_address: str
    amount: Decimal
    submitted_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TransferReceipt:
    """Receipt of a mined transfer."""
    hash: str
    block_number: int
    success: bool
    confirmations: int
    fee: Decimal = Decimal("0")


@dataclass(frozen=True)
class TransferEvent:
    """A Transfer log entry read from the token contract."""
    hash: str
    log_index: int
    from_address: str
    to_address: str
    amount: Decimal
    block_number: int
    timestamp: datetime


@dataclass(frozen=True)
class FeeEstimate:
    """Gas estimate for a transfer."""
    gas_limit: int
    gas_price: int  # wei
    estimated_fee: Decimal  # native token units
