"""Transaction history: on-chain transfer events merged with local submissions."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from .ledger.base import LedgerClient, LedgerError
from ..errors import NetworkError
from ..models.transaction import Transaction, TransactionStatus, TransferEvent

logger = logging.getLogger(__name__)

SENT = "sent"
RECEIVED = "received"


@dataclass
class TransactionFilter:
    """Criteria for narrowing the history; unset fields match everything."""
    status: Optional[TransactionStatus] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    direction: Optional[str] = None  # "sent" | "received"

    def matches(self, tx: Transaction, own_address: str) -> bool:
        if self.status is not None and tx.status != self.status:
            return False
        if self.min_amount is not None and tx.amount < self.min_amount:
            return False
        if self.max_amount is not None and tx.amount > self.max_amount:
            return False
        if self.start_date is not None and tx.timestamp < self.start_date:
            return False
        if self.end_date is not None and tx.timestamp > self.end_date:
            return False
        if self.direction == SENT and tx.from_address.lower() != own_address.lower():
            return False
        if self.direction == RECEIVED and tx.to_address.lower() != own_address.lower():
            return False
        return True


class TransactionLedgerView:
    """Read model over the ledger plus transactions executed in this session."""

    def __init__(self, ledger: LedgerClient, block_range: int = 10000, max_local: int = 100):
        """Initialize the view.

        Args:
            ledger: Ledger client queried for transfer events
            block_range: How many blocks back to look for events
            max_local: Local submissions kept in memory, oldest evicted first
        """
        self.ledger = ledger
        self.block_range = block_range
        self.max_local = max_local
        self._local: Dict[str, Transaction] = {}

    def record(self, tx: Transaction) -> None:
        self._local.pop(tx.id, None)
        self._local[tx.id] = tx
        while len(self._local) > self.max_local:
            evicted = self._local.pop(next(iter(self._local)))
            logger.debug(f"Evicted local transaction {evicted.hash or evicted.id}")

    @property
    def local_transactions(self) -> List[Transaction]:
        return sorted(self._local.values(), key=lambda tx: tx.timestamp, reverse=True)

    async def load(self, address: str, criteria: Optional[TransactionFilter] = None,
                   limit: Optional[int] = None) -> List[Transaction]:
        """Transfers involving ``address`` in the recent block range, newest first."""
        try:
            current_block = await self.ledger.get_block_number()
            start_block = max(0, current_block - self.block_range)
            events = await self.ledger.query_transfer_events(address, start_block, current_block)
        except LedgerError as e:
            logger.error(f"Failed to load transactions: {e.message}")
            raise NetworkError("Failed to fetch transactions") from e

        local_by_hash = {tx.hash: tx for tx in self._local.values() if tx.hash}
        merged: Dict[str, Transaction] = {}
        for event in events:
            tx = local_by_hash.get(event.hash) or self._from_event(event, current_block)
            merged[tx.id] = tx
        for tx in self._local.values():
            merged.setdefault(tx.id, tx)

        transactions = sorted(merged.values(), key=lambda tx: tx.timestamp, reverse=True)
        if criteria is not None:
            transactions = [tx for tx in transactions if criteria.matches(tx, address)]
        return transactions[:limit] if limit is not None else transactions

    @staticmethod
    def _from_event(event: TransferEvent, current_block: int) -> Transaction:
        return Transaction(
            id=f"{event.hash}-{event.log_index}",
            hash=event.hash,
            from_address=event.from_address,
            to_address=event.to_address,
            amount=event.amount,
            status=TransactionStatus.CONFIRMED,
            timestamp=event.timestamp,
            fee=Decimal("0"),
            confirmations=current_block - event.block_number,
            block_number=event.block_number,
        )


def summarize(transactions: List[Transaction], own_address: str) -> Dict[str, Decimal]:
    """Totals of confirmed transfers sent and received."""
    own = own_address.lower()
    sent = sum((tx.amount for tx in transactions
                if tx.status == TransactionStatus.CONFIRMED and tx.from_address.lower() == own), Decimal("0"))
    received = sum((tx.amount for tx in transactions
                    if tx.status == TransactionStatus.CONFIRMED and tx.to_address.lower() == own), Decimal("0"))
    return {"total_sent": sent, "total_received": received, "net": received - sent}
