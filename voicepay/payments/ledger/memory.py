"""In-memory ledger used in demo mode and tests."""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .base import LedgerClient, LedgerError
from ...models.transaction import FeeEstimate, TransferEvent, TransferHandle, TransferReceipt

logger = logging.getLogger(__name__)

DEMO_WALLET_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb1"
DEMO_USDC_BALANCE = Decimal("1234.56")
DEMO_NATIVE_BALANCE = Decimal("0.5")
DEMO_START_BLOCK = 1234567

DEMO_CONTACTS = {
    "alice": "0x1234567890123456789012345678901234567890",
    "bob": "0x9876543210987654321098765432109876543210",
}

DEFAULT_GAS_LIMIT = 65000
DEFAULT_GAS_PRICE = 15384615  # wei; 65000 * price ~= 0.001 native


@dataclass
class _PendingTransfer:
    handle: TransferHandle
    revert: bool


class InMemoryLedger(LedgerClient):
    """A single-wallet ledger kept in dictionaries.

    Failures can be injected with ``fail_next_transfer``, ``revert_next_transfer``
    and ``fail_confirmations`` to exercise executor error handling.
    """

    def __init__(self,
                 address: str = DEMO_WALLET_ADDRESS,
                 usdc_balance: Decimal = DEMO_USDC_BALANCE,
                 native_balance: Decimal = DEMO_NATIVE_BALANCE,
                 block_number: int = DEMO_START_BLOCK,
                 gas_price: int = DEFAULT_GAS_PRICE,
                 latency: float = 0.0):
        self.address = address
        self.block_number = block_number
        self.gas_price = gas_price
        self.latency = latency

        self.token_balances: Dict[str, Decimal] = {address.lower(): Decimal(usdc_balance)}
        self.native_balances: Dict[str, Decimal] = {address.lower(): Decimal(native_balance)}
        self.events: List[TransferEvent] = []
        self.transfer_calls: List[Tuple[str, Decimal]] = []

        self._pending: Dict[str, _PendingTransfer] = {}
        self._receipts: Dict[str, TransferReceipt] = {}
        self._next_transfer_error: Optional[LedgerError] = None
        self._revert_next = False
        self._confirmation_error: Optional[LedgerError] = None

    # ------------------------------------------------------------------
    # Failure injection
    # ------------------------------------------------------------------

    def fail_next_transfer(self, error: LedgerError) -> None:
        self._next_transfer_error = error

    def revert_next_transfer(self) -> None:
        self._revert_next = True

    def fail_confirmations(self, error: Optional[LedgerError]) -> None:
        self._confirmation_error = error

    def add_event(self, from_address: str, to_address: str, amount: Decimal,
                  timestamp: Optional[datetime] = None, block_number: Optional[int] = None) -> TransferEvent:
        """Seed a historical transfer."""
        event = TransferEvent(
            hash=_random_hash(),
            log_index=0,
            from_address=from_address,
            to_address=to_address,
            amount=Decimal(amount),
            block_number=block_number if block_number is not None else self.block_number,
            timestamp=timestamp or datetime.now(),
        )
        self.events.append(event)
        return event

    # ------------------------------------------------------------------
    # LedgerClient
    # ------------------------------------------------------------------

    async def resolve_own_address(self) -> str:
        return self.address

    async def get_token_balance(self, address: str) -> Decimal:
        await self._delay()
        return self.token_balances.get(address.lower(), Decimal("0"))

    async def get_native_balance(self, address: str) -> Decimal:
        await self._delay()
        return self.native_balances.get(address.lower(), Decimal("0"))

    async def transfer(self, to: str, amount: Decimal) -> TransferHandle:
        await self._delay()
        self.transfer_calls.append((to, amount))

        if self._next_transfer_error is not None:
            error, self._next_transfer_error = self._next_transfer_error, None
            raise error
        if not self.validate_address_shape(to):
            raise LedgerError("invalid address", code="INVALID_ARGUMENT")

        own = self.address.lower()
        fee = self._fee()
        if self.native_balances.get(own, Decimal("0")) < fee:
            raise LedgerError("insufficient funds for gas * price + value", code="INSUFFICIENT_FUNDS")
        if self.token_balances.get(own, Decimal("0")) < amount:
            raise LedgerError("transfer amount exceeds balance", code="CALL_EXCEPTION")

        handle = TransferHandle(hash=_random_hash(), from_address=self.address, to_address=to, amount=amount)
        self._pending[handle.hash] = _PendingTransfer(handle=handle, revert=self._revert_next)
        self._revert_next = False
        logger.info(f"Transaction sent: {handle.hash}")
        return handle

    async def wait_for_confirmations(self, tx_hash: str, confirmations: int = 1) -> TransferReceipt:
        await self._delay()
        if self._confirmation_error is not None:
            raise self._confirmation_error
        if tx_hash in self._receipts:
            return self._receipts[tx_hash]

        pending = self._pending.pop(tx_hash, None)
        if pending is None:
            raise LedgerError("Transaction receipt not found", code="NOT_FOUND")

        handle = pending.handle
        own = self.address.lower()
        fee = self._fee()
        self.block_number += max(confirmations, 1)
        self.native_balances[own] = self.native_balances.get(own, Decimal("0")) - fee

        if not pending.revert:
            self.token_balances[own] -= handle.amount
            recipient = handle.to_address.lower()
            self.token_balances[recipient] = self.token_balances.get(recipient, Decimal("0")) + handle.amount
            self.events.append(TransferEvent(
                hash=handle.hash,
                log_index=0,
                from_address=handle.from_address,
                to_address=handle.to_address,
                amount=handle.amount,
                block_number=self.block_number,
                timestamp=datetime.now(),
            ))

        receipt = TransferReceipt(
            hash=tx_hash,
            block_number=self.block_number,
            success=not pending.revert,
            confirmations=max(confirmations, 1),
            fee=fee,
        )
        self._receipts[tx_hash] = receipt
        return receipt

    async def query_transfer_events(self, address: str, from_block: int,
                                    to_block: int) -> List[TransferEvent]:
        await self._delay()
        target = address.lower()
        return [
            event for event in self.events
            if from_block <= event.block_number <= to_block
            and target in (event.from_address.lower(), event.to_address.lower())
        ]

    async def get_block_number(self) -> int:
        return self.block_number

    async def estimate_fee(self, to: str, amount: Decimal) -> FeeEstimate:
        return FeeEstimate(gas_limit=DEFAULT_GAS_LIMIT, gas_price=self.gas_price, estimated_fee=self._fee())

    def _fee(self) -> Decimal:
        return Decimal(DEFAULT_GAS_LIMIT * self.gas_price) / Decimal(10 ** 18)

    async def _delay(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)


def _random_hash() -> str:
    return "0x" + secrets.token_hex(32)


def create_demo_ledger(latency: float = 0.0) -> InMemoryLedger:
    """Demo wallet with a short transfer history."""
    ledger = InMemoryLedger(latency=latency)
    now = datetime.now()
    ledger.add_event(DEMO_WALLET_ADDRESS, DEMO_CONTACTS["alice"], Decimal("50.00"),
                     timestamp=now - timedelta(hours=1), block_number=DEMO_START_BLOCK)
    ledger.add_event(DEMO_CONTACTS["bob"], DEMO_WALLET_ADDRESS, Decimal("25.50"),
                     timestamp=now - timedelta(hours=2), block_number=DEMO_START_BLOCK - 17)
    ledger.add_event(DEMO_WALLET_ADDRESS, "0x5555555555555555555555555555555555555555", Decimal("100.00"),
                     timestamp=now - timedelta(days=1), block_number=DEMO_START_BLOCK - 1567)
    return ledger
