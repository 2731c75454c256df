"""Transaction submission with pre-checks, confirmation wait and error mapping."""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from .history import TransactionFilter, TransactionLedgerView
from .ledger.base import LedgerError
from .wallet import WalletSession
from ..config import AmountLimits
from ..errors import (
    InsufficientBalance,
    InsufficientGas,
    InvalidRecipient,
    NetworkError,
    Timeout,
    TransactionFailed,
    TransactionInProgress,
    TransactionReverted,
    ValidationFailed,
    VoicePayError,
    WalletNotConnected,
)
from ..events import EventPublisher, TRANSACTION_TOPIC
from ..models.intent import PaymentIntent
from ..models.transaction import FeeEstimate, Transaction, TransactionStatus
from ..validation.address import is_valid_address, is_valid_transaction_hash, is_zero_address
from ..validation.validator import (
    DEFAULT_AMOUNT_LIMITS,
    DEFAULT_SAFETY_BUFFER,
    check_sufficient_balance,
    validate_amount,
)

logger = logging.getLogger(__name__)


def classify_ledger_error(error: Exception) -> VoicePayError:
    """Map a ledger client failure onto the pipeline error taxonomy."""
    if isinstance(error, VoicePayError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return Timeout("Transaction confirmation timed out")

    message = str(error)
    text = message.lower()
    code = getattr(error, "code", None)

    if "insufficient funds" in text:
        return InsufficientGas()
    if code == "INSUFFICIENT_FUNDS" or "exceeds balance" in text or "insufficient balance" in text:
        return InsufficientBalance()
    if "revert" in text:
        return TransactionReverted()
    if code == "NETWORK_ERROR" or "network" in text:
        return NetworkError()
    if code == "TIMEOUT" or "timeout" in text:
        return Timeout()
    return TransactionFailed(f"Transaction failed: {message}")


class TransactionExecutor:
    """Submits one USDC transfer at a time for the connected wallet."""

    def __init__(self,
                 wallet: WalletSession,
                 ledger_view: Optional[TransactionLedgerView] = None,
                 limits: AmountLimits = DEFAULT_AMOUNT_LIMITS,
                 safety_buffer: Decimal = DEFAULT_SAFETY_BUFFER,
                 required_confirmations: int = 1,
                 confirmation_timeout: Optional[float] = None,
                 publisher: Optional[EventPublisher] = None):
        """Initialize the executor.

        Args:
            wallet: Active wallet session; its lock serializes submissions
            ledger_view: History view that receives every executed transaction
            limits: Amount bounds re-checked before submission
            safety_buffer: Extra USDC that must remain available
            required_confirmations: Blocks to wait for
            confirmation_timeout: Seconds before the wait gives up (None waits forever)
            publisher: Optional event bus for transaction updates
        """
        self.wallet = wallet
        self.ledger = wallet.ledger
        self.ledger_view = ledger_view or TransactionLedgerView(wallet.ledger)
        self.limits = limits
        self.safety_buffer = safety_buffer
        self.required_confirmations = required_confirmations
        self.confirmation_timeout = confirmation_timeout
        self.publisher = publisher

    @property
    def in_flight(self) -> bool:
        return self.wallet.lock.locked()

    async def send(self, to: str, amount: Decimal, intent: Optional[PaymentIntent] = None) -> Transaction:
        """Check, submit and confirm a transfer.

        Raises:
            TransactionInProgress: another transfer holds the wallet
            WalletNotConnected, InvalidRecipient, ValidationFailed, InsufficientBalance:
                pre-check failures; nothing was submitted
            InsufficientGas, TransactionReverted, NetworkError, Timeout, TransactionFailed:
                ledger failures; the transaction is recorded as failed
        """
        if self.wallet.lock.locked():
            raise TransactionInProgress()

        async with self.wallet.lock:
            await self._pre_check(to, amount)

            tx = Transaction(
                id=uuid.uuid4().hex,
                hash="",
                from_address=self.wallet.address,
                to_address=to,
                amount=amount,
            )
            if intent is not None:
                tx.metadata["voice_command"] = intent.original_command
                tx.metadata["intent"] = intent.to_dict()
            self.ledger_view.record(tx)

            try:
                await self._submit_and_confirm(tx)
            except (LedgerError, VoicePayError, asyncio.TimeoutError) as e:
                error = classify_ledger_error(e)
                tx.advance(TransactionStatus.FAILED)
                tx.metadata["error"] = error.message
                logger.error(f"❌ Transaction {tx.hash or tx.id} failed: {error.message}")
                self._publish(tx)
                if error is e:
                    raise
                raise error from e
            except asyncio.CancelledError:
                # Stops local tracking only; a submitted transfer may still land
                tx.advance(TransactionStatus.CANCELLED)
                tx.metadata["error"] = "Cancelled before confirmation"
                tx.metadata["submitted"] = bool(tx.hash)
                logger.warning(f"Transaction {tx.hash or tx.id} cancelled while "
                               f"{'awaiting confirmation' if tx.hash else 'submitting'}")
                self._publish(tx)
                raise

        try:
            await self.wallet.refresh()
        except VoicePayError as e:
            logger.warning(f"Balance refresh after transfer failed: {e.message}")
        return tx

    async def _pre_check(self, to: str, amount: Decimal) -> None:
        if not self.wallet.is_connected:
            raise WalletNotConnected()
        if not is_valid_address(to) or is_zero_address(to):
            raise InvalidRecipient()

        valid, error = validate_amount(amount, self.limits)
        if not valid:
            raise ValidationFailed([error])

        balance = await self.wallet.refresh()
        sufficient, error = check_sufficient_balance(balance.usdc, amount, self.safety_buffer)
        if not sufficient:
            raise InsufficientBalance(error)

    async def _submit_and_confirm(self, tx: Transaction) -> None:
        handle = await self.ledger.transfer(tx.to_address, tx.amount)
        if not is_valid_transaction_hash(handle.hash):
            raise TransactionFailed(f"Transaction failed: ledger returned invalid hash {handle.hash!r}")
        tx.hash = handle.hash
        tx.advance(TransactionStatus.CONFIRMING)
        self._publish(tx)
        logger.info(f"Transaction sent: {tx.hash}, waiting for {self.required_confirmations} confirmation(s)")

        wait = self.ledger.wait_for_confirmations(tx.hash, self.required_confirmations)
        if self.confirmation_timeout is not None:
            receipt = await asyncio.wait_for(wait, self.confirmation_timeout)
        else:
            receipt = await wait

        tx.fee = receipt.fee
        tx.block_number = receipt.block_number
        tx.confirmations = receipt.confirmations
        if not receipt.success:
            raise TransactionReverted()

        tx.advance(TransactionStatus.CONFIRMED)
        logger.info(f"✅ Transaction confirmed: {tx.hash} (block {tx.block_number})")
        self._publish(tx)

    async def estimate_fee(self, to: str, amount: Decimal) -> FeeEstimate:
        try:
            return await self.ledger.estimate_fee(to, amount)
        except LedgerError as e:
            raise classify_ledger_error(e) from e

    async def load_history(self, criteria: Optional[TransactionFilter] = None,
                           limit: Optional[int] = None) -> List[Transaction]:
        if not self.wallet.is_connected:
            raise WalletNotConnected()
        return await self.ledger_view.load(self.wallet.address, criteria, limit)

    def _publish(self, tx: Transaction) -> None:
        if self.publisher is not None:
            self.publisher.publish(TRANSACTION_TOPIC, tx)
