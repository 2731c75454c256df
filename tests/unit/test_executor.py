"""Unit tests for TransactionExecutor and ledger error classification."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from voicepay.errors import (
    InsufficientBalance,
    InsufficientGas,
    InvalidRecipient,
    NetworkError,
    Timeout,
    TransactionFailed,
    TransactionInProgress,
    TransactionReverted,
    ValidationFailed,
    WalletNotConnected,
)
from voicepay.events import TRANSACTION_TOPIC
from voicepay.models import PaymentIntent, TransactionStatus, TransferHandle
from voicepay.payments import (
    DEMO_CONTACTS,
    InMemoryLedger,
    LedgerError,
    TransactionExecutor,
    WalletSession,
    classify_ledger_error,
)

ALICE = DEMO_CONTACTS["alice"]


async def connected_executor(ledger: InMemoryLedger, **kwargs) -> TransactionExecutor:
    wallet = WalletSession(ledger)
    await wallet.connect()
    return TransactionExecutor(wallet, **kwargs)


@pytest.mark.unit
class TestTransactionExecutor:
    """Pre-checks, submission and failure mapping."""

    @pytest.mark.asyncio
    async def test_successful_send(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)

        tx = await executor.send(ALICE, Decimal("25"))

        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.hash.startswith("0x")
        assert tx.confirmations == 1
        assert tx.block_number is not None
        assert hundred_ledger.transfer_calls == [(ALICE, Decimal("25"))]
        # Balance refreshed after confirmation
        assert executor.wallet.balance.usdc == Decimal("75.00")
        assert executor.ledger_view.local_transactions == [tx]
        assert not executor.in_flight

    @pytest.mark.asyncio
    async def test_balance_boundary_insufficient(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)

        with pytest.raises(InsufficientBalance):
            await executor.send(ALICE, Decimal("99.995"))

        assert hundred_ledger.transfer_calls == []
        assert executor.ledger_view.local_transactions == []

    @pytest.mark.asyncio
    async def test_balance_boundary_sufficient(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)

        tx = await executor.send(ALICE, Decimal("99.98"))

        assert tx.status == TransactionStatus.CONFIRMED
        assert executor.wallet.balance.usdc == Decimal("0.02")

    @pytest.mark.asyncio
    async def test_second_send_while_in_flight_rejected(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)

        async with executor.wallet.lock:
            assert executor.in_flight
            with pytest.raises(TransactionInProgress):
                await executor.send(ALICE, Decimal("1"))

        assert hundred_ledger.transfer_calls == []

    @pytest.mark.asyncio
    async def test_concurrent_sends_serialized(self):
        ledger = InMemoryLedger(usdc_balance=Decimal("100"), latency=0.01)
        executor = await connected_executor(ledger)

        results = await asyncio.gather(
            executor.send(ALICE, Decimal("1")),
            executor.send(ALICE, Decimal("2")),
            return_exceptions=True,
        )

        assert results[0].status == TransactionStatus.CONFIRMED
        assert isinstance(results[1], TransactionInProgress)
        assert ledger.transfer_calls == [(ALICE, Decimal("1"))]

    @pytest.mark.asyncio
    async def test_wallet_not_connected(self, hundred_ledger):
        executor = TransactionExecutor(WalletSession(hundred_ledger))
        with pytest.raises(WalletNotConnected):
            await executor.send(ALICE, Decimal("1"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipient", ["Alice", "0x" + "0" * 40, "0x123"])
    async def test_invalid_recipient(self, hundred_ledger, recipient):
        executor = await connected_executor(hundred_ledger)
        with pytest.raises(InvalidRecipient):
            await executor.send(recipient, Decimal("1"))

    @pytest.mark.asyncio
    async def test_amount_out_of_bounds(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        with pytest.raises(ValidationFailed) as exc_info:
            await executor.send(ALICE, Decimal("0.001"))
        assert exc_info.value.errors == ["Amount must be at least 0.01 USDC"]

    @pytest.mark.asyncio
    async def test_reverted_transfer_recorded_as_failed(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        hundred_ledger.revert_next_transfer()

        with pytest.raises(TransactionReverted):
            await executor.send(ALICE, Decimal("10"))

        tx = executor.ledger_view.local_transactions[0]
        assert tx.status == TransactionStatus.FAILED
        assert tx.metadata["error"] == "Transaction reverted"
        assert hundred_ledger.token_balances[hundred_ledger.address.lower()] == Decimal("100.00")
        assert not executor.in_flight

    @pytest.mark.asyncio
    async def test_insufficient_gas(self):
        ledger = InMemoryLedger(usdc_balance=Decimal("100"), native_balance=Decimal("0"))
        executor = await connected_executor(ledger)

        with pytest.raises(InsufficientGas):
            await executor.send(ALICE, Decimal("10"))

        tx = executor.ledger_view.local_transactions[0]
        assert tx.status == TransactionStatus.FAILED
        assert tx.hash == ""

    @pytest.mark.asyncio
    async def test_malformed_hash_never_awaited(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        bad_handle = TransferHandle(hash="0x123", from_address=hundred_ledger.address,
                                    to_address=ALICE, amount=Decimal("10"))
        wait = AsyncMock()

        with patch.object(hundred_ledger, "transfer", AsyncMock(return_value=bad_handle)), \
                patch.object(hundred_ledger, "wait_for_confirmations", wait):
            with pytest.raises(TransactionFailed):
                await executor.send(ALICE, Decimal("10"))

        wait.assert_not_awaited()
        tx = executor.ledger_view.local_transactions[0]
        assert tx.status == TransactionStatus.FAILED
        assert tx.hash == ""

    @pytest.mark.asyncio
    async def test_network_failure_on_submit(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        hundred_ledger.fail_next_transfer(LedgerError("could not detect network", code="NETWORK_ERROR"))

        with pytest.raises(NetworkError) as exc_info:
            await executor.send(ALICE, Decimal("10"))
        assert isinstance(exc_info.value.__cause__, LedgerError)

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger, confirmation_timeout=0.01)

        async def never_confirms(tx_hash, confirmations=1):
            await asyncio.sleep(10)

        with patch.object(hundred_ledger, "wait_for_confirmations", never_confirms):
            with pytest.raises(Timeout):
                await executor.send(ALICE, Decimal("10"))

        tx = executor.ledger_view.local_transactions[0]
        assert tx.status == TransactionStatus.FAILED
        assert tx.hash.startswith("0x")

    @pytest.mark.asyncio
    async def test_cancel_during_confirmation_wait(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        waiting = asyncio.Event()

        async def slow_confirmations(tx_hash, confirmations=1):
            waiting.set()
            await asyncio.sleep(10)

        with patch.object(hundred_ledger, "wait_for_confirmations", slow_confirmations):
            task = asyncio.ensure_future(executor.send(ALICE, Decimal("10")))
            await asyncio.wait_for(waiting.wait(), timeout=1.0)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        assert task.cancelled()
        tx = executor.ledger_view.local_transactions[0]
        assert tx.status == TransactionStatus.CANCELLED
        assert tx.is_terminal
        assert tx.metadata["submitted"] is True
        assert not executor.in_flight

    @pytest.mark.asyncio
    async def test_voice_command_metadata(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        intent = PaymentIntent(action="send", amount=Decimal("5"), recipient=ALICE,
                               original_command="send five to alice")

        tx = await executor.send(ALICE, Decimal("5"), intent)

        assert tx.metadata["voice_command"] == "send five to alice"
        assert tx.metadata["intent"]["action"] == "send"

    @pytest.mark.asyncio
    async def test_status_updates_published(self, hundred_ledger, publisher):
        statuses = []

        def on_transaction(event):
            statuses.append(event.status)

        publisher.subscribe(TRANSACTION_TOPIC, on_transaction)
        executor = await connected_executor(hundred_ledger, publisher=publisher)

        await executor.send(ALICE, Decimal("5"))

        assert statuses == [TransactionStatus.CONFIRMING, TransactionStatus.CONFIRMED]

    @pytest.mark.asyncio
    async def test_estimate_fee(self, hundred_ledger):
        executor = await connected_executor(hundred_ledger)
        estimate = await executor.estimate_fee(ALICE, Decimal("5"))
        assert estimate.gas_limit == 65000
        assert estimate.estimated_fee > 0


@pytest.mark.unit
class TestClassifyLedgerError:

    @pytest.mark.parametrize("error, expected", [
        (LedgerError("insufficient funds for gas * price + value", code="INSUFFICIENT_FUNDS"), InsufficientGas),
        (LedgerError("bad", code="INSUFFICIENT_FUNDS"), InsufficientBalance),
        (LedgerError("ERC20: transfer amount exceeds balance", code="CALL_EXCEPTION"), InsufficientBalance),
        (LedgerError("execution reverted"), TransactionReverted),
        (LedgerError("socket hang up", code="NETWORK_ERROR"), NetworkError),
        (LedgerError("request timeout"), Timeout),
        (asyncio.TimeoutError(), Timeout),
        (LedgerError("nonce too low"), TransactionFailed),
    ])
    def test_classification(self, error, expected):
        assert type(classify_ledger_error(error)) is expected

    def test_generic_failure_keeps_message(self):
        error = classify_ledger_error(LedgerError("nonce too low"))
        assert error.message == "Transaction failed: nonce too low"

    def test_pipeline_error_passes_through(self):
        error = TransactionReverted()
        assert classify_ledger_error(error) is error
