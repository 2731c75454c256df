"""Contract for the ledger (chain) collaborator."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from ...models.transaction import FeeEstimate, TransferEvent, TransferHandle, TransferReceipt
from ...validation.address import is_valid_address


class LedgerError(Exception):
    """Raw failure reported by a ledger client.

    ``code`` carries the client's own error code (for example
    ``INSUFFICIENT_FUNDS`` or ``NETWORK_ERROR``); TransactionExecutor maps it
    onto the pipeline error taxonomy.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)


class LedgerClient(ABC):
    """Stablecoin ledger operations for a single wallet identity."""

    @abstractmethod
    async def resolve_own_address(self) -> str:
        """Address of the wallet this client signs for."""

    @abstractmethod
    async def get_token_balance(self, address: str) -> Decimal:
        """USDC balance in whole-token units."""

    @abstractmethod
    async def get_native_balance(self, address: str) -> Decimal:
        """Native (gas) token balance."""

    @abstractmethod
    async def transfer(self, to: str, amount: Decimal) -> TransferHandle:
        """Submit a USDC transfer and return as soon as it has a hash."""

    @abstractmethod
    async def wait_for_confirmations(self, tx_hash: str, confirmations: int = 1) -> TransferReceipt:
        """Wait until ``tx_hash`` is mined and has ``confirmations`` blocks."""

    @abstractmethod
    async def query_transfer_events(self, address: str, from_block: int,
                                    to_block: int) -> List[TransferEvent]:
        """Transfers sent from or received by ``address`` in the block range."""

    @abstractmethod
    async def get_block_number(self) -> int:
        """Current block height."""

    @abstractmethod
    async def estimate_fee(self, to: str, amount: Decimal) -> FeeEstimate:
        """Estimate the gas cost of a transfer."""

    def validate_address_shape(self, address: str) -> bool:
        return is_valid_address(address)
