"""Wallet session: address, cached balance and periodic refresh."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .ledger.base import LedgerClient, LedgerError
from ..errors import NetworkError, VoicePayError, WalletNotConnected
from ..events import BALANCE_TOPIC, EventPublisher
from ..models.transaction import WalletBalance

logger = logging.getLogger(__name__)


class WalletSession:
    """The single active wallet identity.

    ``lock`` is held by TransactionExecutor for the whole submission. The
    background refresh never writes while it is held, and drops a reading
    that was overtaken by a newer balance.
    """

    def __init__(self, ledger: LedgerClient, publisher: Optional[EventPublisher] = None,
                 refresh_interval: float = 30.0):
        self.ledger = ledger
        self.publisher = publisher
        self.refresh_interval = refresh_interval

        self.address: Optional[str] = None
        self.balance: Optional[WalletBalance] = None
        self.lock = asyncio.Lock()
        self._balance_version = 0
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    async def connect(self) -> WalletBalance:
        """Resolve the wallet address and load its balance."""
        try:
            self.address = await self.ledger.resolve_own_address()
        except LedgerError as e:
            logger.error(f"Failed to connect wallet: {e.message}")
            raise WalletNotConnected(f"Failed to connect wallet: {e.message}") from e
        logger.info(f"Wallet connected: {self.address}")
        return await self.refresh()

    async def refresh(self) -> WalletBalance:
        return self._store(await self._fetch_balance())

    async def _fetch_balance(self) -> WalletBalance:
        if not self.is_connected:
            raise WalletNotConnected()
        try:
            usdc, native = await asyncio.gather(
                self.ledger.get_token_balance(self.address),
                self.ledger.get_native_balance(self.address),
            )
        except LedgerError as e:
            logger.error(f"Failed to get wallet balance: {e.message}")
            raise NetworkError("Failed to fetch wallet balance") from e

        return WalletBalance(usdc=usdc, native=native, last_updated=datetime.now())

    def _store(self, balance: WalletBalance) -> WalletBalance:
        self.balance = balance
        self._balance_version += 1
        logger.debug(f"Balance refreshed: {balance.usdc} USDC, {balance.native} native")
        if self.publisher is not None:
            self.publisher.publish(BALANCE_TOPIC, self.balance)
        return self.balance

    def start_auto_refresh(self) -> None:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(
                self._auto_refresh(), name="voicepay-balance-refresh")

    async def stop_auto_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _auto_refresh(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            if self.lock.locked():
                logger.debug("Transaction in flight, skipping balance refresh")
                continue
            version = self._balance_version
            try:
                balance = await self._fetch_balance()
            except VoicePayError as e:
                logger.warning(f"Background balance refresh failed: {e.message}")
                continue

            # A transfer may have started or finished while the read was suspended
            if self.lock.locked() or version != self._balance_version:
                logger.debug("Discarding background balance read overtaken by a transfer")
                continue
            self._store(balance)

    async def disconnect(self) -> None:
        await self.stop_auto_refresh()
        self.address = None
        self.balance = None
        logger.info("Wallet disconnected")
