"""Rich terminal output for voice commands, balances and history."""

import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from ..errors import VoicePayError
from ..events import EventPublisher, LEVEL_TOPIC, STATE_TOPIC
from ..models.audio import RecordingState
from ..models.events import AudioLevelEvent, StateChangeEvent
from ..models.history import CommandHistoryEntry
from ..models.intent import PaymentIntent
from ..models.transaction import Transaction, TransactionStatus, WalletBalance
from ..payments.history import summarize
from ..services.voice_pipeline import CommandResult, CommandStatus
from ..validation.address import format_address

logger = logging.getLogger(__name__)

STATE_STYLES = {
    RecordingState.IDLE: ("⏸️  Ready", "dim"),
    RecordingState.REQUESTING: ("🎙️  Requesting microphone...", "yellow"),
    RecordingState.LISTENING: ("🔴 Listening...", "red"),
    RecordingState.PROCESSING: ("⚙️  Processing command...", "blue"),
    RecordingState.COMPLETE: ("✅ Done", "green"),
    RecordingState.ERROR: ("❌ Error", "bold red"),
}

STATUS_STYLES = {
    TransactionStatus.PENDING: "yellow",
    TransactionStatus.CONFIRMING: "blue",
    TransactionStatus.CONFIRMED: "green",
    TransactionStatus.FAILED: "red",
    TransactionStatus.CANCELLED: "dim",
}


class ConsoleScreen:
    """Prints pipeline events and results; asks for confirmation."""

    def __init__(self, console: Optional[Console] = None, show_levels: bool = False):
        self.console = console or Console()
        self.show_levels = show_levels
        self.wallet_address: Optional[str] = None

    def attach(self, publisher: EventPublisher) -> None:
        publisher.subscribe(STATE_TOPIC, self.on_state_change)
        if self.show_levels:
            publisher.subscribe(LEVEL_TOPIC, self.on_audio_level)

    def on_state_change(self, event: StateChangeEvent) -> None:
        label, style = STATE_STYLES[event.current]
        self.console.print(label, style=style)
        if event.current == RecordingState.ERROR and event.error:
            self.console.print(f"   {event.error}", style="red")

    def on_audio_level(self, event: AudioLevelEvent) -> None:
        bars = int(event.level * 20)
        self.console.print(f"   [{'█' * bars}{' ' * (20 - bars)}] {event.elapsed_seconds:4.1f}s", style="cyan")

    def show_banner(self, demo: bool) -> None:
        title = "VoicePay" + (" (demo mode)" if demo else "")
        self.console.print(Panel.fit("Speak a payment command, e.g. \"Send 50 USDC to Alice\"",
                                     title=title, border_style="blue"))

    def show_balance(self, balance: WalletBalance) -> None:
        self.console.print(f"💰 Balance: [bold]{balance.usdc:.2f} USDC[/bold] "
                           f"(gas: {balance.native} native, updated {balance.last_updated:%H:%M:%S})")

    def show_intent(self, intent: PaymentIntent) -> None:
        table = Table(title="Payment command", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Action", intent.action)
        if intent.amount:
            table.add_row("Amount", f"{intent.amount} {intent.currency}")
        if intent.recipient:
            table.add_row("Recipient", intent.recipient)
        if intent.participants:
            table.add_row("Participants", ", ".join(p.identifier for p in intent.participants))
        table.add_row("Heard", f"\"{intent.original_command}\"")
        self.console.print(table)

    def ask_confirmation(self, intent: PaymentIntent) -> bool:
        self.show_intent(intent)
        return Confirm.ask("Confirm this payment?", console=self.console, default=False)

    def show_result(self, result: CommandResult) -> None:
        if result.status == CommandStatus.BALANCE and result.balance is not None:
            self.show_balance(result.balance)
        elif result.status == CommandStatus.HISTORY:
            self.show_transactions(result.transactions)
        elif result.status == CommandStatus.EXECUTED and result.transaction is not None:
            tx = result.transaction
            self.console.print(f"✅ Sent {tx.amount} USDC to {format_address(tx.to_address)} "
                               f"(tx {format_address(tx.hash, 6)}, block {tx.block_number})", style="green")
        elif result.status == CommandStatus.CANCELLED:
            self.console.print("🚫 Pending command cancelled", style="yellow")
        elif result.status == CommandStatus.DECLINED:
            self.console.print("Payment not sent", style="yellow")

    def show_transactions(self, transactions: Iterable[Transaction]) -> None:
        table = Table(title="Recent transactions")
        table.add_column("When")
        table.add_column("Direction")
        table.add_column("Counterparty")
        table.add_column("Amount", justify="right")
        table.add_column("Status")
        transactions = list(transactions)
        own = (self.wallet_address or "").lower()
        for tx in transactions:
            sent = tx.from_address.lower() == own
            table.add_row(
                f"{tx.timestamp:%Y-%m-%d %H:%M}",
                "→ sent" if sent else "← received",
                format_address(tx.to_address if sent else tx.from_address),
                f"{tx.amount:.2f}",
                f"[{STATUS_STYLES[tx.status]}]{tx.status.value}[/]",
            )
        self.console.print(table)
        if own and transactions:
            totals = summarize(transactions, own)
            self.console.print(f"Sent {totals['total_sent']:.2f} · received {totals['total_received']:.2f} · "
                               f"net {totals['net']:+.2f} USDC", style="dim")

    def show_history(self, entries: Iterable[CommandHistoryEntry]) -> None:
        table = Table(title="Voice commands")
        table.add_column("Time")
        table.add_column("Command")
        table.add_column("Result")
        for entry in entries:
            outcome = "[green]ok[/]" if entry.success else f"[red]{entry.error or 'failed'}[/]"
            table.add_row(f"{entry.timestamp:%H:%M:%S}", entry.transcript or "-", outcome)
        self.console.print(table)

    def show_error(self, error: VoicePayError) -> None:
        errors = getattr(error, "errors", None)
        if not errors:
            self.console.print(f"❌ {error.user_message}", style="bold red")
            return
        self.console.print("❌ Command rejected:", style="bold red")
        for detail in errors:
            self.console.print(f"   • {detail}", style="red")
