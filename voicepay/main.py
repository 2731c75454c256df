"""Main application entry point for VoicePay."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio import AudioCaptureController, InMemoryMicrophone, PyAudioMicrophone, synthetic_chunks
from .audio.microphone import MicrophoneSource
from .config import VoicePayConfig
from .errors import VoicePayError
from .events import EventPublisher
from .intent import create_intent_gateway
from .payments import (
    TransactionExecutor,
    TransactionLedgerView,
    WalletSession,
    create_demo_ledger,
)
from .services import CommandHistory, CommandResult, CommandStatus, RetryCoordinator, VoiceCommandPipeline, rate_limiter
from .transcription import create_transcription_gateway
from .ui import ConsoleScreen, read_line
from . import __version__
from .validation import IntentValidator

logger = logging.getLogger(__name__)


class App:
    """Wires the recorder, pipeline and wallet together for one terminal session."""

    def __init__(self, config_path: Optional[str] = None, demo: bool = False,
                 log_level: Optional[str] = None):
        # Load configuration
        self.config = VoicePayConfig(config_path)
        if demo:
            self.config.set('demo_mode', True)
        # Set up logging (override config with command line if specified)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.screen = ConsoleScreen()

    async def init(self) -> None:
        logger.info("Initializing services...")
        self.publisher = EventPublisher()
        self.screen.attach(self.publisher)

        if not self.config.demo_mode:
            logger.warning("No chain client configured; using the in-memory ledger")
        ledger = create_demo_ledger()

        self.wallet = WalletSession(ledger, self.publisher, self.config.balance_refresh_interval)
        await self.wallet.connect()
        self.wallet.start_auto_refresh()
        self.screen.wallet_address = self.wallet.address

        rate_limiter.configure(
            max_requests=int(self.config.get('rate_limit.max_requests')),
            window_seconds=self.config.get('rate_limit.window_ms') / 1000.0,
        )
        limits = self.config.amount_limits()
        executor = TransactionExecutor(
            wallet=self.wallet,
            ledger_view=TransactionLedgerView(
                ledger,
                block_range=int(self.config.get('payments.history_block_range')),
                max_local=int(self.config.get('payments.local_history_limit')),
            ),
            limits=limits,
            safety_buffer=self.config.safety_buffer,
            required_confirmations=self.config.required_confirmations,
            confirmation_timeout=self.config.confirmation_timeout,
            publisher=self.publisher,
        )
        self.transcriber = create_transcription_gateway(self.config)
        self.pipeline = VoiceCommandPipeline(
            transcriber=self.transcriber,
            intent_gateway=create_intent_gateway(self.config),
            executor=executor,
            validator=IntentValidator(limits),
            history=CommandHistory(self.config.history_capacity, self.publisher),
            retry=RetryCoordinator(self.config.retry_policy()),
            rate_limiter=rate_limiter,
        )
        self.controller = AudioCaptureController(
            microphone=self._create_microphone(),
            handler=self.pipeline.process_sample,
            limits=self.config.recording_limits(),
            publisher=self.publisher,
        )

    def _create_microphone(self) -> MicrophoneSource:
        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")

        if self.config.demo_mode:
            return InMemoryMicrophone(
                chunks=synthetic_chunks(2.0, sample_rate, chunk_size),
                sample_rate=sample_rate,
                channels=channels,
                chunk_interval=chunk_size / sample_rate,
            )
        return PyAudioMicrophone(sample_rate=sample_rate, chunk_size=chunk_size, channels=channels)

    async def run_text(self, text: str, auto_confirm: bool) -> None:
        try:
            result = await self.pipeline.process_text(text)
        except VoicePayError as e:
            self.screen.show_error(e)
            return
        await self.handle_result(result, auto_confirm)

    async def run_voice(self, duration: Optional[float], auto_confirm: bool) -> None:
        if not await self.controller.start_recording():
            if self.controller.last_error is not None:
                self.screen.show_error(self.controller.last_error)
            return

        outcome_waiter = asyncio.ensure_future(self.controller.wait_for_outcome())
        if duration:
            stop_signal = asyncio.ensure_future(asyncio.sleep(duration))
        else:
            self.screen.console.print("Press [bold]Enter[/bold] to stop recording")
            stop_signal = asyncio.ensure_future(read_line())

        done, _ = await asyncio.wait({outcome_waiter, stop_signal}, return_when=asyncio.FIRST_COMPLETED)
        if outcome_waiter not in done:
            await self.controller.stop_recording()
        # Release stdin before the confirmation prompt
        stop_signal.cancel()
        await asyncio.gather(stop_signal, return_exceptions=True)
        outcome = await outcome_waiter

        if outcome is None or outcome.cancelled:
            return
        if outcome.error is not None:
            self.screen.show_error(outcome.error)
            return
        await self.handle_result(outcome.result, auto_confirm)

    async def handle_result(self, result: CommandResult, auto_confirm: bool) -> None:
        if result.status != CommandStatus.AWAITING_CONFIRMATION:
            self.screen.show_result(result)
            return

        if auto_confirm:
            self.screen.show_intent(result.intent)
            confirmed = True
        else:
            confirmed = await asyncio.to_thread(self.screen.ask_confirmation, result.intent)

        if not confirmed:
            self.screen.show_result(self.pipeline.decline())
            return
        try:
            final = await self.pipeline.confirm()
        except VoicePayError as e:
            self.screen.show_error(e)
            return
        self.screen.show_result(final)

    async def cleanup(self) -> None:
        await self.controller.shutdown()
        await self.wallet.disconnect()
        await self.transcriber.close()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voicepay.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("VoicePay starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


async def _run(args: argparse.Namespace) -> None:
    app = App(args.config, demo=args.demo, log_level=args.log_level)
    await app.init()
    try:
        app.screen.show_banner(app.config.demo_mode)
        app.screen.show_balance(app.wallet.balance)
        if args.text:
            await app.run_text(args.text, args.yes)
        else:
            await app.run_voice(args.duration, args.yes)
        if args.show_history:
            app.screen.show_history(app.pipeline.history.entries)
    finally:
        await app.cleanup()


def main() -> None:
    """Main entry point for VoicePay."""
    parser = argparse.ArgumentParser(
        description="VoicePay - Speak a command, send USDC",
        epilog='Example: voicepay --demo --text "Send 50 USDC to Alice"'
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Record for this many seconds instead of waiting for Enter"
    )

    parser.add_argument(
        "--text",
        type=str,
        help="Process this command text instead of recording audio"
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use demo transcription, fallback intent parsing and an in-memory wallet"
    )

    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm payments without asking"
    )

    parser.add_argument(
        "--show-history",
        action="store_true",
        help="Print the voice command history before exiting"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VoicePay v{__version__}"
    )

    args = parser.parse_args()

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (VoicePayError, ValueError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
