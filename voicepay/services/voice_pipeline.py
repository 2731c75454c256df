"""Voice command pipeline: transcript -> intent -> validation -> confirmation -> execution."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from .history import CommandHistory
from .rate_limit import RateLimiter, rate_limiter as default_rate_limiter
from .retry import RetryCoordinator
from ..config import RetryPolicy
from ..errors import ErrorCode, Unsupported, UnknownError, ValidationFailed, VoicePayError
from ..intent.gateway import IntentExtractionGateway
from ..models.audio import AudioSample
from ..models.intent import PaymentAction, PaymentIntent
from ..models.transaction import Transaction, WalletBalance
from ..models.transcription import Transcript
from ..payments.confirmation import ConfirmationDecision, ConfirmationGate
from ..payments.executor import TransactionExecutor
from ..transcription.base import TranscriptionGateway
from ..validation.validator import IntentValidator

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 10


class CommandStatus(str, Enum):
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTED = "executed"
    BALANCE = "balance"
    HISTORY = "history"
    CANCELLED = "cancelled"
    DECLINED = "declined"


@dataclass
class CommandResult:
    """What happened to one voice command."""
    status: CommandStatus
    transcript: str
    intent: PaymentIntent
    decision: Optional[ConfirmationDecision] = None
    transaction: Optional[Transaction] = None
    balance: Optional[WalletBalance] = None
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class _PendingCommand:
    transcript: str
    intent: PaymentIntent
    # A pending cancel keeps the command it would drop, restored on decline
    previous: Optional["_PendingCommand"] = None


class VoiceCommandPipeline:
    """Glue between the recorder and the payment components.

    ``process_sample`` is the AudioCaptureController's sample handler. Every
    outcome, successful or not, lands in CommandHistory; errors are re-raised
    after recording so the controller can show them.
    """

    def __init__(self,
                 transcriber: TranscriptionGateway,
                 intent_gateway: IntentExtractionGateway,
                 executor: TransactionExecutor,
                 validator: Optional[IntentValidator] = None,
                 gate: Optional[ConfirmationGate] = None,
                 history: Optional[CommandHistory] = None,
                 retry: Optional[RetryCoordinator] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        self.transcriber = transcriber
        self.intent_gateway = intent_gateway
        self.executor = executor
        self.validator = validator or IntentValidator()
        self.gate = gate or ConfirmationGate()
        self.history = history or CommandHistory()
        self.retry = retry or RetryCoordinator(RetryPolicy(enabled=False, max_retries=0, base_delay_seconds=0.0))
        self.rate_limiter = rate_limiter or default_rate_limiter

        self.pending: Optional[_PendingCommand] = None
        self._last_input: Optional[Union[AudioSample, str]] = None
        self._current_transcript = ""
        self._current_intent: Optional[PaymentIntent] = None

    @property
    def pending_intent(self) -> Optional[PaymentIntent]:
        return self.pending.intent if self.pending else None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_sample(self, sample: AudioSample) -> CommandResult:
        self._last_input = sample
        return await self._process(lambda: self._interpret_sample(sample))

    async def process_text(self, text: str) -> CommandResult:
        self._last_input = text
        return await self._process(lambda: self._interpret_text(text))

    async def retry_last(self) -> Optional[CommandResult]:
        """Run the most recent sample or text through the pipeline again."""
        last = self._last_input
        if last is None:
            logger.warning("Nothing to retry")
            return None
        if isinstance(last, AudioSample):
            return await self.process_sample(last)
        return await self.process_text(last)

    async def confirm(self) -> Optional[CommandResult]:
        """Execute the command awaiting confirmation."""
        pending, self.pending = self.pending, None
        if pending is None:
            logger.warning("No command awaiting confirmation")
            return None
        logger.info(f"User confirmed '{pending.intent.action}' command")
        return await self._execute(pending.transcript, pending.intent)

    def decline(self) -> Optional[CommandResult]:
        """Drop the command awaiting confirmation without executing it."""
        pending, self.pending = self.pending, None
        if pending is None:
            return None
        logger.info(f"User declined '{pending.intent.action}' command")
        self.history.record(pending.transcript, pending.intent, success=False, error="Cancelled by user")
        self.pending = pending.previous
        return CommandResult(status=CommandStatus.DECLINED, transcript=pending.transcript, intent=pending.intent)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _process(self, interpret: Callable[[], Awaitable[Tuple[str, PaymentIntent]]]) -> CommandResult:
        self._current_transcript = ""
        self._current_intent = None
        try:
            self.rate_limiter.acquire(self._rate_limit_key())
            transcript, intent = await self.retry.run(interpret)
        except VoicePayError as e:
            self._record_failure(self._current_transcript, self._current_intent, e)
            raise
        except Exception as e:
            raise self._record_failure(self._current_transcript, self._current_intent, _unexpected(e)) from e

        return await self._dispatch(transcript, intent)

    async def _interpret_sample(self, sample: AudioSample) -> Tuple[str, PaymentIntent]:
        transcript: Transcript = await self.transcriber.transcribe(sample)
        logger.info(f"Transcript: '{transcript.text}' (confidence: {transcript.confidence:.2f})")
        return await self._interpret_text(transcript.text)

    async def _interpret_text(self, text: str) -> Tuple[str, PaymentIntent]:
        self._current_transcript = text
        intent = await self.intent_gateway.extract(text)
        self._current_intent = intent

        self.validator.apply(intent)
        if not intent.is_valid:
            raise ValidationFailed(intent.validation_errors, details={"intent": intent.to_dict()})
        return text, intent

    async def _dispatch(self, transcript: str, intent: PaymentIntent) -> CommandResult:
        decision = self.gate.decide(intent)
        logger.debug(f"Confirmation decision for '{intent.action}': {decision.value}")

        if decision == ConfirmationDecision.UNSUPPORTED:
            raise self._record_failure(transcript, intent,
                                       Unsupported(f"Action '{intent.action}' is not supported"))

        if decision == ConfirmationDecision.REQUIRE_CONFIRMATION:
            previous = None
            if self.pending is not None:
                if intent.action == PaymentAction.CANCEL.value:
                    previous = self.pending
                else:
                    logger.info(f"Replacing pending '{self.pending.intent.action}' command")
            self.pending = _PendingCommand(transcript=transcript, intent=intent, previous=previous)
            return CommandResult(status=CommandStatus.AWAITING_CONFIRMATION, transcript=transcript,
                                 intent=intent, decision=decision)

        result = await self._execute(transcript, intent)
        result.decision = decision
        return result

    async def _execute(self, transcript: str, intent: PaymentIntent) -> CommandResult:
        try:
            result = await self._run_action(transcript, intent)
        except VoicePayError as e:
            self._record_failure(transcript, intent, e)
            raise
        except Exception as e:
            raise self._record_failure(transcript, intent, _unexpected(e)) from e

        self.history.record(transcript, intent, success=True)
        return result

    async def _run_action(self, transcript: str, intent: PaymentIntent) -> CommandResult:
        action = intent.payment_action

        if action == PaymentAction.CHECK_BALANCE:
            balance = await self.executor.wallet.refresh()
            return CommandResult(status=CommandStatus.BALANCE, transcript=transcript, intent=intent,
                                 balance=balance)

        if action == PaymentAction.VIEW_HISTORY:
            transactions = await self.executor.load_history(limit=HISTORY_PAGE_SIZE)
            return CommandResult(status=CommandStatus.HISTORY, transcript=transcript, intent=intent,
                                 transactions=transactions)

        if action == PaymentAction.CANCEL:
            if self.pending is not None:
                logger.info(f"Dropping pending '{self.pending.intent.action}' command")
            self.pending = None
            return CommandResult(status=CommandStatus.CANCELLED, transcript=transcript, intent=intent)

        if action == PaymentAction.SEND:
            tx = await self.executor.send(intent.recipient, intent.amount, intent)
            return CommandResult(status=CommandStatus.EXECUTED, transcript=transcript, intent=intent,
                                 transaction=tx)

        if action == PaymentAction.SPLIT:
            raise Unsupported("Split payments not yet implemented")
        if action == PaymentAction.PAY_BILL:
            raise Unsupported("Bill payments not yet implemented")
        raise Unsupported(f"Action '{intent.action}' is not supported")

    def _record_failure(self, transcript: str, intent: Optional[PaymentIntent],
                        error: VoicePayError) -> VoicePayError:
        if error.code == ErrorCode.VALIDATION_FAILED:
            logger.info(f"Command rejected: {error.message}")
        else:
            logger.error(f"Voice command failed [{error.code.value}]: {error.message}")
        self.history.record(transcript, intent, success=False, error=error.user_message)
        return error

    def _rate_limit_key(self) -> str:
        return self.executor.wallet.address or "anonymous"


def _unexpected(error: Exception) -> VoicePayError:
    logger.exception("Unexpected error while processing voice command")
    return UnknownError(str(error) or "Failed to process voice command")
