"""Data models for the VoicePay pipeline."""

from .audio import RecordingState, AudioSession, AudioSample, CaptureOutcome
from .transcription import Transcript
from .intent import (
    SUPPORTED_CURRENCY,
    PaymentAction,
    Participant,
    PaymentIntent,
    ValidationResult,
    TRANSFER_ACTIONS,
    READ_ONLY_ACTIONS,
)
from .transaction import (
    TransactionStatus,
    Transaction,
    WalletBalance,
    TransferHandle,
    TransferReceipt,
    TransferEvent,
    FeeEstimate,
)
from .history import CommandHistoryEntry
from .events import StateChangeEvent, AudioLevelEvent

__all__ = [
    "RecordingState",
    "AudioSession",
    "AudioSample",
    "CaptureOutcome",
    "Transcript",
    # Intent models
    "SUPPORTED_CURRENCY",
    "PaymentAction",
    "Participant",
    "PaymentIntent",
    "ValidationResult",
    "TRANSFER_ACTIONS",
    "READ_ONLY_ACTIONS",
    # Ledger models
    "TransactionStatus",
    "Transaction",
    "WalletBalance",
    "TransferHandle",
    "TransferReceipt",
    "TransferEvent",
    "FeeEstimate",
    "CommandHistoryEntry",
    "StateChangeEvent",
    "AudioLevelEvent",
]
