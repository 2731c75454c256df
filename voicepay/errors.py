"""Error taxonomy for the voice payment pipeline."""

from enum import Enum
from typing import Any, Dict, List, Optional, Type


class ErrorCode(str, Enum):
    """Error codes shared with the external collaborators."""
    # Capture
    MICROPHONE_ACCESS_DENIED = "MICROPHONE_ACCESS_DENIED"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    DEVICE_BUSY = "DEVICE_BUSY"
    RECORDING_TOO_SHORT = "RECORDING_TOO_SHORT"

    # Transcription / intent collaborators
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    NO_SPEECH_DETECTED = "NO_SPEECH_DETECTED"
    API_KEY_ERROR = "API_KEY_ERROR"
    INTENT_EXTRACTION_FAILED = "INTENT_EXTRACTION_FAILED"
    API_CONFIGURATION_ERROR = "API_CONFIGURATION_ERROR"

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"

    # Ledger
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_GAS = "INSUFFICIENT_GAS"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    TRANSACTION_IN_PROGRESS = "TRANSACTION_IN_PROGRESS"
    WALLET_NOT_CONNECTED = "WALLET_NOT_CONNECTED"

    # Transport
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"

    # General
    UNSUPPORTED = "UNSUPPORTED"
    USER_CANCELLED = "USER_CANCELLED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class VoicePayError(Exception):
    """Base class for every error surfaced by the pipeline."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, *,
                 code: Optional[ErrorCode] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the user."""
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.user_message,
            "errorCode": self.code.value,
        }


class PermissionDenied(VoicePayError):
    code = ErrorCode.MICROPHONE_ACCESS_DENIED
    default_message = "Microphone access denied. Please allow microphone access."


class DeviceNotFound(VoicePayError):
    code = ErrorCode.DEVICE_NOT_FOUND
    default_message = "No microphone found. Please connect a microphone."


class DeviceBusy(VoicePayError):
    code = ErrorCode.DEVICE_BUSY
    default_message = "Microphone is already in use by another application."


class RecordingTooShort(VoicePayError):
    code = ErrorCode.RECORDING_TOO_SHORT
    default_message = "Recording is too short. Please speak longer."


class TranscriptionFailed(VoicePayError):
    code = ErrorCode.TRANSCRIPTION_FAILED
    default_message = "Transcription failed"


class NoSpeechDetected(VoicePayError):
    code = ErrorCode.NO_SPEECH_DETECTED
    default_message = "No speech detected in audio"


class IntentExtractionFailed(VoicePayError):
    code = ErrorCode.INTENT_EXTRACTION_FAILED
    default_message = "Failed to extract payment intent"


class ValidationFailed(VoicePayError):
    """Raised when a command is rejected by validation; carries every error."""

    code = ErrorCode.VALIDATION_FAILED
    default_message = "Invalid command"

    def __init__(self, errors: List[str], message: Optional[str] = None, **kwargs):
        self.errors = list(errors)
        super().__init__(message or (", ".join(self.errors) or self.default_message), **kwargs)


class InvalidRecipient(VoicePayError):
    code = ErrorCode.INVALID_RECIPIENT
    default_message = "Invalid recipient address"


class InsufficientBalance(VoicePayError):
    code = ErrorCode.INSUFFICIENT_BALANCE
    default_message = "Insufficient USDC balance"


class InsufficientGas(VoicePayError):
    code = ErrorCode.INSUFFICIENT_GAS
    default_message = "Insufficient funds for gas"


class TransactionReverted(VoicePayError):
    code = ErrorCode.TRANSACTION_REVERTED
    default_message = "Transaction reverted"


class TransactionFailed(VoicePayError):
    code = ErrorCode.TRANSACTION_FAILED
    default_message = "Transaction failed"


class TransactionInProgress(TransactionFailed):
    code = ErrorCode.TRANSACTION_IN_PROGRESS
    default_message = "Another transaction is still pending for this wallet"


class WalletNotConnected(VoicePayError):
    code = ErrorCode.WALLET_NOT_CONNECTED
    default_message = "Wallet not connected"


class NetworkError(VoicePayError):
    code = ErrorCode.NETWORK_ERROR
    default_message = "Network error. Please check your connection."


class RateLimited(VoicePayError):
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    default_message = "Too many requests. Please try again later."


class Timeout(VoicePayError):
    code = ErrorCode.REQUEST_TIMEOUT
    default_message = "Request timeout. Please try again."


class Unsupported(VoicePayError):
    code = ErrorCode.UNSUPPORTED
    default_message = "Action not supported"


class UnknownError(VoicePayError):
    code = ErrorCode.UNKNOWN_ERROR


_ERRORS_BY_CODE: Dict[ErrorCode, Type[VoicePayError]] = {
    ErrorCode.MICROPHONE_ACCESS_DENIED: PermissionDenied,
    ErrorCode.DEVICE_NOT_FOUND: DeviceNotFound,
    ErrorCode.DEVICE_BUSY: DeviceBusy,
    ErrorCode.RECORDING_TOO_SHORT: RecordingTooShort,
    ErrorCode.TRANSCRIPTION_FAILED: TranscriptionFailed,
    ErrorCode.NO_SPEECH_DETECTED: NoSpeechDetected,
    ErrorCode.API_KEY_ERROR: TranscriptionFailed,
    ErrorCode.INTENT_EXTRACTION_FAILED: IntentExtractionFailed,
    ErrorCode.API_CONFIGURATION_ERROR: IntentExtractionFailed,
    ErrorCode.VALIDATION_FAILED: ValidationFailed,
    ErrorCode.INVALID_RECIPIENT: InvalidRecipient,
    ErrorCode.INSUFFICIENT_BALANCE: InsufficientBalance,
    ErrorCode.INSUFFICIENT_GAS: InsufficientGas,
    ErrorCode.TRANSACTION_REVERTED: TransactionReverted,
    ErrorCode.TRANSACTION_FAILED: TransactionFailed,
    ErrorCode.TRANSACTION_IN_PROGRESS: TransactionInProgress,
    ErrorCode.WALLET_NOT_CONNECTED: WalletNotConnected,
    ErrorCode.NETWORK_ERROR: NetworkError,
    ErrorCode.RATE_LIMIT_EXCEEDED: RateLimited,
    ErrorCode.REQUEST_TIMEOUT: Timeout,
    ErrorCode.UNSUPPORTED: Unsupported,
}


def error_from_code(error_code: Optional[str], message: Optional[str] = None) -> VoicePayError:
    """Build the matching error for a collaborator's ``errorCode`` string.

    Unknown codes become ``UnknownError``; the original code is kept in
    ``details`` so it can still be logged.
    """
    try:
        code = ErrorCode(error_code)
    except ValueError:
        return UnknownError(message, details={"error_code": error_code})

    error_cls = _ERRORS_BY_CODE.get(code, UnknownError)
    if error_cls is ValidationFailed:
        return ValidationFailed([message] if message else [])
    return error_cls(message, code=code)
