"""Service layer for VoicePay."""

from .history import CommandHistory
from .rate_limit import RateLimiter, RateLimitResult, rate_limiter
from .retry import RetryCoordinator, TRANSIENT_ERRORS, is_transient
from .voice_pipeline import CommandResult, CommandStatus, VoiceCommandPipeline

__all__ = [
    "CommandHistory",
    "CommandResult",
    "CommandStatus",
    "RateLimitResult",
    "RateLimiter",
    "RetryCoordinator",
    "TRANSIENT_ERRORS",
    "VoiceCommandPipeline",
    "is_transient",
    "rate_limiter",
]
