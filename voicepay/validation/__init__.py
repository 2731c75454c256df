"""Validation of intents, addresses, amounts and command text."""

from .address import (
    ZERO_ADDRESS,
    format_address,
    is_valid_address,
    is_valid_transaction_hash,
    is_zero_address,
)
from .sanitize import sanitize_input
from .validator import (
    DEFAULT_AMOUNT_LIMITS,
    DEFAULT_SAFETY_BUFFER,
    IntentValidator,
    check_sufficient_balance,
    to_decimal,
    validate_amount,
)

__all__ = [
    "DEFAULT_AMOUNT_LIMITS",
    "DEFAULT_SAFETY_BUFFER",
    "IntentValidator",
    "ZERO_ADDRESS",
    "check_sufficient_balance",
    "format_address",
    "is_valid_address",
    "is_valid_transaction_hash",
    "is_zero_address",
    "sanitize_input",
    "to_decimal",
    "validate_amount",
]
