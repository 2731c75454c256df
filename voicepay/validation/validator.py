"""Intent validation rules and balance checks."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

from .address import is_valid_address, is_zero_address
from ..config import AmountLimits
from ..models.intent import (
    PaymentAction,
    PaymentIntent,
    SUPPORTED_CURRENCY,
    TRANSFER_ACTIONS,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT_LIMITS = AmountLimits(
    min_amount=Decimal("0.01"),
    max_amount=Decimal("10000"),
    max_decimals=6,
)

DEFAULT_SAFETY_BUFFER = Decimal("0.01")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse an amount, tolerating ``$`` and thousands separators."""
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip().replace("$", "").replace(",", ""))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def decimal_places(amount: Decimal) -> int:
    exponent = amount.as_tuple().exponent
    return -exponent if exponent < 0 else 0


def validate_amount(amount: Any, limits: AmountLimits = DEFAULT_AMOUNT_LIMITS) -> Tuple[bool, Optional[str]]:
    """Validate a USDC amount against the configured bounds.

    Returns:
        (valid, error message)
    """
    value = to_decimal(amount)
    if value is None:
        return False, "Invalid amount format"
    if value <= 0:
        return False, "Amount must be greater than zero"
    if value < limits.min_amount:
        return False, f"Amount must be at least {limits.min_amount} USDC"
    if value > limits.max_amount:
        return False, f"Amount cannot exceed {limits.max_amount} USDC"
    if decimal_places(value) > limits.max_decimals:
        return False, f"Amount cannot have more than {limits.max_decimals} decimal places"
    return True, None


def check_sufficient_balance(balance: Decimal, amount: Decimal,
                             buffer: Decimal = DEFAULT_SAFETY_BUFFER) -> Tuple[bool, Optional[str]]:
    """``balance >= amount + buffer``, computed exactly."""
    required = amount + buffer
    if balance < required:
        return False, (f"Insufficient balance. Required: {required:.2f} USDC, "
                       f"Available: {balance:.2f} USDC")
    return True, None


class IntentValidator:
    """Applies every rule independently and reports all failures."""

    def __init__(self, limits: AmountLimits = DEFAULT_AMOUNT_LIMITS):
        self.limits = limits

    def validate(self, intent: PaymentIntent) -> ValidationResult:
        errors: List[str] = []

        if intent.action not in PaymentAction.values():
            errors.append("Invalid payment action")

        if intent.action in TRANSFER_ACTIONS:
            amount = to_decimal(intent.amount)
            if amount is None or amount <= 0:
                errors.append("Amount is required and must be greater than zero")
            else:
                valid, error = validate_amount(amount, self.limits)
                if not valid:
                    errors.append(error)

        if intent.action == PaymentAction.SEND.value:
            recipient = intent.recipient
            if not recipient:
                errors.append("Recipient address is required for send action")
            elif is_zero_address(recipient):
                errors.append("Cannot send to zero address")
            elif not is_valid_address(recipient):
                errors.append("Invalid address format")

        if intent.action == PaymentAction.SPLIT.value:
            participants = intent.participants or []
            if not participants:
                errors.append("Participants are required for split action")
            elif len(participants) < 2:
                errors.append("Split action requires at least 2 participants")
            for participant in participants:
                if participant.address and not is_valid_address(participant.address):
                    errors.append(f"Invalid address for participant: {participant.identifier}")

        if intent.currency != SUPPORTED_CURRENCY:
            errors.append("Only USDC is supported")

        return ValidationResult(valid=not errors, errors=errors)

    def apply(self, intent: PaymentIntent) -> PaymentIntent:
        """Store the validation result on ``intent``; never raises."""
        result = self.validate(intent)
        intent.is_valid = result.valid
        intent.validation_errors = list(result.errors)
        if not result.valid:
            logger.info(f"Intent '{intent.action}' failed validation: {result.errors}")
        return intent
