"""Deterministic keyword and regex intent extraction."""

import re
from datetime import datetime
from decimal import Decimal

from ..models.intent import Participant, PaymentAction, PaymentIntent
from ..validation.address import ADDRESS_SEARCH_PATTERN

AMOUNT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:usdc|dollars?|usd)?", re.IGNORECASE)
PARTICIPANT_PATTERN = re.compile(r"(?:with|and)\s+(\w+)", re.IGNORECASE)
NAME_PATTERN = re.compile(r"(?:to|for)\s+(\w+)", re.IGNORECASE)


def _intent(text: str, action: PaymentAction, **kwargs) -> PaymentIntent:
    kwargs.setdefault("confirmation_required", True)
    return PaymentIntent(
        action=action.value,
        original_command=text,
        parsed_at=datetime.now(),
        source="fallback",
        **kwargs,
    )


def extract_intent_fallback(text: str) -> PaymentIntent:
    """Extract an intent without a language model.

    The checks run in a fixed order; the first keyword that matches decides the
    action. Only balance and history queries skip confirmation.
    """
    lower_text = text.lower()

    if "balance" in lower_text or "how much" in lower_text:
        return _intent(text, PaymentAction.CHECK_BALANCE, confirmation_required=False)

    if "history" in lower_text or "transaction" in lower_text:
        return _intent(text, PaymentAction.VIEW_HISTORY, confirmation_required=False)

    if "cancel" in lower_text:
        return _intent(text, PaymentAction.CANCEL)

    amount_match = AMOUNT_PATTERN.search(text)
    amount = Decimal(amount_match.group(1)) if amount_match else Decimal("0")

    if "split" in lower_text:
        participants = [Participant(identifier=name) for name in PARTICIPANT_PATTERN.findall(text)]
        return _intent(text, PaymentAction.SPLIT, amount=amount, participants=participants or None)

    address_match = ADDRESS_SEARCH_PATTERN.search(text)
    if address_match:
        recipient = address_match.group(0)
    else:
        name_match = NAME_PATTERN.search(text)
        recipient = name_match.group(1) if name_match else None

    if "send" in lower_text or "transfer" in lower_text or "pay" in lower_text:
        action = PaymentAction.PAY_BILL if "bill" in lower_text else PaymentAction.SEND
        return _intent(text, action, amount=amount, recipient=recipient)

    return _intent(text, PaymentAction.SEND, amount=amount, recipient=recipient)
