"""Parse-with-fallback decoding of language model replies."""

import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models.intent import Participant, PaymentIntent, SUPPORTED_CURRENCY
from ..validation.validator import to_decimal

logger = logging.getLogger(__name__)

# Greedy: from the first "{" to the last "}" in the reply
JSON_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}")


class ParticipantPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    identifier: str
    amount: Optional[Decimal] = None
    address: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Optional[Decimal]:
        return to_decimal(value)


class IntentPayload(BaseModel):
    """The JSON object the model is instructed to return."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: str = "send"
    amount: Decimal = Decimal("0")
    currency: str = SUPPORTED_CURRENCY
    recipient: Optional[str] = None
    participants: Optional[List[ParticipantPayload]] = None
    confirmation_required: bool = Field(default=True, alias="confirmationRequired")

    @field_validator("action", mode="before")
    @classmethod
    def _default_action(cls, value: Any) -> str:
        if not value:
            return "send"
        return str(value).strip()

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal:
        amount = to_decimal(value)
        return amount if amount is not None else Decimal("0")

    @field_validator("recipient", mode="before")
    @classmethod
    def _empty_recipient(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text if text and text.lower() not in ("null", "none") else None

    @field_validator("participants", mode="before")
    @classmethod
    def _coerce_participants(cls, value: Any) -> Optional[List[Any]]:
        if not isinstance(value, list) or not value:
            return None
        return [{"identifier": item} if isinstance(item, str) else item for item in value]

    @field_validator("confirmation_required", mode="before")
    @classmethod
    def _only_false_disables(cls, value: Any) -> bool:
        return value is not False

    def to_intent(self, original_command: str) -> PaymentIntent:
        participants = None
        if self.participants:
            participants = [
                Participant(identifier=p.identifier, amount=p.amount, address=p.address)
                for p in self.participants
            ]
        return PaymentIntent(
            action=self.action,
            amount=self.amount,
            currency=SUPPORTED_CURRENCY,
            recipient=self.recipient,
            participants=participants,
            confirmation_required=self.confirmation_required,
            original_command=original_command,
            parsed_at=datetime.now(),
            source="ai",
        )


def parse_intent_reply(reply: str) -> Optional[IntentPayload]:
    """Strict decode of the whole reply, then of the embedded JSON block.

    Returns:
        The decoded payload, or None when neither attempt succeeds.
    """
    text = (reply or "").strip()
    if not text:
        return None

    try:
        return IntentPayload.model_validate_json(text)
    except ValidationError as e:
        logger.debug(f"Reply is not a bare JSON intent ({e.error_count()} errors), searching for a JSON block")

    match = JSON_BLOCK_PATTERN.search(text)
    if match is None:
        return None
    try:
        return IntentPayload.model_validate_json(match.group(0))
    except ValidationError as e:
        logger.warning(f"Embedded JSON block is not a valid intent: {e.error_count()} errors")
        return None
