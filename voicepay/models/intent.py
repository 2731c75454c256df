"""Payment intent data models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

SUPPORTED_CURRENCY = "USDC"


class PaymentAction(str, Enum):
    """Actions a voice command can resolve to."""
    SEND = "send"
    REQUEST = "request"
    SPLIT = "split"
    PAY_BILL = "pay_bill"
    CHECK_BALANCE = "check_balance"
    VIEW_HISTORY = "view_history"
    CANCEL = "cancel"

    @classmethod
    def values(cls) -> List[str]:
        return [action.value for action in cls]


# Actions that move funds and therefore need a positive amount
TRANSFER_ACTIONS = frozenset({PaymentAction.SEND.value, PaymentAction.SPLIT.value, PaymentAction.PAY_BILL.value})

# Read-only actions that never need confirmation
READ_ONLY_ACTIONS = frozenset({PaymentAction.CHECK_BALANCE.value, PaymentAction.VIEW_HISTORY.value})


@dataclass
class Participant:
    """Participant in a split payment."""
    identifier: str
    amount: Optional[Decimal] = None
    address: Optional[str] = None


@dataclass
class PaymentIntent:
    """Structured representation of a spoken payment command.

    ``action`` is kept as a plain string so that an unrecognized action coming
    back from the language model survives until validation rejects it.
    """
    action: str
    amount: Decimal = Decimal("0")
    currency: str = SUPPORTED_CURRENCY
    recipient: Optional[str] = None
    participants: Optional[List[Participant]] = None
    confirmation_required: bool = True
    original_command: str = ""
    parsed_at: datetime = field(default_factory=datetime.now)
    is_valid: bool = True
    validation_errors: List[str] = field(default_factory=list)
    source: str = "fallback"  # "ai" or "fallback"

    @property
    def payment_action(self) -> Optional[PaymentAction]:
        """The action as an enum member, or None if it is not recognized."""
        try:
            return PaymentAction(self.action)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "amount": str(self.amount),
            "currency": self.currency,
            "recipient": self.recipient,
            "participants": [
                {
                    "identifier": p.identifier,
                    "amount": str(p.amount) if p.amount is not None else None,
                    "address": p.address,
                }
                for p in self.participants
            ] if self.participants is not None else None,
            "confirmationRequired": self.confirmation_required,
            "originalCommand": self.original_command,
            "parsedAt": self.parsed_at.isoformat(),
            "isValid": self.is_valid,
            "validationErrors": list(self.validation_errors),
            "source": self.source,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a payment intent."""
    valid: bool
    errors: List[str] = field(default_factory=list)
