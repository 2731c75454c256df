"""Decides whether an intent needs explicit user confirmation."""

from enum import Enum

from ..models.intent import PaymentAction, PaymentIntent, READ_ONLY_ACTIONS, TRANSFER_ACTIONS


class ConfirmationDecision(str, Enum):
    BYPASS = "bypass"  # read-only, run immediately
    REQUIRE_CONFIRMATION = "require_confirmation"
    EXECUTE = "execute"  # caller turned confirmation off for this intent
    UNSUPPORTED = "unsupported"


class ConfirmationGate:
    """``confirmation_required`` on the intent is authoritative for state-changing actions."""

    def decide(self, intent: PaymentIntent) -> ConfirmationDecision:
        if intent.action in READ_ONLY_ACTIONS:
            return ConfirmationDecision.BYPASS
        if intent.action in TRANSFER_ACTIONS or intent.action == PaymentAction.CANCEL.value:
            if intent.confirmation_required:
                return ConfirmationDecision.REQUIRE_CONFIRMATION
            return ConfirmationDecision.EXECUTE
        return ConfirmationDecision.UNSUPPORTED
