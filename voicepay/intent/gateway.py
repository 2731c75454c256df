"""Intent extraction: language model first, deterministic extractor as fallback."""

import logging
from typing import Dict, Optional

from .engines import CompletionEngine
from .fallback import extract_intent_fallback
from .parser import parse_intent_reply
from .prompts import build_messages
from ..errors import IntentExtractionFailed, VoicePayError
from ..models.intent import PaymentIntent
from ..validation.address import is_valid_address
from ..validation.sanitize import sanitize_input

logger = logging.getLogger(__name__)


class IntentExtractionGateway:
    """Turns transcript text into an unvalidated PaymentIntent.

    Engine failures never escape: a missing key, a timeout, an HTTP error or
    an unparseable reply all fall through to ``extract_intent_fallback``.
    """

    def __init__(self, engine: Optional[CompletionEngine] = None,
                 contacts: Optional[Dict[str, str]] = None):
        """Initialize the gateway.

        Args:
            engine: Completion engine; None runs the fallback extractor only
            contacts: Lower-cased name -> address book
        """
        self.engine = engine
        self.contacts = {name.lower(): address for name, address in (contacts or {}).items()}

    async def extract(self, text: str) -> PaymentIntent:
        cleaned = sanitize_input(text or "")
        if not cleaned:
            raise IntentExtractionFailed("Invalid text input")

        intent = await self._extract_with_engine(cleaned) if self.engine is not None else None
        if intent is None:
            intent = extract_intent_fallback(cleaned)

        self._resolve_contacts(intent)
        logger.info(f"Extracted intent: action={intent.action}, amount={intent.amount}, "
                    f"recipient={intent.recipient}, source={intent.source}")
        return intent

    async def _extract_with_engine(self, text: str) -> Optional[PaymentIntent]:
        try:
            reply = await self.engine.complete(build_messages(text))
        except VoicePayError as e:
            logger.warning(f"AI extraction failed, using fallback: {e}")
            return None
        except Exception as e:
            logger.warning(f"Unexpected AI engine error, using fallback: {type(e).__name__}: {e}")
            return None

        if not isinstance(reply, str):
            logger.warning(f"AI engine returned {type(reply).__name__}, using fallback")
            return None

        payload = parse_intent_reply(reply)
        if payload is None:
            logger.warning(f"Failed to parse AI response, using fallback: {reply[:200]!r}")
            return None
        return payload.to_intent(text)

    def _resolve_contacts(self, intent: PaymentIntent) -> None:
        if intent.recipient and not is_valid_address(intent.recipient):
            address = self.contacts.get(intent.recipient.lower())
            if address:
                logger.debug(f"Resolved contact '{intent.recipient}' -> {address}")
                intent.recipient = address

        for participant in intent.participants or []:
            if participant.address is None:
                if is_valid_address(participant.identifier):
                    participant.address = participant.identifier
                else:
                    participant.address = self.contacts.get(participant.identifier.lower())
