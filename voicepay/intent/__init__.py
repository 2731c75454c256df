"""Payment intent extraction."""

import logging
from typing import Optional

from .engines import CloudflareAIEngine, CompletionEngine, OpenAIChatEngine
from .fallback import extract_intent_fallback
from .gateway import IntentExtractionGateway
from .parser import IntentPayload, parse_intent_reply
from .prompts import INTENT_SYSTEM_PROMPT, build_messages
from ..config import VoicePayConfig
from ..payments.ledger import DEMO_CONTACTS

logger = logging.getLogger(__name__)


def create_completion_engine(config: VoicePayConfig) -> Optional[CompletionEngine]:
    """Build the engine named by ``intent.provider``; None in demo mode or for ``none``."""
    provider = "none" if config.demo_mode else config.get('intent.provider', 'cloudflare')
    timeout = float(config.get('intent.timeout_seconds', 20))
    logger.info(f"Using intent provider: {provider}")

    if provider == "none":
        return None
    if provider == "cloudflare":
        return CloudflareAIEngine(
            api_key=config.get_secret('intent.cloudflare.api_key_env'),
            account_id=config.get_secret('intent.cloudflare.account_id_env'),
            model=config.get('intent.cloudflare.model'),
            timeout_seconds=timeout,
        )
    if provider == "openai":
        return OpenAIChatEngine(
            api_key=config.get_secret('intent.openai.api_key_env'),
            model=config.get('intent.openai.model'),
            timeout_seconds=timeout,
        )
    raise ValueError(f"Unknown intent provider: {provider}")


def create_intent_gateway(config: VoicePayConfig) -> IntentExtractionGateway:
    contacts = config.contacts
    if config.demo_mode:
        contacts = {**DEMO_CONTACTS, **contacts}
    return IntentExtractionGateway(engine=create_completion_engine(config), contacts=contacts)


__all__ = [
    'CloudflareAIEngine',
    'CompletionEngine',
    'INTENT_SYSTEM_PROMPT',
    'IntentExtractionGateway',
    'IntentPayload',
    'OpenAIChatEngine',
    'build_messages',
    'create_completion_engine',
    'create_intent_gateway',
    'extract_intent_fallback',
    'parse_intent_reply',
]
