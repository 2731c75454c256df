"""Pub/sub event publishing for pipeline side channels."""

import logging
from typing import Any

from pubsub import pub

logger = logging.getLogger(__name__)

STATE_TOPIC = "voice_state"
LEVEL_TOPIC = "voice_level"
COMMAND_TOPIC = "voice_command"
TRANSACTION_TOPIC = "wallet_transaction"
BALANCE_TOPIC = "wallet_balance"


class EventPublisher:
    """Publishes pipeline events using pubsub.pub.

    Every message is sent with a single ``event`` keyword argument, so
    listeners are plain ``def on_event(event): ...`` callables.
    """

    def __init__(self, prefix: str = ""):
        """Initialize event publisher.

        Args:
            prefix: Optional topic prefix, used to isolate publishers (e.g. in tests)
        """
        self.prefix = prefix
        logger.info(f"EventPublisher initialized with prefix: '{prefix}'")

    def topic(self, name: str) -> str:
        return f"{self.prefix}_{name}" if self.prefix else name

    def publish(self, name: str, event: Any) -> None:
        """Publish an event; listener failures are logged, never raised into the pipeline."""
        try:
            pub.sendMessage(self.topic(name), event=event)
        except Exception as e:
            logger.warning(f"Listener failed for topic {self.topic(name)}: {e}")

    def subscribe(self, name: str, listener) -> None:
        pub.subscribe(listener, self.topic(name))

    def unsubscribe(self, name: str, listener) -> None:
        pub.unsubscribe(listener, self.topic(name))
