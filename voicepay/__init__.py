"""VoicePay - voice-driven USDC payments from the terminal."""

__version__ = "0.1.0"
