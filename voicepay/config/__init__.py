"""YAML configuration loader for VoicePay."""

import copy
import os
import yaml
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "demo_mode": False,
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "min_recording_ms": 1000,
        "max_recording_ms": 10000,
        "level_sample_interval_ms": 50,
        "complete_display_ms": 2000,
        "error_display_ms": 3000,
    },
    "transcription": {
        "provider": "elevenlabs",  # elevenlabs | google | demo
        "timeout_seconds": 30,
        "elevenlabs": {
            "api_key_env": "ELEVENLABS_API_KEY",
            "model_id": "scribe_v1",
            "language": "en-US",
        },
        "google": {
            "language": "en-US",
            "use_enhanced_model": True,
            "enable_automatic_punctuation": True,
        },
    },
    "intent": {
        "provider": "cloudflare",  # cloudflare | openai | none
        "timeout_seconds": 20,
        "cloudflare": {
            "api_key_env": "CLOUDFLARE_API_KEY",
            "account_id_env": "CLOUDFLARE_ACCOUNT_ID",
            "model": "@cf/meta/llama-3-8b-instruct",
        },
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "model": "gpt-4o-mini",
        },
    },
    "payments": {
        "currency": "USDC",
        "min_amount": "0.01",
        "max_amount": "10000",
        "max_decimals": 6,
        "required_confirmations": 1,
        "confirmation_timeout_seconds": 120,
        "safety_buffer": "0.01",
        "balance_refresh_interval_ms": 30000,
        "history_block_range": 10000,
        "local_history_limit": 100,
    },
    "retry": {
        "auto_retry": False,
        "max_retries": 3,
        "base_delay_ms": 1000,
    },
    "history": {
        "capacity": 10,
    },
    "rate_limit": {
        "max_requests": 10,
        "window_ms": 60000,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/voicepay.log",
        "console_output": True,
    },
    "contacts": {},
}


@dataclass(frozen=True)
class RecordingLimits:
    min_seconds: float
    max_seconds: float
    complete_display_seconds: float
    error_display_seconds: float
    level_interval_seconds: float


@dataclass(frozen=True)
class AmountLimits:
    min_amount: Decimal
    max_amount: Decimal
    max_decimals: int


@dataclass(frozen=True)
class RetryPolicy:
    enabled: bool
    max_retries: int
    base_delay_seconds: float


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class VoicePayConfig:
    """VoicePay configuration loader."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, only the built-in
                        defaults (and ``overrides``) are used.
            overrides: Values merged over the file contents, mostly for tests
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None:
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = _deep_merge(DEFAULTS, self._load_config())
        else:
            self.config = copy.deepcopy(DEFAULTS)

        if overrides:
            self.config = _deep_merge(self.config, overrides)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "VoicePayConfig":
        return cls(overrides=values)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        google = config.get('transcription', {}).get('google', {})
        if 'credentials_path' in google and not os.path.isabs(google['credentials_path']):
            google['credentials_path'] = str(config_dir / google['credentials_path'])

        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'audio.sample_rate').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_secret(self, env_key_path: str) -> Optional[str]:
        """Read a secret from the environment variable named at ``env_key_path``."""
        env_name = self.get(env_key_path)
        if not env_name:
            return None
        return os.environ.get(env_name) or None

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path; raises if missing."""
        creds_path = self.get('transcription.google.credentials_path')
        if not creds_path:
            raise ValueError("Google credentials path not configured (transcription.google.credentials_path)")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    @property
    def demo_mode(self) -> bool:
        return bool(self.get('demo_mode', False))

    def recording_limits(self) -> RecordingLimits:
        limits = RecordingLimits(
            min_seconds=self.get('audio.min_recording_ms') / 1000.0,
            max_seconds=self.get('audio.max_recording_ms') / 1000.0,
            complete_display_seconds=self.get('audio.complete_display_ms') / 1000.0,
            error_display_seconds=self.get('audio.error_display_ms') / 1000.0,
            level_interval_seconds=self.get('audio.level_sample_interval_ms') / 1000.0,
        )
        if limits.min_seconds > limits.max_seconds:
            raise ValueError("audio.min_recording_ms cannot exceed audio.max_recording_ms")
        return limits

    def amount_limits(self) -> AmountLimits:
        return AmountLimits(
            min_amount=Decimal(str(self.get('payments.min_amount'))),
            max_amount=Decimal(str(self.get('payments.max_amount'))),
            max_decimals=int(self.get('payments.max_decimals')),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            enabled=bool(self.get('retry.auto_retry')),
            max_retries=int(self.get('retry.max_retries')),
            base_delay_seconds=self.get('retry.base_delay_ms') / 1000.0,
        )

    @property
    def safety_buffer(self) -> Decimal:
        return Decimal(str(self.get('payments.safety_buffer')))

    @property
    def required_confirmations(self) -> int:
        return int(self.get('payments.required_confirmations'))

    @property
    def balance_refresh_interval(self) -> float:
        return self.get('payments.balance_refresh_interval_ms') / 1000.0

    @property
    def history_capacity(self) -> int:
        return int(self.get('history.capacity'))

    @property
    def contacts(self) -> Dict[str, str]:
        """Name -> address book, keyed case-insensitively."""
        return {str(name).lower(): address for name, address in (self.get('contacts') or {}).items()}

    @property
    def confirmation_timeout(self) -> float:
        return float(self.get('payments.confirmation_timeout_seconds'))
