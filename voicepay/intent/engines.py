"""Language model engines for sending prompts and getting responses."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from ..errors import ErrorCode, IntentExtractionFailed, NetworkError, RateLimited, Timeout

logger = logging.getLogger(__name__)

CLOUDFLARE_RUN_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class CompletionEngine(Protocol):
    """Protocol for engines that complete a chat conversation."""

    async def complete(self, messages: List[Dict[str, str]], temperature: float = 0.1,
                       max_tokens: int = 256) -> str:
        """Send chat messages and return the raw reply text."""
        ...


async def _post_json(url: str, headers: Dict[str, str], data: Dict[str, Any],
                     timeout: aiohttp.ClientTimeout, service: str) -> Dict[str, Any]:
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, headers=headers, json=data) as response:
                if response.status == 429:
                    raise RateLimited()
                if response.status in (401, 403):
                    raise IntentExtractionFailed(f"{service} rejected credentials",
                                                 code=ErrorCode.API_CONFIGURATION_ERROR)
                if response.status != 200:
                    error_text = await response.text()
                    raise IntentExtractionFailed(f"{service} API error: {response.status} - {error_text[:200]}")
                return await response.json(content_type=None)
    except asyncio.TimeoutError as e:
        raise Timeout(f"{service} request timed out") from e
    except aiohttp.ClientError as e:
        raise NetworkError(f"{service} request failed: {e}") from e


class CloudflareAIEngine:
    """Cloudflare Workers AI text generation over REST."""

    def __init__(self, api_key: Optional[str], account_id: Optional[str],
                 model: str = "@cf/meta/llama-3-8b-instruct", timeout_seconds: float = 20.0):
        """Initialize Cloudflare AI engine.

        Args:
            api_key: Cloudflare API token
            account_id: Cloudflare account id
            model: Workers AI model name
            timeout_seconds: Total request timeout
        """
        self.api_key = api_key
        self.account_id = account_id
        self.model = model
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"CloudflareAIEngine initialized with model: {model}")

    async def complete(self, messages: List[Dict[str, str]], temperature: float = 0.1,
                       max_tokens: int = 256) -> str:
        if not self.api_key or not self.account_id:
            raise IntentExtractionFailed("Cloudflare AI credentials not configured",
                                         code=ErrorCode.API_CONFIGURATION_ERROR)

        url = CLOUDFLARE_RUN_URL.format(account_id=self.account_id, model=self.model)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        data = {
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        result = await _post_json(url, headers, data, self.timeout, "Cloudflare AI")
        return self.reply_text(result)

    @staticmethod
    def reply_text(result: Dict[str, Any]) -> str:
        """Pull the generated text out of a Workers AI response envelope."""
        payload = result.get("result", result) if isinstance(result, dict) else result
        if isinstance(payload, dict) and "response" in payload:
            payload = payload["response"]
        return payload if isinstance(payload, str) else json.dumps(payload)


class OpenAIChatEngine:
    """OpenAI chat completions engine."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", timeout_seconds: float = 20.0):
        self.api_key = api_key
        self.model = model
        self.base_url = OPENAI_CHAT_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"OpenAIChatEngine initialized with model: {model}")

    async def complete(self, messages: List[Dict[str, str]], temperature: float = 0.1,
                       max_tokens: int = 256) -> str:
        if not self.api_key:
            raise IntentExtractionFailed("OpenAI API key not configured",
                                         code=ErrorCode.API_CONFIGURATION_ERROR)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        data = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens
        }

        result = await _post_json(self.base_url, headers, data, self.timeout, "OpenAI")
        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise IntentExtractionFailed("Malformed OpenAI response") from e
        # Refusals and tool calls come back with null content
        if not isinstance(content, str):
            raise IntentExtractionFailed("Malformed OpenAI response")
        return content.strip()
