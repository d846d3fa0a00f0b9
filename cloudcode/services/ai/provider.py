"""
AI Provider Client

Talks to any OpenAI-compatible /chat/completions endpoint (OpenAI, Groq, or a
local server such as Ollama's /v1 API).
"""

import logging
from dataclasses import dataclass

import httpx

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import AINotConfiguredError, AIServiceError

from .prompts import SYSTEM_PROMPTS

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response generated"


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    api_key: str
    model: str
    base_url: str


@dataclass
class AICompletion:
    result: str
    input_tokens: int
    output_tokens: int
    model: str

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


def resolve_provider(settings: CloudCodeSettings) -> ProviderConfig:
    """Pick credentials, model and endpoint for the configured provider"""
    if settings.ai_provider == "groq":
        return ProviderConfig("groq", settings.groq_api_key, settings.groq_model, settings.groq_base_url)
    if settings.ai_provider == "local":
        return ProviderConfig("local", "not-needed", settings.local_ai_model, settings.local_ai_url)
    return ProviderConfig("openai", settings.openai_api_key, settings.openai_model, settings.openai_base_url)


class AIProvider:
    """Client for OpenAI-compatible chat completion APIs"""

    def __init__(self, settings: CloudCodeSettings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.config = resolve_provider(settings)
        self.transport = transport
        self.timeout = httpx.Timeout(float(settings.ai_timeout_seconds), connect=10.0)

    @property
    def is_configured(self) -> bool:
        return self.config.provider == "local" or bool(self.config.api_key)

    async def complete(self, action: str, user_message: str) -> AICompletion:
        """
        Run one chat completion for an assistant action.

        Args:
            action: explain | fix | generate | refactor (selects the system prompt)
            user_message: Prepared user turn

        Returns:
            AICompletion with the reply text and token usage

        Raises:
            AINotConfiguredError: no API key for a hosted provider
            AIServiceError: transport failure, non-2xx or malformed response
        """
        if not self.is_configured:
            raise AINotConfiguredError()

        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPTS[action]},
                {"role": "user", "content": user_message},
            ],
            "temperature": self.settings.ai_temperature,
            "max_tokens": self.settings.ai_max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.error(f"AI request to {self.config.provider} timed out")
            raise AIServiceError("AI provider timed out")
        except httpx.HTTPStatusError as e:
            logger.error(f"AI provider {self.config.provider} returned {e.response.status_code}")
            raise AIServiceError(details={"upstream_status": e.response.status_code})
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"AI request to {self.config.provider} failed: {e}")
            raise AIServiceError()

        choices = data.get("choices") or []
        message = choices[0].get("message", {}) if choices else {}
        usage = data.get("usage") or {}

        return AICompletion(
            result=message.get("content") or NO_RESPONSE,
            input_tokens=usage.get("prompt_tokens", 0) or 0,
            output_tokens=usage.get("completion_tokens", 0) or 0,
            model=data.get("model") or self.config.model,
        )
