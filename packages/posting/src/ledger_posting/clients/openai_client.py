"""OpenAI GPT client for JSON entry generation."""

from typing import Any

import openai
import structlog

from ledger_posting.clients.base import EntriesResponse
from ledger_posting.config import get_settings
from ledger_posting.errors import (
    AIGenerationError,
    AIProviderError,
    AIRateLimited,
    AIServiceUnavailable,
    AITimeout,
    MalformedResponse,
)

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """Client for OpenAI's GPT API producing ledger lines as JSON.

    Also supports OpenAI-compatible APIs via custom base_url.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.openai_api_key is not None:
            api_key = settings.openai_api_key.get_secret_value()
        self._api_key = api_key
        self._base_url = base_url  # None means use OpenAI's default
        self._model = model or settings.gpt_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        client_kwargs: dict[str, Any] = {"api_key": self._api_key, "max_retries": 0}
        if self._base_url:
            client_kwargs["base_url"] = self._base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._logger = logger.bind(client="openai", model=self._model)

    def _build_request(self, system_prompt: str, prompt: str) -> dict[str, Any]:
        # GPT-5+ models use max_completion_tokens instead of max_tokens
        # and the nano models only support the default temperature
        is_gpt5_plus = self._model.startswith("gpt-5") or self._model.startswith("o3")
        is_nano = "nano" in self._model
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
        }
        if not is_nano:
            kwargs["temperature"] = self._temperature
        if is_gpt5_plus:
            kwargs["max_completion_tokens"] = self._max_tokens
        else:
            kwargs["max_tokens"] = self._max_tokens
        return kwargs

    def _map_error(self, error: openai.APIError) -> AIGenerationError:
        # APITimeoutError subclasses APIConnectionError, check it first
        if isinstance(error, openai.APITimeoutError):
            return AITimeout(str(error), provider=self.provider)
        if isinstance(error, openai.APIConnectionError):
            return AIServiceUnavailable(str(error), provider=self.provider)
        if isinstance(error, openai.RateLimitError):
            return AIRateLimited(str(error), provider=self.provider)
        if isinstance(error, openai.APIStatusError):
            if error.status_code >= 500:
                return AIServiceUnavailable(str(error), provider=self.provider)
            return AIProviderError(
                str(error), provider=self.provider, details=error.status_code
            )
        return AIProviderError(str(error), provider=self.provider)

    async def generate_entries(self, system_prompt: str, prompt: str) -> EntriesResponse:
        """Ask GPT for the ledger lines of a document.

        Args:
            system_prompt: Accountant instructions.
            prompt: Document and chart description.

        Returns:
            EntriesResponse with the raw JSON text and usage info.
        """
        self._logger.debug("generating_entries", prompt_length=len(prompt))

        try:
            response = await self._client.chat.completions.create(
                **self._build_request(system_prompt, prompt)
            )
        except openai.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise self._map_error(e) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        if not content.strip():
            raise MalformedResponse("Empty response from OpenAI", provider=self.provider)

        usage = {
            "input_tokens": response.usage.prompt_tokens if response.usage else 0,
            "output_tokens": response.usage.completion_tokens if response.usage else 0,
        }
        self._logger.info(
            "response_generated",
            finish_reason=response.choices[0].finish_reason,
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
        )
        return EntriesResponse(content=content, usage=usage)
