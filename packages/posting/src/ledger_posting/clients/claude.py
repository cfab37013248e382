"""Claude (Anthropic) client for JSON entry generation."""

import anthropic
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


class ClaudeClient:
    """Client for Anthropic's Claude API producing ledger lines as JSON."""

    provider = "claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()
        self._api_key = api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        # Retries are driven by the orchestrator
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key, max_retries=0)
        self._logger = logger.bind(client="claude", model=self._model)

    def _map_error(self, error: anthropic.APIError) -> AIGenerationError:
        # APITimeoutError subclasses APIConnectionError, check it first
        if isinstance(error, anthropic.APITimeoutError):
            return AITimeout(str(error), provider=self.provider)
        if isinstance(error, anthropic.APIConnectionError):
            return AIServiceUnavailable(str(error), provider=self.provider)
        if isinstance(error, anthropic.RateLimitError):
            return AIRateLimited(str(error), provider=self.provider)
        if isinstance(error, anthropic.APIStatusError):
            if error.status_code >= 500:
                return AIServiceUnavailable(str(error), provider=self.provider)
            return AIProviderError(
                str(error), provider=self.provider, details=error.status_code
            )
        return AIProviderError(str(error), provider=self.provider)

    async def generate_entries(self, system_prompt: str, prompt: str) -> EntriesResponse:
        """Ask Claude for the ledger lines of a document.

        Args:
            system_prompt: Accountant instructions.
            prompt: Document and chart description.

        Returns:
            EntriesResponse with the raw JSON text and usage info.
        """
        self._logger.debug("generating_entries", prompt_length=len(prompt))

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise self._map_error(e) from e

        content = "".join(block.text for block in response.content if block.type == "text")
        if not content.strip():
            raise MalformedResponse("Empty response from Claude", provider=self.provider)

        usage = {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        }
        self._logger.info(
            "response_generated",
            stop_reason=response.stop_reason,
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
        )
        return EntriesResponse(content=content, usage=usage)
