"""Google Gemini client for JSON entry generation.

Uses the google-genai SDK (v1.0+) async surface with a response schema, so
the model answers with the ``lines`` JSON document directly.
"""

from typing import Any

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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
from ledger_posting.prompts import ENTRIES_SCHEMA

logger = structlog.get_logger(__name__)


def convert_json_schema_to_gemini(schema: dict[str, Any]) -> dict[str, Any]:
    """Convert JSON Schema to Gemini's schema format.

    Gemini uses a subset of OpenAPI schema format with upper-case types.
    """
    gemini_schema: dict[str, Any] = {}

    if "type" in schema:
        type_map = {
            "string": "STRING",
            "integer": "INTEGER",
            "number": "NUMBER",
            "boolean": "BOOLEAN",
            "array": "ARRAY",
            "object": "OBJECT",
        }
        gemini_schema["type"] = type_map.get(schema["type"], "STRING")

    if "description" in schema:
        gemini_schema["description"] = schema["description"]

    if "properties" in schema:
        gemini_schema["properties"] = {
            k: convert_json_schema_to_gemini(v) for k, v in schema["properties"].items()
        }

    if "required" in schema:
        gemini_schema["required"] = schema["required"]

    if "items" in schema:
        gemini_schema["items"] = convert_json_schema_to_gemini(schema["items"])

    return gemini_schema


class GeminiClient:
    """Client for Google's Gemini API producing ledger lines as JSON."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.google_api_key is not None:
            api_key = settings.google_api_key.get_secret_value()
        self._api_key = api_key
        self._model_name = model or settings.gemini_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        self._client = genai.Client(api_key=self._api_key)
        self._response_schema = types.Schema.model_validate(
            convert_json_schema_to_gemini(ENTRIES_SCHEMA)
        )

        self._logger = logger.bind(client="gemini", model=self._model_name)

    def _map_error(self, error: Exception) -> AIGenerationError:
        """Translate SDK and transport errors into AI generation errors."""
        if isinstance(error, genai_errors.APIError):
            if error.code == 429:
                return AIRateLimited(str(error), provider=self.provider)
            if isinstance(error, genai_errors.ServerError):
                return AIServiceUnavailable(str(error), provider=self.provider)
            return AIProviderError(str(error), provider=self.provider, details=error.code)
        if isinstance(error, httpx.TimeoutException):
            return AITimeout(str(error) or "request timed out", provider=self.provider)
        return AIServiceUnavailable(str(error), provider=self.provider)

    async def generate_entries(self, system_prompt: str, prompt: str) -> EntriesResponse:
        """Ask Gemini for the ledger lines of a document.

        Args:
            system_prompt: Accountant instructions.
            prompt: Document and chart description.

        Returns:
            EntriesResponse with the raw JSON text and usage info.

        Raises:
            AIGenerationError: On any provider failure or an empty answer.
        """
        self._logger.debug("generating_entries", prompt_length=len(prompt))

        config = types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            system_instruction=system_prompt,
            response_mime_type="application/json",
            response_schema=self._response_schema,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.TransportError) as e:
            self._logger.error("api_error", error=str(e))
            raise self._map_error(e) from e

        content = response.text or ""
        if not content.strip():
            raise MalformedResponse("Empty response from Gemini", provider=self.provider)

        usage = {"input_tokens": 0, "output_tokens": 0}
        if response.usage_metadata:
            usage["input_tokens"] = response.usage_metadata.prompt_token_count or 0
            usage["output_tokens"] = response.usage_metadata.candidates_token_count or 0

        self._logger.info(
            "response_generated",
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
        )
        return EntriesResponse(content=content, usage=usage)
