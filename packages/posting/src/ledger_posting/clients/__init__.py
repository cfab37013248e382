"""LLM client implementations for AI-assisted entry generation."""

import structlog

from ledger_posting.clients.base import EntriesResponse, EntryClient
from ledger_posting.clients.claude import ClaudeClient
from ledger_posting.clients.gemini import GeminiClient
from ledger_posting.clients.openai_client import OpenAIClient
from ledger_posting.config import FlatSettings, get_settings

logger = structlog.get_logger(__name__)


def create_entry_client(settings: FlatSettings | None = None) -> EntryClient | None:
    """Build the client for the configured provider.

    Returns:
        The provider client, or None when AI is disabled or the provider's
        API key is not set.
    """
    settings = settings or get_settings()
    provider = settings.ai_provider

    keys = {
        "gemini": settings.google_api_key,
        "claude": settings.anthropic_api_key,
        "openai": settings.openai_api_key,
    }
    if provider == "none":
        return None
    key = keys[provider]
    if key is None or not key.get_secret_value():
        logger.warning("ai_client_disabled", provider=provider, reason="missing_api_key")
        return None

    if provider == "gemini":
        return GeminiClient(api_key=key.get_secret_value())
    if provider == "claude":
        return ClaudeClient(api_key=key.get_secret_value())
    return OpenAIClient(api_key=key.get_secret_value())


__all__ = [
    "ClaudeClient",
    "EntriesResponse",
    "EntryClient",
    "GeminiClient",
    "OpenAIClient",
    "create_entry_client",
]
