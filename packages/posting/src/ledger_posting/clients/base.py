"""Common response type and interface of the entry-generation LLM clients."""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class EntriesResponse:
    """Raw JSON text returned by a provider, with token usage."""

    content: str
    usage: dict[str, int] = field(
        default_factory=lambda: {"input_tokens": 0, "output_tokens": 0}
    )


class EntryClient(Protocol):
    """An LLM client able to answer an entry-generation prompt with JSON.

    Implementations translate provider failures into
    :class:`~ledger_posting.errors.AIGenerationError` subclasses.
    """

    provider: str

    async def generate_entries(self, system_prompt: str, prompt: str) -> EntriesResponse:
        ...
