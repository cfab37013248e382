"""AI-assisted entry generation through an LLM client."""

import json
from typing import Any

import structlog

from ledger_posting.clients.base import EntryClient
from ledger_posting.documents import Document
from ledger_posting.errors import MalformedResponse
from ledger_posting.generators.base import EntryGenerator
from ledger_posting.ledger import Account, CandidateLine, GenerationStrategy
from ledger_posting.money import ZERO, to_amount
from ledger_posting.prompts import SYSTEM_PROMPT, build_entries_prompt, unwrap_json_fence

logger = structlog.get_logger(__name__)


def parse_lines(content: str, provider: str | None = None) -> list[CandidateLine]:
    """Parse a model answer into candidate lines.

    Accepts ``{"lines": [...]}`` or a bare list of line objects. Amounts go
    through their decimal string so no float reaches the ledger.

    Raises:
        MalformedResponse: If the answer is not valid JSON of that shape,
            holds a negative or unparsable amount, or yields no line.
    """
    try:
        payload = json.loads(unwrap_json_fence(content))
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON: {e}", provider=provider) from e

    items: Any = payload.get("lines") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise MalformedResponse("Response has no 'lines' array", provider=provider)

    lines: list[CandidateLine] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise MalformedResponse(f"Line {index} is not an object", provider=provider)

        number = str(item.get("account_number") or "").strip()
        if not number:
            raise MalformedResponse(f"Line {index} has no account number", provider=provider)

        try:
            debit = to_amount(item.get("debit"))
            credit = to_amount(item.get("credit"))
        except ValueError as e:
            raise MalformedResponse(f"Line {index}: {e}", provider=provider) from e
        if debit < ZERO or credit < ZERO:
            raise MalformedResponse(f"Line {index} has a negative amount", provider=provider)
        if debit == ZERO and credit == ZERO:
            continue

        lines.append(
            CandidateLine(
                account_number=number,
                account_label=str(item.get("account_label") or "").strip(),
                debit=debit,
                credit=credit,
            )
        )

    if not lines:
        raise MalformedResponse("Response contains no ledger line", provider=provider)
    return lines


class AIAssistedGenerator(EntryGenerator):
    """Asks an LLM for the ledger lines of a document.

    Provider failures surface as :class:`AIGenerationError` subclasses; the
    orchestrator owns retries, deadlines and the static fallback.
    """

    strategy = GenerationStrategy.AI

    def __init__(self, client: EntryClient):
        self._client = client
        self._logger = logger.bind(component="ai_generator", provider=client.provider)

    @property
    def provider(self) -> str:
        return self._client.provider

    async def attempt(self, document: Document, chart: list[Account]) -> list[CandidateLine]:
        prompt = build_entries_prompt(document, chart)
        response = await self._client.generate_entries(SYSTEM_PROMPT, prompt)
        lines = parse_lines(response.content, provider=self.provider)

        self._logger.debug(
            "ai_lines_generated",
            document_id=str(document.id),
            line_count=len(lines),
            output_tokens=response.usage.get("output_tokens", 0),
        )
        return lines
