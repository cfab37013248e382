"""Tests for the AI-assisted generator and response parsing."""

import json
from dataclasses import dataclass, field
from decimal import Decimal

import pytest

from ledger_posting.clients.base import EntriesResponse
from ledger_posting.errors import AIRateLimited, MalformedResponse
from ledger_posting.generators.ai import AIAssistedGenerator, parse_lines
from ledger_posting.ledger import GenerationStrategy
from ledger_posting.prompts import SYSTEM_PROMPT


@dataclass
class FakeClient:
    """Entry client returning canned answers, recording the prompts."""

    answers: list = field(default_factory=list)
    prompts: list[tuple[str, str]] = field(default_factory=list)
    provider: str = "fake"

    async def generate_entries(self, system_prompt: str, prompt: str) -> EntriesResponse:
        self.prompts.append((system_prompt, prompt))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return EntriesResponse(content=answer, usage={"input_tokens": 100, "output_tokens": 40})


ANSWER = json.dumps(
    {
        "lines": [
            {"account_number": "601000", "account_label": "Achats", "debit": 1000, "credit": 0},
            {"account_number": "445600", "account_label": "TVA", "debit": 190.0, "credit": 0},
            {"account_number": 401000, "account_label": "Fournisseurs", "debit": 0, "credit": 1189.995},
        ]
    }
)


class TestParseLines:
    """Tests for parse_lines."""

    def test_parses_amounts_as_decimals(self):
        """Test that float amounts keep their printed value."""
        lines = parse_lines(ANSWER)

        assert [line.account_number for line in lines] == ["601000", "445600", "401000"]
        assert lines[0].debit == Decimal("1000.000")
        assert lines[2].credit == Decimal("1189.995")
        assert isinstance(lines[2].credit, Decimal)

    def test_fenced_answer(self):
        lines = parse_lines(f"```json\n{ANSWER}\n```")

        assert len(lines) == 3

    def test_bare_list(self):
        lines = parse_lines('[{"account_number": "601000", "debit": "10.5", "credit": null}]')

        assert lines[0].debit == Decimal("10.500")
        assert lines[0].credit == Decimal("0")
        assert lines[0].account_label == ""

    def test_zero_lines_dropped(self):
        lines = parse_lines(
            '{"lines": [{"account_number": "601000", "debit": 0, "credit": 0},'
            ' {"account_number": "401000", "debit": 0, "credit": 5}]}'
        )

        assert [line.account_number for line in lines] == ["401000"]

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            '{"entries": []}',
            '{"lines": []}',
            '{"lines": ["601000"]}',
            '{"lines": [{"debit": 10, "credit": 0}]}',
            '{"lines": [{"account_number": "601000", "debit": "ten", "credit": 0}]}',
            '{"lines": [{"account_number": "601000", "debit": -10, "credit": 0}]}',
            '{"lines": [{"account_number": "601000", "debit": 0, "credit": 0}]}',
        ],
    )
    def test_malformed_answers(self, content):
        with pytest.raises(MalformedResponse) as exc_info:
            parse_lines(content, provider="fake")

        assert exc_info.value.provider == "fake"
        assert exc_info.value.transient is False


class TestAIAssistedGenerator:
    """Tests for AIAssistedGenerator."""

    @pytest.mark.asyncio
    async def test_attempt_sends_prompt_and_parses(self, purchase_invoice, chart):
        client = FakeClient(answers=[ANSWER])
        generator = AIAssistedGenerator(client)

        lines = await generator.attempt(purchase_invoice, chart)

        assert generator.strategy is GenerationStrategy.AI
        assert generator.provider == "fake"
        assert len(lines) == 3
        system_prompt, prompt = client.prompts[0]
        assert system_prompt == SYSTEM_PROMPT
        assert "Total including tax: 1190.000 TND" in prompt
        assert "445600: État - TVA déductible" in prompt

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self, purchase_invoice, chart):
        """Test that client errors reach the orchestrator untouched."""
        client = FakeClient(answers=[AIRateLimited("slow down", provider="fake")])

        with pytest.raises(AIRateLimited):
            await AIAssistedGenerator(client).attempt(purchase_invoice, chart)

    @pytest.mark.asyncio
    async def test_malformed_answer(self, purchase_invoice, chart):
        client = FakeClient(answers=["Sorry, I cannot help with that."])

        with pytest.raises(MalformedResponse):
            await AIAssistedGenerator(client).attempt(purchase_invoice, chart)
