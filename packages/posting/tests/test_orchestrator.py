"""Tests for the generation orchestrator."""

import asyncio
from dataclasses import dataclass, field, replace
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from ledger_posting.documents import DocumentStatus
from ledger_posting.errors import (
    AIProviderError,
    AIRateLimited,
    AIServiceUnavailable,
    AITimeout,
    AlreadyPosted,
    EmptyChartOfAccounts,
    MalformedResponse,
    NoApplicableRule,
    Unbalanced,
    UnknownAccounts,
)
from ledger_posting.generators import EntryGenerator, StaticRuleGenerator
from ledger_posting.ledger import CandidateLine, GenerationStrategy
from ledger_posting.orchestrator import GenerationOptions, GenerationOrchestrator

HANG = object()


@dataclass
class FakeAIGenerator(EntryGenerator):
    """AI strategy double playing back a script of results."""

    script: list = field(default_factory=list)
    calls: int = 0
    provider: str = "fake"
    strategy = GenerationStrategy.AI

    async def attempt(self, document, chart):
        self.calls += 1
        # The last entry repeats forever
        outcome = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if outcome is HANG:
            await asyncio.sleep(10)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SpyStaticGenerator(StaticRuleGenerator):
    """Static rules that count their invocations."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def attempt(self, document, chart):
        self.calls += 1
        return await super().attempt(document, chart)


def line(number, debit="0", credit="0"):
    return CandidateLine(number, "model label", Decimal(debit), Decimal(credit))


AI_LINES = [
    line("601000", debit="1000"),
    line("445600", debit="190"),
    line("401000", credit="1190"),
]

FAST = GenerationOptions(prefer_ai=True, max_retries=2, timeout_ms=200, retry_backoff_ms=0)


class TestGenerationOptions:
    """Tests for GenerationOptions."""

    def test_defaults(self):
        options = GenerationOptions()

        assert options.prefer_ai is True
        assert options.max_retries == 2
        assert options.timeout_ms == 5000
        assert options.retry_backoff_ms == 0

    def test_rejects_invalid_values(self):
        with pytest.raises(ValueError):
            GenerationOptions(max_retries=-1)
        with pytest.raises(ValueError):
            GenerationOptions(timeout_ms=0)


class TestPlan:
    """Tests for the strategy plan."""

    def test_ai_first_when_preferred(self):
        ai = FakeAIGenerator(script=[AI_LINES])
        orchestrator = GenerationOrchestrator(ai_generator=ai)

        plan = orchestrator.plan(GenerationOptions())

        assert [g.strategy for g in plan] == [GenerationStrategy.AI, GenerationStrategy.STATIC]

    def test_static_only_without_ai(self):
        plan = GenerationOrchestrator().plan(GenerationOptions())

        assert [g.strategy for g in plan] == [GenerationStrategy.STATIC]

    def test_static_only_when_ai_not_preferred(self):
        orchestrator = GenerationOrchestrator(ai_generator=FakeAIGenerator(script=[AI_LINES]))

        plan = orchestrator.plan(GenerationOptions(prefer_ai=False))

        assert [g.strategy for g in plan] == [GenerationStrategy.STATIC]


class TestPreconditions:
    """Tests for the generation preconditions."""

    @pytest.mark.asyncio
    async def test_already_posted(self, purchase_invoice, chart):
        ai = FakeAIGenerator(script=[AI_LINES])
        posted = replace(purchase_invoice, status=DocumentStatus.POSTED)

        with pytest.raises(AlreadyPosted):
            await GenerationOrchestrator(ai_generator=ai).generate(posted, chart, FAST)

        assert ai.calls == 0

    @pytest.mark.asyncio
    async def test_empty_chart_invokes_no_generator(self, purchase_invoice):
        """Test that an empty chart fails before any strategy runs."""
        ai = FakeAIGenerator(script=[AI_LINES])
        static = SpyStaticGenerator()
        orchestrator = GenerationOrchestrator(static_generator=static, ai_generator=ai)

        with pytest.raises(EmptyChartOfAccounts):
            await orchestrator.generate(purchase_invoice, [], FAST)

        assert ai.calls == 0
        assert static.calls == 0


class TestGenerate:
    """Tests for GenerationOrchestrator.generate."""

    @pytest.mark.asyncio
    async def test_ai_success(self, purchase_invoice, chart):
        ai = FakeAIGenerator(script=[AI_LINES])
        static = SpyStaticGenerator()
        orchestrator = GenerationOrchestrator(static_generator=static, ai_generator=ai)

        posting = await orchestrator.generate(purchase_invoice, chart, FAST)

        assert posting.strategy is GenerationStrategy.AI
        assert posting.ai_attempts == 1
        assert posting.ai_errors == []
        assert static.calls == 0
        # Labels come from the chart, not the model
        assert posting.lines[0].account_label == "Achats de marchandises"

    @pytest.mark.asyncio
    async def test_fallback_to_static_when_ai_always_fails(self, purchase_invoice, chart):
        """Test the silent degrade for a 1000/190/1190 purchase invoice."""
        ai = FakeAIGenerator(script=[AIServiceUnavailable("overloaded", provider="fake")])
        orchestrator = GenerationOrchestrator(ai_generator=ai)

        posting = await orchestrator.generate(purchase_invoice, chart, FAST)

        assert posting.strategy is GenerationStrategy.STATIC
        assert ai.calls == 3
        assert posting.ai_attempts == 3
        assert len(posting.ai_errors) == 3
        assert [(l.account_number, l.debit, l.credit) for l in posting.lines] == [
            ("601000", Decimal("1000.000"), Decimal("0")),
            ("445600", Decimal("190.000"), Decimal("0")),
            ("401000", Decimal("0"), Decimal("1190.000")),
        ]
        assert posting.totals.debit == posting.totals.credit == Decimal("1190.000")

    @pytest.mark.asyncio
    async def test_non_transient_errors_count_against_retries(self, purchase_invoice, chart):
        ai = FakeAIGenerator(
            script=[MalformedResponse("garbage"), AIProviderError("bad request"), AI_LINES],
        )

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, FAST
        )

        assert posting.strategy is GenerationStrategy.AI
        assert posting.ai_attempts == 3
        assert [e.code for e in posting.ai_errors] == [
            "ai_malformed_response",
            "ai_provider_error",
        ]

    @pytest.mark.asyncio
    async def test_zero_retries_means_one_attempt(self, purchase_invoice, chart):
        ai = FakeAIGenerator(script=[MalformedResponse("garbage")])
        options = replace(FAST, max_retries=0)

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, options
        )

        assert ai.calls == 1
        assert posting.strategy is GenerationStrategy.STATIC

    @pytest.mark.asyncio
    async def test_hard_deadline(self, purchase_invoice, chart):
        """Test that a hanging AI call is cut at the deadline and recorded."""
        ai = FakeAIGenerator(script=[HANG])
        options = GenerationOptions(prefer_ai=True, max_retries=1, timeout_ms=20)

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, options
        )

        assert posting.strategy is GenerationStrategy.STATIC
        assert ai.calls == 2
        assert all(isinstance(e, AITimeout) for e in posting.ai_errors)
        assert posting.ai_errors[0].transient is True

    @pytest.mark.asyncio
    async def test_transient_errors_back_off_exponentially(self, purchase_invoice, chart):
        sleep = AsyncMock()
        ai = FakeAIGenerator(script=[AIRateLimited("slow down")])
        options = replace(FAST, retry_backoff_ms=100)

        await GenerationOrchestrator(ai_generator=ai, sleep=sleep).generate(
            purchase_invoice, chart, options
        )

        # No sleep after the final attempt
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_non_transient_errors_do_not_back_off(self, purchase_invoice, chart):
        sleep = AsyncMock()
        ai = FakeAIGenerator(script=[MalformedResponse("garbage")])
        options = replace(FAST, retry_backoff_ms=100)

        await GenerationOrchestrator(ai_generator=ai, sleep=sleep).generate(
            purchase_invoice, chart, options
        )

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ai_not_preferred(self, purchase_invoice, chart):
        ai = FakeAIGenerator(script=[AI_LINES])

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, replace(FAST, prefer_ai=False)
        )

        assert ai.calls == 0
        assert posting.strategy is GenerationStrategy.STATIC
        assert posting.ai_attempts == 0

    @pytest.mark.asyncio
    async def test_static_failure_carries_ai_errors(self, purchase_invoice, chart):
        """Test that AI errors surface only when the static rules fail too."""
        ai = FakeAIGenerator(script=[AIServiceUnavailable("down")])
        chart = [a for a in chart if a.number != "401000"]

        with pytest.raises(NoApplicableRule) as exc_info:
            await GenerationOrchestrator(ai_generator=ai).generate(purchase_invoice, chart, FAST)

        error = exc_info.value
        assert error.missing_roles == ["supplier"]
        assert len(error.ai_errors) == 3
        assert len(error.details["ai_errors"]) == 3

    @pytest.mark.asyncio
    async def test_static_failure_without_ai(self, purchase_invoice, chart):
        chart = [a for a in chart if a.number != "401000"]

        with pytest.raises(NoApplicableRule) as exc_info:
            await GenerationOrchestrator().generate(purchase_invoice, chart, FAST)

        assert exc_info.value.ai_errors == []

    @pytest.mark.asyncio
    async def test_rounding_gap_corrected(self, purchase_invoice, chart):
        """Test 1190.000 / 1189.995 is corrected by 0.005 and accepted."""
        ai = FakeAIGenerator(
            script=[
                [
                    line("601000", debit="1000"),
                    line("445600", debit="190"),
                    line("401000", credit="1189.995"),
                ]
            ]
        )

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, FAST
        )

        assert posting.corrected is True
        assert posting.correction == Decimal("0.005")
        assert posting.lines[2].credit == Decimal("1190.000")
        assert posting.totals.difference == Decimal("0")

    @pytest.mark.asyncio
    async def test_unknown_accounts_not_retried(self, purchase_invoice, chart):
        """Test that gate failures are client-facing and skip the fallback."""
        ai = FakeAIGenerator(script=[[line("607100", debit="1190"), line("401000", credit="1190")]])
        static = SpyStaticGenerator()

        with pytest.raises(UnknownAccounts) as exc_info:
            await GenerationOrchestrator(static_generator=static, ai_generator=ai).generate(
                purchase_invoice, chart, FAST
            )

        assert exc_info.value.account_numbers == ["607100"]
        assert ai.calls == 1
        assert static.calls == 0

    @pytest.mark.asyncio
    async def test_gap_absorbed_on_one_line(self, purchase_invoice, chart):
        """Test that a 5.000 gap is closed on the first credit line."""
        ai = FakeAIGenerator(
            script=[
                [
                    line("601000", debit="1000"),
                    line("445600", debit="190"),
                    line("401000", credit="1185"),
                ]
            ]
        )

        posting = await GenerationOrchestrator(ai_generator=ai).generate(
            purchase_invoice, chart, FAST
        )

        assert posting.strategy is GenerationStrategy.AI
        assert posting.correction == Decimal("5.000")
        assert posting.lines[2].credit == Decimal("1190.000")

    @pytest.mark.asyncio
    async def test_unbalanced_ai_lines(self, purchase_invoice, chart):
        """Test that a gap with no line to absorb it reaches the gate."""
        ai = FakeAIGenerator(script=[[line("601000", debit="1190"), line("401000")]])

        with pytest.raises(Unbalanced) as exc_info:
            await GenerationOrchestrator(ai_generator=ai).generate(purchase_invoice, chart, FAST)

        assert exc_info.value.difference == Decimal("1190.000")

    @pytest.mark.asyncio
    async def test_unexpected_ai_exception_degrades_to_static(self, purchase_invoice, chart):
        """Test that an arbitrary SDK exception counts as a failed attempt."""
        ai = FakeAIGenerator(script=[RuntimeError("response has no choices")])
        sleep = AsyncMock()
        options = replace(FAST, retry_backoff_ms=100)

        posting = await GenerationOrchestrator(ai_generator=ai, sleep=sleep).generate(
            purchase_invoice, chart, options
        )

        assert posting.strategy is GenerationStrategy.STATIC
        assert ai.calls == 3
        assert [e.code for e in posting.ai_errors] == ["ai_provider_error"] * 3
        assert posting.ai_errors[0].provider == "fake"
        assert "response has no choices" in posting.ai_errors[0].message
        # Not transient, so no back-off
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_postings_balance(self, purchase_invoice, sale_invoice, bank_statement, chart):
        """Test every successful posting balances within one unit."""
        orchestrator = GenerationOrchestrator()

        for document in (purchase_invoice, sale_invoice, bank_statement):
            posting = await orchestrator.generate(document, chart, FAST)
            assert posting.totals.difference <= Decimal("1")
            assert posting.document_id == document.id
