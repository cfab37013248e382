"""Generation orchestrator - turns a document into a validated posting.

The orchestrator owns the generation policy:
- Preconditions: the document is unposted and the chart is not empty
- An ordered strategy plan, AI first when preferred and configured
- Retries with a hard per-attempt deadline for the AI strategy
- Silent degrade to the static rules once AI attempts are exhausted
- Balance correction followed by the validation gate
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from ledger_posting.balance import correct_balance
from ledger_posting.config import FlatSettings, get_settings
from ledger_posting.documents import Document, DocumentStatus
from ledger_posting.errors import (
    AIGenerationError,
    AIProviderError,
    AITimeout,
    AlreadyPosted,
    EmptyChartOfAccounts,
    NoApplicableRule,
)
from ledger_posting.generators import AIAssistedGenerator, EntryGenerator, StaticRuleGenerator
from ledger_posting.ledger import Account, CandidateLine, GenerationStrategy, Posting
from ledger_posting.validation import ValidationGate

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call generation settings."""

    prefer_ai: bool = True
    max_retries: int = 2
    timeout_ms: int = 5000
    retry_backoff_ms: int = 0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if self.retry_backoff_ms < 0:
            raise ValueError("retry_backoff_ms must be >= 0")

    @classmethod
    def from_settings(cls, settings: FlatSettings | None = None) -> "GenerationOptions":
        settings = settings or get_settings()
        return cls(
            prefer_ai=settings.prefer_ai,
            max_retries=settings.ai_max_retries,
            timeout_ms=settings.ai_timeout_ms,
            retry_backoff_ms=settings.ai_retry_backoff_ms,
        )


class GenerationOrchestrator:
    """Sequences the generation strategies for one document.

    The AI generator is injected; without one every document goes through
    the static rules.
    """

    def __init__(
        self,
        static_generator: EntryGenerator | None = None,
        ai_generator: AIAssistedGenerator | EntryGenerator | None = None,
        gate: ValidationGate | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._static = static_generator or StaticRuleGenerator()
        self._ai = ai_generator
        self._gate = gate or ValidationGate()
        self._sleep = sleep
        self._logger = logger.bind(component="orchestrator")

    @property
    def has_ai(self) -> bool:
        return self._ai is not None

    def plan(self, options: GenerationOptions) -> list[EntryGenerator]:
        """Ordered strategies to try for the given options."""
        if options.prefer_ai and self._ai is not None:
            return [self._ai, self._static]
        return [self._static]

    async def generate(
        self,
        document: Document,
        chart: list[Account],
        options: GenerationOptions | None = None,
    ) -> Posting:
        """Generate, correct and validate the posting of a document.

        Args:
            document: The document to post.
            chart: The tenant's chart of accounts.
            options: Generation options, defaults from settings.

        Returns:
            A validated Posting tagged with the strategy that produced it.

        Raises:
            GenerationError: AlreadyPosted, EmptyChartOfAccounts,
                NoApplicableRule, UnknownAccounts or Unbalanced.
        """
        options = options or GenerationOptions.from_settings()
        log = self._logger.bind(document_id=str(document.id), kind=document.kind.value)

        if DocumentStatus.normalize(document.status) is not DocumentStatus.UNPOSTED:
            raise AlreadyPosted(document.id)
        if not chart:
            raise EmptyChartOfAccounts(document.tenant_id)

        plan = self.plan(options)
        log.info("generation_started", plan=[g.strategy.value for g in plan])

        ai_errors: list[AIGenerationError] = []
        ai_attempts = 0
        lines: list[CandidateLine] | None = None
        strategy = GenerationStrategy.STATIC

        for generator in plan:
            if generator.strategy is GenerationStrategy.AI:
                lines, ai_attempts = await self._attempt_with_retries(
                    generator, document, chart, options, ai_errors
                )
                if lines is None:
                    log.warning(
                        "ai_degraded_to_static",
                        attempts=ai_attempts,
                        last_error=ai_errors[-1].code if ai_errors else None,
                    )
                    continue
            else:
                try:
                    lines = await generator.attempt(document, chart)
                except NoApplicableRule as e:
                    if not ai_errors:
                        raise
                    raise NoApplicableRule(e.kind, e.missing_roles, ai_errors) from e
            strategy = generator.strategy
            break

        if lines is None:
            raise NoApplicableRule(document.kind.value, ai_errors=ai_errors)

        correction = correct_balance(lines)
        validated = self._gate.validate(correction.lines, chart)

        posting = Posting(
            document_id=document.id,
            lines=validated,
            strategy=strategy,
            correction=correction.amount,
            ai_attempts=ai_attempts,
            ai_errors=ai_errors,
        )
        totals = posting.totals
        log.info(
            "generation_completed",
            strategy=strategy.value,
            line_count=len(validated),
            total_debit=str(totals.debit),
            total_credit=str(totals.credit),
            corrected=posting.corrected,
        )
        return posting

    async def _attempt_with_retries(
        self,
        generator: EntryGenerator,
        document: Document,
        chart: list[Account],
        options: GenerationOptions,
        errors: list[AIGenerationError],
    ) -> tuple[list[CandidateLine] | None, int]:
        """Run the AI strategy up to ``max_retries + 1`` times.

        Returns:
            The lines (None once attempts are exhausted) and the attempt count.
        """
        timeout = options.timeout_ms / 1000
        attempts = 0

        for attempt in range(options.max_retries + 1):
            attempts += 1
            try:
                lines = await asyncio.wait_for(generator.attempt(document, chart), timeout)
                return lines, attempts
            except TimeoutError:
                error: AIGenerationError = AITimeout(
                    f"AI generation exceeded {options.timeout_ms} ms",
                    provider=getattr(generator, "provider", None),
                )
            except AIGenerationError as e:
                error = e
            except Exception as e:
                # SDK failures outside the client's error mapping
                error = AIProviderError(
                    f"{type(e).__name__}: {e}",
                    provider=getattr(generator, "provider", None),
                )

            errors.append(error)
            self._logger.warning(
                "ai_attempt_failed",
                document_id=str(document.id),
                attempt=attempts,
                error_code=error.code,
                transient=error.transient,
                error=error.message,
            )

            if error.transient and attempt < options.max_retries and options.retry_backoff_ms:
                await self._sleep(options.retry_backoff_ms * 2**attempt / 1000)

        return None, attempts
