"""Posting service - the operation surface exposed to callers.

Every :class:`GenerationError` is converted into a structured outcome here;
callers never see an exception for an operator-facing failure.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledger_posting.clients import create_entry_client
from ledger_posting.config import FlatSettings, get_settings
from ledger_posting.documents import Document, DocumentStatus
from ledger_posting.errors import GenerationError, PostingFailed
from ledger_posting.generators import AIAssistedGenerator, StaticRuleGenerator
from ledger_posting.ledger import (
    Account,
    GenerationMetadata,
    LedgerLine,
    Posting,
    PostingResult,
    Totals,
)
from ledger_posting.money import format_amount
from ledger_posting.orchestrator import GenerationOptions, GenerationOrchestrator
from ledger_posting.poster import AtomicPoster
from ledger_posting.store import (
    ChartOfAccounts,
    DocumentRepository,
    create_db_engine,
    create_session_factory,
    create_tables,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class GenerationOutcome:
    """Either a committed (or previewed) posting or one generation error."""

    document_id: UUID
    result: PostingResult | None = None
    posting: Posting | None = None
    error: GenerationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"document_id": str(self.document_id), "ok": self.ok}
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.posting is not None:
            data["posting"] = self.posting.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class BatchResult:
    """Aggregate of a sequential batch run."""

    outcomes: list[GenerationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


@dataclass
class PostingSummary:
    """Stored ledger lines of a document with their totals."""

    document_id: UUID
    status: DocumentStatus
    lines: list[LedgerLine]
    generation: GenerationMetadata | None = None

    @property
    def totals(self) -> Totals:
        return Totals.of(self.lines)

    def to_dict(self) -> dict[str, Any]:
        totals = self.totals
        return {
            "document_id": str(self.document_id),
            "status": self.status.value,
            "line_count": len(self.lines),
            "total_debit": format_amount(totals.debit),
            "total_credit": format_amount(totals.credit),
            "generation": self.generation.to_dict() if self.generation else None,
        }


# =============================================================================
# SERVICE
# =============================================================================


class PostingService:
    """Fetches documents, generates their postings and commits them."""

    def __init__(
        self,
        chart: ChartOfAccounts,
        documents: DocumentRepository,
        orchestrator: GenerationOrchestrator,
        poster: AtomicPoster,
        batch_delay_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._chart = chart
        self._documents = documents
        self._orchestrator = orchestrator
        self._poster = poster
        self._batch_delay_ms = (
            get_settings().batch_delay_ms if batch_delay_ms is None else batch_delay_ms
        )
        self._sleep = sleep
        self._logger = logger.bind(component="posting_service")

    async def generate(
        self, document_id: UUID, options: GenerationOptions | None = None
    ) -> GenerationOutcome:
        """Generate and commit the posting of one document."""
        try:
            document, chart = await asyncio.to_thread(self._load, document_id)
            posting = await self._orchestrator.generate(document, chart, options)
            result = await asyncio.to_thread(self._poster.post, document, posting)
        except GenerationError as e:
            self._logger.warning(
                "generation_failed",
                document_id=str(document_id),
                error_code=e.code,
                error=e.message,
            )
            return GenerationOutcome(document_id=document_id, error=e)

        return GenerationOutcome(document_id=document_id, result=result, posting=posting)

    async def preview(
        self, document_id: UUID, options: GenerationOptions | None = None
    ) -> GenerationOutcome:
        """Generate and validate a posting without committing it."""
        try:
            document, chart = await asyncio.to_thread(self._load, document_id)
            posting = await self._orchestrator.generate(document, chart, options)
        except GenerationError as e:
            self._logger.info("preview_failed", document_id=str(document_id), error_code=e.code)
            return GenerationOutcome(document_id=document_id, error=e)

        return GenerationOutcome(document_id=document_id, posting=posting)

    def _load(self, document_id: UUID) -> tuple[Document, list[Account]]:
        """Fetch a document and its tenant's chart of accounts.

        Raises:
            DocumentNotFound: If the document does not exist.
            InvalidDocument: If the stored document cannot be read back.
            PostingFailed: On a storage failure while reading.
        """
        try:
            document = self._documents.get(document_id)
            return document, self._chart.list_accounts(document.tenant_id)
        except SQLAlchemyError as e:
            self._logger.error("document_load_failed", document_id=str(document_id), error=str(e))
            raise PostingFailed(document_id, str(e)) from e

    async def generate_batch(
        self, document_ids: Iterable[UUID], options: GenerationOptions | None = None
    ) -> BatchResult:
        """Generate documents one at a time with a fixed delay between calls.

        A failing document does not stop the batch and earlier successes are
        kept.
        """
        batch = BatchResult()
        for index, document_id in enumerate(document_ids):
            if index and self._batch_delay_ms:
                await self._sleep(self._batch_delay_ms / 1000)
            batch.outcomes.append(await self.generate(document_id, options))

        self._logger.info(
            "batch_completed",
            total=len(batch.outcomes),
            succeeded=batch.succeeded,
            failed=batch.failed,
        )
        return batch

    async def generate_pending(
        self, tenant_id: UUID, options: GenerationOptions | None = None
    ) -> BatchResult:
        """Run the batch over every unposted document of a tenant."""
        pending = await asyncio.to_thread(self._documents.list_pending, tenant_id)
        self._logger.info("pending_batch_started", tenant_id=str(tenant_id), count=len(pending))
        return await self.generate_batch([document.id for document in pending], options)

    def posting_summary(self, document_id: UUID) -> PostingSummary:
        """Stored lines and generation metadata of a document.

        Raises:
            DocumentNotFound: If the document does not exist.
        """
        document = self._documents.get(document_id)
        return PostingSummary(
            document_id=document.id,
            status=document.status,
            lines=self._documents.lines_for(document),
            generation=document.generation,
        )


def build_service(
    settings: FlatSettings | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> PostingService:
    """Wire a PostingService from settings.

    Creates the engine and tables when no session factory is given. The AI
    generator is only configured when the selected provider has an API key.
    """
    settings = settings or get_settings()
    if session_factory is None:
        engine = create_db_engine(settings.database_url, settings.database_echo)
        create_tables(engine)
        session_factory = create_session_factory(engine)

    client = create_entry_client(settings)
    orchestrator = GenerationOrchestrator(
        static_generator=StaticRuleGenerator(),
        ai_generator=AIAssistedGenerator(client) if client is not None else None,
    )
    logger.info(
        "posting_service_built",
        ai_provider=client.provider if client is not None else None,
    )
    return PostingService(
        chart=ChartOfAccounts(session_factory),
        documents=DocumentRepository(session_factory),
        orchestrator=orchestrator,
        poster=AtomicPoster(session_factory),
        batch_delay_ms=settings.batch_delay_ms,
    )
