"""Atomic poster - commits a posting and flips the document status.

Everything happens in one transaction:
1. Lock the document row and delete its existing ledger lines
2. Insert the validated lines with their chart labels
3. Write the generation metadata and flip the status, guarded on an unposted status name

A guarded update that touches no row means another request posted the
document first; the whole transaction is then rolled back.
"""

from collections.abc import Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledger_posting.documents import Document, DocumentStatus
from ledger_posting.errors import (
    AlreadyPosted,
    DocumentNotFound,
    GenerationError,
    PostingFailed,
    UnknownAccounts,
)
from ledger_posting.ledger import LedgerLine, Posting, PostingResult
from ledger_posting.store.db import session_scope
from ledger_posting.store.repository import DOCUMENT_TABLES, stored_status
from ledger_posting.store.tables import AccountRow, LedgerLineRow

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AtomicPoster:
    """The only writer of generated ledger lines."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._logger = logger.bind(component="poster")

    def post(self, document: Document, posting: Posting) -> PostingResult:
        """Replace the document's lines with ``posting`` and mark it POSTED.

        Raises:
            DocumentNotFound: If the document row no longer exists.
            AlreadyPosted: If the document is (or concurrently became) posted.
            InvalidDocument: If the stored status name is unknown.
            UnknownAccounts: If a line's account vanished from the chart.
            PostingFailed: On any storage failure; nothing was written.
        """
        log = self._logger.bind(document_id=str(document.id))
        try:
            with session_scope(self._session_factory) as session:
                result = self._post_in_session(session, document, posting)
        except GenerationError:
            raise
        except SQLAlchemyError as e:
            log.error("posting_failed", error=str(e))
            raise PostingFailed(document.id, str(e)) from e

        log.info(
            "posting_committed",
            strategy=posting.strategy.value,
            line_count=len(result.lines),
            total_debit=str(result.metadata.total_debit),
            total_credit=str(result.metadata.total_credit),
        )
        return result

    def _post_in_session(
        self, session: Session, document: Document, posting: Posting
    ) -> PostingResult:
        table, fk_name = DOCUMENT_TABLES[document.kind]
        fk_column = getattr(LedgerLineRow, fk_name)

        row = session.scalars(
            select(table).where(table.id == document.id).with_for_update()
        ).first()
        if row is None:
            raise DocumentNotFound(document.id)
        if stored_status(row) is DocumentStatus.POSTED:
            raise AlreadyPosted(document.id)

        session.execute(delete(LedgerLineRow).where(fk_column == document.id))

        numbers = {line.account_number for line in posting.lines}
        accounts = {
            account.number: account
            for account in session.scalars(
                select(AccountRow).where(
                    AccountRow.tenant_id == row.tenant_id,
                    AccountRow.number.in_(numbers),
                )
            )
        }
        missing = sorted(numbers - accounts.keys())
        if missing:
            raise UnknownAccounts(missing)

        line_rows = []
        for position, line in enumerate(posting.lines):
            account = accounts[line.account_number]
            line_row = LedgerLineRow(
                account_id=account.id,
                position=position,
                account_number=account.number,
                account_label=account.label,
                debit=line.debit,
                credit=line.credit,
                date=row.date,
            )
            setattr(line_row, fk_name, document.id)
            line_rows.append(line_row)
        session.add_all(line_rows)
        session.flush()

        metadata = posting.metadata(self._clock())
        updated = session.execute(
            update(table)
            .where(
                table.id == document.id,
                table.status.in_(DocumentStatus.UNPOSTED.aliases()),
            )
            .values(
                status=DocumentStatus.POSTED.value,
                generated_at=metadata.generated_at,
                generation_strategy=metadata.strategy.value,
                generated_line_count=metadata.line_count,
                generated_total_debit=metadata.total_debit,
                generated_total_credit=metadata.total_credit,
            )
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount == 0:
            raise AlreadyPosted(document.id)

        return PostingResult(
            document_id=document.id,
            lines=[
                LedgerLine(
                    id=line_row.id,
                    document_id=document.id,
                    account_number=line_row.account_number,
                    account_label=line_row.account_label,
                    debit=line_row.debit,
                    credit=line_row.credit,
                    date=line_row.date,
                )
                for line_row in line_rows
            ],
            metadata=metadata,
        )
