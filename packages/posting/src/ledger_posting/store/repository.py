"""Repositories mapping ORM rows to the domain documents and accounts."""

from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from ledger_posting.documents import (
    BankStatement,
    Document,
    DocumentKind,
    DocumentStatus,
    Movement,
    PurchaseInvoice,
    SaleInvoice,
)
from ledger_posting.errors import AccountInUse, DocumentNotFound, InvalidDocument
from ledger_posting.ledger import (
    Account,
    AccountCategory,
    GenerationMetadata,
    GenerationStrategy,
    LedgerLine,
)
from ledger_posting.money import ZERO
from ledger_posting.store.db import session_scope
from ledger_posting.store.tables import (
    AccountRow,
    BankMovementRow,
    BankStatementRow,
    LedgerLineRow,
    PurchaseInvoiceRow,
    SaleInvoiceRow,
)

logger = structlog.get_logger(__name__)

DocumentRow = PurchaseInvoiceRow | SaleInvoiceRow | BankStatementRow

# Document kind -> (table, ledger line foreign key column)
DOCUMENT_TABLES: dict[DocumentKind, tuple[type[DocumentRow], str]] = {
    DocumentKind.PURCHASE_INVOICE: (PurchaseInvoiceRow, "purchase_invoice_id"),
    DocumentKind.SALE_INVOICE: (SaleInvoiceRow, "sale_invoice_id"),
    DocumentKind.BANK_STATEMENT: (BankStatementRow, "bank_statement_id"),
}


def line_document_column(kind: DocumentKind):
    """Return the ``ledger_lines`` column referencing documents of ``kind``."""
    return getattr(LedgerLineRow, DOCUMENT_TABLES[kind][1])


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================


def _account_from_row(row: AccountRow) -> Account:
    try:
        category = AccountCategory(row.category)
    except ValueError:
        category = AccountCategory.UNKNOWN
    return Account(
        id=row.id,
        tenant_id=row.tenant_id,
        number=row.number,
        label=row.label,
        category=category,
    )


class ChartOfAccounts:
    """Read access to a tenant's chart, plus the maintenance operations."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._logger = logger.bind(component="chart_of_accounts")

    def list_accounts(self, tenant_id: UUID) -> list[Account]:
        """List the tenant's accounts ordered by number; empty if none."""
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(AccountRow)
                .where(AccountRow.tenant_id == tenant_id)
                .order_by(AccountRow.number)
            ).all()
            return [_account_from_row(row) for row in rows]

    def get_account(self, tenant_id: UUID, number: str) -> Account | None:
        with session_scope(self._session_factory) as session:
            row = session.scalars(
                select(AccountRow).where(
                    AccountRow.tenant_id == tenant_id, AccountRow.number == number
                )
            ).first()
            return _account_from_row(row) if row else None

    def add_account(
        self,
        tenant_id: UUID,
        number: str,
        label: str,
        category: AccountCategory = AccountCategory.UNKNOWN,
    ) -> Account:
        """Create an account. The number must be unique within the tenant."""
        with session_scope(self._session_factory) as session:
            row = AccountRow(
                tenant_id=tenant_id,
                number=number.strip(),
                label=label.strip(),
                category=AccountCategory(category).value,
            )
            session.add(row)
            session.flush()
            account = _account_from_row(row)

        self._logger.info("account_added", tenant_id=str(tenant_id), number=account.number)
        return account

    def delete_account(self, tenant_id: UUID, number: str) -> bool:
        """Delete an account not referenced by any ledger line.

        Returns:
            True if an account was deleted, False if none matched.

        Raises:
            AccountInUse: If ledger lines reference the account.
        """
        with session_scope(self._session_factory) as session:
            row = session.scalars(
                select(AccountRow).where(
                    AccountRow.tenant_id == tenant_id, AccountRow.number == number
                )
            ).first()
            if row is None:
                return False

            line_count = session.scalar(
                select(func.count())
                .select_from(LedgerLineRow)
                .where(LedgerLineRow.account_id == row.id)
            )
            if line_count:
                raise AccountInUse(number, line_count)

            session.delete(row)

        self._logger.info("account_deleted", tenant_id=str(tenant_id), number=number)
        return True


# =============================================================================
# DOCUMENTS
# =============================================================================


def _generation_from_row(row: DocumentRow) -> GenerationMetadata | None:
    if row.generated_at is None or row.generation_strategy is None:
        return None
    return GenerationMetadata(
        generated_at=row.generated_at,
        strategy=GenerationStrategy(row.generation_strategy),
        line_count=row.generated_line_count or 0,
        total_debit=row.generated_total_debit or ZERO,
        total_credit=row.generated_total_credit or ZERO,
    )


def stored_status(row: DocumentRow) -> DocumentStatus:
    """Normalized status of a document row.

    Raises:
        InvalidDocument: If the row holds an unknown status name.
    """
    try:
        return DocumentStatus.normalize(row.status)
    except ValueError as e:
        raise InvalidDocument(row.id, str(e)) from e


def document_from_row(row: DocumentRow) -> Document:
    """Convert a document row into its domain variant."""
    common = {
        "generation": _generation_from_row(row),
        "id": row.id,
        "tenant_id": row.tenant_id,
        "date": row.date,
        "counterparty_name": row.counterparty_name,
        "total_excluding_tax": row.total_excluding_tax,
        "total_tax": row.total_tax,
        "total_including_tax": row.total_including_tax,
        "status": stored_status(row),
    }
    if isinstance(row, PurchaseInvoiceRow):
        return PurchaseInvoice(
            **common, reference=row.reference, is_credit_note=row.is_credit_note
        )
    if isinstance(row, SaleInvoiceRow):
        return SaleInvoice(
            **common, reference=row.reference, is_credit_note=row.is_credit_note
        )
    return BankStatement(
        **common,
        account_number=row.account_number,
        opening_balance=row.opening_balance,
        closing_balance=row.closing_balance,
        bank_fees=row.bank_fees,
        movements=[
            Movement(date=m.date, label=m.label, debit=m.debit, credit=m.credit)
            for m in row.movements
        ],
    )


def _row_from_document(document: Document) -> DocumentRow:
    common = {
        "id": document.id,
        "tenant_id": document.tenant_id,
        "date": document.date,
        "counterparty_name": document.counterparty_name,
        "total_excluding_tax": document.total_excluding_tax,
        "total_tax": document.total_tax,
        "total_including_tax": document.total_including_tax,
        "status": DocumentStatus.normalize(document.status).value,
    }
    match document:
        case PurchaseInvoice():
            return PurchaseInvoiceRow(
                **common,
                reference=document.reference,
                is_credit_note=document.is_credit_note,
            )
        case SaleInvoice():
            return SaleInvoiceRow(
                **common,
                reference=document.reference,
                is_credit_note=document.is_credit_note,
            )
        case BankStatement():
            return BankStatementRow(
                **common,
                account_number=document.account_number,
                opening_balance=document.opening_balance,
                closing_balance=document.closing_balance,
                bank_fees=document.bank_fees,
                movements=[
                    BankMovementRow(
                        position=position,
                        date=m.date,
                        label=m.label,
                        debit=m.debit,
                        credit=m.credit,
                    )
                    for position, m in enumerate(document.movements)
                ],
            )
    raise TypeError(f"Unsupported document type: {type(document).__name__}")


def find_document_row(session: Session, document_id: UUID) -> DocumentRow | None:
    """Look a document up across the three document tables."""
    for table, _ in DOCUMENT_TABLES.values():
        row = session.get(table, document_id)
        if row is not None:
            return row
    return None


class DocumentRepository:
    """Fetches source documents and their committed ledger lines."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._logger = logger.bind(component="document_repository")

    def get(self, document_id: UUID) -> Document:
        """Fetch a document by id, whatever its kind.

        Raises:
            DocumentNotFound: If no table holds the id.
        """
        with session_scope(self._session_factory) as session:
            row = find_document_row(session, document_id)
            if row is None:
                raise DocumentNotFound(document_id)
            return document_from_row(row)

    def add(self, document: Document) -> Document:
        """Store a new document (ingestion is external; used for seeding)."""
        with session_scope(self._session_factory) as session:
            session.add(_row_from_document(document))

        self._logger.debug(
            "document_added", document_id=str(document.id), kind=document.kind.value
        )
        return document

    def list_pending(self, tenant_id: UUID) -> list[Document]:
        """All UNPOSTED documents of a tenant, oldest first within each kind."""
        documents: list[Document] = []
        with session_scope(self._session_factory) as session:
            for table, _ in DOCUMENT_TABLES.values():
                rows = session.scalars(
                    select(table)
                    .where(
                        table.tenant_id == tenant_id,
                        table.status.in_(DocumentStatus.UNPOSTED.aliases()),
                    )
                    .order_by(table.date, table.created_at)
                ).all()
                documents.extend(document_from_row(row) for row in rows)
        return documents

    def lines_for(self, document: Document) -> list[LedgerLine]:
        """Committed ledger lines of a document, in posting order."""
        column = line_document_column(document.kind)
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(LedgerLineRow)
                .where(column == document.id)
                .order_by(LedgerLineRow.position)
            ).all()
            return [
                LedgerLine(
                    id=row.id,
                    document_id=document.id,
                    account_number=row.account_number,
                    account_label=row.account_label,
                    debit=row.debit,
                    credit=row.credit,
                    date=row.date,
                )
                for row in rows
            ]
