"""ORM tables for accounts, source documents and ledger lines."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_posting.money import ZERO
from ledger_posting.store.db import Base, UUIDString


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountRow(Base):
    """Chart of accounts entry, unique by number within a tenant."""

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_account_tenant_number"),
        Index("idx_account_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    number: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")


class PostableColumns:
    """Columns shared by every postable document table.

    Status plus the typed generation metadata written by the poster.
    """

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    counterparty_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    total_excluding_tax: Mapped[Decimal] = mapped_column(default=ZERO)
    total_tax: Mapped[Decimal] = mapped_column(default=ZERO)
    total_including_tax: Mapped[Decimal] = mapped_column(default=ZERO)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UNPOSTED")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # Generation metadata, set together with status=POSTED
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    generation_strategy: Mapped[str | None] = mapped_column(String(10))
    generated_line_count: Mapped[int | None] = mapped_column(Integer)
    generated_total_debit: Mapped[Decimal | None] = mapped_column()
    generated_total_credit: Mapped[Decimal | None] = mapped_column()


class PurchaseInvoiceRow(PostableColumns, Base):
    __tablename__ = "purchase_invoices"

    reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_credit_note: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class SaleInvoiceRow(PostableColumns, Base):
    __tablename__ = "sale_invoices"

    reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_credit_note: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class BankStatementRow(PostableColumns, Base):
    __tablename__ = "bank_statements"

    account_number: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    opening_balance: Mapped[Decimal] = mapped_column(default=ZERO)
    closing_balance: Mapped[Decimal] = mapped_column(default=ZERO)
    bank_fees: Mapped[Decimal] = mapped_column(default=ZERO)

    movements: Mapped[list["BankMovementRow"]] = relationship(
        back_populates="statement",
        cascade="all, delete-orphan",
        order_by="BankMovementRow.position",
        lazy="selectin",
    )


class BankMovementRow(Base):
    __tablename__ = "bank_movements"

    statement_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bank_statements.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    label: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    debit: Mapped[Decimal] = mapped_column(default=ZERO)
    credit: Mapped[Decimal] = mapped_column(default=ZERO)

    statement: Mapped[BankStatementRow] = relationship(back_populates="movements")


class LedgerLineRow(Base):
    """A ledger line tied to exactly one source document."""

    __tablename__ = "ledger_lines"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN purchase_invoice_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN sale_invoice_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN bank_statement_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_ledger_line_one_document",
        ),
        Index("idx_ledger_line_account", "account_id"),
    )

    purchase_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), index=True
    )
    sale_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("sale_invoices.id"), index=True
    )
    bank_statement_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_statements.id"), index=True
    )
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    account_number: Mapped[str] = mapped_column(String(20), nullable=False)
    account_label: Mapped[str] = mapped_column(String(255), nullable=False)
    debit: Mapped[Decimal] = mapped_column(default=ZERO)
    credit: Mapped[Decimal] = mapped_column(default=ZERO)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    @property
    def document_id(self) -> UUID:
        return self.purchase_invoice_id or self.sale_invoice_id or self.bank_statement_id  # type: ignore[return-value]
