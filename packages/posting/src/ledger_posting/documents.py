"""Source documents that can be turned into postings.

Purchase invoices, sale invoices and bank statements form a closed tagged
variant. Callers switch on :attr:`SourceDocument.kind` explicitly rather than
checking for optional fields.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from ledger_posting.ledger import GenerationMetadata
from ledger_posting.money import ZERO, total


class DocumentKind(str, Enum):
    """Kinds of postable documents."""

    PURCHASE_INVOICE = "purchase_invoice"
    SALE_INVOICE = "sale_invoice"
    BANK_STATEMENT = "bank_statement"


class DocumentStatus(str, Enum):
    """Posting lifecycle of a document."""

    UNPOSTED = "UNPOSTED"
    POSTED = "POSTED"

    @classmethod
    def normalize(cls, value: "str | DocumentStatus") -> "DocumentStatus":
        """Collapse the historical status names onto the binary lifecycle.

        Raises:
            ValueError: If the status name is unknown.
        """
        if isinstance(value, DocumentStatus):
            return value
        key = str(value).strip().upper()
        if key in _POSTED_ALIASES:
            return cls.POSTED
        if key in _UNPOSTED_ALIASES:
            return cls.UNPOSTED
        raise ValueError(f"Unknown document status: {value!r}")

    def aliases(self) -> list[str]:
        """Stored status names that read back as this status."""
        return sorted(_POSTED_ALIASES if self is DocumentStatus.POSTED else _UNPOSTED_ALIASES)


_POSTED_ALIASES = frozenset({"POSTED", "COMPTABILISE", "VALIDATED"})
_UNPOSTED_ALIASES = frozenset(
    {"UNPOSTED", "PENDING", "PROCESSED", "REJECTED", "NON_COMPTABILISE"}
)


@dataclass(frozen=True)
class DocumentTotals:
    """Tax-exclusive, tax and tax-inclusive totals of a document."""

    excluding_tax: Decimal
    tax: Decimal
    including_tax: Decimal


@dataclass
class SourceDocument:
    """Fields shared by every postable document."""

    kind: ClassVar[DocumentKind]

    tenant_id: UUID
    date: date
    counterparty_name: str
    total_excluding_tax: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_including_tax: Decimal = ZERO
    status: DocumentStatus = DocumentStatus.UNPOSTED
    id: UUID = field(default_factory=uuid4)
    # Set once posted; informational only
    generation: GenerationMetadata | None = None

    def totals(self) -> DocumentTotals:
        return DocumentTotals(
            excluding_tax=self.total_excluding_tax,
            tax=self.total_tax,
            including_tax=self.total_including_tax,
        )

    @property
    def is_posted(self) -> bool:
        return self.status is DocumentStatus.POSTED


@dataclass
class PurchaseInvoice(SourceDocument):
    """An invoice received from a supplier."""

    kind: ClassVar[DocumentKind] = DocumentKind.PURCHASE_INVOICE

    reference: str = ""
    is_credit_note: bool = False


@dataclass
class SaleInvoice(SourceDocument):
    """An invoice issued to a customer."""

    kind: ClassVar[DocumentKind] = DocumentKind.SALE_INVOICE

    reference: str = ""
    is_credit_note: bool = False


@dataclass(frozen=True)
class Movement:
    """One line of a bank statement.

    ``debit`` is money leaving the account, ``credit`` money coming in, as
    printed on the statement.
    """

    date: date
    label: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO


@dataclass
class BankStatement(SourceDocument):
    """A bank statement with its ordered movements."""

    kind: ClassVar[DocumentKind] = DocumentKind.BANK_STATEMENT

    account_number: str = ""
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    bank_fees: Decimal = ZERO
    movements: list[Movement] = field(default_factory=list)

    @property
    def total_debits(self) -> Decimal:
        return total(m.debit for m in self.movements)

    @property
    def total_credits(self) -> Decimal:
        return total(m.credit for m in self.movements)

    def totals(self) -> DocumentTotals:
        # Statements carry no tax; the common totals are the statement turnover.
        turnover = self.total_debits + self.total_credits
        return DocumentTotals(excluding_tax=turnover, tax=ZERO, including_tax=turnover)


Document = PurchaseInvoice | SaleInvoice | BankStatement
