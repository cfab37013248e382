"""Ledger value types: accounts, lines, postings and their metadata."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from ledger_posting.money import ZERO, format_amount, total

if TYPE_CHECKING:
    from ledger_posting.errors import AIGenerationError


class AccountCategory(str, Enum):
    """Financial statement category of an account."""

    ASSET = "asset"
    LIABILITY = "liability"
    EXPENSE = "expense"
    REVENUE = "revenue"
    EQUITY = "equity"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Account:
    """An entry of a tenant's chart of accounts."""

    tenant_id: UUID
    number: str
    label: str
    category: AccountCategory = AccountCategory.UNKNOWN
    id: UUID = field(default_factory=uuid4)


class GenerationStrategy(str, Enum):
    """Which algorithm proposed the lines of a posting."""

    AI = "AI"
    STATIC = "STATIC"


class Side(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class CandidateLine:
    """A proposed ledger line, before validation and persistence."""

    account_number: str
    account_label: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    def amount_on(self, side: Side) -> Decimal:
        return self.debit if side is Side.DEBIT else self.credit

    def adjusted(self, side: Side, delta: Decimal) -> "CandidateLine":
        """Return a copy with ``delta`` added to the given side."""
        if side is Side.DEBIT:
            return replace(self, debit=self.debit + delta)
        return replace(self, credit=self.credit + delta)

    def to_dict(self) -> dict[str, str]:
        return {
            "account_number": self.account_number,
            "account_label": self.account_label,
            "debit": format_amount(self.debit),
            "credit": format_amount(self.credit),
        }


@dataclass(frozen=True)
class LedgerLine:
    """A committed ledger line belonging to one document."""

    document_id: UUID
    account_number: str
    account_label: str
    debit: Decimal
    credit: Decimal
    date: date
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Totals:
    """Debit and credit totals of a set of lines."""

    debit: Decimal
    credit: Decimal

    @property
    def difference(self) -> Decimal:
        return abs(self.debit - self.credit)

    @classmethod
    def of(cls, lines: "list[CandidateLine] | list[LedgerLine]") -> "Totals":
        return cls(
            debit=total(line.debit for line in lines),
            credit=total(line.credit for line in lines),
        )


@dataclass(frozen=True)
class GenerationMetadata:
    """Summary attached to a document once it has been posted."""

    generated_at: datetime
    strategy: GenerationStrategy
    line_count: int
    total_debit: Decimal
    total_credit: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "strategy": self.strategy.value,
            "line_count": self.line_count,
            "total_debit": format_amount(self.total_debit),
            "total_credit": format_amount(self.total_credit),
        }


@dataclass
class Posting:
    """A validated, balanced set of lines ready to be committed.

    ``correction`` is the amount the balance corrector added to one line
    (zero when the candidates already balanced). ``ai_errors`` lists the
    failed AI attempts that preceded a static fallback.
    """

    document_id: UUID
    lines: list[CandidateLine]
    strategy: GenerationStrategy
    correction: Decimal = ZERO
    ai_attempts: int = 0
    ai_errors: list["AIGenerationError"] = field(default_factory=list)

    @property
    def corrected(self) -> bool:
        return self.correction != ZERO

    @property
    def totals(self) -> Totals:
        return Totals.of(self.lines)

    def metadata(self, generated_at: datetime) -> GenerationMetadata:
        totals = self.totals
        return GenerationMetadata(
            generated_at=generated_at,
            strategy=self.strategy,
            line_count=len(self.lines),
            total_debit=totals.debit,
            total_credit=totals.credit,
        )

    def to_dict(self) -> dict[str, Any]:
        totals = self.totals
        return {
            "document_id": str(self.document_id),
            "strategy": self.strategy.value,
            "correction": format_amount(self.correction),
            "ai_attempts": self.ai_attempts,
            "ai_errors": [error.to_dict() for error in self.ai_errors],
            "lines": [line.to_dict() for line in self.lines],
            "total_debit": format_amount(totals.debit),
            "total_credit": format_amount(totals.credit),
        }


@dataclass
class PostingResult:
    """Outcome of a committed posting."""

    document_id: UUID
    lines: list[LedgerLine]
    metadata: GenerationMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": str(self.document_id),
            "status": "POSTED",
            "metadata": self.metadata.to_dict(),
            "lines": [
                {
                    "id": str(line.id),
                    "account_number": line.account_number,
                    "account_label": line.account_label,
                    "debit": format_amount(line.debit),
                    "credit": format_amount(line.credit),
                    "date": line.date.isoformat(),
                }
                for line in self.lines
            ],
        }
