"""Deterministic entry generation from well-known account numbers.

Each document kind maps to a fixed journal pattern. Accounts are looked up
by role: the preferred numbers first, then the first chart account sharing
the role's class prefix.

Purchase invoice:  D expense (excl. tax), D deductible VAT, C supplier (incl. tax)
Sale invoice:      D customer (incl. tax), C revenue (excl. tax), C collected VAT
Bank statement:    per movement, D bank / C customer for money in, and
                   D supplier (or bank fees) / C bank for money out
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from ledger_posting.documents import BankStatement, Document, PurchaseInvoice, SaleInvoice
from ledger_posting.errors import NoApplicableRule
from ledger_posting.generators.base import EntryGenerator
from ledger_posting.ledger import Account, CandidateLine, GenerationStrategy, Side
from ledger_posting.money import ZERO, quantize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AccountRole:
    """How to find the account playing a role in a journal pattern."""

    name: str
    preferred: tuple[str, ...]
    prefix: str


PURCHASE_EXPENSE = AccountRole("purchase_expense", ("601000", "607000", "606000"), "6")
DEDUCTIBLE_VAT = AccountRole("deductible_vat", ("445600", "445660", "437000"), "4456")
SUPPLIER = AccountRole("supplier", ("401000",), "401")
CUSTOMER = AccountRole("customer", ("411000",), "411")
REVENUE = AccountRole("revenue", ("701000", "707000", "706000"), "7")
COLLECTED_VAT = AccountRole("collected_vat", ("445700", "445710", "436000"), "4457")
BANK = AccountRole("bank", ("532000", "512000"), "5")
BANK_FEES = AccountRole("bank_fees", ("627000",), "627")

FEE_KEYWORDS = ("frais", "commission", "agios", "fee")


def is_fee_label(label: str) -> bool:
    lowered = label.lower()
    return any(keyword in lowered for keyword in FEE_KEYWORDS)


class _Resolver:
    """Role lookups against one chart, remembering unresolved roles."""

    def __init__(self, chart: list[Account]):
        self._chart = chart
        self._by_number = {account.number: account for account in chart}
        self.missing: list[str] = []

    def resolve(self, role: AccountRole) -> Account | None:
        for number in role.preferred:
            if number in self._by_number:
                return self._by_number[number]
        for account in self._chart:
            if account.number.startswith(role.prefix):
                return account
        if role.name not in self.missing:
            self.missing.append(role.name)
        return None


class _LineBuilder:
    """Accumulates lines, dropping zero amounts and flipping negative ones."""

    def __init__(self, resolver: _Resolver, swap_sides: bool = False):
        self._resolver = resolver
        self._swap = swap_sides
        self.lines: list[CandidateLine] = []

    def add(self, role: AccountRole, side: Side, amount: Decimal) -> None:
        amount = quantize(amount)
        if amount == ZERO:
            return
        if amount < ZERO:
            amount = -amount
            side = Side.CREDIT if side is Side.DEBIT else Side.DEBIT
        if self._swap:
            side = Side.CREDIT if side is Side.DEBIT else Side.DEBIT

        account = self._resolver.resolve(role)
        if account is None:
            return
        self.lines.append(
            CandidateLine(
                account_number=account.number,
                account_label=account.label,
                debit=amount if side is Side.DEBIT else ZERO,
                credit=amount if side is Side.CREDIT else ZERO,
            )
        )


class StaticRuleGenerator(EntryGenerator):
    """Rule-based generator used when AI is disabled or has failed."""

    strategy = GenerationStrategy.STATIC

    def __init__(self) -> None:
        self._logger = logger.bind(component="static_rules")

    async def attempt(self, document: Document, chart: list[Account]) -> list[CandidateLine]:
        return self.generate(document, chart)

    def generate(self, document: Document, chart: list[Account]) -> list[CandidateLine]:
        """Build the canonical lines for a document.

        Raises:
            NoApplicableRule: If a required account role has no chart account
                or the document yields no non-zero line.
        """
        resolver = _Resolver(chart)
        match document:
            case PurchaseInvoice():
                builder = _LineBuilder(resolver, swap_sides=document.is_credit_note)
                builder.add(PURCHASE_EXPENSE, Side.DEBIT, document.total_excluding_tax)
                builder.add(DEDUCTIBLE_VAT, Side.DEBIT, document.total_tax)
                builder.add(SUPPLIER, Side.CREDIT, document.total_including_tax)
            case SaleInvoice():
                builder = _LineBuilder(resolver, swap_sides=document.is_credit_note)
                builder.add(CUSTOMER, Side.DEBIT, document.total_including_tax)
                builder.add(REVENUE, Side.CREDIT, document.total_excluding_tax)
                builder.add(COLLECTED_VAT, Side.CREDIT, document.total_tax)
            case BankStatement():
                builder = _LineBuilder(resolver)
                for movement in document.movements:
                    # Money in
                    builder.add(BANK, Side.DEBIT, movement.credit)
                    builder.add(CUSTOMER, Side.CREDIT, movement.credit)
                    # Money out
                    counterpart = BANK_FEES if is_fee_label(movement.label) else SUPPLIER
                    builder.add(counterpart, Side.DEBIT, movement.debit)
                    builder.add(BANK, Side.CREDIT, movement.debit)
            case _:
                raise NoApplicableRule(type(document).__name__)

        if resolver.missing or not builder.lines:
            self._logger.warning(
                "no_applicable_rule",
                document_id=str(document.id),
                kind=document.kind.value,
                missing_roles=resolver.missing,
            )
            raise NoApplicableRule(document.kind.value, resolver.missing)

        self._logger.debug(
            "static_lines_generated",
            document_id=str(document.id),
            line_count=len(builder.lines),
        )
        return builder.lines
