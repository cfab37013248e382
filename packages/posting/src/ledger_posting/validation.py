"""Account existence and balance checks run before posting."""

from dataclasses import replace
from decimal import Decimal

import structlog

from ledger_posting.errors import Unbalanced, UnknownAccounts
from ledger_posting.ledger import Account, CandidateLine, Totals
from ledger_posting.money import BALANCE_TOLERANCE

logger = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 5


def _common_prefix_length(a: str, b: str) -> int:
    length = 0
    for left, right in zip(a, b):
        if left != right:
            break
        length += 1
    return length


def suggest_accounts(number: str, chart: list[Account], limit: int = MAX_SUGGESTIONS) -> list[str]:
    """Chart account numbers sharing the longest prefix with ``number``."""
    scored = [(_common_prefix_length(number, account.number), account.number) for account in chart]
    best = max((score for score, _ in scored), default=0)
    if best == 0:
        return []
    return sorted(n for score, n in scored if score == best)[:limit]


class ValidationGate:
    """Rejects candidate sets that reference unknown accounts or do not balance."""

    def __init__(self, tolerance: Decimal = BALANCE_TOLERANCE):
        self.tolerance = tolerance
        self._logger = logger.bind(component="validation_gate")

    def validate(self, lines: list[CandidateLine], chart: list[Account]) -> list[CandidateLine]:
        """Check ``lines`` against ``chart``.

        Returns:
            The lines with labels replaced by the chart's canonical labels.

        Raises:
            UnknownAccounts: If any line's account is missing from the chart.
            Unbalanced: If debits and credits differ by more than the tolerance.
        """
        by_number = {account.number: account for account in chart}

        unknown: list[str] = []
        for line in lines:
            if line.account_number not in by_number and line.account_number not in unknown:
                unknown.append(line.account_number)
        if unknown:
            suggestions = {number: suggest_accounts(number, chart) for number in unknown}
            self._logger.warning("unknown_accounts", account_numbers=unknown)
            raise UnknownAccounts(unknown, suggestions)

        totals = Totals.of(lines)
        if totals.difference > self.tolerance:
            self._logger.warning(
                "unbalanced_entries",
                total_debit=str(totals.debit),
                total_credit=str(totals.credit),
                difference=str(totals.difference),
            )
            raise Unbalanced(totals.debit, totals.credit, totals.difference, self.tolerance)

        return [
            replace(line, account_label=by_number[line.account_number].label) for line in lines
        ]
