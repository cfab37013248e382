"""Single-line balance correction for debit/credit gaps."""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from ledger_posting.ledger import CandidateLine, Side, Totals
from ledger_posting.money import CORRECTION_THRESHOLD, ZERO

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BalanceCorrection:
    """Corrected lines and what, if anything, was adjusted."""

    lines: list[CandidateLine]
    adjusted_index: int | None = None
    side: Side | None = None
    amount: Decimal = ZERO

    @property
    def corrected(self) -> bool:
        return self.adjusted_index is not None


def correct_balance(lines: list[CandidateLine]) -> BalanceCorrection:
    """Close a debit/credit gap by adjusting exactly one line.

    The difference is added to the first line carrying a non-zero amount on
    the smaller side, whatever its size; the validation gate judges the
    result. Gaps below the correction threshold and sets with no eligible
    line come back unchanged.

    Args:
        lines: Candidate lines, possibly unbalanced.

    Returns:
        BalanceCorrection holding the (possibly) adjusted lines.
    """
    totals = Totals.of(lines)
    diff = totals.difference

    if diff < CORRECTION_THRESHOLD:
        return BalanceCorrection(lines=list(lines))

    side = Side.DEBIT if totals.debit < totals.credit else Side.CREDIT
    for index, line in enumerate(lines):
        if line.amount_on(side) != ZERO:
            corrected = list(lines)
            corrected[index] = line.adjusted(side, diff)
            logger.info(
                "balance_corrected",
                account_number=line.account_number,
                side=side.value,
                amount=str(diff),
            )
            return BalanceCorrection(
                lines=corrected, adjusted_index=index, side=side, amount=diff
            )

    return BalanceCorrection(lines=list(lines))
