"""Fixed-point amount helpers.

Every debit, credit and total in the engine is a ``Decimal`` quantized to the
ledger's minor unit (the millime, 0.001). Values arriving from outside
(AI responses, JSON, user input) go through :func:`to_amount` so that no float
ever reaches a ledger line.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

MINOR_UNIT = Decimal("0.001")
ZERO = Decimal("0.000")

# Differences smaller than this vanish at ledger precision.
CORRECTION_THRESHOLD = MINOR_UNIT / 100

# Maximum acceptable debit/credit gap for a posting (business decision, 1 unit).
BALANCE_TOLERANCE = Decimal("1.000")


def quantize(value: Decimal) -> Decimal:
    """Round a Decimal to the ledger minor unit."""
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def to_amount(value: Any) -> Decimal:
    """Convert an arbitrary numeric value into a ledger amount.

    Floats are converted through their shortest ``repr`` so that ``1189.995``
    stays ``1189.995`` instead of its binary expansion. ``None`` and empty
    strings become zero.

    Raises:
        ValueError: If the value is not numeric.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        return quantize(value)
    if isinstance(value, float):
        value = repr(value)
    try:
        return quantize(Decimal(str(value).strip().replace(",", ".")))
    except InvalidOperation as e:
        raise ValueError(f"Not an amount: {value!r}") from e


def total(values: Iterable[Decimal]) -> Decimal:
    """Sum amounts, starting from a quantized zero."""
    return quantize(sum(values, ZERO))


def format_amount(value: Decimal) -> str:
    """Render an amount with the three ledger decimals."""
    return f"{quantize(value):.3f}"
