"""
Integer-cent arithmetic for splitting money.

All allocation happens on integer cents so that shares always sum to the
exact total. Decimal values only appear at the edges: when reading input
and when handing amounts back for storage or display.

Example::

    >>> split_evenly(to_cents('100.00'), 3)
    [3334, 3333, 3333]
    >>> allocate_proportionally(1125, [1500, 3500, 2500])
    [225, 525, 375]
"""

from decimal import Decimal, InvalidOperation
from typing import List, Sequence

from .exceptions import InvalidAmountError, InvalidSplitError, NoParticipantsError

CENT = Decimal('0.01')

# Largest amount a DecimalField(max_digits=10, decimal_places=2) can hold
MAX_AMOUNT_CENTS = 99_999_999_99


def to_cents(value) -> int:
    """
    Convert a money amount to integer cents.

    Accepts Decimal, int or str. Floats are converted through their string
    form so 0.1 becomes 10 cents rather than a binary approximation.

    Raises:
        InvalidAmountError: If the value is not a finite number or has
            more than two decimal places.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")

    cents = amount * 100
    if cents != cents.to_integral_value():
        raise InvalidAmountError(f"Amount {value} has more than two decimal places")

    return int(cents)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-decimal Decimal."""
    return Decimal(cents).scaleb(-2)


def split_evenly(total_cents: int, count: int) -> List[int]:
    """
    Split cents into `count` near-equal parts.

    The remainder is handed out one cent at a time to the first entries,
    so the result is deterministic for a given order.
    """
    if count <= 0:
        raise NoParticipantsError("At least one participant required")

    base, remainder = divmod(total_cents, count)
    return [base + 1 if i < remainder else base for i in range(count)]


def allocate_proportionally(total_cents: int, weights: Sequence[int]) -> List[int]:
    """
    Allocate cents in proportion to integer weights (largest remainder method).

    Every entry first receives the floor of its exact quota. The cents left
    over go one each to the entries with the largest fractional remainders,
    ties broken by position. The result sums to `total_cents` exactly.

    Raises:
        InvalidSplitError: If a weight is negative or all weights are zero.
    """
    if any(w < 0 for w in weights):
        raise InvalidSplitError("Weights must not be negative")

    total_weight = sum(weights)
    if total_weight == 0:
        raise InvalidSplitError("Cannot allocate proportionally to zero total weight")

    quotas = [divmod(total_cents * w, total_weight) for w in weights]
    allocation = [floor for floor, _ in quotas]

    leftover = total_cents - sum(allocation)
    by_remainder = sorted(
        range(len(weights)),
        key=lambda i: (-quotas[i][1], i)
    )
    for i in by_remainder[:leftover]:
        allocation[i] += 1

    return allocation


def ensure_storable(cents: int, what: str = 'Amount') -> None:
    """
    Check that an amount in cents fits the money columns.

    Raises:
        InvalidAmountError: If ``cents`` exceeds MAX_AMOUNT_CENTS.
    """
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(
            f"{what} {from_cents(cents)} exceeds the maximum of {from_cents(MAX_AMOUNT_CENTS)}"
        )
