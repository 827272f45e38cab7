"""
Split allocation engine.

compute_splits() turns an expense description into per-user shares.
It is a pure function: no database access, no side effects. The same
function backs the preview endpoint and expense creation, so a preview
always matches what gets stored.

Three methods are supported:

equal
    ``amount`` divided across ``participants``; leftover cents go one
    each to the first participants in the order given.
custom
    Caller supplies ``[{'user_id': ..., 'amount': ...}]``. The total is
    the sum of the supplied amounts.
by_item
    Each non-shared item is divided evenly between its assignees. Shared
    items (tax, tip, service charge) are then spread over users in
    proportion to their item subtotals, or equally when nobody ordered
    anything with a price.

Every participant gets a share, even when it is 0.00 (0.01 split three
ways, or a user whose only item is free). Zero shares are stored so the
expense still lists everyone who took part.

Totals and shares are capped at MAX_AMOUNT_CENTS, the largest value the
money columns can store.

Worked example (tax 6.75 and tip 4.50 shared)::

    A 15.00 -> X, B 35.00 -> Y, C 25.00 -> Z
    X = 17.25, Y = 40.25, Z = 28.75, total = 86.25
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .exceptions import (
    InvalidAmountError,
    InvalidSplitError,
    NoParticipantsError,
    NonMemberParticipantError,
    UnassignedItemError,
)
from .models import SplitMethod
from .money import allocate_proportionally, ensure_storable, from_cents, split_evenly, to_cents

Share = Tuple[object, Decimal]


def compute_splits(
    *,
    method: str,
    amount=None,
    participants: Optional[Sequence] = None,
    custom_splits: Optional[Sequence[dict]] = None,
    items: Optional[Sequence[dict]] = None,
) -> Tuple[Decimal, List[Share]]:
    """
    Compute the shares of an expense.

    Args:
        method: One of SplitMethod values.
        amount: Expense total, required for the equal method.
        participants: User ids sharing the expense. Required for equal;
            for custom and by_item it restricts who may appear and is the
            fallback for shared-only receipts.
        custom_splits: For the custom method, dicts with user_id and amount.
        items: For the by_item method, dicts with name, price, quantity,
            is_shared_cost and assigned_to (list of user ids).

    Returns:
        (total, shares) where shares is a list of (user_id, Decimal) in a
        stable order and sum(shares) == total exactly.

    Raises:
        SplitValidationError subclasses describing what is wrong.
    """
    if method == SplitMethod.EQUAL:
        total_cents, cents = _equal(amount, participants)
    elif method == SplitMethod.CUSTOM:
        total_cents, cents = _custom(custom_splits, participants)
    elif method == SplitMethod.BY_ITEM:
        total_cents, cents = _by_item(items, participants)
    else:
        raise InvalidSplitError(f"Unknown split method: {method}")

    ensure_storable(total_cents, "Expense total")
    for user_id, c in cents:
        ensure_storable(c, f"Share of {user_id}")

    # Safety check
    if sum(c for _, c in cents) != total_cents:
        raise InvalidSplitError(
            f"Split calculation error: {sum(c for _, c in cents)} != {total_cents}"
        )

    return from_cents(total_cents), [(user_id, from_cents(c)) for user_id, c in cents]


def _ensure_unique(user_ids: Iterable, what: str) -> None:
    seen = set()
    for user_id in user_ids:
        if user_id in seen:
            raise InvalidSplitError(f"User {user_id} appears more than once in {what}")
        seen.add(user_id)


def _ensure_allowed(user_ids: Iterable, participants: Optional[Sequence]) -> None:
    if participants is None:
        return
    allowed = set(participants)
    for user_id in user_ids:
        if user_id not in allowed:
            raise NonMemberParticipantError(f"User {user_id} is not a participant")


def _equal(amount, participants):
    if not participants:
        raise NoParticipantsError("At least one participant required for an equal split")
    _ensure_unique(participants, 'participants')

    if amount is None:
        raise InvalidAmountError("Amount is required for an equal split")
    total_cents = to_cents(amount)
    if total_cents <= 0:
        raise InvalidAmountError("Amount must be positive")

    parts = split_evenly(total_cents, len(participants))
    return total_cents, list(zip(participants, parts))


def _custom(custom_splits, participants):
    if not custom_splits:
        raise NoParticipantsError("At least one custom split required")

    user_ids = [split['user_id'] for split in custom_splits]
    _ensure_unique(user_ids, 'custom splits')
    _ensure_allowed(user_ids, participants)

    cents = []
    for split in custom_splits:
        value = to_cents(split['amount'])
        if value <= 0:
            raise InvalidAmountError(f"Split amount for {split['user_id']} must be positive")
        cents.append((split['user_id'], value))

    # Caller total is authoritative
    return sum(c for _, c in cents), cents


def _by_item(items, participants):
    if not items:
        raise InvalidSplitError("At least one item required for an itemized split")

    subtotals = {}  # user_id -> cents, insertion order = first appearance
    total_non_shared = 0
    total_shared = 0

    for item in items:
        name = item.get('name', '')
        price = to_cents(item['price'])
        quantity = item.get('quantity', 1)
        assigned_to = list(item.get('assigned_to') or [])

        if price < 0:
            raise InvalidAmountError(f"Price of '{name}' must not be negative")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidAmountError(f"Quantity of '{name}' must be at least 1")

        item_total = price * quantity

        if item.get('is_shared_cost'):
            if assigned_to:
                raise InvalidSplitError(f"Shared cost '{name}' cannot have assignees")
            total_shared += item_total
            continue

        if not assigned_to:
            raise UnassignedItemError(f"Item '{name}' is not assigned to anyone")
        _ensure_unique(assigned_to, f"assignees of '{name}'")
        _ensure_allowed(assigned_to, participants)

        for user_id, part in zip(assigned_to, split_evenly(item_total, len(assigned_to))):
            subtotals[user_id] = subtotals.get(user_id, 0) + part
        total_non_shared += item_total

    total_cents = total_non_shared + total_shared
    if total_cents <= 0:
        raise InvalidAmountError("Itemized total must be positive")

    if total_shared == 0:
        return total_cents, list(subtotals.items())

    if total_non_shared > 0:
        users = list(subtotals)
        extra = allocate_proportionally(total_shared, [subtotals[u] for u in users])
    else:
        # Nothing with a price was ordered: split shared costs equally
        users = list(subtotals) or list(participants or [])
        if not users:
            raise NoParticipantsError("Nobody to charge for shared costs")
        _ensure_unique(users, 'participants')
        extra = split_evenly(total_shared, len(users))

    return total_cents, [
        (user_id, subtotals.get(user_id, 0) + part)
        for user_id, part in zip(users, extra)
    ]
