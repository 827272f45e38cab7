"""
Expense Services Module
=======================

This module provides business logic for group expenses: computing splits,
persisting an expense together with its splits, recording settlements
between members and deriving per-member balances.

Classes:
    ExpenseService: Expense creation, split preview, settlements, balances.

Example:
    Creating an equal expense split among three members::

        from apps.expenses.services import ExpenseService
        from decimal import Decimal

        expense, splits = ExpenseService.create_expense(
            group_id=group.id,
            created_by=current_user,
            description='Groceries',
            split_method='equal',
            amount=Decimal('100.00'),
            split_between=[alice.id, bob.id, carol.id],
        )

        # Shares are 33.34, 33.33, 33.33 and sum exactly to 100.00
        for split in splits:
            print(f"{split.user.email}: {split.amount}")
"""

import logging
from collections import defaultdict
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import Group
from .allocation import compute_splits
from .exceptions import (
    GroupNotFoundError,
    InvalidAmountError,
    InvalidGroupMembershipError,
    InvalidSplitError,
    NonMemberParticipantError,
)
from .models import (
    Expense,
    ExpenseItem,
    ExpenseSplit,
    ItemAssignment,
    Settlement,
    SplitMethod,
)
from .money import CENT, to_cents

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class ExpenseService:
    """
    Service for group expenses with cent-precise splitting.

    Split amounts are always produced by the allocation engine
    (apps.expenses.allocation.compute_splits). The preview endpoint and
    expense creation both go through preview_splits(), so what a user sees
    before saving is exactly what is stored.

    Methods:
        preview_splits: Validate participants and compute shares.
        create_expense: Persist an expense with items, assignments and splits.
        record_settlement: Record a repayment between two members.
        get_group_balances: Net position of every member in a group.
    """

    @staticmethod
    def _get_group(group_id):
        try:
            return Group.objects.get(id=group_id)
        except Group.DoesNotExist:
            raise GroupNotFoundError()

    @staticmethod
    def preview_splits(
        *,
        group_id,
        split_method,
        amount=None,
        split_between=None,
        custom_splits=None,
        items=None,
    ):
        """
        Compute the splits an expense would get, without saving anything.

        Every user referenced by the request (participants, custom split
        users, item assignees) must be a member of the group.

        Args:
            group_id (UUID): The group the expense belongs to.
            split_method (str): 'equal', 'custom' or 'by_item'.
            amount (Decimal, optional): Total for equal splits.
            split_between (list[UUID], optional): Participants. Required
                for equal splits; optional restriction for the others.
            custom_splits (list[dict], optional): ``{'user_id', 'amount'}``
                entries for custom splits.
            items (list[dict], optional): Receipt items for by_item splits,
                each with ``name``, ``price``, ``quantity``,
                ``is_shared_cost`` and ``assigned_to``.

        Returns:
            tuple: ``(total, shares)`` where ``shares`` is a list of
            ``(user_id, Decimal)`` summing exactly to ``total``.

        Raises:
            GroupNotFoundError: If the group does not exist.
            NonMemberParticipantError: If a referenced user is not a member.
            SplitValidationError: Any other reason the split is invalid.
        """
        group = ExpenseService._get_group(group_id)
        member_ids = group.member_ids()

        referenced = list(split_between or [])
        referenced += [split['user_id'] for split in custom_splits or []]
        for item in items or []:
            referenced += list(item.get('assigned_to') or [])

        for user_id in referenced:
            if user_id not in member_ids:
                raise NonMemberParticipantError(
                    f"User {user_id} is not a member of {group.name}"
                )

        return compute_splits(
            method=split_method,
            amount=amount,
            participants=list(split_between) if split_between else None,
            custom_splits=custom_splits,
            items=items,
        )

    @staticmethod
    def create_expense(
        *,
        group_id,
        created_by,
        description,
        split_method,
        paid_by_id=None,
        amount=None,
        split_between=None,
        custom_splits=None,
        items=None,
        category='',
        receipt_url='',
        date=None,
    ):
        """
        Create an expense and its splits in one transaction.

        The expense amount is the total computed by the allocation engine:
        the given amount for equal splits, the sum of the custom amounts, or
        the item total (shared costs included) for itemized expenses.

        Args:
            group_id (UUID): The group's unique identifier.
            created_by (User): The user recording the expense.
            description (str): What the money was spent on.
            split_method (str): 'equal', 'custom' or 'by_item'.
            paid_by_id (UUID, optional): Who paid. Defaults to created_by.
            amount (Decimal, optional): Total for equal splits.
            split_between (list[UUID], optional): Participants.
            custom_splits (list[dict], optional): Custom split amounts.
            items (list[dict], optional): Receipt items for by_item.
            category (str, optional): Free-form category.
            receipt_url (str, optional): Link to a stored receipt image.
            date (date, optional): Expense date. Defaults to today.

        Returns:
            tuple: A tuple containing:
                - Expense: The created expense.
                - list[ExpenseSplit]: The created splits, in share order.

        Raises:
            GroupNotFoundError: If the group doesn't exist.
            InvalidGroupMembershipError: If the creator is not a member.
            NonMemberParticipantError: If the payer or a participant is
                not a member.
            SplitValidationError: If the split input is invalid.

        Note:
            Expense, items, assignments and splits are written inside a
            single ``transaction.atomic()`` block. If any step fails,
            nothing is stored.
        """
        with transaction.atomic():
            group = ExpenseService._get_group(group_id)
            member_ids = group.member_ids()

            if created_by.id not in member_ids:
                raise InvalidGroupMembershipError()

            paid_by_id = paid_by_id or created_by.id
            if paid_by_id not in member_ids:
                raise NonMemberParticipantError(
                    f"Payer {paid_by_id} is not a member of {group.name}"
                )

            total, shares = ExpenseService.preview_splits(
                group_id=group.id,
                split_method=split_method,
                amount=amount,
                split_between=split_between,
                custom_splits=custom_splits,
                items=items,
            )

            expense = Expense.objects.create(
                group=group,
                description=description,
                amount=total,
                paid_by_id=paid_by_id,
                created_by=created_by,
                split_method=split_method,
                category=category,
                receipt_url=receipt_url,
                date=date or timezone.localdate(),
            )

            if split_method == SplitMethod.BY_ITEM:
                ExpenseService._create_items(expense, items)

            splits = ExpenseSplit.objects.bulk_create([
                ExpenseSplit(expense=expense, user_id=user_id, amount=share)
                for user_id, share in shares
            ])

        logger.info(
            "Expense %s created in group %s: %s split %s ways (%s)",
            expense.id, group.id, total, len(splits), split_method
        )
        return expense, splits

    @staticmethod
    def _create_items(expense, items):
        """Store receipt items and their assignments for an itemized expense."""
        for position, data in enumerate(items):
            item = ExpenseItem.objects.create(
                expense=expense,
                name=data['name'],
                price=data['price'],
                quantity=data.get('quantity', 1),
                is_shared_cost=data.get('is_shared_cost', False),
                position=position,
            )
            assignees = list(data.get('assigned_to') or [])
            if not assignees:
                continue
            percentage = (Decimal(100) / len(assignees)).quantize(CENT)
            ItemAssignment.objects.bulk_create([
                ItemAssignment(item=item, user_id=user_id, share_percentage=percentage)
                for user_id in assignees
            ])

    @staticmethod
    def record_settlement(*, group_id, payer, payee_id, amount, date=None):
        """
        Record that ``payer`` paid ``payee`` back.

        Settlements move money between two members outside any expense and
        are part of the balance computation.

        Raises:
            GroupNotFoundError: If the group doesn't exist.
            InvalidGroupMembershipError: If the payer is not a member.
            NonMemberParticipantError: If the payee is not a member.
            InvalidSplitError: If payer and payee are the same user.
            InvalidAmountError: If the amount is not positive.
        """
        with transaction.atomic():
            group = ExpenseService._get_group(group_id)
            member_ids = group.member_ids()

            if payer.id not in member_ids:
                raise InvalidGroupMembershipError()
            if payee_id not in member_ids:
                raise NonMemberParticipantError(
                    f"Payee {payee_id} is not a member of {group.name}"
                )
            if payee_id == payer.id:
                raise InvalidSplitError("Cannot settle with yourself")
            if to_cents(amount) <= 0:
                raise InvalidAmountError("Settlement amount must be positive")

            settlement = Settlement.objects.create(
                group=group,
                payer=payer,
                payee_id=payee_id,
                amount=amount,
                date=date or timezone.localdate(),
            )

        logger.info(
            "Settlement %s in group %s: %s -> %s %s",
            settlement.id, group.id, payer.id, payee_id, amount
        )
        return settlement

    @staticmethod
    def get_group_balances(*, group_id):
        """
        Get every member's net position in a group.

        ``balance = paid - owed + settled_out - settled_in``. A positive
        balance means the group owes the user money; negative means the user
        owes the group. Because every expense's splits sum to its amount and
        every settlement has both sides, balances across a group sum to zero.

        Users who left the group but still appear in expenses or settlements
        are included after the current members.

        Args:
            group_id (UUID): The group's unique identifier.

        Returns:
            list[dict]: One dict per user with keys ``user``, ``paid``,
            ``owed``, ``settled_out``, ``settled_in`` and ``balance``.

        Raises:
            GroupNotFoundError: If the group doesn't exist.
        """
        group = ExpenseService._get_group(group_id)

        ledger = defaultdict(lambda: {
            'paid': ZERO, 'owed': ZERO, 'settled_out': ZERO, 'settled_in': ZERO,
        })

        rows = (
            Expense.objects.filter(group=group)
            .values('paid_by').annotate(total=Sum('amount'))
        )
        for row in rows:
            ledger[row['paid_by']]['paid'] = row['total']

        rows = (
            ExpenseSplit.objects.filter(expense__group=group)
            .values('user').annotate(total=Sum('amount'))
        )
        for row in rows:
            ledger[row['user']]['owed'] = row['total']

        rows = (
            Settlement.objects.filter(group=group)
            .values('payer').annotate(total=Sum('amount'))
        )
        for row in rows:
            ledger[row['payer']]['settled_out'] = row['total']

        rows = (
            Settlement.objects.filter(group=group)
            .values('payee').annotate(total=Sum('amount'))
        )
        for row in rows:
            ledger[row['payee']]['settled_in'] = row['total']

        order = list(
            group.memberships.order_by('joined_at').values_list('user_id', flat=True)
        )
        order += [user_id for user_id in ledger if user_id not in order]
        users = User.objects.in_bulk(order)

        balances = []
        for user_id in order:
            entry = ledger[user_id]
            balances.append({
                'user': users[user_id],
                **entry,
                'balance': (
                    entry['paid'] - entry['owed']
                    + entry['settled_out'] - entry['settled_in']
                ).quantize(CENT),
            })
        return balances
