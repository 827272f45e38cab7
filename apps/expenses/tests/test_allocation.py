"""
Unit tests for the split allocation engine.

compute_splits() never touches the database, so plain string ids are
enough to stand in for users here.
"""

import pytest
from decimal import Decimal

from apps.expenses.allocation import compute_splits
from apps.expenses.exceptions import (
    InvalidAmountError,
    InvalidSplitError,
    NoParticipantsError,
    NonMemberParticipantError,
    UnassignedItemError,
)


def _item(name, price, assigned_to=(), quantity=1, shared=False):
    return {
        'name': name,
        'price': price,
        'quantity': quantity,
        'is_shared_cost': shared,
        'assigned_to': list(assigned_to),
    }


class TestEqualSplit:

    def test_hundred_three_ways(self):
        total, shares = compute_splits(method='equal', amount='100.00', participants=['a', 'b', 'c'])

        assert total == Decimal('100.00')
        assert shares == [
            ('a', Decimal('33.34')),
            ('b', Decimal('33.33')),
            ('c', Decimal('33.33')),
        ]

    def test_single_participant_gets_everything(self):
        total, shares = compute_splits(method='equal', amount='49.99', participants=['a'])

        assert shares == [('a', Decimal('49.99'))]

    def test_remainder_follows_participant_order(self):
        _, shares = compute_splits(method='equal', amount='0.05', participants=['c', 'b', 'a'])

        assert shares == [('c', Decimal('0.02')), ('b', Decimal('0.02')), ('a', Decimal('0.01'))]

    def test_empty_participants(self):
        with pytest.raises(NoParticipantsError):
            compute_splits(method='equal', amount='10.00', participants=[])

    def test_duplicate_participants(self):
        with pytest.raises(InvalidSplitError):
            compute_splits(method='equal', amount='10.00', participants=['a', 'a'])

    @pytest.mark.parametrize('amount', ['0.00', '-5.00', '1.001'])
    def test_invalid_amount(self, amount):
        with pytest.raises(InvalidAmountError):
            compute_splits(method='equal', amount=amount, participants=['a', 'b'])


class TestCustomSplit:

    def test_total_is_sum_of_amounts(self):
        total, shares = compute_splits(
            method='custom',
            custom_splits=[
                {'user_id': 'a', 'amount': Decimal('12.50')},
                {'user_id': 'b', 'amount': Decimal('7.25')},
            ],
        )

        assert total == Decimal('19.75')
        assert shares == [('a', Decimal('12.50')), ('b', Decimal('7.25'))]

    def test_non_positive_amount(self):
        with pytest.raises(InvalidAmountError):
            compute_splits(
                method='custom',
                custom_splits=[{'user_id': 'a', 'amount': '0.00'}],
            )

    def test_duplicate_user(self):
        with pytest.raises(InvalidSplitError):
            compute_splits(
                method='custom',
                custom_splits=[
                    {'user_id': 'a', 'amount': '1.00'},
                    {'user_id': 'a', 'amount': '2.00'},
                ],
            )

    def test_user_outside_participants(self):
        with pytest.raises(NonMemberParticipantError):
            compute_splits(
                method='custom',
                participants=['a', 'b'],
                custom_splits=[{'user_id': 'z', 'amount': '1.00'}],
            )


class TestItemSplit:

    def test_restaurant_bill_example(self):
        """Shared tax and tip follow each diner's share of the food."""
        items = [
            _item('A', '15.00', ['x']),
            _item('B', '35.00', ['y']),
            _item('C', '25.00', ['z']),
            _item('Tax', '6.75', shared=True),
            _item('Tip', '4.50', shared=True),
        ]

        total, shares = compute_splits(method='by_item', items=items)

        assert total == Decimal('86.25')
        assert shares == [
            ('x', Decimal('17.25')),
            ('y', Decimal('40.25')),
            ('z', Decimal('28.75')),
        ]

    def test_shared_item_split_between_assignees(self):
        items = [
            _item('Pizza', '10.00', ['x', 'y', 'z']),
            _item('Beer', '4.00', ['x'], quantity=2),
        ]

        total, shares = compute_splits(method='by_item', items=items)

        assert total == Decimal('18.00')
        assert shares == [
            ('x', Decimal('11.34')),
            ('y', Decimal('3.33')),
            ('z', Decimal('3.33')),
        ]

    def test_shared_costs_with_rounding_reconcile(self):
        items = [
            _item('A', '10.00', ['x']),
            _item('B', '10.00', ['y']),
            _item('C', '10.00', ['z']),
            _item('Service', '1.00', shared=True),
        ]

        total, shares = compute_splits(method='by_item', items=items)

        assert total == Decimal('31.00')
        assert sum(amount for _, amount in shares) == total
        assert [amount for _, amount in shares] == [
            Decimal('10.34'), Decimal('10.33'), Decimal('10.33'),
        ]

    def test_only_shared_costs_fall_back_to_participants(self):
        items = [_item('Delivery', '5.00', shared=True)]

        total, shares = compute_splits(method='by_item', items=items, participants=['x', 'y'])

        assert total == Decimal('5.00')
        assert shares == [('x', Decimal('2.50')), ('y', Decimal('2.50'))]

    def test_free_items_split_shared_costs_equally(self):
        items = [
            _item('Water', '0.00', ['x']),
            _item('Bread', '0.00', ['y']),
            _item('Cover charge', '3.00', shared=True),
        ]

        _, shares = compute_splits(method='by_item', items=items)

        assert shares == [('x', Decimal('1.50')), ('y', Decimal('1.50'))]

    def test_only_shared_costs_without_anyone(self):
        with pytest.raises(NoParticipantsError):
            compute_splits(method='by_item', items=[_item('Delivery', '5.00', shared=True)])

    def test_unassigned_item(self):
        with pytest.raises(UnassignedItemError):
            compute_splits(method='by_item', items=[_item('Mystery', '9.00')])

    def test_shared_item_with_assignees(self):
        with pytest.raises(InvalidSplitError):
            compute_splits(method='by_item', items=[_item('Tax', '1.00', ['x'], shared=True)])

    def test_negative_price(self):
        with pytest.raises(InvalidAmountError):
            compute_splits(method='by_item', items=[_item('Refund', '-1.00', ['x'])])

    def test_zero_quantity(self):
        with pytest.raises(InvalidAmountError):
            compute_splits(method='by_item', items=[_item('Nothing', '1.00', ['x'], quantity=0)])

    def test_zero_total(self):
        with pytest.raises(InvalidAmountError):
            compute_splits(method='by_item', items=[_item('Free', '0.00', ['x'])])

    def test_assignee_outside_participants(self):
        with pytest.raises(NonMemberParticipantError):
            compute_splits(
                method='by_item',
                items=[_item('Cake', '4.00', ['stranger'])],
                participants=['x'],
            )


class TestSumInvariant:

    @pytest.mark.parametrize('amount, count', [
        ('0.01', 3), ('10.00', 7), ('99.99', 4), ('1234.56', 9),
    ])
    def test_equal_shares_sum_to_total(self, amount, count):
        participants = [f'u{i}' for i in range(count)]
        total, shares = compute_splits(method='equal', amount=amount, participants=participants)

        assert sum(a for _, a in shares) == total == Decimal(amount)

    def test_item_shares_sum_to_total(self):
        items = [
            _item('A', '3.33', ['x', 'y']),
            _item('B', '7.77', ['y', 'z'], quantity=3),
            _item('C', '0.01', ['z']),
            _item('Tax', '2.22', shared=True),
            _item('Tip', '1.11', shared=True),
        ]

        total, shares = compute_splits(method='by_item', items=items)

        assert total == Decimal('29.98')
        assert sum(a for _, a in shares) == total

    def test_unknown_method(self):
        with pytest.raises(InvalidSplitError):
            compute_splits(method='by_weight', amount='1.00', participants=['a'])


class TestStorageLimit:

    def test_equal_at_limit_is_accepted(self):
        total, shares = compute_splits(method='equal', amount='99999999.99', participants=['x'])

        assert total == Decimal('99999999.99')

    def test_item_total_over_limit(self):
        with pytest.raises(InvalidAmountError, match='exceeds the maximum'):
            compute_splits(method='by_item', items=[_item('Yacht', '99999999.99', ['x'], quantity=2)])

    def test_custom_total_over_limit(self):
        with pytest.raises(InvalidAmountError, match='exceeds the maximum'):
            compute_splits(method='custom', custom_splits=[
                {'user_id': 'x', 'amount': '99999999.99'},
                {'user_id': 'y', 'amount': '99999999.99'},
            ])

    def test_shared_costs_push_total_over_limit(self):
        items = [
            _item('Villa', '99999999.00', ['x']),
            _item('Cleaning', '1.00', shared=True),
        ]

        with pytest.raises(InvalidAmountError):
            compute_splits(method='by_item', items=items)


class TestZeroShares:

    def test_one_cent_three_ways_keeps_every_participant(self):
        total, shares = compute_splits(method='equal', amount='0.01', participants=['x', 'y', 'z'])

        assert shares == [('x', Decimal('0.01')), ('y', Decimal('0.00')), ('z', Decimal('0.00'))]
        assert total == Decimal('0.01')

    def test_free_item_gives_zero_share(self):
        items = [
            _item('Coffee', '3.00', ['x']),
            _item('Water', '0.00', ['y']),
            _item('Service', '0.30', shared=True),
        ]

        total, shares = compute_splits(method='by_item', items=items)

        assert shares == [('x', Decimal('3.30')), ('y', Decimal('0.00'))]
        assert total == Decimal('3.30')
