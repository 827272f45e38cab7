import pytest
from decimal import Decimal

from apps.expenses.exceptions import InvalidAmountError, InvalidSplitError, NoParticipantsError
from apps.expenses.money import allocate_proportionally, from_cents, split_evenly, to_cents


class TestToCents:

    @pytest.mark.parametrize('value, expected', [
        (Decimal('86.25'), 8625),
        ('0.01', 1),
        (12, 1200),
        ('1.500', 150),
        (0.1, 10),
    ])
    def test_converts_amounts(self, value, expected):
        assert to_cents(value) == expected

    @pytest.mark.parametrize('value', ['1.005', 'abc', 'NaN', 'Infinity', True])
    def test_rejects_invalid_amounts(self, value):
        with pytest.raises(InvalidAmountError):
            to_cents(value)

    def test_from_cents_has_two_places(self):
        assert from_cents(1725) == Decimal('17.25')
        assert str(from_cents(0)) == '0.00'
        assert str(from_cents(100)) == '1.00'


class TestSplitEvenly:

    def test_remainder_goes_to_first_entries(self):
        assert split_evenly(10000, 3) == [3334, 3333, 3333]
        assert split_evenly(101, 4) == [26, 25, 25, 25]

    def test_single_participant_gets_everything(self):
        assert split_evenly(4999, 1) == [4999]

    def test_zero_count_raises(self):
        with pytest.raises(NoParticipantsError):
            split_evenly(100, 0)


class TestAllocateProportionally:

    def test_exact_proportions(self):
        assert allocate_proportionally(1125, [1500, 3500, 2500]) == [225, 525, 375]

    def test_sum_is_exact(self):
        result = allocate_proportionally(100, [1, 1, 1])
        assert sum(result) == 100
        # Equal remainders: ties broken by position
        assert result == [34, 33, 33]

    def test_largest_remainder_wins(self):
        # Quotas 1.67 / 3.33 -> floors 1 / 3, leftover cent to the larger fraction
        assert allocate_proportionally(5, [1, 2]) == [2, 3]

    def test_zero_weight_entry_gets_nothing(self):
        assert allocate_proportionally(50, [0, 10]) == [0, 50]

    def test_zero_total_weight_raises(self):
        with pytest.raises(InvalidSplitError):
            allocate_proportionally(100, [0, 0])

    def test_negative_weight_raises(self):
        with pytest.raises(InvalidSplitError):
            allocate_proportionally(100, [5, -1])
