"""Tests for coin validation and change making."""
import pytest

from vending.errors import ErrorKind, VendingError
from vending.utils.money import (
    ALLOWED_DENOMINATIONS,
    Amount,
    UnmakeableChangeError,
    is_valid_cost,
    make_change,
    validate_deposit,
)


def test_change_for_ninety_uses_three_coins():
    """90 cents is paid as 20 + 20 + 50."""
    assert make_change(ALLOWED_DENOMINATIONS, 90) == [20, 20, 50]


def test_change_for_zero_is_empty():
    assert make_change(ALLOWED_DENOMINATIONS, 0) == []


@pytest.mark.parametrize(
    "amount,expected_count",
    [
        (5, 1),
        (15, 2),
        (35, 3),
        (65, 3),
        (95, 4),
        (100, 1),
        (185, 5),
        (240, 4),
    ],
)
def test_change_is_exact_and_minimal(amount, expected_count):
    coins = make_change(ALLOWED_DENOMINATIONS, amount)

    assert sum(coins) == amount
    assert len(coins) == expected_count
    assert all(coin in ALLOWED_DENOMINATIONS for coin in coins)


def test_change_beats_greedy_for_uneven_coins():
    """Greedy would pay 6 as 4 + 1 + 1; the optimum is 3 + 3."""
    assert sorted(make_change([1, 3, 4], 6)) == [3, 3]


def test_change_is_deterministic():
    assert make_change(ALLOWED_DENOMINATIONS, 175) == make_change(ALLOWED_DENOMINATIONS, 175)


def test_unreachable_change_fails():
    with pytest.raises(UnmakeableChangeError):
        make_change([5, 10], 3)


def test_negative_change_fails():
    with pytest.raises(UnmakeableChangeError):
        make_change(ALLOWED_DENOMINATIONS, -5)


def test_non_positive_denomination_rejected():
    with pytest.raises(ValueError):
        make_change([0, 5], 10)


@pytest.mark.parametrize("coin", ALLOWED_DENOMINATIONS)
def test_single_accepted_coin_is_valid_deposit(coin):
    validate_deposit(Amount(value=coin))


@pytest.mark.parametrize("value", [0, 1, 7, 15, 200])
def test_other_deposits_are_rejected(value):
    with pytest.raises(VendingError) as exc_info:
        validate_deposit(Amount(value=value))

    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert exc_info.value.status_code == 400


def test_cost_must_be_positive_multiple_of_five():
    assert is_valid_cost(5)
    assert is_valid_cost(125)
    assert not is_valid_cost(0)
    assert not is_valid_cost(12)
    assert not is_valid_cost(-5)
