from typing import List, Sequence

from pydantic import BaseModel, Field

from vending.errors import validation_error

# Coins accepted by every machine, in minor units, ascending.
ALLOWED_DENOMINATIONS: tuple = (5, 10, 20, 50, 100)

# Smallest coin; product costs must be a multiple of it.
SMALLEST_DENOMINATION: int = ALLOWED_DENOMINATIONS[0]


class UnmakeableChangeError(ValueError):
    """Raised when an amount cannot be paid out exactly with the given coins."""
    pass


class Amount(BaseModel):
    """A sum of money in minor units."""
    value: int = Field(..., ge=0, description="Value in minor units (e.g. cents)")
    currency: str = Field(default="USD", min_length=1, max_length=8)
    unit: str = Field(default="cent", min_length=1, max_length=16)


class CompositeAmount(BaseModel):
    """A multiset of coins, e.g. the change handed back after a purchase."""
    value: List[int] = Field(default_factory=list)
    currency: str = "USD"
    unit: str = "cent"


def validate_deposit(amount: Amount) -> None:
    """
    Check that ``amount`` is exactly one accepted coin.

    Deposits are inserted one coin at a time, so a sum such as 15 is
    rejected even though it can be built from accepted coins.
    """
    if amount is None or amount.value not in ALLOWED_DENOMINATIONS:
        accepted = ", ".join(str(d) for d in ALLOWED_DENOMINATIONS)
        raise validation_error(f"Invalid deposit. Only {accepted} cent coins are allowed")


def is_valid_cost(value: int) -> bool:
    return value > 0 and value % SMALLEST_DENOMINATION == 0


def make_change(denominations: Sequence[int], amount: int) -> List[int]:
    """
    Return the fewest coins from ``denominations`` that sum to ``amount``.

    Bottom-up dynamic program over every total from 0 to ``amount``. Each
    total remembers the last coin that improved it, and the coin list is
    rebuilt by walking those back-pointers, so memory stays linear in
    ``amount``. Greedy selection is not used because it is not optimal for
    arbitrary coin sets.

    Args:
        denominations: Coin values, positive integers
        amount: Total to pay out in minor units

    Returns:
        Coins summing exactly to ``amount``; empty when ``amount`` is 0

    Raises:
        UnmakeableChangeError: If no combination of coins reaches ``amount``
    """
    if amount < 0:
        raise UnmakeableChangeError(f"Cannot make change for a negative amount: {amount}")
    if any(coin <= 0 for coin in denominations):
        raise ValueError("Denominations must be positive integers")
    if amount == 0:
        return []

    unreachable = amount + 1
    min_coins = [0] + [unreachable] * amount
    last_coin = [0] * (amount + 1)

    for coin in denominations:
        for total in range(coin, amount + 1):
            if min_coins[total - coin] + 1 < min_coins[total]:
                min_coins[total] = min_coins[total - coin] + 1
                last_coin[total] = coin

    if min_coins[amount] >= unreachable:
        raise UnmakeableChangeError(f"Cannot make change for {amount} with coins {list(denominations)}")

    coins = []
    total = amount
    while total > 0:
        coins.append(last_coin[total])
        total -= last_coin[total]
    coins.reverse()
    return coins
