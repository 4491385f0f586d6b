"""
Price schedule for minting.
"""

from dataclasses import dataclass

from minter.config import UINT256_MAX
from minter.core.errors import InvalidPrice, Overflow


@dataclass
class PriceSchedule:
    """
    Per-token mint price in lovelace.

    Mutated only through administrative operations; the engine reads it.
    """

    unit_price: int = 0

    def __post_init__(self):
        if self.unit_price < 0:
            raise InvalidPrice(self.unit_price)

    def quote(self, count: int) -> int:
        """
        Total price for minting `count` tokens.

        Raises:
            Overflow: If the product exceeds the unsigned 256-bit range
        """
        total = self.unit_price * count
        if total > UINT256_MAX:
            raise Overflow(
                f"Price for {count} tokens at {self.unit_price} overflows",
                limit=UINT256_MAX,
            )
        return total

    def is_sufficient(self, payment_amount: int, count: int) -> bool:
        """Check if a payment covers `count` tokens."""
        return payment_amount >= self.quote(count)

    def to_dict(self) -> dict:
        return {"unit_price": self.unit_price}
