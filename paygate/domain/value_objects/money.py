"""Value Object Money - a monetary amount with its currency."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_CURRENCY = "VND"


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary amount.

    Attributes:
        amount: Decimal amount in major units.
        currency_code: ISO 4217 code. Every provider settles in VND.
    """

    amount: Decimal
    currency_code: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

        if len(self.currency_code) != 3:
            raise ValueError(f"currency_code must be 3 characters: {self.currency_code}")

        if not self.amount.is_finite():
            raise ValueError(f"amount must be finite: {self.amount}")

        if self.amount < 0:
            raise ValueError(f"amount cannot be negative: {self.amount}")

    def matches(self, other: "Money") -> bool:
        """Equality at whole-unit precision, as providers report it."""
        return (
            self.currency_code == other.currency_code
            and self.to_gateway_amount() == other.to_gateway_amount()
        )

    def __str__(self) -> str:
        return f"{self.amount:.0f} {self.currency_code}"

    @classmethod
    def from_minor_units(cls, minor: int | str, currency_code: str = DEFAULT_CURRENCY) -> "Money":
        """Build Money from a ×100 amount (VNPay's ``vnp_Amount``)."""
        return cls(amount=Decimal(str(minor)) / 100, currency_code=currency_code)

    def to_minor_units(self) -> int:
        """×100 amount. Only VNPay transmits amounts this way."""
        return int((self.amount * 100).to_integral_value(rounding=ROUND_HALF_UP))

    def to_gateway_amount(self) -> int:
        """Plain integer amount used by MoMo, ZaloPay and bank transfers."""
        return int(self.amount.to_integral_value(rounding=ROUND_HALF_UP))
