from decimal import Decimal

import pytest

from paygate.domain.value_objects.event_identity import EventIdentity
from paygate.domain.value_objects.money import Money


class TestMoney:
    def test_minor_units_are_times_one_hundred(self):
        assert Money(Decimal("500000")).to_minor_units() == 50000000

    def test_from_minor_units(self):
        assert Money.from_minor_units("50000000").amount == Decimal("500000")

    def test_gateway_amount_is_plain_integer(self):
        assert Money("500000.00").to_gateway_amount() == 500000

    def test_matches_at_whole_units(self):
        assert Money("500000").matches(Money(500000))
        assert not Money("500000").matches(Money("499999"))

    def test_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            Money("-1")

    @pytest.mark.parametrize("value", ["NaN", "Infinity"])
    def test_rejects_non_finite_amount(self, value):
        with pytest.raises(ValueError):
            Money(value)

    def test_rejects_bad_currency(self):
        with pytest.raises(ValueError):
            Money("1", currency_code="DONG")


class TestEventIdentity:
    def test_uses_transaction_id(self):
        identity = EventIdentity("momo", "MOMO_BK001_1", transaction_id="4088878653")

        assert identity.value == "momo:MOMO_BK001_1:4088878653"

    def test_falls_back_to_response_code(self):
        identity = EventIdentity("vnpay", "VNPAY_BK001_1", response_code="24")

        assert str(identity) == "vnpay:VNPAY_BK001_1:code-24"

    def test_same_inputs_same_identity(self):
        first = EventIdentity("zalopay", "240501_BK001_1", transaction_id="99")
        second = EventIdentity("zalopay", "240501_BK001_1", transaction_id="99")

        assert first.value == second.value

    def test_requires_transaction_or_code(self):
        with pytest.raises(ValueError):
            EventIdentity("momo", "MOMO_BK001_1")
