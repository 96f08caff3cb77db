"""金额换算测试"""

import pytest

from evm_vitals_monitor.core.errors import InvalidAmount
from evm_vitals_monitor.utils.amount import is_valid_amount, to_coins, to_units


class TestToCoins:

    def test_eighteen_decimals(self):
        assert to_coins("1500000000000000000", 18) == "1.5"

    def test_smaller_than_one_coin(self):
        assert to_coins("1", 18) == "0.000000000000000001"
        assert to_coins("25", 2) == "0.25"

    def test_whole_coins_drop_fraction(self):
        assert to_coins("1000000", 6) == "1"
        assert to_coins("0", 18) == "0"

    def test_zero_decimals_is_identity(self):
        assert to_coins("5", 0) == "5"

    @pytest.mark.parametrize("units", ["", "-1", "1.5", "0x10", " 1", None, 10])
    def test_rejects_non_digit_units(self, units):
        with pytest.raises(InvalidAmount):
            to_coins(units, 18)

    def test_rejects_negative_decimals(self):
        with pytest.raises(InvalidAmount):
            to_coins("1", -1)


class TestToUnits:

    def test_eighteen_decimals(self):
        assert to_units("1.5", 18) == "1500000000000000000"

    def test_zero_decimals(self):
        assert to_units("5", 0) == "5"

    def test_leading_zeros_removed(self):
        assert to_units("0.000001", 6) == "1"
        assert to_units("0", 6) == "0"

    def test_too_many_decimal_places(self):
        with pytest.raises(InvalidAmount):
            to_units("12.345", 2)

    @pytest.mark.parametrize("coins", ["", "1.", ".5", "1,5", "-1", "1e18", "abc"])
    def test_rejects_malformed(self, coins):
        with pytest.raises(InvalidAmount):
            to_units(coins, 18)

    def test_invalid_amount_is_value_error(self):
        with pytest.raises(ValueError):
            to_units("1.5", 0)


@pytest.mark.parametrize("units, decimals", [
    ("1", 18),
    ("1500000000000000000", 18),
    ("123456789", 6),
    ("100", 2),
    ("7", 0),
    ("0", 8),
])
def test_round_trip(units, decimals):
    assert to_units(to_coins(units, decimals), decimals) == units


def test_is_valid_amount():
    assert is_valid_amount("1.25", 2)
    assert is_valid_amount("10", 0)
    assert not is_valid_amount("1.255", 2)
    assert not is_valid_amount("1.5", 0)
    assert not is_valid_amount(1.5, 2)
