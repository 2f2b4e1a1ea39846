"""
Test suite for currency module

Tests Money construction, same-currency arithmetic and display helpers.
Amounts are integer minor units throughout.
"""

import pytest
from dataclasses import FrozenInstanceError

from bank_ledger.currency import Money, Currency
from bank_ledger.errors import CurrencyMismatchError


class TestMoney:
    """Test Money class operations"""

    def test_money_creation(self):
        """Amount and currency are kept exactly as given"""
        for amount in (0, 1, -1, 10000, -250, 10 ** 15):
            for currency in Currency:
                money = Money(amount, currency)
                assert money.amount == amount
                assert money.currency == currency

    def test_money_rejects_non_integer_amounts(self):
        """Floats, strings and bools are not minor-unit amounts"""
        with pytest.raises(TypeError):
            Money(10.5, Currency.USD)
        with pytest.raises(TypeError):
            Money("100", Currency.USD)
        with pytest.raises(TypeError):
            Money(True, Currency.USD)

    def test_money_is_immutable(self):
        """Money is a frozen value type"""
        money = Money(100, Currency.USD)
        with pytest.raises(FrozenInstanceError):
            money.amount = 200

    def test_money_arithmetic(self):
        """Add and subtract return new values in the shared currency"""
        money1 = Money(10050, Currency.USD)
        money2 = Money(5025, Currency.USD)

        result = money1.add(money2)
        assert result == Money(15075, Currency.USD)

        result = money1.subtract(money2)
        assert result == Money(5025, Currency.USD)

        # Operators delegate to add/subtract
        assert money1 + money2 == Money(15075, Currency.USD)
        assert money2 - money1 == Money(-5025, Currency.USD)

        # Originals untouched
        assert money1.amount == 10050
        assert money2.amount == 5025

    def test_money_arithmetic_with_negative_amounts(self):
        """Negative amounts add and subtract like plain integers"""
        a = Money(-300, Currency.THB)
        b = Money(-200, Currency.THB)
        assert a.add(b) == Money(-500, Currency.THB)
        assert a.subtract(b) == Money(-100, Currency.THB)
        assert -a == Money(300, Currency.THB)

    def test_currency_mismatch(self):
        """Arithmetic across currencies fails"""
        usd = Money(100, Currency.USD)
        thb = Money(100, Currency.THB)

        with pytest.raises(CurrencyMismatchError):
            usd.add(thb)
        with pytest.raises(CurrencyMismatchError):
            usd.subtract(thb)
        with pytest.raises(CurrencyMismatchError):
            thb + usd
        with pytest.raises(CurrencyMismatchError):
            thb - usd

    def test_money_comparison(self):
        """Equality and ordering compare amount within a currency"""
        money1 = Money(10000, Currency.USD)
        money2 = Money(5000, Currency.USD)
        money3 = Money(10000, Currency.USD)

        assert money1 == money3
        assert money1 != money2
        assert money1 > money2
        assert money2 < money1
        assert money1 >= money3
        assert money1 <= money3

        # Same amount, different currency is not equal
        assert Money(10000, Currency.THB) != money1

    def test_comparison_across_currencies_is_rejected(self):
        """Ordering across currencies is never coerced"""
        with pytest.raises(CurrencyMismatchError):
            Money(1, Currency.USD) < Money(2, Currency.THB)

    def test_zero(self):
        """Zero is the identity for add and the negation of itself"""
        zero = Money.zero(Currency.THB)
        assert zero == Money(0, Currency.THB)
        assert zero.is_zero()
        assert -zero == zero
        assert Money(250, Currency.THB) + zero == Money(250, Currency.THB)

    def test_money_predicates(self):
        """Zero, positive and negative checks"""
        assert Money(0, Currency.USD).is_zero()
        assert Money(1, Currency.USD).is_positive()
        assert Money(-1, Currency.USD).is_negative()
        assert not Money(0, Currency.USD).is_positive()
        assert not Money(0, Currency.USD).is_negative()

    def test_display_helpers(self):
        """to_float and to_display_string divide by 100 for display"""
        money = Money(7000, Currency.USD)
        assert money.to_float() == 70.0
        assert money.to_display_string() == "70.00 USD"
        assert str(Money(-150, Currency.THB)) == "-1.50 THB"

    def test_money_dict_form(self):
        """Storage form keeps integer amount and currency code"""
        money = Money(1234, Currency.THB)
        assert money.to_dict() == {"amount": 1234, "currency": "THB"}
        assert Money.from_dict(money.to_dict()) == money


class TestCurrency:
    """Test Currency lookups"""

    def test_currency_codes(self):
        assert Currency.USD.code == "USD"
        assert Currency.THB.code == "THB"
        assert Currency.USD.precision == 2

    def test_from_code(self):
        assert Currency.from_code("usd") == Currency.USD
        assert Currency.from_code("THB") == Currency.THB
        with pytest.raises(ValueError):
            Currency.from_code("EUR")
