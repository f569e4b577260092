"""CurrencyConverter 테스트"""

from decimal import Decimal

import pytest

from core.ledger.currency import CurrencyConverter


class TestRateLookup:
    """환율 조회 테스트"""

    def test_base_currency_is_one(self) -> None:
        converter = CurrencyConverter({"AED": Decimal("3.67")})
        assert converter.rate_for("USD") == Decimal("1")

    def test_case_insensitive(self) -> None:
        converter = CurrencyConverter()
        assert converter.rate_for("aed") == Decimal("3.67")

    def test_empty_currency_means_base(self) -> None:
        assert CurrencyConverter().rate_for("") == Decimal("1")

    def test_unknown_currency_returns_zero(self) -> None:
        """미등록 통화는 0 (검증 단계에서 InvalidRate)"""
        assert CurrencyConverter().rate_for("XYZ") == Decimal("0")

    def test_custom_base_currency(self) -> None:
        converter = CurrencyConverter({"USD": Decimal("0.27")}, base_currency="aed")
        assert converter.base_currency == "AED"
        assert converter.rate_for("AED") == Decimal("1")
        assert converter.rate_for("USD") == Decimal("0.27")


class TestIsValidRate:
    """환율 유효성 테스트"""

    @pytest.mark.parametrize("rate", [Decimal("1"), Decimal("0.0001"), Decimal("278.5")])
    def test_valid(self, rate: Decimal) -> None:
        assert CurrencyConverter.is_valid_rate(rate)

    @pytest.mark.parametrize(
        "rate",
        [None, Decimal("0"), Decimal("-1"), Decimal("NaN"), Decimal("Infinity")],
    )
    def test_invalid(self, rate: Decimal | None) -> None:
        assert not CurrencyConverter.is_valid_rate(rate)


class TestConversion:
    """기준통화 환산 테스트"""

    def test_to_base(self) -> None:
        converter = CurrencyConverter()
        assert converter.to_base(Decimal("367"), Decimal("3.67")) == Decimal("100")

    def test_to_base_invalid_rate_is_zero(self) -> None:
        assert CurrencyConverter().to_base(Decimal("100"), Decimal("0")) == Decimal("0")

    def test_resolve_without_base_amount(self) -> None:
        conv = CurrencyConverter().resolve(Decimal("367"), Decimal("3.67"))
        assert conv.base_amount == Decimal("100")
        assert conv.rate == Decimal("3.67")

    def test_resolve_base_amount_wins(self) -> None:
        """기준금액 직접 입력 시 환율 역산 (100 / 40 = 2.5)"""
        conv = CurrencyConverter().resolve(
            Decimal("100"), Decimal("3.5"), base_amount=Decimal("40")
        )
        assert conv.base_amount == Decimal("40")
        assert conv.rate == Decimal("2.5")

    def test_resolve_zero_base_amount_ignored(self) -> None:
        conv = CurrencyConverter().resolve(
            Decimal("100"), Decimal("2"), base_amount=Decimal("0")
        )
        assert conv.base_amount == Decimal("50")
        assert conv.rate == Decimal("2")
