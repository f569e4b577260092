"""
환율 변환기

외화 금액을 기준통화(USD)로 환산.
환율 표기: 1 USD = rate 외화 → base = fcy / rate

이 레벨에서는 0/무효 환율로 예외를 던지지 않음 (0 반환).
거부는 DoubleEntryValidator가 담당.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from core.constants import DEFAULT_EXCHANGE_RATES, Defaults

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class Conversion:
    """환산 결과

    Attributes:
        base_amount: 기준통화 금액
        rate: 실제 적용된 환율 (기준금액 직접 입력 시 역산값)
    """

    base_amount: Decimal
    rate: Decimal


class CurrencyConverter:
    """통화 코드 → 환율 조회 및 기준통화 환산

    Args:
        rates: {통화: 환율} (None이면 기본 환율 테이블)
        base_currency: 기준통화 코드

    사용 예시:
    ```python
    converter = CurrencyConverter()
    rate = converter.rate_for("AED")           # Decimal("3.67")
    usd = converter.to_base(Decimal("367"), rate)  # Decimal("100")

    # 분개 행: 기준금액 직접 입력이 우선
    conv = converter.resolve(Decimal("100"), Decimal("3.5"), base_amount=Decimal("40"))
    conv.rate  # Decimal("2.5")
    ```
    """

    def __init__(
        self,
        rates: dict[str, Decimal] | None = None,
        base_currency: str = Defaults.BASE_CURRENCY,
    ):
        self.base_currency = base_currency.upper()
        source = DEFAULT_EXCHANGE_RATES if rates is None else rates
        self._rates = {code.upper(): Decimal(str(rate)) for code, rate in source.items()}
        self._rates[self.base_currency] = Decimal("1")

    def rate_for(self, currency: str) -> Decimal:
        """통화 코드의 환율 조회

        기준통화는 항상 1. 미등록 통화는 0 (검증 단계에서 거부됨).
        """
        code = (currency or self.base_currency).upper()
        rate = self._rates.get(code)
        if rate is None:
            logger.warning(f"환율 미설정 통화: {code}")
            return ZERO
        return rate

    @staticmethod
    def is_valid_rate(rate: Decimal | None) -> bool:
        """유한한 양수 환율인지 확인"""
        if rate is None:
            return False
        try:
            return rate.is_finite() and rate > 0
        except (AttributeError, InvalidOperation):
            return False

    def to_base(self, fcy_amount: Decimal, rate: Decimal) -> Decimal:
        """외화 → 기준통화 (무효 환율이면 0)"""
        if not self.is_valid_rate(rate):
            return ZERO
        return fcy_amount / rate

    def resolve(
        self,
        fcy_amount: Decimal,
        rate: Decimal,
        base_amount: Decimal | None = None,
    ) -> Conversion:
        """기준금액 우선 규칙 적용

        base_amount가 주어지면 그 값을 그대로 쓰고 환율은 fcy / base로 역산.
        재환산 시에도 같은 기준금액이 나오도록 하기 위함.
        """
        if base_amount is not None and base_amount > 0:
            return Conversion(base_amount=base_amount, rate=fcy_amount / base_amount)
        return Conversion(base_amount=self.to_base(fcy_amount, rate), rate=rate)
