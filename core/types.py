"""
타입 정의 모듈

계정/거래처 분류 등 여러 패키지에서 공유하는 Enum 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class AccountType(str, Enum):
    """계정과목 유형 (복식부기 5대 유형)"""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class PartnerType(str, Enum):
    """거래처 유형"""

    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    VENDOR = "VENDOR"
    SUB_SUPPLIER = "SUB_SUPPLIER"
    FREIGHT_FORWARDER = "FREIGHT_FORWARDER"
    CLEARING_AGENT = "CLEARING_AGENT"
    COMMISSION_AGENT = "COMMISSION_AGENT"


class NormalSide(str, Enum):
    """정상 잔액 방향

    DEBIT: 차변 잔액이 양수 (ASSET, EXPENSE, CUSTOMER)
    CREDIT: 대변 잔액이 양수 (그 외)
    """

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class AdjustmentDirection(str, Enum):
    """조정 방향"""

    INCREASE = "Increase"
    DECREASE = "Decrease"

    @property
    def sign(self) -> int:
        """증가 +1, 감소 -1"""
        return 1 if self is AdjustmentDirection.INCREASE else -1


# 차변 정상 잔액 유형
DEBIT_NORMAL_ACCOUNT_TYPES: frozenset[AccountType] = frozenset({
    AccountType.ASSET,
    AccountType.EXPENSE,
})

DEBIT_NORMAL_PARTNER_TYPES: frozenset[PartnerType] = frozenset({
    PartnerType.CUSTOMER,
})
