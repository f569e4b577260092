"""
원장 데이터 모델

LedgerEntry는 게시 후 불변 (append-only).
계정과목(Account)과 거래처(Partner)는 같은 ID 네임스페이스를 공유하며
원장에서 동일하게 취급됨.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from core.ledger.types import JournalSide
from core.types import (
    DEBIT_NORMAL_ACCOUNT_TYPES,
    DEBIT_NORMAL_PARTNER_TYPES,
    AccountType,
    NormalSide,
    PartnerType,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerEntry:
    """원장 분개 행

    한 전표(transaction_id)는 2개 이상의 행으로 구성.
    행마다 debit/credit 중 정확히 하나만 0이 아님.

    entry_id, seq는 저장소가 부여하며 동등 비교에서 제외됨
    (재게시된 분개가 캡처된 원본과 관찰상 동일하도록).
    """

    transaction_id: str
    entry_date: date
    account_id: str
    account_name: str
    transaction_type: str

    # 기준통화(USD) 금액
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    # 외화 정보 (exchange_rate: 1 USD = ? 외화)
    currency: str = "USD"
    exchange_rate: Decimal = Decimal("1")
    fcy_amount: Decimal = ZERO

    narration: str = ""
    factory_id: str = ""
    is_reporting_only: bool = False
    is_adjustment: bool = False

    entry_id: str | None = field(default=None, compare=False)
    seq: int | None = field(default=None, compare=False)

    @property
    def side(self) -> JournalSide | None:
        """분개 방향 (둘 다 0이면 None)"""
        if self.debit > 0:
            return JournalSide.DEBIT
        if self.credit > 0:
            return JournalSide.CREDIT
        return None

    @property
    def amount(self) -> Decimal:
        """방향과 무관한 기준통화 금액"""
        return self.debit if self.debit > 0 else self.credit

    def to_dict(self) -> dict[str, Any]:
        """JSON 직렬화용 dict (Decimal은 문자열)"""
        return {
            "transaction_id": self.transaction_id,
            "entry_date": self.entry_date.isoformat(),
            "account_id": self.account_id,
            "account_name": self.account_name,
            "transaction_type": self.transaction_type,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
            "fcy_amount": str(self.fcy_amount),
            "narration": self.narration,
            "factory_id": self.factory_id,
            "is_reporting_only": self.is_reporting_only,
            "is_adjustment": self.is_adjustment,
            "entry_id": self.entry_id,
            "seq": self.seq,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerEntry":
        """to_dict() 역변환"""
        return cls(
            transaction_id=data["transaction_id"],
            entry_date=date.fromisoformat(data["entry_date"]),
            account_id=data["account_id"],
            account_name=data["account_name"],
            transaction_type=data["transaction_type"],
            debit=Decimal(data["debit"]),
            credit=Decimal(data["credit"]),
            currency=data["currency"],
            exchange_rate=Decimal(data["exchange_rate"]),
            fcy_amount=Decimal(data["fcy_amount"]),
            narration=data.get("narration", ""),
            factory_id=data.get("factory_id", ""),
            is_reporting_only=bool(data.get("is_reporting_only", False)),
            is_adjustment=bool(data.get("is_adjustment", False)),
            entry_id=data.get("entry_id"),
            seq=data.get("seq"),
        )


@dataclass(frozen=True)
class Account:
    """계정과목"""

    id: str
    code: str
    name: str
    account_type: AccountType
    factory_id: str | None = None

    @property
    def normal_side(self) -> NormalSide:
        if self.account_type in DEBIT_NORMAL_ACCOUNT_TYPES:
            return NormalSide.DEBIT
        return NormalSide.CREDIT


@dataclass(frozen=True)
class Partner:
    """거래처

    SUB_SUPPLIER는 parent_supplier_id로 상위 공급처를 참조.
    """

    id: str
    name: str
    partner_type: PartnerType
    parent_supplier_id: str | None = None
    factory_id: str | None = None

    @property
    def normal_side(self) -> NormalSide:
        if self.partner_type in DEBIT_NORMAL_PARTNER_TYPES:
            return NormalSide.DEBIT
        return NormalSide.CREDIT


# 원장 상대방 (계정과목 또는 거래처)
LedgerParty = Account | Partner


@dataclass(frozen=True)
class ArchivedTransaction:
    """삭제된 전표 보관 기록"""

    archive_id: str
    original_transaction_id: str
    deleted_at: datetime
    deleted_by: str
    reason: str
    entries: tuple[LedgerEntry, ...]

    @property
    def total_value(self) -> Decimal:
        """전표 규모 (차변 합계)"""
        return sum((e.debit for e in self.entries), ZERO)
