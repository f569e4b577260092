"""
재고 데이터 모델

- Item: 완제품 (가중평균 원가, InventoryValuationEngine 결과로만 변경)
- Purchase / OriginalOpening / DirectSaleLine: 원자재 재구성 입력 레코드
- OriginalStockPosition: 원자재 버킷 (파생값, 저장하지 않음)
- AdjustmentRecord: 원자재 조정 기록 (narration 파싱 또는 구조화 기록)
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple

from core.ledger.models import LedgerEntry
from core.ledger.types import InvoiceStatus
from core.types import AdjustmentDirection

ZERO = Decimal("0")


@dataclass
class Item:
    """완제품 품목"""

    id: str
    code: str
    name: str
    stock_qty: Decimal = ZERO
    avg_cost: Decimal = ZERO
    factory_id: str | None = None

    @property
    def worth(self) -> Decimal:
        """재고 가치 (수량 × 평균원가)"""
        return self.stock_qty * self.avg_cost


@dataclass(frozen=True)
class OriginalType:
    """원자재 유형"""

    id: str
    name: str


class BucketKey(NamedTuple):
    """원자재 버킷 키 (유형, 공급처, 하위공급처, 제품)"""

    original_type_id: str
    supplier_id: str
    sub_supplier_id: str | None = None
    product_id: str | None = None


@dataclass(frozen=True)
class Purchase:
    """원자재 매입 (landed_cost는 USD 총 도착원가)"""

    id: str
    purchase_date: date
    supplier_id: str
    original_type_id: str
    weight_kg: Decimal
    landed_cost: Decimal
    sub_supplier_id: str | None = None
    product_id: str | None = None

    @property
    def bucket_key(self) -> BucketKey:
        return BucketKey(
            self.original_type_id,
            self.supplier_id,
            self.sub_supplier_id,
            self.product_id,
        )


@dataclass(frozen=True)
class OriginalOpening:
    """원자재 개봉(생산 투입) 기록 - (유형, 공급처) 단위"""

    id: str
    opening_date: date
    supplier_id: str
    original_type_id: str
    weight_kg: Decimal


@dataclass(frozen=True)
class DirectSaleLine:
    """원자재 직판 송장 행 (원 매입 참조)"""

    invoice_id: str
    invoice_status: str
    original_purchase_id: str | None
    sold_kg: Decimal

    @property
    def is_posted(self) -> bool:
        return self.invoice_status == InvoiceStatus.POSTED.value


@dataclass
class OriginalStockPosition:
    """원자재 버킷 현재 상태 (재구성 결과)

    weight_in_hand가 음수일 수 있음 (과다 조정 신호, 필터링 금지).
    """

    key: BucketKey
    type_name: str
    supplier_name: str
    weight_purchased: Decimal = ZERO
    weight_in_hand: Decimal = ZERO
    avg_cost_per_kg: Decimal = ZERO
    worth: Decimal = ZERO
    touched: bool = False

    @property
    def original_type_id(self) -> str:
        return self.key.original_type_id

    @property
    def supplier_id(self) -> str:
        return self.key.supplier_id

    @property
    def sub_supplier_id(self) -> str | None:
        return self.key.sub_supplier_id

    @property
    def product_id(self) -> str | None:
        return self.key.product_id

    @property
    def is_negative(self) -> bool:
        return self.weight_in_hand < 0


@dataclass(frozen=True)
class StockSnapshot:
    """원자재 재구성 입력 스냅샷

    version은 저장소가 append/delete마다 증가시키는 카운터.
    같은 version이면 같은 입력으로 간주 (재구성 캐시 키).
    """

    version: int
    entries: tuple[LedgerEntry, ...] = ()
    purchases: tuple[Purchase, ...] = ()
    openings: tuple[OriginalOpening, ...] = ()
    sales: tuple[DirectSaleLine, ...] = ()
    adjustment_records: tuple["AdjustmentRecord", ...] = ()
    type_names: dict[str, str] = field(default_factory=dict)
    partner_names: dict[str, str] = field(default_factory=dict)


def supplier_label(supplier_name: str, sub_supplier_name: str | None) -> str:
    """버킷 표시용 공급처 이름 (하위공급처가 있으면 'A (B)' 형태)"""
    if sub_supplier_name:
        return f"{supplier_name} ({sub_supplier_name})"
    return supplier_name


class AdjustmentKind(str, Enum):
    """원자재 조정 종류 (구조화 기록의 태그)"""

    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    TARGET = "TARGET"
    SET_TO_ZERO = "SET_TO_ZERO"


@dataclass(frozen=True)
class AdjustmentRecord:
    """원자재 조정 기록

    분개 narration에서 파싱하거나, 구조화 기록(adjustment_record 테이블)에서 로드.
    구조화 기록이 있는 전표는 narration보다 우선함.

    Attributes:
        weight: 기재된 중량 변화 (kg, 부호 포함). None이면 "N/A"
        worth: 가치 변화 크기 (USD, 음수 아님)
        target_weight / target_worth: 목표 모드 값 (가산 아님, 마지막 기록 우선)
        set_to_zero: 최종 강제 0 처리 (다른 모든 조정보다 나중에 적용)
        seq: 적용 순서 (저장소 append 순서)
        key: 구조화 기록의 정확한 버킷 키 (narration 파싱 결과는 None)
    """

    transaction_id: str
    direction: AdjustmentDirection
    type_name: str
    supplier_name: str
    worth: Decimal
    reason: str = ""
    weight: Decimal | None = None
    target_weight: Decimal | None = None
    target_worth: Decimal | None = None
    set_to_zero: bool = False
    zero_worth: bool = False
    seq: int = 0
    key: BucketKey | None = None

    @property
    def kind(self) -> AdjustmentKind:
        if self.set_to_zero:
            return AdjustmentKind.SET_TO_ZERO
        if self.is_target:
            return AdjustmentKind.TARGET
        if self.direction == AdjustmentDirection.INCREASE:
            return AdjustmentKind.INCREASE
        return AdjustmentKind.DECREASE

    @property
    def is_target(self) -> bool:
        """목표 모드 여부 (zero-worth 표시는 목표 가치 0으로 취급)"""
        return (
            self.target_weight is not None
            or self.target_worth is not None
            or self.zero_worth
        )

    @property
    def weight_delta(self) -> Decimal:
        """방향을 반영한 중량 변화 (N/A면 0)"""
        if self.weight is None:
            return ZERO
        return abs(self.weight) * self.direction.sign

    @property
    def worth_delta(self) -> Decimal:
        """방향을 반영한 가치 변화"""
        return abs(self.worth) * self.direction.sign

    def to_dict(self) -> dict[str, Any]:
        """JSON 직렬화용 dict"""

        def _opt(value: Decimal | None) -> str | None:
            return None if value is None else str(value)

        return {
            "transaction_id": self.transaction_id,
            "kind": self.kind.value,
            "direction": self.direction.value,
            "type_name": self.type_name,
            "supplier_name": self.supplier_name,
            "worth": str(self.worth),
            "reason": self.reason,
            "weight": _opt(self.weight),
            "target_weight": _opt(self.target_weight),
            "target_worth": _opt(self.target_worth),
            "set_to_zero": self.set_to_zero,
            "zero_worth": self.zero_worth,
            "seq": self.seq,
            "key": list(self.key) if self.key is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdjustmentRecord":
        """to_dict() 역변환"""

        def _opt(value: str | None) -> Decimal | None:
            return None if value is None else Decimal(value)

        key = data.get("key")
        return cls(
            transaction_id=data["transaction_id"],
            direction=AdjustmentDirection(data["direction"]),
            type_name=data["type_name"],
            supplier_name=data["supplier_name"],
            worth=Decimal(data["worth"]),
            reason=data.get("reason", ""),
            weight=_opt(data.get("weight")),
            target_weight=_opt(data.get("target_weight")),
            target_worth=_opt(data.get("target_worth")),
            set_to_zero=bool(data.get("set_to_zero", False)),
            zero_worth=bool(data.get("zero_worth", False)),
            seq=int(data.get("seq", 0)),
            key=BucketKey(*key) if key else None,
        )
