"""
전표 입력 스키마 (Pydantic)

사용자 입력을 타입 변환(문자열 금액 → Decimal, 날짜 등)만 하고
필수값 누락 검증은 VoucherBuilder의 유형별 규칙이 담당
(유형별 ValidationError로 어떤 필드가 빠졌는지 알려주기 위함).
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from core.constants import Defaults
from core.ledger.types import PaymentMode
from core.types import AdjustmentDirection


class VoucherRequestBase(BaseModel):
    """전표 공통 입력"""

    entry_date: date | None = Field(default=None, description="전표 일자 (None이면 오늘)")
    description: str = Field(default="", description="적요 / 사유")


class SimpleVoucherRequest(VoucherRequestBase):
    """입금(RV) / 출금(PV) / 경비(EV)

    destination 차변, source 대변.
    """

    kind: Literal["RV", "PV", "EV"]
    source_id: str = Field(default="", description="대변 계정/거래처 ID")
    dest_id: str = Field(default="", description="차변 계정/거래처 ID")
    amount: Decimal | None = Field(default=None, description="외화 금액")
    currency: str = Field(default=Defaults.BASE_CURRENCY, description="통화")
    exchange_rate: Decimal | None = Field(
        default=None, description="환율 (None이면 설정 환율)"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "kind": "RV",
                    "source_id": "CUST-A",
                    "dest_id": "ACC-102",
                    "amount": "1000",
                    "currency": "USD",
                    "description": "Invoice settlement",
                },
            ]
        }
    }


class PurchaseBillRequest(VoucherRequestBase):
    """매입 청구서(PB)

    CREDIT: 비용 차변 / 거래처 대변
    CASH: 비용 차변 / 현금 계정 대변
    """

    kind: Literal["PB"] = "PB"
    expense_id: str = Field(default="", description="비용 계정 ID")
    vendor_id: str = Field(default="", description="거래처 ID")
    payment_mode: PaymentMode = Field(default=PaymentMode.CREDIT)
    cash_account_id: str = Field(default="", description="CASH 모드 지급 계정 ID")
    amount: Decimal | None = None
    currency: str = Defaults.BASE_CURRENCY
    exchange_rate: Decimal | None = None


class JournalLineRequest(BaseModel):
    """분개 행 입력 (debit/credit은 행 통화 기준 금액)"""

    account_id: str = ""
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    currency: str = Defaults.BASE_CURRENCY
    exchange_rate: Decimal | None = None
    base_amount: Decimal | None = Field(
        default=None, description="기준통화 금액 직접 입력 (환율 역산)"
    )
    narration: str = ""


class JournalVoucherRequest(VoucherRequestBase):
    """일반 분개(JV) - N행 (N >= 2)"""

    kind: Literal["JV"] = "JV"
    lines: list[JournalLineRequest] = Field(default_factory=list)


class TransferRequest(VoucherRequestBase):
    """계좌 간 이체(TR) - 환차는 Exchange Variance 계정으로"""

    kind: Literal["TR"] = "TR"
    from_account_id: str = ""
    to_account_id: str = ""
    from_amount: Decimal | None = None
    from_currency: str = Defaults.BASE_CURRENCY
    from_rate: Decimal | None = None
    to_amount: Decimal | None = None
    to_currency: str = Defaults.BASE_CURRENCY
    to_rate: Decimal | None = None


class ItemAdjustmentLine(BaseModel):
    """완제품 조정 행 (수량/가치는 크기, 방향은 direction)"""

    item_id: str = ""
    direction: AdjustmentDirection = AdjustmentDirection.INCREASE
    quantity: Decimal | None = None
    worth: Decimal | None = None


class InventoryAdjustmentRequest(VoucherRequestBase):
    """완제품 재고 조정(IA)"""

    kind: Literal["IA"] = "IA"
    lines: list[ItemAdjustmentLine] = Field(default_factory=list)


class StockAdjustmentLine(BaseModel):
    """원자재 버킷 조정 행

    - 가산: direction + weight/worth
    - 목표: target_weight / target_worth
    - 0 처리: set_to_zero
    """

    original_type_id: str = ""
    supplier_id: str = ""
    sub_supplier_id: str | None = None
    product_id: str | None = None
    direction: AdjustmentDirection = AdjustmentDirection.INCREASE
    weight: Decimal | None = None
    worth: Decimal | None = None
    target_weight: Decimal | None = None
    target_worth: Decimal | None = None
    set_to_zero: bool = False


class OriginalStockAdjustmentRequest(VoucherRequestBase):
    """원자재 재고 조정(OSA)"""

    kind: Literal["OSA"] = "OSA"
    lines: list[StockAdjustmentLine] = Field(default_factory=list)


class ReturnToSupplierRequest(VoucherRequestBase):
    """공급처 반품(RTS)"""

    kind: Literal["RTS"] = "RTS"
    supplier_id: str = ""
    item_id: str = ""
    quantity: Decimal | None = None


class WriteOffRequest(VoucherRequestBase):
    """대손/상각(WO)"""

    kind: Literal["WO"] = "WO"
    account_id: str = ""
    amount: Decimal | None = None
    currency: str = Defaults.BASE_CURRENCY
    exchange_rate: Decimal | None = None


class BalancingDiscrepancyRequest(VoucherRequestBase):
    """잔액 차이 정리(BD) - 증가는 0에서 멀어지는 방향"""

    kind: Literal["BD"] = "BD"
    account_id: str = ""
    direction: AdjustmentDirection = AdjustmentDirection.INCREASE
    amount: Decimal | None = None
    currency: str = Defaults.BASE_CURRENCY
    exchange_rate: Decimal | None = None


class OpeningBalanceRequest(VoucherRequestBase):
    """기초 잔액(OB) - 양수는 정상 잔액 방향"""

    kind: Literal["OB"] = "OB"
    account_id: str = ""
    amount: Decimal | None = None
    currency: str = Defaults.BASE_CURRENCY
    exchange_rate: Decimal | None = None


VoucherRequest = Annotated[
    Union[
        SimpleVoucherRequest,
        PurchaseBillRequest,
        JournalVoucherRequest,
        TransferRequest,
        InventoryAdjustmentRequest,
        OriginalStockAdjustmentRequest,
        ReturnToSupplierRequest,
        WriteOffRequest,
        BalancingDiscrepancyRequest,
        OpeningBalanceRequest,
    ],
    Field(discriminator="kind"),
]

_voucher_request_adapter: TypeAdapter[Any] = TypeAdapter(VoucherRequest)


def parse_voucher_request(data: dict[str, Any]) -> VoucherRequestBase:
    """dict → 유형별 요청 모델 (kind로 판별)

    Raises:
        pydantic.ValidationError: 타입 변환 실패 또는 알 수 없는 kind
    """
    return _voucher_request_adapter.validate_python(data)
