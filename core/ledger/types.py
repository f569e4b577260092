"""
복식부기 타입 정의

TransactionType 등 Ledger 시스템에서 사용하는 Enum과 초기 계정과목 정의
"""

from enum import Enum

from core.constants import AccountCodes


class TransactionType(str, Enum):
    """전표 유형 (12종)

    값은 전표 번호 접두사로도 사용됨 (예: RV-1001).
    str을 상속하여 JSON 직렬화 가능.
    """

    # 단순 2행 전표
    RECEIPT = "RV"  # 입금
    PAYMENT = "PV"  # 출금
    EXPENSE = "EV"  # 경비
    PURCHASE_BILL = "PB"  # 매입 청구서 (현금/외상)

    # N행 분개
    JOURNAL = "JV"

    # 계좌 간 이체 (환차 포함 2~3행)
    INTERNAL_TRANSFER = "TR"

    # 재고
    INVENTORY_ADJUSTMENT = "IA"  # 완제품 재고 조정
    ORIGINAL_STOCK_ADJUSTMENT = "OSA"  # 원자재(Original) 재고 조정
    RETURN_TO_SUPPLIER = "RTS"

    # 정리
    WRITE_OFF = "WO"
    BALANCING_DISCREPANCY = "BD"
    OPENING_BALANCE = "OB"


class JournalSide(str, Enum):
    """분개 방향 (차변/대변)"""

    DEBIT = "DEBIT"  # 차변 (자산 증가, 비용 증가)
    CREDIT = "CREDIT"  # 대변 (자산 감소, 부채/수익 증가)

    @property
    def opposite(self) -> "JournalSide":
        return JournalSide.CREDIT if self is JournalSide.DEBIT else JournalSide.DEBIT


class AccountRole(str, Enum):
    """전표 규칙이 필요로 하는 시스템 계정 역할

    계정과목 자체는 외부 설정 데이터이므로 코드/이름 규칙으로 조회.
    """

    RAW_MATERIALS = "RAW_MATERIALS"
    FINISHED_GOODS = "FINISHED_GOODS"
    INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"
    WRITE_OFF = "WRITE_OFF"
    EXCHANGE_VARIANCE = "EXCHANGE_VARIANCE"
    DISCREPANCY = "DISCREPANCY"
    OWNER_CAPITAL = "OWNER_CAPITAL"


class PaymentMode(str, Enum):
    """매입 청구서 결제 방식"""

    CASH = "CASH"  # 현금 계정에서 즉시 지급
    CREDIT = "CREDIT"  # 거래처 외상 (매입채무)


class InvoiceStatus(str, Enum):
    """판매 송장 상태 (직판 차감은 POSTED만 대상)"""

    DRAFT = "Draft"
    POSTED = "Posted"
    CANCELLED = "Cancelled"


# 역할별 기본 조회 규칙: (코드 목록, 이름 부분 일치 목록)
DEFAULT_ACCOUNT_LOOKUP: dict[AccountRole, tuple[tuple[str, ...], tuple[str, ...]]] = {
    AccountRole.RAW_MATERIALS: (AccountCodes.RAW_MATERIALS, ("Raw Materials",)),
    AccountRole.FINISHED_GOODS: (AccountCodes.FINISHED_GOODS, ("Finished Goods",)),
    AccountRole.INVENTORY_ADJUSTMENT: (
        AccountCodes.INVENTORY_ADJUSTMENT,
        ("Inventory Adjustment",),
    ),
    AccountRole.WRITE_OFF: (AccountCodes.WRITE_OFF, ("Write-off", "Bad Debt")),
    AccountRole.EXCHANGE_VARIANCE: (
        AccountCodes.EXCHANGE_VARIANCE,
        ("Exchange Variance", "Exchange Gain/Loss"),
    ),
    AccountRole.DISCREPANCY: (AccountCodes.DISCREPANCY, ("Discrepancy", "Suspense")),
    AccountRole.OWNER_CAPITAL: (AccountCodes.OWNER_CAPITAL, ("Owner's Capital",)),
}


# 초기 계정과목 (스키마 시드 및 테스트에서 사용)
INITIAL_ACCOUNTS: list[tuple[str, str, str, str]] = [
    # (account_id, code, name, account_type)

    # ASSET
    ("ACC-101", "101", "Cash in Hand", "ASSET"),
    ("ACC-102", "102", "Bank Account", "ASSET"),
    ("ACC-103", "103", "Accounts Receivable", "ASSET"),
    ("ACC-104", "104", "Inventory - Raw Materials", "ASSET"),
    ("ACC-105", "105", "Inventory - Finished Goods", "ASSET"),

    # LIABILITY
    ("ACC-201", "201", "Accounts Payable", "LIABILITY"),

    # EQUITY
    ("ACC-301", "301", "Owner's Capital", "EQUITY"),
    ("ACC-302", "302", "Retained Earnings", "EQUITY"),

    # REVENUE
    ("ACC-401", "401", "Sales Revenue", "REVENUE"),

    # EXPENSE
    ("ACC-501", "501", "Cost of Goods Sold", "EXPENSE"),
    ("ACC-502", "502", "Exchange Variance", "EXPENSE"),
    ("ACC-503", "503", "Inventory Adjustment", "EXPENSE"),
    ("ACC-504", "504", "Write-off Expense", "EXPENSE"),
    ("ACC-505", "505", "Balancing Discrepancy", "EQUITY"),
    ("ACC-601", "601", "Utilities Expense", "EXPENSE"),
    ("ACC-602", "602", "Freight Expense", "EXPENSE"),
]
