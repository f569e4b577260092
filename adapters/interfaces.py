"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from core.config.loader import AccountLookupRule
    from core.inventory.models import AdjustmentRecord, Item, StockSnapshot
    from core.ledger.accounts import ChartOfAccounts
    from core.ledger.models import ArchivedTransaction, LedgerEntry


@runtime_checkable
class IEntryStore(Protocol):
    """원장 저장소 인터페이스

    분개 append / 조회 / 삭제와 재고 상태 저장.
    금액은 반드시 Decimal 타입 사용.

    백엔드에 따라 delete 직후 query가 잠시 이전 데이터를 반환할 수 있음
    (eventual consistency). 호출자는 폴링으로 확인해야 함.
    """

    # -------------------------------------------------------------------------
    # 분개
    # -------------------------------------------------------------------------

    async def append(self, entries: Sequence["LedgerEntry"]) -> list["LedgerEntry"]:
        """분개 저장 (원자적)

        Returns:
            entry_id / seq가 부여된 분개 목록

        Raises:
            StoreIOError: 저장 실패
        """
        ...

    async def query(self, transaction_id: str) -> list["LedgerEntry"]:
        """전표 번호로 분개 조회 (seq 순)"""
        ...

    async def list_entries(self, factory_id: str | None = None) -> list["LedgerEntry"]:
        """원장 전체 (seq 순)"""
        ...

    async def delete(self, transaction_id: str, reason: str = "", deleted_by: str = "system") -> int:
        """전표 삭제 (보관 후 삭제)

        Returns:
            삭제된 행 수
        """
        ...

    async def list_archived(self, limit: int = 100) -> list["ArchivedTransaction"]:
        """삭제 보관 목록"""
        ...

    async def version(self) -> int:
        """변경 카운터 (append/delete마다 증가)"""
        ...

    # -------------------------------------------------------------------------
    # 재고 / 참조 데이터
    # -------------------------------------------------------------------------

    async def save_adjustment_records(self, records: Iterable["AdjustmentRecord"]) -> None:
        """원자재 조정 구조화 기록 저장"""
        ...

    async def list_adjustment_records(
        self,
        transaction_id: str | None = None,
    ) -> list["AdjustmentRecord"]:
        """원자재 조정 구조화 기록 조회"""
        ...

    async def get_items(self) -> dict[str, "Item"]:
        """완제품 목록 {item_id: Item}"""
        ...

    async def update_item(self, item_id: str, stock_qty: Decimal, avg_cost: Decimal) -> None:
        """완제품 수량/평균원가 갱신"""
        ...

    async def get_chart(
        self,
        factory_id: str | None = None,
        overrides: dict[str, "AccountLookupRule"] | None = None,
    ) -> "ChartOfAccounts":
        """계정과목 + 거래처"""
        ...

    async def load_stock_snapshot(self) -> "StockSnapshot":
        """원자재 재구성 입력 스냅샷"""
        ...


@runtime_checkable
class INotifier(Protocol):
    """알림 서비스 인터페이스

    편집 실패, 정합성 경고 등을 외부 서비스로 전송.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        Args:
            message: 알림 메시지
            level: 알림 레벨 (INFO, WARNING, ERROR, CRITICAL)
            extra: 추가 데이터 (선택)

        Returns:
            전송 성공 여부
        """
        ...

    async def send_transaction_alert(
        self,
        transaction_id: str,
        event: str,
        detail: str,
        level: str = "ERROR",
        hint: str | None = None,
    ) -> bool:
        """전표 단위 알림 전송 (포맷팅된 메시지)

        Args:
            transaction_id: 전표 번호
            event: 이벤트 이름 (예: STUCK, REPOST_FAILED)
            detail: 상세 내용
            level: 알림 레벨
            hint: 운영자 조치 안내 (선택)

        Returns:
            전송 성공 여부
        """
        ...
