"""
Mock 알림 서비스

테스트용 Mock Notifier. INotifier Protocol 준수.
전표 알림은 전표 번호/이벤트/조치 안내를 구조화해 기록.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class NotificationRecord:
    """발송(시도)된 알림 한 건"""

    message: str
    level: str
    extra: dict[str, Any] | None
    sent: bool
    transaction_id: str | None = None
    event: str | None = None
    hint: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MockNotifier:
    """Mock 알림 서비스

    사용 예시:
    ```python
    notifier = MockNotifier()
    workflow = EditWorkflow(posting, notifier=notifier)
    ...
    assert notifier.events_for("JV-1001") == ["STUCK"]
    ```
    """

    def __init__(self, should_fail: bool = False):
        """
        Args:
            should_fail: True면 모든 발송 실패 (Slack 장애 시나리오)
        """
        self.should_fail = should_fail
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        return self._record(NotificationRecord(message, level, extra, sent=not self.should_fail))

    async def send_transaction_alert(
        self,
        transaction_id: str,
        event: str,
        detail: str,
        level: str = "ERROR",
        hint: str | None = None,
    ) -> bool:
        message = f"[{event}] {transaction_id}: {detail}"
        if hint:
            message = f"{message} (조치: {hint})"
        return self._record(NotificationRecord(
            message=message,
            level=level,
            extra={"transaction_id": transaction_id, "event": event},
            sent=not self.should_fail,
            transaction_id=transaction_id,
            event=event,
            hint=hint,
        ))

    def _record(self, record: NotificationRecord) -> bool:
        self.notifications.append(record)
        return record.sent

    # -------------------------------------------------------------------------
    # 테스트 헬퍼
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        self.notifications.clear()

    def get_by_level(self, level: str) -> list[NotificationRecord]:
        return [n for n in self.notifications if n.level == level]

    def get_errors(self) -> list[NotificationRecord]:
        return self.get_by_level("ERROR")

    def get_criticals(self) -> list[NotificationRecord]:
        return self.get_by_level("CRITICAL")

    def alerts_for(self, transaction_id: str) -> list[NotificationRecord]:
        """특정 전표의 전표 알림 (발송 순서)"""
        return [n for n in self.notifications if n.transaction_id == transaction_id]

    def events_for(self, transaction_id: str) -> list[str]:
        return [n.event for n in self.alerts_for(transaction_id) if n.event]

    @property
    def last_notification(self) -> NotificationRecord | None:
        return self.notifications[-1] if self.notifications else None

    @property
    def message_count(self) -> int:
        return len(self.notifications)

    @property
    def failed_count(self) -> int:
        """발송 실패한 알림 수"""
        return sum(1 for n in self.notifications if not n.sent)
