"""
Slack 알림 서비스

편집 워크플로우의 STUCK / REPOST_FAILED / RESTORE_FAILED 같은 전표 사고를
Slack Incoming Webhook으로 운영자에게 전달.
INotifier Protocol 준수.

알림 실패는 원장 작업을 막지 않음 (False 반환 + 로그).
"""

import logging
from datetime import datetime, timezone
from typing import Any, NamedTuple

import httpx

logger = logging.getLogger(__name__)


class LevelStyle(NamedTuple):
    emoji: str
    color: str


LEVEL_STYLE: dict[str, LevelStyle] = {
    "INFO": LevelStyle(":white_check_mark:", "#36A64F"),
    "WARNING": LevelStyle(":warning:", "#FFA500"),
    "ERROR": LevelStyle(":x:", "#FF0000"),
    "CRITICAL": LevelStyle(":rotating_light:", "#8B0000"),
}
DEFAULT_STYLE = LevelStyle(":bell:", "#808080")


def style_for(level: str) -> LevelStyle:
    return LEVEL_STYLE.get(level, DEFAULT_STYLE)


class SlackNotifier:
    """Slack 알림 서비스

    Args:
        webhook_url: Slack Incoming Webhook URL
        factory_id: 알림에 표시할 공장 ID (여러 공장이 한 채널을 공유할 때)
        channel: 채널 오버라이드 (기본값은 Webhook 설정 사용)
        username: 메시지 발송자 이름
        timeout: HTTP 요청 타임아웃 (초)

    사용 예시:
    ```python
    notifier = SlackNotifier(settings.slack_webhook_url, factory_id="FACTORY-01")

    await notifier.send_transaction_alert(
        transaction_id="JV-1001",
        event="STUCK",
        detail="재삭제 후에도 2행 잔존",
        level="CRITICAL",
        hint="원장을 직접 점검하세요",
    )
    ```
    """

    def __init__(
        self,
        webhook_url: str,
        factory_id: str | None = None,
        channel: str | None = None,
        username: str = "LedgerEngine",
        timeout: float = 10.0,
    ):
        if not webhook_url:
            raise ValueError("webhook_url은 필수입니다")

        self.webhook_url = webhook_url
        self.factory_id = factory_id
        self.channel = channel
        self.username = username
        self.timeout = timeout

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # -------------------------------------------------------------------------
    # INotifier
    # -------------------------------------------------------------------------

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """일반 알림

        Args:
            message: 알림 메시지
            level: INFO, WARNING, ERROR, CRITICAL
            extra: 추가 데이터 (attachment field로 표시)

        Returns:
            전송 성공 여부
        """
        style = style_for(level)
        attachment = self._attachment(
            style,
            text=f"{style.emoji} *[{level}]* {message}",
            fields=[(key, value) for key, value in (extra or {}).items()],
        )
        return await self._post(attachment, context=f"level={level}")

    async def send_transaction_alert(
        self,
        transaction_id: str,
        event: str,
        detail: str,
        level: str = "ERROR",
        hint: str | None = None,
    ) -> bool:
        """전표 단위 알림

        Args:
            transaction_id: 전표 번호
            event: STUCK, REPOST_FAILED, REPOST_UNVERIFIED, RESTORE_FAILED 등
            detail: 상세 내용
            level: 알림 레벨
            hint: 운영자 조치 안내 (있으면 별도 field)

        Returns:
            전송 성공 여부
        """
        style = style_for(level)
        fields: list[tuple[str, Any]] = [("전표", transaction_id), ("이벤트", event)]
        if hint:
            fields.append(("조치", hint))

        attachment = self._attachment(
            style,
            title=f"{style.emoji} {event} {transaction_id}",
            text=detail,
            fields=fields,
        )
        return await self._post(attachment, context=f"{event} {transaction_id}")

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    def _attachment(
        self,
        style: LevelStyle,
        text: str,
        title: str | None = None,
        fields: list[tuple[str, Any]] | None = None,
    ) -> dict[str, Any]:
        attachment: dict[str, Any] = {
            "color": style.color,
            "text": text,
            "footer": self._footer(),
        }
        if title:
            attachment["title"] = title

        all_fields = list(fields or [])
        if self.factory_id:
            all_fields.append(("공장", self.factory_id))
        if all_fields:
            attachment["fields"] = [
                {"title": title_, "value": str(value), "short": True}
                for title_, value in all_fields
            ]
        return attachment

    async def _post(self, attachment: dict[str, Any], context: str) -> bool:
        payload: dict[str, Any] = {"username": self.username, "attachments": [attachment]}
        if self.channel:
            payload["channel"] = self.channel

        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)
        except httpx.TimeoutException:
            logger.error(f"Slack 알림 타임아웃 ({context})")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Slack 알림 HTTP 에러 ({context}): {e}")
            return False

        if response.status_code != 200:
            logger.warning(
                f"Slack 알림 실패 ({context}): status={response.status_code}, body={response.text}"
            )
            return False

        logger.debug(f"Slack 알림 전송: {context}")
        return True

    def _footer(self) -> str:
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return f"{self.username} | {now}"

    async def __aenter__(self) -> "SlackNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
