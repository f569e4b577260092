"""
Slack 어댑터

전표 사고(STUCK, 재게시/복구 실패) 알림을 Incoming Webhook으로 전송.
"""

from adapters.slack.notifier import SlackNotifier

__all__ = [
    "SlackNotifier",
]
