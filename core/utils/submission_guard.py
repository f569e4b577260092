"""
전표 처리 중복 방지 (단일 writer per transaction)

같은 transaction_id에 대해 게시/편집이 동시에 진행되지 않도록 막는 메모리 플래그.
서로 다른 전표는 직렬화하지 않음.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from core.ledger.errors import DuplicateSubmissionError

logger = logging.getLogger(__name__)


class SubmissionGuard:
    """처리 중 플래그 (중복 클릭 방지)

    사용 예시:
    ```python
    guard = SubmissionGuard()

    async with guard.hold("RV-1001"):
        ...  # 같은 ID로 다시 들어오면 DuplicateSubmissionError
    ```
    """

    def __init__(self) -> None:
        self._in_flight: set[str] = set()

    def is_processing(self, transaction_id: str) -> bool:
        return transaction_id in self._in_flight

    def acquire(self, transaction_id: str) -> None:
        """처리 시작 표시

        Raises:
            DuplicateSubmissionError: 이미 처리 중인 경우
        """
        if transaction_id in self._in_flight:
            logger.warning(f"중복 제출 차단: {transaction_id}")
            raise DuplicateSubmissionError(transaction_id)
        self._in_flight.add(transaction_id)

    def release(self, transaction_id: str) -> None:
        self._in_flight.discard(transaction_id)

    @asynccontextmanager
    async def hold(self, transaction_id: str) -> AsyncIterator[None]:
        """처리 구간 컨텍스트 (예외 시에도 해제)"""
        self.acquire(transaction_id)
        try:
            yield
        finally:
            self.release(transaction_id)

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)
