"""
원장 예외 정의

모든 예외는 LedgerError를 상속.
- ValidationError / UnbalancedTransactionError / MissingAccountError: 게시 전 차단, 재시도 없음
- StoreIOError: 저장소 I/O 실패 (편집 삭제 검증만 1회 재시도)
- ReconciliationAmbiguityError: 조정 건별 로그 후 건너뜀 (전체 재구성은 계속)
"""

from decimal import Decimal


class LedgerError(Exception):
    """원장 예외 기본 클래스"""

    pass


class ValidationError(LedgerError):
    """입력 검증 실패 (선택 누락, 사유 누락, 0 이하 금액 등)

    Args:
        message: 사용자에게 표시할 메시지
        kind: 전표 유형 태그 (예: "RV"), 구조 검증이면 None
        field: 문제가 된 입력 필드명
    """

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        field: str | None = None,
    ):
        self.kind = kind
        self.field = field
        prefix = f"[{kind}] " if kind else ""
        super().__init__(f"{prefix}{message}")


class InvalidRateError(ValidationError):
    """환율이 유한한 양수가 아님"""

    def __init__(self, account_name: str, rate: Decimal | None):
        self.account_name = account_name
        self.rate = rate
        super().__init__(
            f"InvalidRate: '{account_name}' 계정의 환율이 유효하지 않습니다 (rate={rate})",
            field="exchange_rate",
        )


class UnbalancedTransactionError(LedgerError):
    """차변/대변 불균형

    Args:
        reason: "missing side" 또는 "amount mismatch"
        total_debit: 차변 합계
        total_credit: 대변 합계
    """

    MISSING_SIDE = "missing side"
    AMOUNT_MISMATCH = "amount mismatch"

    def __init__(
        self,
        reason: str,
        total_debit: Decimal,
        total_credit: Decimal,
        transaction_id: str | None = None,
    ):
        self.reason = reason
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = total_debit - total_credit
        self.transaction_id = transaction_id

        if reason == self.AMOUNT_MISMATCH:
            message = (
                f"Unbalanced: {reason} "
                f"(debit={total_debit}, credit={total_credit}, difference={self.difference})"
            )
        else:
            message = f"Unbalanced: {reason}"
        if transaction_id:
            message = f"{message} [{transaction_id}]"
        super().__init__(message)


class MissingAccountError(LedgerError):
    """필수 계정과목 미설정 (기본값 대체 없음)"""

    def __init__(self, account_label: str, detail: str | None = None):
        self.account_label = account_label
        message = f"필수 계정을 찾을 수 없습니다: {account_label}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class StoreIOError(LedgerError):
    """저장소 append/delete/query 실패"""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        transaction_id: str | None = None,
    ):
        self.operation = operation
        self.transaction_id = transaction_id
        super().__init__(message)


class StuckTransactionError(StoreIOError):
    """삭제 재시도 후에도 잔여 분개가 남음 (수동 개입 필요)"""

    def __init__(self, transaction_id: str, residual_count: int):
        self.residual_count = residual_count
        super().__init__(
            f"전표 {transaction_id} 삭제 후 잔여 분개 {residual_count}건이 남아 있습니다. "
            f"원장을 수동으로 확인하세요.",
            operation="delete",
            transaction_id=transaction_id,
        )


class ReconciliationAmbiguityError(LedgerError):
    """조정 내역 해석 불가 또는 매칭 버킷 없음"""

    def __init__(self, message: str, transaction_id: str | None = None):
        self.transaction_id = transaction_id
        super().__init__(message)


class DuplicateSubmissionError(LedgerError):
    """동일 전표에 대한 처리가 이미 진행 중 (중복 클릭 방지)"""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"전표 {transaction_id} 처리가 이미 진행 중입니다")
