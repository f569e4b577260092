"""
복식부기 검증기

게시 전 전표 후보를 검증. 실패 시 어떤 행도 게시되면 안 됨.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from core.constants import Tolerances
from core.ledger.currency import CurrencyConverter
from core.ledger.errors import InvalidRateError, UnbalancedTransactionError, ValidationError
from core.ledger.models import LedgerEntry

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValidationSummary:
    """검증 통과 결과"""

    transaction_id: str
    total_debit: Decimal
    total_credit: Decimal
    line_count: int

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit


class DoubleEntryValidator:
    """복식부기 균형 검증기

    검사 순서 (고정):
    (a) 모든 행의 환율이 유한한 양수 → InvalidRateError
    (b) 차변 행과 대변 행이 각각 1개 이상 → Unbalanced: missing side
    (c) |Σdebit - Σcredit| <= 0.01 → Unbalanced: amount mismatch
    """

    TOLERANCE = Tolerances.BALANCE

    def validate(self, entries: Sequence[LedgerEntry]) -> ValidationSummary:
        """전표 후보 검증

        Args:
            entries: 같은 transaction_id를 공유하는 분개 행 목록

        Returns:
            ValidationSummary

        Raises:
            ValidationError: 빈 목록, 전표 ID 혼재, 행 구조 오류
            InvalidRateError: 환율 무효
            UnbalancedTransactionError: 한쪽 방향 누락 또는 금액 불일치
        """
        if not entries:
            raise ValidationError("분개 행이 비어 있습니다")

        transaction_id = entries[0].transaction_id
        if any(e.transaction_id != transaction_id for e in entries):
            ids = sorted({e.transaction_id for e in entries})
            raise ValidationError(f"하나의 전표에 여러 transaction_id가 섞여 있습니다: {ids}")

        # (a) 환율
        for entry in entries:
            if not CurrencyConverter.is_valid_rate(entry.exchange_rate):
                raise InvalidRateError(entry.account_name, entry.exchange_rate)

        # 행 구조: 음수 금지, debit/credit 중 정확히 하나
        for entry in entries:
            if entry.debit < 0 or entry.credit < 0:
                raise ValidationError(
                    f"'{entry.account_name}' 행에 음수 금액이 있습니다",
                    field="amount",
                )
            if (entry.debit > 0) == (entry.credit > 0):
                raise ValidationError(
                    f"'{entry.account_name}' 행은 차변 또는 대변 중 하나만 가져야 합니다",
                    field="amount",
                )

        total_debit = sum((e.debit for e in entries), ZERO)
        total_credit = sum((e.credit for e in entries), ZERO)

        # (b) 양쪽 방향 존재
        has_debit = any(e.debit > 0 for e in entries)
        has_credit = any(e.credit > 0 for e in entries)
        if not (has_debit and has_credit):
            raise UnbalancedTransactionError(
                UnbalancedTransactionError.MISSING_SIDE,
                total_debit,
                total_credit,
                transaction_id,
            )

        # (c) 합계 일치
        if abs(total_debit - total_credit) > self.TOLERANCE:
            raise UnbalancedTransactionError(
                UnbalancedTransactionError.AMOUNT_MISMATCH,
                total_debit,
                total_credit,
                transaction_id,
            )

        return ValidationSummary(
            transaction_id=transaction_id,
            total_debit=total_debit,
            total_credit=total_credit,
            line_count=len(entries),
        )

    def is_balanced(self, entries: Sequence[LedgerEntry]) -> bool:
        """예외 없이 균형 여부만 반환"""
        try:
            self.validate(entries)
        except (ValidationError, UnbalancedTransactionError):
            return False
        return True
