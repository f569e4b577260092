"""
잔액 계산

잔액은 저장하지 않고 항상 원장 전체 스냅샷에서 재계산 (순수 함수).
- 차변 정상(ASSET, EXPENSE, CUSTOMER): debit - credit
- 대변 정상(그 외, 공급처 계열 포함): credit - debit
- reporting-only 행은 기본적으로 잔액에서 제외
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from core.constants import Tolerances
from core.ledger.models import LedgerEntry, LedgerParty
from core.types import NormalSide

ZERO = Decimal("0")


def signed_amount(party: LedgerParty, entry: LedgerEntry) -> Decimal:
    """정상 잔액 방향 기준 부호 금액"""
    if party.normal_side == NormalSide.DEBIT:
        return entry.debit - entry.credit
    return entry.credit - entry.debit


def compute_balance(
    party: LedgerParty,
    entries: Iterable[LedgerEntry],
    include_reporting_only: bool = False,
    exclude_adjustments: bool = False,
) -> Decimal:
    """계정/거래처의 현재 잔액

    Args:
        party: 계정과목 또는 거래처
        entries: 원장 전체 (또는 일부)
        include_reporting_only: reporting-only 행 포함 여부
        exclude_adjustments: is_adjustment 행 제외 여부 (보고용)

    Returns:
        정상 방향 기준 잔액 (양수 = 정상)
    """
    balance = ZERO
    for entry in entries:
        if entry.account_id != party.id:
            continue
        if entry.is_reporting_only and not include_reporting_only:
            continue
        if exclude_adjustments and entry.is_adjustment:
            continue
        balance += signed_amount(party, entry)
    return balance


def earliest_entry_date(
    account_id: str,
    entries: Iterable[LedgerEntry],
) -> date | None:
    """계정의 가장 이른 분개 날짜

    정렬 분개(is_adjustment)는 제외하고 찾되,
    정렬 분개만 있으면 그 중 가장 이른 날짜.
    """
    regular: date | None = None
    adjustment: date | None = None
    for entry in entries:
        if entry.account_id != account_id:
            continue
        if entry.is_adjustment:
            if adjustment is None or entry.entry_date < adjustment:
                adjustment = entry.entry_date
        elif regular is None or entry.entry_date < regular:
            regular = entry.entry_date
    return regular if regular is not None else adjustment


@dataclass(frozen=True)
class TransactionDiscrepancy:
    """불균형 전표 (감사 결과)"""

    transaction_id: str
    total_debit: Decimal
    total_credit: Decimal
    entry_count: int
    missing_side: bool

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit


def group_by_transaction(entries: Iterable[LedgerEntry]) -> dict[str, list[LedgerEntry]]:
    """transaction_id별 분개 묶음 (입력 순서 유지)"""
    grouped: dict[str, list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.transaction_id].append(entry)
    return dict(grouped)


def find_unbalanced_transactions(
    entries: Iterable[LedgerEntry],
    tolerance: Decimal = Tolerances.BALANCE,
) -> list[TransactionDiscrepancy]:
    """원장 전체에서 불균형 전표 탐지

    차변/대변 합계 차이가 허용 오차를 넘거나 한쪽 방향이 없는 전표.
    """
    result: list[TransactionDiscrepancy] = []
    for transaction_id, lines in group_by_transaction(entries).items():
        total_debit = sum((e.debit for e in lines), ZERO)
        total_credit = sum((e.credit for e in lines), ZERO)
        missing_side = not (
            any(e.debit > 0 for e in lines) and any(e.credit > 0 for e in lines)
        )
        if missing_side or abs(total_debit - total_credit) > tolerance:
            result.append(TransactionDiscrepancy(
                transaction_id=transaction_id,
                total_debit=total_debit,
                total_credit=total_credit,
                entry_count=len(lines),
                missing_side=missing_side,
            ))
    return result


def trial_balance(
    parties: Iterable[LedgerParty],
    entries: Iterable[LedgerEntry],
) -> dict[str, Decimal]:
    """시산표 {entity_id: 정상 방향 잔액}"""
    entry_list = list(entries)
    return {party.id: compute_balance(party, entry_list) for party in parties}
