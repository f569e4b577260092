"""
복식부기 원장

공장 원장의 분개 모델, 검증, 환율 변환, 계정 조회, 잔액 계산.
전표 생성(voucher_builder)과 저장소(store)는 하위 모듈에서 직접 import.

사용 예시:
```python
from core.ledger import CurrencyConverter, DoubleEntryValidator
from core.ledger.voucher_builder import VoucherBuilder

builder = VoucherBuilder(chart, CurrencyConverter(), factory_id="FACTORY-01")
built = builder.build(request)

# 검증 실패 시 예외 (어떤 행도 게시하지 않음)
DoubleEntryValidator().validate(built.entries)
```
"""

from core.ledger.accounts import ChartOfAccounts
from core.ledger.balances import (
    TransactionDiscrepancy,
    compute_balance,
    find_unbalanced_transactions,
    trial_balance,
)
from core.ledger.currency import Conversion, CurrencyConverter
from core.ledger.errors import (
    DuplicateSubmissionError,
    InvalidRateError,
    LedgerError,
    MissingAccountError,
    ReconciliationAmbiguityError,
    StoreIOError,
    StuckTransactionError,
    UnbalancedTransactionError,
    ValidationError,
)
from core.ledger.models import Account, ArchivedTransaction, LedgerEntry, LedgerParty, Partner
from core.ledger.types import (
    INITIAL_ACCOUNTS,
    AccountRole,
    JournalSide,
    PaymentMode,
    TransactionType,
)
from core.ledger.validator import DoubleEntryValidator, ValidationSummary

__all__ = [
    # 핵심 클래스
    "ChartOfAccounts",
    "CurrencyConverter",
    "Conversion",
    "DoubleEntryValidator",
    "ValidationSummary",
    # 모델
    "LedgerEntry",
    "Account",
    "Partner",
    "LedgerParty",
    "ArchivedTransaction",
    # 잔액
    "compute_balance",
    "find_unbalanced_transactions",
    "trial_balance",
    "TransactionDiscrepancy",
    # Enum
    "TransactionType",
    "JournalSide",
    "AccountRole",
    "PaymentMode",
    # 상수
    "INITIAL_ACCOUNTS",
    # 예외
    "LedgerError",
    "ValidationError",
    "InvalidRateError",
    "UnbalancedTransactionError",
    "MissingAccountError",
    "StoreIOError",
    "StuckTransactionError",
    "ReconciliationAmbiguityError",
    "DuplicateSubmissionError",
]
