"""Ledger 타입 테스트"""

import pytest

from core.ledger.types import (
    DEFAULT_ACCOUNT_LOOKUP,
    INITIAL_ACCOUNTS,
    AccountRole,
    InvoiceStatus,
    JournalSide,
    PaymentMode,
    TransactionType,
)
from core.types import AccountType


class TestTransactionType:
    """TransactionType Enum 테스트"""

    def test_twelve_kinds(self) -> None:
        """전표 유형 12종"""
        assert len(TransactionType) == 12

    def test_tags(self) -> None:
        """값은 전표 번호 접두사"""
        assert TransactionType.RECEIPT == "RV"
        assert TransactionType.ORIGINAL_STOCK_ADJUSTMENT == "OSA"
        assert TransactionType.RETURN_TO_SUPPLIER == "RTS"

    @pytest.mark.parametrize(
        "tag",
        ["RV", "PV", "EV", "PB", "JV", "TR", "IA", "OSA", "RTS", "WO", "BD", "OB"],
    )
    def test_lookup_by_tag(self, tag: str) -> None:
        assert TransactionType(tag).value == tag


class TestJournalSide:
    """JournalSide Enum 테스트"""

    def test_sides(self) -> None:
        assert JournalSide.DEBIT.value == "DEBIT"
        assert JournalSide.CREDIT.value == "CREDIT"

    def test_opposite(self) -> None:
        assert JournalSide.DEBIT.opposite is JournalSide.CREDIT
        assert JournalSide.CREDIT.opposite is JournalSide.DEBIT


class TestMiscEnums:
    def test_payment_mode(self) -> None:
        assert PaymentMode("CASH") is PaymentMode.CASH
        assert PaymentMode("CREDIT") is PaymentMode.CREDIT

    def test_invoice_status(self) -> None:
        assert InvoiceStatus.POSTED.value == "Posted"


class TestAccountLookup:
    """역할별 기본 조회 규칙 테스트"""

    def test_every_role_has_rule(self) -> None:
        assert set(DEFAULT_ACCOUNT_LOOKUP) == set(AccountRole)

    def test_initial_accounts_cover_roles(self) -> None:
        """초기 계정과목에 모든 역할의 첫 번째 코드가 존재"""
        codes = {code for _, code, _, _ in INITIAL_ACCOUNTS}
        for role, (role_codes, _) in DEFAULT_ACCOUNT_LOOKUP.items():
            assert role_codes[0] in codes, role

    def test_initial_account_types_valid(self) -> None:
        for _, _, _, account_type in INITIAL_ACCOUNTS:
            AccountType(account_type)

    def test_initial_account_ids_unique(self) -> None:
        ids = [account_id for account_id, _, _, _ in INITIAL_ACCOUNTS]
        assert len(ids) == len(set(ids))
