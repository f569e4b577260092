"""잔액 계산 / 불균형 감사 테스트"""

from datetime import date
from decimal import Decimal

from core.ledger.balances import (
    compute_balance,
    earliest_entry_date,
    find_unbalanced_transactions,
    group_by_transaction,
    trial_balance,
)
from core.ledger.models import Account, LedgerEntry, Partner
from core.types import AccountType, PartnerType

CASH = Account("ACC-101", "101", "Cash in Hand", AccountType.ASSET)
CAPITAL = Account("ACC-301", "301", "Owner's Capital", AccountType.EQUITY)
SUPPLIER = Partner("SUP-A", "Gulf Textiles", PartnerType.SUPPLIER)


def entry(
    transaction_id: str,
    account_id: str,
    debit: str = "0",
    credit: str = "0",
    entry_date: date = date(2024, 1, 10),
    **kwargs,
) -> LedgerEntry:
    return LedgerEntry(
        transaction_id=transaction_id,
        entry_date=entry_date,
        account_id=account_id,
        account_name=account_id,
        transaction_type=transaction_id.split("-")[0],
        debit=Decimal(debit),
        credit=Decimal(credit),
        **kwargs,
    )


class TestComputeBalance:
    """잔액 계산 테스트"""

    def test_debit_normal(self) -> None:
        entries = [
            entry("RV-1001", "ACC-101", debit="500"),
            entry("PV-1001", "ACC-101", credit="120"),
        ]
        assert compute_balance(CASH, entries) == Decimal("380")

    def test_credit_normal_partner(self) -> None:
        entries = [
            entry("PB-1001", "SUP-A", credit="300"),
            entry("PV-1001", "SUP-A", debit="100"),
        ]
        assert compute_balance(SUPPLIER, entries) == Decimal("200")

    def test_reporting_only_excluded_by_default(self) -> None:
        entries = [
            entry("PV-1001", "SUP-A", debit="100"),
            entry("PV-1001", "SUP-A", credit="100", is_reporting_only=True),
        ]
        assert compute_balance(SUPPLIER, entries) == Decimal("-100")
        assert compute_balance(SUPPLIER, entries, include_reporting_only=True) == Decimal("0")

    def test_exclude_adjustments(self) -> None:
        entries = [
            entry("RV-1001", "ACC-101", debit="500"),
            entry("JV-1001", "ACC-101", debit="50", is_adjustment=True),
        ]
        assert compute_balance(CASH, entries) == Decimal("550")
        assert compute_balance(CASH, entries, exclude_adjustments=True) == Decimal("500")

    def test_other_accounts_ignored(self) -> None:
        assert compute_balance(CASH, [entry("RV-1001", "ACC-102", debit="10")]) == Decimal("0")


class TestEarliestEntryDate:
    def test_regular_entries_preferred(self) -> None:
        entries = [
            entry("JV-1001", "ACC-101", debit="1", entry_date=date(2023, 1, 1), is_adjustment=True),
            entry("RV-1001", "ACC-101", debit="1", entry_date=date(2024, 5, 1)),
            entry("RV-1002", "ACC-101", debit="1", entry_date=date(2024, 2, 1)),
        ]
        assert earliest_entry_date("ACC-101", entries) == date(2024, 2, 1)

    def test_only_adjustments(self) -> None:
        entries = [
            entry("JV-1001", "ACC-101", debit="1", entry_date=date(2023, 6, 1), is_adjustment=True),
        ]
        assert earliest_entry_date("ACC-101", entries) == date(2023, 6, 1)

    def test_no_entries(self) -> None:
        assert earliest_entry_date("ACC-101", []) is None


class TestUnbalancedAudit:
    """원장 감사 테스트"""

    def test_balanced_ledger(self) -> None:
        entries = [
            entry("RV-1001", "ACC-101", debit="100"),
            entry("RV-1001", "CUST-A", credit="100"),
        ]
        assert find_unbalanced_transactions(entries) == []

    def test_detects_mismatch_and_missing_side(self) -> None:
        entries = [
            entry("RV-1001", "ACC-101", debit="100"),
            entry("RV-1001", "CUST-A", credit="90"),
            entry("JV-1001", "ACC-101", debit="10"),
            entry("EV-1001", "ACC-601", debit="5"),
            entry("EV-1001", "ACC-101", credit="5"),
        ]
        result = {d.transaction_id: d for d in find_unbalanced_transactions(entries)}

        assert set(result) == {"RV-1001", "JV-1001"}
        assert result["RV-1001"].difference == Decimal("10")
        assert not result["RV-1001"].missing_side
        assert result["JV-1001"].missing_side
        assert result["JV-1001"].entry_count == 1

    def test_group_by_transaction_keeps_order(self) -> None:
        entries = [
            entry("RV-1002", "A", debit="1"),
            entry("RV-1001", "B", debit="1"),
            entry("RV-1002", "C", credit="1"),
        ]
        grouped = group_by_transaction(entries)
        assert list(grouped) == ["RV-1002", "RV-1001"]
        assert [e.account_id for e in grouped["RV-1002"]] == ["A", "C"]


class TestTrialBalance:
    def test_trial_balance(self) -> None:
        entries = [
            entry("OB-1001", "ACC-101", debit="1000"),
            entry("OB-1001", "ACC-301", credit="1000"),
        ]
        result = trial_balance([CASH, CAPITAL, SUPPLIER], entries)
        assert result == {
            "ACC-101": Decimal("1000"),
            "ACC-301": Decimal("1000"),
            "SUP-A": Decimal("0"),
        }
