"""전표 입력 스키마 테스트"""

from datetime import date
from decimal import Decimal

import pydantic
import pytest

from core.ledger.requests import (
    JournalVoucherRequest,
    OriginalStockAdjustmentRequest,
    PurchaseBillRequest,
    SimpleVoucherRequest,
    parse_voucher_request,
)
from core.ledger.types import PaymentMode
from core.types import AdjustmentDirection


class TestParseVoucherRequest:
    """kind 판별 테스트"""

    def test_simple_voucher(self) -> None:
        request = parse_voucher_request({
            "kind": "RV",
            "source_id": "CUST-A",
            "dest_id": "ACC-102",
            "amount": "1000.50",
            "entry_date": "2024-02-01",
        })

        assert isinstance(request, SimpleVoucherRequest)
        assert request.amount == Decimal("1000.50")
        assert request.entry_date == date(2024, 2, 1)
        assert request.currency == "USD"

    @pytest.mark.parametrize("kind", ["RV", "PV", "EV"])
    def test_simple_kinds_share_model(self, kind: str) -> None:
        assert isinstance(parse_voucher_request({"kind": kind}), SimpleVoucherRequest)

    def test_purchase_bill_mode(self) -> None:
        request = parse_voucher_request({"kind": "PB", "payment_mode": "CASH"})

        assert isinstance(request, PurchaseBillRequest)
        assert request.payment_mode == PaymentMode.CASH

    def test_journal_lines(self) -> None:
        request = parse_voucher_request({
            "kind": "JV",
            "lines": [
                {"account_id": "ACC-101", "debit": "100", "currency": "AED", "base_amount": "40"},
                {"account_id": "ACC-301", "credit": "40"},
            ],
        })

        assert isinstance(request, JournalVoucherRequest)
        assert request.lines[0].base_amount == Decimal("40")
        assert request.lines[1].debit == Decimal("0")

    def test_stock_adjustment_lines(self) -> None:
        request = parse_voucher_request({
            "kind": "OSA",
            "description": "Stock count",
            "lines": [{
                "original_type_id": "OT-1",
                "supplier_id": "SUP-A",
                "direction": "Decrease",
                "weight": "50",
            }],
        })

        assert isinstance(request, OriginalStockAdjustmentRequest)
        assert request.lines[0].direction == AdjustmentDirection.DECREASE
        assert request.lines[0].set_to_zero is False

    def test_missing_fields_are_not_rejected_here(self) -> None:
        """필수값 검증은 전표 규칙 단계에서 (유형별 메시지)"""
        request = parse_voucher_request({"kind": "WO"})
        assert request.account_id == ""  # type: ignore[attr-defined]
        assert request.amount is None  # type: ignore[attr-defined]

    def test_unknown_kind(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            parse_voucher_request({"kind": "XX"})

    def test_bad_amount(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            parse_voucher_request({"kind": "RV", "amount": "abc"})
