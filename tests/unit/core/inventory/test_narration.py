"""원자재 조정 narration 렌더링/파싱 테스트"""

from decimal import Decimal

import pytest

from core.inventory.models import AdjustmentKind, AdjustmentRecord, BucketKey
from core.inventory.narration import (
    format_amount,
    is_adjustment_narration,
    parse_adjustment_narration,
    render_adjustment_narration,
)
from core.ledger.errors import ReconciliationAmbiguityError
from core.types import AdjustmentDirection


def record(**overrides) -> AdjustmentRecord:
    data = {
        "transaction_id": "OSA-1001",
        "direction": AdjustmentDirection.DECREASE,
        "type_name": "Cotton Waste",
        "supplier_name": "Gulf Textiles",
        "worth": Decimal("100"),
        "reason": "Stock count",
        "weight": Decimal("-50"),
    }
    data.update(overrides)
    return AdjustmentRecord(**data)


class TestRender:
    """narration 렌더링 테스트"""

    def test_additive(self) -> None:
        assert render_adjustment_narration(record()) == (
            "Original Stock Decrease: Cotton Waste (Gulf Textiles) "
            "(Weight: -50.00 kg, Worth: $100.00) - Stock count"
        )

    def test_weight_not_available(self) -> None:
        text = render_adjustment_narration(record(weight=None))
        assert "(Weight: N/A kg, Worth: $100.00)" in text

    def test_target_suffixes(self) -> None:
        text = render_adjustment_narration(
            record(target_weight=Decimal("800"), target_worth=Decimal("1600"))
        )
        assert text.endswith(
            "- Stock count  (Target Weight: 800.00 kg)  (Target Worth: $1600.00)"
        )

    def test_set_to_zero_suffix(self) -> None:
        text = render_adjustment_narration(record(
            set_to_zero=True, target_weight=Decimal("0"), target_worth=Decimal("0"),
        ))
        assert text.endswith("  [SET-TO-ZERO: Target Weight=0.00 kg, Target Worth=$0.00]")
        assert "(Target Weight:" not in text

    def test_zero_worth_marker(self) -> None:
        text = render_adjustment_narration(record(zero_worth=True, target_worth=Decimal("0")))
        assert text.endswith("  [Zero-Worth Adjustment: Stock worth set to $0.00]")

    def test_format_amount_negative_zero(self) -> None:
        assert format_amount(Decimal("-0.001")) == "0.00"
        assert format_amount(Decimal("1234.5")) == "1234.50"


class TestParse:
    """narration 파싱 테스트"""

    def test_additive(self) -> None:
        parsed = parse_adjustment_narration(
            "Original Stock Increase: Cotton Waste (Gulf Textiles) "
            "(Weight: 25.50 kg, Worth: $1,020.00) - Found extra bale",
            transaction_id="OSA-1002",
            seq=7,
        )

        assert parsed.direction == AdjustmentDirection.INCREASE
        assert parsed.type_name == "Cotton Waste"
        assert parsed.supplier_name == "Gulf Textiles"
        assert parsed.weight == Decimal("25.50")
        assert parsed.worth == Decimal("1020.00")
        assert parsed.reason == "Found extra bale"
        assert parsed.seq == 7
        assert parsed.kind == AdjustmentKind.INCREASE

    def test_nested_parentheses_in_supplier(self) -> None:
        """공급처 이름 안의 괄호"""
        parsed = parse_adjustment_narration(
            "Original Stock Decrease: Poly Fiber (Gulf Textiles (Desert Mills)) "
            "(Weight: -10.00 kg, Worth: $20.00) - Damaged"
        )

        assert parsed.type_name == "Poly Fiber"
        assert parsed.supplier_name == "Gulf Textiles (Desert Mills)"

    def test_parentheses_in_type_name(self) -> None:
        parsed = parse_adjustment_narration(
            "Original Stock Decrease: Cotton (Grade A) (Gulf Textiles) "
            "(Weight: N/A kg, Worth: $20.00) - Damaged"
        )

        assert parsed.type_name == "Cotton (Grade A)"
        assert parsed.supplier_name == "Gulf Textiles"
        assert parsed.weight is None

    def test_target_mode(self) -> None:
        parsed = parse_adjustment_narration(
            "Original Stock Decrease: Cotton Waste (Gulf Textiles) "
            "(Weight: -200.00 kg, Worth: $400.00) - Recount"
            "  (Target Weight: 800.00 kg)  (Target Worth: $1600.00)"
        )

        assert parsed.reason == "Recount"
        assert parsed.target_weight == Decimal("800.00")
        assert parsed.target_worth == Decimal("1600.00")
        assert parsed.kind == AdjustmentKind.TARGET

    def test_set_to_zero(self) -> None:
        parsed = parse_adjustment_narration(
            "Original Stock Decrease: Cotton Waste (Gulf Textiles) "
            "(Weight: -1000.00 kg, Worth: $2000.00) - Write down"
            "  [SET-TO-ZERO: Target Weight=0.00 kg, Target Worth=$0.00]"
        )

        assert parsed.set_to_zero
        assert parsed.kind == AdjustmentKind.SET_TO_ZERO
        assert parsed.reason == "Write down"

    def test_zero_worth_marker(self) -> None:
        parsed = parse_adjustment_narration(
            "Original Stock Decrease: Cotton Waste (Gulf Textiles) "
            "(Weight: 0.00 kg, Worth: $2000.00) - Spoiled"
            "  [Zero-Worth Adjustment: Stock worth set to $0.00]"
        )

        assert parsed.zero_worth
        assert parsed.is_target
        assert parsed.reason == "Spoiled"

    def test_rendered_text_parses_back(self) -> None:
        original = record(
            target_weight=Decimal("800"),
            target_worth=Decimal("1600"),
            key=BucketKey("OT-1", "SUP-A"),
        )
        parsed = parse_adjustment_narration(
            render_adjustment_narration(original), transaction_id="OSA-1001"
        )

        assert parsed.type_name == original.type_name
        assert parsed.supplier_name == original.supplier_name
        assert parsed.target_weight == original.target_weight
        assert parsed.target_worth == original.target_worth
        assert parsed.reason == original.reason
        # narration에는 버킷 키가 없음
        assert parsed.key is None

    def test_non_adjustment_text(self) -> None:
        assert parse_adjustment_narration("Receipt: Bank Account") is None
        assert parse_adjustment_narration("") is None
        assert not is_adjustment_narration("Inventory Decrease: Shirt (1 units) - x")

    @pytest.mark.parametrize(
        "text",
        [
            "Original Stock Decrease: Cotton Waste (Gulf Textiles) - no amounts",
            "Original Stock Decrease: Cotton Waste Gulf Textiles (Weight: -1.00 kg, Worth: $2.00) - x",
            "Original Stock Decrease: (Gulf Textiles) (Weight: -1.00 kg, Worth: $2.00) - x",
        ],
    )
    def test_malformed_raises(self, text: str) -> None:
        assert is_adjustment_narration(text)
        with pytest.raises(ReconciliationAmbiguityError):
            parse_adjustment_narration(text, transaction_id="OSA-9")


class TestAdjustmentRecord:
    """AdjustmentRecord 모델 테스트"""

    def test_signed_deltas(self) -> None:
        rec = record(weight=Decimal("50"), worth=Decimal("-100"))
        assert rec.weight_delta == Decimal("-50")
        assert rec.worth_delta == Decimal("-100")

    def test_weight_na_delta_is_zero(self) -> None:
        assert record(weight=None).weight_delta == Decimal("0")

    def test_dict_round_trip(self) -> None:
        original = record(
            target_weight=Decimal("800"), seq=4, key=BucketKey("OT-1", "SUP-A", None, "P-1"),
        )
        restored = AdjustmentRecord.from_dict(original.to_dict())

        assert restored == original
        assert original.to_dict()["kind"] == "TARGET"
