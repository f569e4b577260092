"""
완제품 재고 평가 (가중평균 원가)

조정 1건을 Item에 적용한 결과와 원장에 게시할 금액/방향을 계산.
Item 자체는 변경하지 않음 (게시 성공 후 호출자가 ItemMutation 적용).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from core.inventory.models import Item
from core.ledger.errors import ValidationError
from core.types import AdjustmentDirection

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValuationResult:
    """평가 결과

    Attributes:
        new_qty: 조정 후 수량
        new_avg_cost: 조정 후 평균원가
        amount: 원장 게시 금액 (항상 0 이상)
        direction: INCREASE면 재고 계정 차변, DECREASE면 대변
    """

    item_id: str
    new_qty: Decimal
    new_avg_cost: Decimal
    amount: Decimal
    direction: AdjustmentDirection


class InventoryValuationEngine:
    """가중평균 원가 재고 평가

    - 수량/가치 모두 변경: avg = (qty*avg + Δw) / newQty (newQty=0이면 기존 유지)
    - 수량만 변경: avg 유지
    - 가치만 변경: avg = (qty*avg + Δw) / qty (qty=0이면 기존 유지)
    - 게시 금액: |Δw| (가치가 주어졌으면 우선), 아니면 |Δq| * avg
    """

    def apply(
        self,
        item: Item,
        qty_delta: Decimal | None = None,
        worth_delta: Decimal | None = None,
    ) -> ValuationResult:
        """조정 1건 평가

        Args:
            item: 대상 품목 (변경하지 않음)
            qty_delta: 수량 변화 (부호 포함)
            worth_delta: 가치 변화 (USD, 부호 포함)

        Raises:
            ValidationError: 두 값 모두 없거나 0인 경우
        """
        dq = qty_delta or ZERO
        dw = worth_delta or ZERO

        if dq == 0 and dw == 0:
            raise ValidationError(
                f"'{item.name}' 조정 수량 또는 가치 중 하나는 0이 아니어야 합니다",
                field="quantity",
            )

        current_worth = item.stock_qty * item.avg_cost
        new_qty = item.stock_qty + dq

        if dq != 0 and dw != 0:
            new_avg = (current_worth + dw) / new_qty if new_qty != 0 else item.avg_cost
        elif dq != 0:
            new_avg = item.avg_cost
        else:
            new_avg = (
                (current_worth + dw) / item.stock_qty
                if item.stock_qty != 0
                else item.avg_cost
            )

        if dw != 0:
            amount = abs(dw)
            positive = dw > 0
        else:
            amount = abs(dq) * item.avg_cost
            positive = dq > 0

        direction = AdjustmentDirection.INCREASE if positive else AdjustmentDirection.DECREASE

        logger.debug(
            f"재고 평가: {item.code} qty {item.stock_qty}→{new_qty}, "
            f"avg {item.avg_cost}→{new_avg}, amount={amount} ({direction.value})"
        )

        return ValuationResult(
            item_id=item.id,
            new_qty=new_qty,
            new_avg_cost=new_avg,
            amount=amount,
            direction=direction,
        )
