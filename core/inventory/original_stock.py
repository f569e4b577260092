"""
원자재(Original) 재고 재구성

정규 저장 상태 없이 매입/개봉/직판 기록과 조정 기록을 재생하여
(유형, 공급처, 하위공급처, 제품) 버킷별 보유 중량과 가치를 매번 같은 결과로 재구성.

처리 순서 (고정):
1. 매입 합산 (가중평균 kg당 원가)
2. 개봉 차감 (같은 (유형, 공급처) 버킷에 균등 분배)
3. 직판 차감 (원 매입 버킷)
4. 기준 가치 = 중량 × 원가 (둘 다 양수일 때만)
5. 조정 수집 (구조화 기록 우선, 나머지는 narration 파싱, 전표당 첫 행)
6. 버킷 매칭 (이름 완전 일치 → 부분 일치)
7. 분류 (목표값은 마지막 기록 우선, 나머지는 가산)
8. 3단계 적용: 가산 → 목표 → SET-TO-ZERO
9. 미조정 버킷만 가치 재계산

사용 예시:
```python
reconciler = OriginalStockReconciler()
snapshot = await store.load_stock_snapshot()
report = reconciler.reconcile(snapshot)

for position in report.positions:
    print(position.type_name, position.weight_in_hand, position.worth)
```
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from core.inventory.models import (
    AdjustmentRecord,
    BucketKey,
    OriginalStockPosition,
    Purchase,
    StockSnapshot,
    supplier_label,
)
from core.inventory.narration import is_adjustment_narration, parse_adjustment_narration
from core.ledger.errors import ReconciliationAmbiguityError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class StockReconciliation:
    """재구성 결과

    Attributes:
        version: 입력 스냅샷 version
        positions: 전체 버킷 (0 또는 음수 중량 포함)
        issues: 건너뛴 조정 목록 (해석 불가 / 매칭 실패)
    """

    version: int
    positions: list[OriginalStockPosition] = field(default_factory=list)
    issues: list[ReconciliationAmbiguityError] = field(default_factory=list)

    def find(self, key: BucketKey) -> OriginalStockPosition | None:
        for position in self.positions:
            if position.key == key:
                return position
        return None

    def for_pair(self, original_type_id: str, supplier_id: str) -> list[OriginalStockPosition]:
        """(유형, 공급처) 쌍의 버킷 목록"""
        return [
            p for p in self.positions
            if p.original_type_id == original_type_id and p.supplier_id == supplier_id
        ]

    @property
    def negative_positions(self) -> list[OriginalStockPosition]:
        """과다 조정 의심 버킷"""
        return [p for p in self.positions if p.is_negative]


class OriginalStockReconciler:
    """원자재 재고 재구성기

    재구성 자체는 순수 함수(rebuild). reconcile()은 스냅샷 version이
    바뀌지 않았으면 직전 결과를 그대로 반환 (version 카운터 캐시).
    """

    def __init__(self) -> None:
        self._cache: StockReconciliation | None = None

    @property
    def cached_version(self) -> int | None:
        return self._cache.version if self._cache is not None else None

    def invalidate(self) -> None:
        """캐시 무효화 (조정/매입/판매 append 후 호출)"""
        self._cache = None

    def reconcile(self, snapshot: StockSnapshot) -> StockReconciliation:
        """스냅샷 재구성 (같은 version이면 캐시 반환)"""
        if self._cache is not None and self._cache.version == snapshot.version:
            return self._cache

        report = self.rebuild(snapshot)
        self._cache = report
        return report

    def rebuild(self, snapshot: StockSnapshot) -> StockReconciliation:
        """캐시 없이 전체 재구성"""
        buckets = self._aggregate_purchases(snapshot)
        self._subtract_openings(snapshot, buckets)
        self._subtract_direct_sales(snapshot, buckets)

        for position in buckets.values():
            position.worth = self._baseline_worth(position)

        issues: list[ReconciliationAmbiguityError] = []
        adjustments = self._collect_adjustments(snapshot, issues)
        touched = self._apply_adjustments(adjustments, buckets, issues)

        for position in buckets.values():
            if position.key in touched:
                position.touched = True
                if position.weight_in_hand > 0:
                    position.avg_cost_per_kg = position.worth / position.weight_in_hand
            else:
                position.worth = self._baseline_worth(position)

        if issues:
            logger.warning(f"원자재 재구성: 조정 {len(issues)}건 건너뜀")

        return StockReconciliation(
            version=snapshot.version,
            positions=list(buckets.values()),
            issues=issues,
        )

    # -------------------------------------------------------------------------
    # 1~4: 기준 재고
    # -------------------------------------------------------------------------

    def _aggregate_purchases(
        self,
        snapshot: StockSnapshot,
    ) -> dict[BucketKey, OriginalStockPosition]:
        """1. 매입 합산 (running 가중평균)"""
        buckets: dict[BucketKey, OriginalStockPosition] = {}

        for purchase in snapshot.purchases:
            key = purchase.bucket_key
            position = buckets.get(key)
            if position is None:
                position = self._new_position(key, snapshot)
                buckets[key] = position

            new_weight = position.weight_purchased + purchase.weight_kg
            if new_weight > 0:
                position.avg_cost_per_kg = (
                    position.avg_cost_per_kg * position.weight_purchased
                    + purchase.landed_cost
                ) / new_weight
            position.weight_purchased = new_weight
            position.weight_in_hand += purchase.weight_kg

        return buckets

    def _new_position(self, key: BucketKey, snapshot: StockSnapshot) -> OriginalStockPosition:
        names = snapshot.partner_names
        sub_name = names.get(key.sub_supplier_id, key.sub_supplier_id) if key.sub_supplier_id else None
        return OriginalStockPosition(
            key=key,
            type_name=snapshot.type_names.get(key.original_type_id, key.original_type_id),
            supplier_name=supplier_label(names.get(key.supplier_id, key.supplier_id), sub_name),
        )

    def _subtract_openings(
        self,
        snapshot: StockSnapshot,
        buckets: dict[BucketKey, OriginalStockPosition],
    ) -> None:
        """2. 개봉 차감 (같은 쌍의 버킷에 균등 분배)"""
        for opening in snapshot.openings:
            matching = [
                p for p in buckets.values()
                if p.original_type_id == opening.original_type_id
                and p.supplier_id == opening.supplier_id
            ]
            if not matching:
                logger.warning(
                    f"개봉 기록에 해당하는 매입 버킷 없음: {opening.id} "
                    f"(type={opening.original_type_id}, supplier={opening.supplier_id})"
                )
                continue

            share = opening.weight_kg / len(matching)
            for position in matching:
                position.weight_in_hand -= share

    def _subtract_direct_sales(
        self,
        snapshot: StockSnapshot,
        buckets: dict[BucketKey, OriginalStockPosition],
    ) -> None:
        """3. 직판 차감 (게시된 송장만)"""
        purchases: dict[str, Purchase] = {p.id: p for p in snapshot.purchases}

        for line in snapshot.sales:
            if not line.is_posted or not line.original_purchase_id:
                continue
            purchase = purchases.get(line.original_purchase_id)
            if purchase is None:
                logger.warning(
                    f"직판 행의 원 매입을 찾을 수 없음: invoice={line.invoice_id}, "
                    f"purchase={line.original_purchase_id}"
                )
                continue
            buckets[purchase.bucket_key].weight_in_hand -= line.sold_kg

    @staticmethod
    def _baseline_worth(position: OriginalStockPosition) -> Decimal:
        """4. 중량 × 원가 (둘 다 양수일 때만)"""
        if position.weight_in_hand > 0 and position.avg_cost_per_kg > 0:
            return position.weight_in_hand * position.avg_cost_per_kg
        return ZERO

    # -------------------------------------------------------------------------
    # 5~8: 조정
    # -------------------------------------------------------------------------

    def _collect_adjustments(
        self,
        snapshot: StockSnapshot,
        issues: list[ReconciliationAmbiguityError],
    ) -> list[AdjustmentRecord]:
        """5. 조정 수집

        구조화 기록이 있는 전표는 그 기록만 사용.
        나머지는 narration 파싱 (전표당 첫 조정 행만).
        적용 순서는 seq (없으면 원장 순서).
        """
        adjustments: list[AdjustmentRecord] = list(snapshot.adjustment_records)
        structured_ids = {r.transaction_id for r in snapshot.adjustment_records}
        seen: set[str] = set()

        for index, entry in enumerate(snapshot.entries):
            transaction_id = entry.transaction_id
            if transaction_id in structured_ids or transaction_id in seen:
                continue
            if not is_adjustment_narration(entry.narration):
                continue
            seen.add(transaction_id)

            seq = entry.seq if entry.seq is not None else index
            try:
                record = parse_adjustment_narration(entry.narration, transaction_id, seq)
            except ReconciliationAmbiguityError as e:
                logger.warning(f"조정 narration 해석 실패, 건너뜀: {transaction_id} - {e}")
                issues.append(e)
                continue
            if record is not None:
                adjustments.append(record)

        adjustments.sort(key=lambda r: r.seq)
        return adjustments

    def _match_buckets(
        self,
        adjustment: AdjustmentRecord,
        buckets: dict[BucketKey, OriginalStockPosition],
    ) -> list[OriginalStockPosition]:
        """6. 버킷 매칭 (정확한 키 → 이름 완전 일치 → 부분 일치)"""
        if adjustment.key is not None and adjustment.key in buckets:
            return [buckets[adjustment.key]]

        exact = [
            p for p in buckets.values()
            if p.type_name == adjustment.type_name
            and p.supplier_name == adjustment.supplier_name
        ]
        if exact:
            return exact

        return [
            p for p in buckets.values()
            if _overlaps(p.type_name, adjustment.type_name)
            and _overlaps(p.supplier_name, adjustment.supplier_name)
        ]

    def _apply_adjustments(
        self,
        adjustments: Iterable[AdjustmentRecord],
        buckets: dict[BucketKey, OriginalStockPosition],
        issues: list[ReconciliationAmbiguityError],
    ) -> set[BucketKey]:
        """7~8. 분류 후 3단계 적용

        여러 버킷에 매칭되면 변화량/목표값을 버킷 수로 균등 분배.

        Returns:
            조정이 적용된 버킷 키 집합
        """
        additive: dict[BucketKey, tuple[Decimal, Decimal]] = {}
        targets: dict[BucketKey, tuple[Decimal | None, Decimal | None]] = {}
        zero_targets: dict[BucketKey, tuple[Decimal, Decimal]] = {}
        touched: set[BucketKey] = set()

        for adjustment in adjustments:
            matched = self._match_buckets(adjustment, buckets)
            if not matched:
                error = ReconciliationAmbiguityError(
                    f"매칭되는 버킷이 없습니다: {adjustment.type_name} ({adjustment.supplier_name})",
                    adjustment.transaction_id,
                )
                logger.warning(f"조정 건너뜀: {adjustment.transaction_id} - {error}")
                issues.append(error)
                continue

            # 이전 narration은 (유형, 공급처)만 기록하므로 하위공급처/제품 버킷이
            # 여럿 매칭될 수 있음. 목표값은 그 버킷들의 합계 목표로 보고 균등 분배
            # (각 버킷을 같은 목표로 두면 합계가 버킷 수만큼 부풀려짐).
            # 구조화 기록의 key가 현재 버킷에 있으면 그 버킷에만 목표가 그대로 적용됨.
            count = Decimal(len(matched))
            for position in matched:
                key = position.key
                touched.add(key)

                if adjustment.set_to_zero:
                    zero_targets[key] = (
                        (adjustment.target_weight or ZERO) / count,
                        (adjustment.target_worth or ZERO) / count,
                    )
                elif adjustment.is_target:
                    target_worth = adjustment.target_worth
                    if target_worth is None and adjustment.zero_worth:
                        target_worth = ZERO
                    targets[key] = (
                        None if adjustment.target_weight is None
                        else adjustment.target_weight / count,
                        None if target_worth is None else target_worth / count,
                    )
                else:
                    weight, worth = additive.get(key, (ZERO, ZERO))
                    additive[key] = (
                        weight + adjustment.weight_delta / count,
                        worth + adjustment.worth_delta / count,
                    )

        # (i) 가산
        for key, (weight, worth) in additive.items():
            buckets[key].weight_in_hand += weight
            buckets[key].worth += worth

        # (ii) 목표 (마지막 기록 우선)
        for key, (target_weight, target_worth) in targets.items():
            if target_weight is not None:
                buckets[key].weight_in_hand = target_weight
            if target_worth is not None:
                buckets[key].worth = target_worth

        # (iii) SET-TO-ZERO (다른 모든 결과를 덮어씀)
        for key, (target_weight, target_worth) in zero_targets.items():
            buckets[key].weight_in_hand = target_weight
            buckets[key].worth = target_worth

        return touched


def _overlaps(left: str, right: str) -> bool:
    """대소문자 무시 부분 일치 (양방향)"""
    a, b = left.lower(), right.lower()
    return bool(a) and bool(b) and (a in b or b in a)
