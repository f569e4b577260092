"""
재고 평가

완제품 가중평균 원가 평가와 원자재 버킷 재구성.
"""

from core.inventory.models import (
    AdjustmentRecord,
    BucketKey,
    Item,
    OriginalStockPosition,
    StockSnapshot,
)
from core.inventory.original_stock import OriginalStockReconciler, StockReconciliation
from core.inventory.valuation import InventoryValuationEngine, ValuationResult

__all__ = [
    "AdjustmentRecord",
    "BucketKey",
    "Item",
    "OriginalStockPosition",
    "StockSnapshot",
    "OriginalStockReconciler",
    "StockReconciliation",
    "InventoryValuationEngine",
    "ValuationResult",
]
