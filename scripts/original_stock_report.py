#!/usr/bin/env python3
"""
원자재 재고 현황 스크립트

매입/개봉/직판/조정 기록을 재구성해 버킷별 중량과 가치를 출력.
음수 버킷(과다 조정)은 '!' 로 표시.

사용법:
    python scripts/original_stock_report.py
    python scripts/original_stock_report.py --negative-only
"""

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config.loader import LedgerSettings, load_settings
from core.logging import setup_logging
from engine.bootstrap import open_engine


async def main(settings: LedgerSettings, negative_only: bool) -> None:
    async with open_engine(settings) as engine:
        report = await engine.stock_report()

    positions = report.negative_positions if negative_only else report.positions
    positions = sorted(positions, key=lambda p: (p.type_name, p.supplier_name))

    print("=" * 100)
    print(f"원자재 재고 현황 (version {report.version}, 버킷 {len(positions)}개)")
    print("=" * 100)
    print(f"  {'유형':20} | {'공급처':30} | {'중량(kg)':>12} | {'kg당 원가':>10} | {'가치($)':>14}")

    total_weight = Decimal("0")
    total_worth = Decimal("0")
    for p in positions:
        flag = "!" if p.is_negative else " "
        print(
            f"{flag} {p.type_name[:20]:20} | {p.supplier_name[:30]:30} | "
            f"{p.weight_in_hand:>12,.2f} | {p.avg_cost_per_kg:>10,.4f} | {p.worth:>14,.2f}"
        )
        total_weight += p.weight_in_hand
        total_worth += p.worth

    print("-" * 100)
    print(f"  {'합계':53} | {total_weight:>12,.2f} | {'':>10} | {total_worth:>14,.2f}")

    if report.issues:
        print(f"\n해석하지 못한 조정 {len(report.issues)}건:")
        for issue in report.issues:
            print(f"  - {issue}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="원자재 재고 현황")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml 경로")
    parser.add_argument("--negative-only", action="store_true", help="음수 버킷만 출력")
    args = parser.parse_args()

    settings = load_settings(args.settings)
    setup_logging("scripts", factory_id=settings.factory_id)
    asyncio.run(main(settings, args.negative_only))
