#!/usr/bin/env python3
"""
원장 불균형 점검 스크립트

공장 원장 전체를 전표별로 묶어 차변/대변 합계가 맞지 않거나
한쪽 방향이 없는 전표를 찾고, 대차대조 총액 차이를 출력.

사용법:
    python scripts/check_balance_discrepancy.py
    python scripts/check_balance_discrepancy.py --factory FACTORY-02 --settings config/settings.yaml
"""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import LedgerSettings, load_settings
from core.ledger.balances import find_unbalanced_transactions
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.logging import setup_logging

logger = logging.getLogger("scripts.check_balance_discrepancy")


async def main(settings: LedgerSettings, factory_id: str) -> int:
    """점검 실행

    Returns:
        종료 코드 (불균형 전표가 있으면 1)
    """

    print("=" * 80)
    print(f"원장 불균형 점검: factory={factory_id}")
    print("=" * 80)

    async with SQLiteAdapter(settings.db_path) as db:
        await init_ledger_schema(db)
        store = LedgerStore(db)
        entries = await store.list_entries(factory_id)

    print(f"\n분개 {len(entries)}행 로드")

    total_debit = sum((e.debit for e in entries if not e.is_reporting_only), Decimal("0"))
    total_credit = sum((e.credit for e in entries if not e.is_reporting_only), Decimal("0"))
    print(f"  차변 합계: {total_debit:,.2f}")
    print(f"  대변 합계: {total_credit:,.2f}")
    print(f"  차이:      {total_debit - total_credit:,.2f}")

    discrepancies = find_unbalanced_transactions(entries)
    if not discrepancies:
        print("\n불균형 전표 없음")
        return 0

    print(f"\n불균형 전표 {len(discrepancies)}건:")
    for d in sorted(discrepancies, key=lambda x: abs(x.difference), reverse=True):
        flag = " (한쪽 방향 없음)" if d.missing_side else ""
        print(
            f"  {d.transaction_id:12} | {d.entry_count}행 | "
            f"debit {d.total_debit:>14,.2f} | credit {d.total_credit:>14,.2f} | "
            f"diff {d.difference:>12,.2f}{flag}"
        )
    logger.warning(f"불균형 전표 {len(discrepancies)}건")
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="원장 불균형 전표 점검")
    parser.add_argument("--factory", default=None, help="공장 ID (기본: 설정값)")
    parser.add_argument("--settings", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    settings = load_settings(args.settings)
    factory_id = args.factory or settings.factory_id
    setup_logging("scripts", factory_id=factory_id)
    sys.exit(asyncio.run(main(settings, factory_id)))
