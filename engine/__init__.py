"""
원장 엔진 서비스

저장소 I/O를 조율하는 비동기 서비스 (게시, 정렬, 편집, 부트스트랩).
"""

from engine.alignment import AlignmentPlan, AlignmentPlanner
from engine.bootstrap import LedgerEngine, create_notifier, open_engine
from engine.edit_workflow import EditSession, EditWorkflow
from engine.posting import PostedVoucher, PostingService

__all__ = [
    "AlignmentPlan",
    "AlignmentPlanner",
    "EditSession",
    "EditWorkflow",
    "LedgerEngine",
    "PostedVoucher",
    "PostingService",
    "create_notifier",
    "open_engine",
]
