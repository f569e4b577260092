"""
유틸리티 패키지

전표 번호 채번, 중복 제출 방지 등 공통 유틸리티
"""

from core.utils.submission_guard import SubmissionGuard
from core.utils.voucher_no import make_voucher_no, next_voucher_no, parse_voucher_no

__all__ = [
    "SubmissionGuard",
    "make_voucher_no",
    "next_voucher_no",
    "parse_voucher_no",
]
