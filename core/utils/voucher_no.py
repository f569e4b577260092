"""
전표 번호 유틸리티

전표 번호 생성 및 파싱 기능 제공
규칙: {TAG}-{n} (예: RV-1001), n은 해당 유형의 최대값 + 1 (하한 1000)
"""

from collections.abc import Iterable

from core.constants import Defaults


def make_voucher_no(tag: str, number: int) -> str:
    """전표 번호 생성

    Args:
        tag: 전표 유형 태그 (예: "RV")
        number: 일련번호

    Returns:
        {tag}-{number}

    Example:
        >>> make_voucher_no("RV", 1001)
        'RV-1001'
    """
    if not tag:
        raise ValueError("tag는 비어 있을 수 없습니다")
    if number < 0:
        raise ValueError("number는 음수일 수 없습니다")

    return f"{tag}-{number}"


def parse_voucher_no(voucher_no: str, tag: str) -> int | None:
    """전표 번호에서 일련번호 추출

    Args:
        voucher_no: {tag}-{n} 형식 문자열
        tag: 기대하는 유형 태그

    Returns:
        일련번호 또는 None (형식 불일치 시)

    Example:
        >>> parse_voucher_no("RV-1005", "RV")
        1005
        >>> parse_voucher_no("PV-1005", "RV")
        None
    """
    if not voucher_no:
        return None

    prefix = f"{tag}-"
    if not voucher_no.startswith(prefix):
        return None

    suffix = voucher_no[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def next_voucher_no(
    tag: str,
    existing: Iterable[str],
    floor: int = Defaults.VOUCHER_NUMBER_FLOOR,
) -> str:
    """다음 전표 번호

    Example:
        >>> next_voucher_no("RV", ["RV-1001", "RV-1007", "PV-2000"])
        'RV-1008'
        >>> next_voucher_no("JV", [])
        'JV-1001'
    """
    highest = floor
    for voucher_no in existing:
        number = parse_voucher_no(voucher_no, tag)
        if number is not None and number > highest:
            highest = number
    return make_voucher_no(tag, highest + 1)
