"""
원자재 조정 narration 문법

narration은 사람이 읽는 감사 기록이면서 과거 원장의 유일한 조정 인코딩.
형식 (정확히 일치해야 함):

    Original Stock {Increase|Decrease}: {TypeName} ({SupplierName})
     (Weight: {signed|N/A} kg, Worth: ${number}) - {Reason}
    [  (Target Weight: {number} kg)]
    [  (Target Worth: ${number})]
    [  [SET-TO-ZERO: Target Weight={number} kg, Target Worth=${number}]]
    [  [Zero-Worth Adjustment: Stock worth set to $0.00]]

SupplierName 안에 괄호가 들어갈 수 있으므로 첫 ')'가 아니라
균형 괄호로 경계를 찾음.
"""

import re
from decimal import Decimal, InvalidOperation

from core.inventory.models import AdjustmentRecord
from core.ledger.errors import ReconciliationAmbiguityError
from core.types import AdjustmentDirection

NARRATION_PREFIX = "Original Stock "

_NUMBER = r"[+-]?[\d,]+(?:\.\d+)?"

_HEADER_RE = re.compile(r"^Original Stock (Increase|Decrease): ")
_AMOUNTS_RE = re.compile(
    rf" \(Weight: (N/A|{_NUMBER}) kg, Worth: \$({_NUMBER})\) - "
)
_TARGET_WEIGHT_RE = re.compile(rf"  \(Target Weight: ({_NUMBER}) kg\)")
_TARGET_WORTH_RE = re.compile(rf"  \(Target Worth: \$({_NUMBER})\)")
_SET_TO_ZERO_RE = re.compile(
    rf"  \[SET-TO-ZERO: Target Weight=({_NUMBER}) kg, Target Worth=\$({_NUMBER})\]"
)
ZERO_WORTH_MARKER = "  [Zero-Worth Adjustment: Stock worth set to $0.00]"


def format_amount(value: Decimal) -> str:
    """소수 2자리 문자열 (-0.00 방지)"""
    text = f"{value:.2f}"
    return "0.00" if text == "-0.00" else text


def render_adjustment_narration(record: AdjustmentRecord) -> str:
    """조정 기록 → narration 문자열"""
    weight_text = "N/A" if record.weight is None else format_amount(record.weight)

    parts = [
        f"{NARRATION_PREFIX}{record.direction.value}: "
        f"{record.type_name} ({record.supplier_name})"
        f" (Weight: {weight_text} kg, Worth: ${format_amount(abs(record.worth))})"
        f" - {record.reason}"
    ]

    if not record.set_to_zero:
        if record.target_weight is not None:
            parts.append(f"  (Target Weight: {format_amount(record.target_weight)} kg)")
        if record.target_worth is not None:
            parts.append(f"  (Target Worth: ${format_amount(record.target_worth)})")
    else:
        parts.append(
            f"  [SET-TO-ZERO: Target Weight={format_amount(record.target_weight or Decimal('0'))} kg, "
            f"Target Worth=${format_amount(record.target_worth or Decimal('0'))}]"
        )

    if record.zero_worth:
        parts.append(ZERO_WORTH_MARKER)

    return "".join(parts)


def is_adjustment_narration(text: str) -> bool:
    """조정 narration 헤더 여부 (파싱 성공 여부와 별개)"""
    return bool(text) and _HEADER_RE.match(text) is not None


def parse_adjustment_narration(
    text: str,
    transaction_id: str = "",
    seq: int = 0,
) -> AdjustmentRecord | None:
    """narration → 조정 기록

    Args:
        text: 분개 narration
        transaction_id: 소속 전표 ID
        seq: 적용 순서

    Returns:
        AdjustmentRecord, 조정 narration이 아니면 None

    Raises:
        ReconciliationAmbiguityError: 헤더는 일치하지만 나머지 형식이 깨진 경우
    """
    if not text:
        return None

    header = _HEADER_RE.match(text)
    if header is None:
        return None

    direction = AdjustmentDirection(header.group(1))

    amounts = _AMOUNTS_RE.search(text, header.end())
    if amounts is None:
        raise ReconciliationAmbiguityError(
            f"Weight/Worth 구간을 찾을 수 없습니다: {text!r}", transaction_id
        )

    type_name, supplier_name = _split_type_and_supplier(
        text[header.end():amounts.start()], transaction_id
    )

    weight_raw, worth_raw = amounts.group(1), amounts.group(2)
    weight = None if weight_raw == "N/A" else _to_decimal(weight_raw, transaction_id)
    worth = _to_decimal(worth_raw, transaction_id)

    tail = text[amounts.end():]
    reason_end = len(tail)

    target_weight: Decimal | None = None
    target_worth: Decimal | None = None
    set_to_zero = False
    zero_worth = False

    match = _TARGET_WEIGHT_RE.search(tail)
    if match:
        target_weight = _to_decimal(match.group(1), transaction_id)
        reason_end = min(reason_end, match.start())

    match = _TARGET_WORTH_RE.search(tail)
    if match:
        target_worth = _to_decimal(match.group(1), transaction_id)
        reason_end = min(reason_end, match.start())

    match = _SET_TO_ZERO_RE.search(tail)
    if match:
        set_to_zero = True
        target_weight = _to_decimal(match.group(1), transaction_id)
        target_worth = _to_decimal(match.group(2), transaction_id)
        reason_end = min(reason_end, match.start())

    marker = tail.find(ZERO_WORTH_MARKER)
    if marker >= 0:
        zero_worth = True
        reason_end = min(reason_end, marker)

    return AdjustmentRecord(
        transaction_id=transaction_id,
        direction=direction,
        type_name=type_name,
        supplier_name=supplier_name,
        worth=worth,
        reason=tail[:reason_end],
        weight=weight,
        target_weight=target_weight,
        target_worth=target_worth,
        set_to_zero=set_to_zero,
        zero_worth=zero_worth,
        seq=seq,
    )


def _split_type_and_supplier(head: str, transaction_id: str) -> tuple[str, str]:
    """'{TypeName} ({SupplierName})' 분리

    끝의 ')'부터 거꾸로 균형 괄호를 따라가 SupplierName의 여는 괄호를 찾음.
    """
    if not head.endswith(")"):
        raise ReconciliationAmbiguityError(
            f"공급처 괄호가 닫히지 않았습니다: {head!r}", transaction_id
        )

    depth = 0
    open_index = -1
    for index in range(len(head) - 1, -1, -1):
        char = head[index]
        if char == ")":
            depth += 1
        elif char == "(":
            depth -= 1
            if depth == 0:
                open_index = index
                break

    if open_index <= 0 or head[open_index - 1] != " ":
        raise ReconciliationAmbiguityError(
            f"유형/공급처 경계를 찾을 수 없습니다: {head!r}", transaction_id
        )

    type_name = head[:open_index - 1]
    supplier_name = head[open_index + 1:-1]
    if not type_name or not supplier_name:
        raise ReconciliationAmbiguityError(
            f"유형 또는 공급처 이름이 비어 있습니다: {head!r}", transaction_id
        )
    return type_name, supplier_name


def _to_decimal(raw: str, transaction_id: str) -> Decimal:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation as e:
        raise ReconciliationAmbiguityError(
            f"숫자 형식 오류: {raw!r}", transaction_id
        ) from e
