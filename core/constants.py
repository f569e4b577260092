"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
금액은 반드시 Decimal 사용 (float 금지)
"""

from datetime import date
from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    BASE_CURRENCY: str = "USD"
    FACTORY_ID: str = "FACTORY-01"

    LOG_LEVEL: str = "INFO"

    # 전표 번호: {TAG}-{n}, n은 1000부터 시작 (첫 전표 1001)
    VOUCHER_NUMBER_FLOOR: int = 1000

    # 정렬(Alignment) 분개 날짜 - 해당 엔티티에 분개가 하나도 없을 때 사용
    ALIGNMENT_EPOCH: date = date(2000, 1, 1)

    # 삭제/아카이브 시 기록되는 기본 사용자
    DELETED_BY: str = "system"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "ledger.db"


class Tolerances:
    """허용 오차 (USD 기준)"""

    # 차변/대변 합계 비교, 정렬 no-op 판정, 환차 판정 공통
    BALANCE: Decimal = Decimal("0.01")


class AccountCodes:
    """계정과목 조회 코드 (외부 설정 데이터의 관례)

    앞에 있는 코드가 우선 매칭됨.
    """

    RAW_MATERIALS: tuple[str, ...] = ("104", "1201")
    FINISHED_GOODS: tuple[str, ...] = ("105", "1202")
    INVENTORY_ADJUSTMENT: tuple[str, ...] = ("503",)
    WRITE_OFF: tuple[str, ...] = ("504", "503")
    EXCHANGE_VARIANCE: tuple[str, ...] = ("502",)
    DISCREPANCY: tuple[str, ...] = ("505",)
    OWNER_CAPITAL: tuple[str, ...] = ("301",)


# 기본 환율 (1 USD = ? 외화)
DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.91"),
    "GBP": Decimal("0.76"),
    "AED": Decimal("3.67"),
    "SAR": Decimal("3.75"),
    "AUD": Decimal("1.54"),
}


class SyncDefaults:
    """Read-after-write 폴링 기본값 (지수 백오프)"""

    MAX_ATTEMPTS: int = 5
    INITIAL_DELAY_SEC: float = 0.5
    BACKOFF_MULTIPLIER: float = 2.0
    MAX_DELAY_SEC: float = 8.0
