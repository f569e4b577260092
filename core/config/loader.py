"""
설정 로더

settings.yaml 로드 및 원장 엔진 설정 생성
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from core.constants import (
    DEFAULT_EXCHANGE_RATES,
    PROJECT_ROOT,
    Defaults,
    Paths,
    SyncDefaults,
)


@dataclass(frozen=True)
class SyncPolicy:
    """Read-after-write 폴링 정책

    고정 대기 대신 지수 백오프로 재조회.
    시도 간 대기: initial, initial*m, initial*m^2 ... (max_delay로 상한)
    """

    max_attempts: int = SyncDefaults.MAX_ATTEMPTS
    initial_delay_sec: float = SyncDefaults.INITIAL_DELAY_SEC
    backoff_multiplier: float = SyncDefaults.BACKOFF_MULTIPLIER
    max_delay_sec: float = SyncDefaults.MAX_DELAY_SEC

    def delays(self) -> list[float]:
        """시도 사이 대기 시간 목록 (길이 = max_attempts - 1)"""
        result: list[float] = []
        delay = self.initial_delay_sec
        for _ in range(max(self.max_attempts - 1, 0)):
            result.append(min(delay, self.max_delay_sec))
            delay *= self.backoff_multiplier
        return result


@dataclass(frozen=True)
class AccountLookupRule:
    """계정 조회 규칙 (코드 우선, 이름 부분 일치 후순위)"""

    codes: tuple[str, ...] = ()
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class LedgerSettings:
    """원장 엔진 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    factory_id: str = Defaults.FACTORY_ID
    base_currency: str = Defaults.BASE_CURRENCY
    db_path: Path = Paths.LEDGER_DB
    exchange_rates: dict[str, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_EXCHANGE_RATES)
    )
    sync: SyncPolicy = field(default_factory=SyncPolicy)
    alignment_epoch: date = Defaults.ALIGNMENT_EPOCH
    slack_webhook_url: str | None = None
    account_overrides: dict[str, AccountLookupRule] = field(default_factory=dict)


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def load_settings(path: Path | None = None) -> LedgerSettings:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        LedgerSettings 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 mapping이어야 합니다")

    factory_id = str(data.get("factory_id") or Defaults.FACTORY_ID)
    base_currency = str(data.get("base_currency") or Defaults.BASE_CURRENCY).upper()

    db_config = data.get("database") or {}
    db_path_raw = db_config.get("path")
    if db_path_raw:
        db_path = Path(db_path_raw)
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
    else:
        db_path = Paths.LEDGER_DB

    exchange_rates = _parse_exchange_rates(data.get("exchange_rates"), base_currency)
    sync = _parse_sync_policy(data.get("sync") or {})

    alignment_config = data.get("alignment") or {}
    alignment_epoch = _parse_date(
        alignment_config.get("epoch_date"), Defaults.ALIGNMENT_EPOCH
    )

    notifier_config = data.get("notifier") or {}
    slack_webhook_url = notifier_config.get("slack_webhook_url") or None

    account_overrides = _parse_account_overrides(data.get("accounts") or {})

    return LedgerSettings(
        factory_id=factory_id,
        base_currency=base_currency,
        db_path=db_path,
        exchange_rates=exchange_rates,
        sync=sync,
        alignment_epoch=alignment_epoch,
        slack_webhook_url=slack_webhook_url,
        account_overrides=account_overrides,
    )


def _parse_exchange_rates(raw: Any, base_currency: str) -> dict[str, Decimal]:
    """환율 테이블 파싱 (1 base = ? 외화)

    기본 환율 위에 설정값을 덮어씀. 기준 통화는 항상 1.
    """
    rates = dict(DEFAULT_EXCHANGE_RATES)
    if raw is None:
        rates[base_currency] = Decimal("1")
        return rates
    if not isinstance(raw, dict):
        raise SettingsLoadError("exchange_rates는 {통화: 환율} 형식이어야 합니다")

    for code, value in raw.items():
        try:
            rate = Decimal(str(value))
        except InvalidOperation as e:
            raise SettingsLoadError(f"유효하지 않은 환율: {code}={value}") from e
        if not rate.is_finite() or rate <= 0:
            raise SettingsLoadError(f"환율은 0보다 커야 합니다: {code}={value}")
        rates[str(code).upper()] = rate

    rates[base_currency] = Decimal("1")
    return rates


def _parse_sync_policy(raw: dict[str, Any]) -> SyncPolicy:
    """sync 섹션 파싱"""
    try:
        policy = SyncPolicy(
            max_attempts=int(raw.get("max_attempts", SyncDefaults.MAX_ATTEMPTS)),
            initial_delay_sec=float(
                raw.get("initial_delay_sec", SyncDefaults.INITIAL_DELAY_SEC)
            ),
            backoff_multiplier=float(
                raw.get("backoff_multiplier", SyncDefaults.BACKOFF_MULTIPLIER)
            ),
            max_delay_sec=float(raw.get("max_delay_sec", SyncDefaults.MAX_DELAY_SEC)),
        )
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"sync 설정 파싱 실패: {e}") from e

    if policy.max_attempts < 1:
        raise SettingsLoadError("sync.max_attempts는 1 이상이어야 합니다")
    if policy.initial_delay_sec < 0 or policy.max_delay_sec < 0:
        raise SettingsLoadError("sync 대기 시간은 음수일 수 없습니다")
    if policy.backoff_multiplier < 1:
        raise SettingsLoadError("sync.backoff_multiplier는 1 이상이어야 합니다")
    return policy


def _parse_date(raw: Any, default: date) -> date:
    """YYYY-MM-DD 문자열 또는 date 파싱"""
    if raw is None:
        return default
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError as e:
        raise SettingsLoadError(f"날짜 형식이 잘못되었습니다: {raw}") from e


def _parse_account_overrides(raw: dict[str, Any]) -> dict[str, AccountLookupRule]:
    """accounts 섹션 파싱 (역할별 조회 규칙 덮어쓰기)"""
    # 순환 import 방지
    from core.ledger.types import AccountRole

    valid_roles = {role.value for role in AccountRole}
    overrides: dict[str, AccountLookupRule] = {}

    for role, rule in raw.items():
        if role not in valid_roles:
            raise SettingsLoadError(
                f"알 수 없는 계정 역할입니다: '{role}'. 유효한 값: {sorted(valid_roles)}"
            )
        rule = rule or {}
        overrides[role] = AccountLookupRule(
            codes=tuple(str(c) for c in rule.get("codes", [])),
            names=tuple(str(n) for n in rule.get("names", [])),
        )

    return overrides


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _settings: LedgerSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def ledger(self) -> LedgerSettings:
        """원장 설정 전체"""
        assert self._settings is not None
        return self._settings

    @property
    def factory_id(self) -> str:
        """현재 공장 ID"""
        assert self._settings is not None
        return self._settings.factory_id

    @property
    def db_path(self) -> Path:
        """원장 DB 경로"""
        assert self._settings is not None
        return self._settings.db_path

    @property
    def exchange_rates(self) -> dict[str, Decimal]:
        """환율 테이블"""
        assert self._settings is not None
        return self._settings.exchange_rates

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
