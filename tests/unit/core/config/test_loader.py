"""
core/config/loader.py 테스트

settings.yaml 로드, 검증, 원장 설정 생성 테스트
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from core.config.loader import (
    AccountLookupRule,
    LedgerSettings,
    Settings,
    SettingsLoadError,
    SyncPolicy,
    get_settings,
    load_settings,
)
from core.constants import PROJECT_ROOT, Defaults, Paths


class TestSyncPolicy:
    """SyncPolicy 테스트"""

    def test_default_delays(self) -> None:
        """기본값: 0.5, 1, 2, 4 (시도 5회)"""
        assert SyncPolicy().delays() == [0.5, 1.0, 2.0, 4.0]

    def test_delays_capped(self) -> None:
        """max_delay_sec 상한"""
        policy = SyncPolicy(
            max_attempts=6,
            initial_delay_sec=1.0,
            backoff_multiplier=3.0,
            max_delay_sec=5.0,
        )
        assert policy.delays() == [1.0, 3.0, 5.0, 5.0, 5.0]

    def test_single_attempt_has_no_delay(self) -> None:
        assert SyncPolicy(max_attempts=1).delays() == []

    def test_frozen(self) -> None:
        """불변성 확인"""
        policy = SyncPolicy()
        with pytest.raises(AttributeError):
            policy.max_attempts = 10  # type: ignore


class TestLedgerSettings:
    """LedgerSettings 기본값 테스트"""

    def test_defaults(self) -> None:
        settings = LedgerSettings()

        assert settings.factory_id == Defaults.FACTORY_ID
        assert settings.base_currency == "USD"
        assert settings.db_path == Paths.LEDGER_DB
        assert settings.exchange_rates["AED"] == Decimal("3.67")
        assert settings.alignment_epoch == date(2000, 1, 1)
        assert settings.slack_webhook_url is None
        assert settings.account_overrides == {}


class TestLoadSettings:
    """load_settings 함수 테스트"""

    def test_load_full_file(self, temp_settings_file: Path) -> None:
        """모든 섹션 로드"""
        settings = load_settings(temp_settings_file)

        assert settings.factory_id == "FACTORY-TEST"
        assert settings.base_currency == "USD"
        assert settings.db_path == PROJECT_ROOT / "ledger_test.db"
        assert settings.exchange_rates["PKR"] == Decimal("278.5")
        assert settings.exchange_rates["USD"] == Decimal("1")
        # 설정에 없는 기본 환율 유지
        assert settings.exchange_rates["EUR"] == Decimal("0.91")
        assert settings.sync.max_attempts == 3
        assert settings.sync.delays() == [0.1, 0.2]
        assert settings.alignment_epoch == date(2020, 1, 1)
        assert settings.slack_webhook_url == "https://hooks.slack.com/services/TEST"
        assert settings.account_overrides["RAW_MATERIALS"] == AccountLookupRule(
            codes=("1201",), names=("Raw Stock",)
        )

    def test_minimal_file_uses_defaults(self, temp_dir: Path) -> None:
        path = temp_dir / "minimal.yaml"
        path.write_text("factory_id: F-2\n", encoding="utf-8")

        settings = load_settings(path)

        assert settings.factory_id == "F-2"
        assert settings.db_path == Paths.LEDGER_DB
        assert settings.sync == SyncPolicy()
        assert settings.slack_webhook_url is None

    def test_absolute_db_path_kept(self, temp_dir: Path) -> None:
        db_path = temp_dir / "abs.db"
        path = temp_dir / "abs.yaml"
        path.write_text(f"database:\n  path: {db_path.as_posix()}\n", encoding="utf-8")

        assert load_settings(path).db_path == db_path

    def test_file_not_found(self, temp_dir: Path) -> None:
        """파일이 없을 때"""
        with pytest.raises(SettingsLoadError, match="찾을 수 없습니다"):
            load_settings(temp_dir / "nonexistent.yaml")

    def test_empty_file(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="비어 있습니다"):
            load_settings(path)

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.yaml"
        path.write_text("factory_id: [unclosed\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="파싱 실패"):
            load_settings(path)

    def test_non_positive_rate_rejected(self, temp_dir: Path) -> None:
        path = temp_dir / "rates.yaml"
        path.write_text("exchange_rates:\n  AED: 0\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="0보다 커야"):
            load_settings(path)

    def test_invalid_sync_policy(self, temp_dir: Path) -> None:
        path = temp_dir / "sync.yaml"
        path.write_text("sync:\n  max_attempts: 0\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="max_attempts"):
            load_settings(path)

    def test_invalid_epoch_date(self, temp_dir: Path) -> None:
        path = temp_dir / "epoch.yaml"
        path.write_text("alignment:\n  epoch_date: 'not-a-date'\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="날짜 형식"):
            load_settings(path)

    def test_unknown_account_role(self, temp_dir: Path) -> None:
        path = temp_dir / "accounts.yaml"
        path.write_text("accounts:\n  PETTY_CASH:\n    codes: ['109']\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="알 수 없는 계정 역할"):
            load_settings(path)


class TestSettingsSingleton:
    """Settings 싱글턴 테스트"""

    def setup_method(self) -> None:
        Settings.reset()

    def teardown_method(self) -> None:
        Settings.reset()

    def test_singleton(self, temp_settings_file: Path) -> None:
        first = get_settings(temp_settings_file)
        second = get_settings()

        assert first is second
        assert second.factory_id == "FACTORY-TEST"
        assert second.ledger.sync.max_attempts == 3

    def test_properties(self, temp_settings_file: Path) -> None:
        settings = Settings(temp_settings_file)

        assert settings.db_path == PROJECT_ROOT / "ledger_test.db"
        assert settings.exchange_rates["AED"] == Decimal("3.67")

    def test_reset(self, temp_settings_file: Path, temp_dir: Path) -> None:
        get_settings(temp_settings_file)
        Settings.reset()

        other = temp_dir / "other.yaml"
        other.write_text("factory_id: OTHER\n", encoding="utf-8")

        assert get_settings(other).factory_id == "OTHER"
