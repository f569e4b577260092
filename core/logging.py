"""
로깅 설정 유틸리티

원장 엔진과 운영 스크립트에서 사용하는 공통 로깅 설정.
- 콘솔: INFO 레벨 (stdout)
- 파일: INFO 레벨 (TimedRotatingFileHandler, 자정마다 새 파일)
- 모든 레코드에 공장 ID를 붙여 여러 공장 로그를 한 파일에서 구분

사용법:
    from core.logging import setup_logging
    setup_logging("engine", factory_id=settings.factory_id)
    setup_logging("scripts")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(factory_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 30  # 결산 점검용으로 한 달치 유지
NO_FACTORY = "-"

# 조회/HTTP 단위로 로그를 쏟아내는 라이브러리 (WARNING 이상만)
NOISY_LOGGERS = [
    "aiosqlite",
    "httpcore",
    "httpx",
    "asyncio",
]


class FactoryContextFilter(logging.Filter):
    """레코드에 factory_id 속성 주입

    extra={"factory_id": ...}로 이미 지정된 레코드는 그대로 둠.
    """

    def __init__(self, factory_id: str | None = None):
        super().__init__()
        self.factory_id = factory_id or NO_FACTORY

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "factory_id", None):
            record.factory_id = self.factory_id
        return True


def setup_logging(
    process_name: str,
    factory_id: str | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """로깅 설정 초기화

    기존 루트 핸들러를 교체하므로 여러 번 호출해도 핸들러가 쌓이지 않음.

    Args:
        process_name: 프로세스 이름 ("engine", "scripts" 등)
        factory_id: 로그에 표시할 공장 ID (None이면 "-")
        console_level: 콘솔 로그 레벨
        file_level: 파일 로그 레벨
        log_dir: 로그 디렉토리 (None이면 logs/{process_name})

    Returns:
        설정된 루트 Logger
    """
    if log_dir is None:
        log_dir = get_log_file_path(process_name).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{process_name}.log"

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    context = FactoryContextFilter(factory_id)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # 레벨 필터링은 핸들러에서
    root_logger.handlers.clear()

    for handler in (
        _console_handler(console_level),
        _file_handler(log_file, file_level),
    ):
        handler.setFormatter(formatter)
        handler.addFilter(context)
        root_logger.addHandler(handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        f"로깅 초기화 완료: {process_name} "
        f"(console={logging.getLevelName(console_level)}, "
        f"file={log_file} {logging.getLevelName(file_level)})"
    )
    return root_logger


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    """일 단위 롤링 파일 핸들러 (백업: engine.log.2024-03-01)"""
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def get_log_file_path(process_name: str) -> Path:
    """로그 파일 경로 (logs/{process_name}/{process_name}.log)"""
    return Paths.LOGS_DIR / process_name / f"{process_name}.log"
