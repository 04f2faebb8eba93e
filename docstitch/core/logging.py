"""
Run logging: RunLog 생성/이벤트/경고 + 호출 단위 RunContext.

규칙:
- 전역 logger/config 상태 대신 RunContext 를 명시적으로 전달
- RunContext 수명 = 호출 1회 (render, merge, pipeline ...)
- RunLog 는 성공/실패 모두 complete_run_log 로 마감
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from docstitch.core.config import PipelineSettings
from docstitch.core.ids import generate_run_id
from docstitch.core.packaging import atomic_write_bytes
from docstitch.domain.constants import RUN_LOG_FILENAME_PATTERN
from docstitch.domain.errors import DocstitchError
from docstitch.domain.schemas import EventLog, RunLog, WarningLog

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


class RunLoggerAdapter(logging.LoggerAdapter):
    """모든 메시지 앞에 run_id 를 붙인다."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = self.extra or {}
        return f"[{extra.get('run_id')}] {msg}", kwargs


def configure_logging(level: str = "INFO") -> None:
    """루트 로거 설정 (HTTP 앱 시작 시 1회)."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


# =============================================================================
# Run Log Management
# =============================================================================


def create_run_log(operation: str) -> RunLog:
    """
    새 RunLog 생성.

    Args:
        operation: 호출 종류 (render, render_batch, merge, pipeline, validate)

    Returns:
        초기화된 RunLog
    """
    now = datetime.now(UTC).isoformat()

    return RunLog(
        run_id=generate_run_id(),
        operation=operation,
        started_at=now,
        result="pending",
    )


def emit_event(
    run_log: RunLog,
    stage: str,
    event: str,
    **detail: Any,
) -> None:
    """단계 이벤트 기록."""
    run_log.events.append(
        EventLog(
            stage=stage,
            event=event,
            timestamp=datetime.now(UTC).isoformat(),
            detail=detail,
        )
    )


def emit_warning(
    run_log: RunLog,
    code: str,
    stage: str,
    message: str,
    index: int | None = None,
) -> None:
    """
    경고 이벤트 기록.

    Args:
        run_log: RunLog 인스턴스
        code: 경고 코드 (ErrorCodes)
        stage: 발생 단계
        message: 경고 메시지
        index: 관련 입력 위치
    """
    run_log.warnings.append(
        WarningLog(code=code, stage=stage, message=message, index=index)
    )


def complete_run_log(
    run_log: RunLog,
    success: bool,
    error: DocstitchError | None = None,
) -> None:
    """
    RunLog 완료 처리.

    Args:
        run_log: RunLog 인스턴스
        success: 성공 여부
        error: 실패 원인 (실패 시)
    """
    run_log.finished_at = datetime.now(UTC).isoformat()
    run_log.result = "success" if success else "failed"

    if not success and error is not None:
        run_log.error_code = error.code
        run_log.error_context = error.to_dict()


def save_run_log(run_log: RunLog, logs_dir: Path) -> Path:
    """
    RunLog 를 파일로 저장.

    Returns:
        저장된 파일 경로 (logs_dir/run_<run_id>.json)
    """
    log_path = logs_dir / RUN_LOG_FILENAME_PATTERN.format(run_id=run_log.run_id)
    payload = json.dumps(run_log.to_dict(), indent=2, ensure_ascii=False)
    atomic_write_bytes(log_path, payload.encode("utf-8"))
    return log_path


def load_run_log(log_path: Path) -> dict[str, Any]:
    data: dict[str, Any] = json.loads(log_path.read_text(encoding="utf-8"))
    return data


# =============================================================================
# Run Context
# =============================================================================


@dataclass
class RunContext:
    """
    호출 단위 컨텍스트: 설정 + RunLog + logger.

    Pipeline/Composer/BatchRenderer 에 인자로 전달된다.
    """
    settings: PipelineSettings
    run_log: RunLog
    logger: RunLoggerAdapter

    @property
    def run_id(self) -> str:
        return self.run_log.run_id

    def event(self, stage: str, event: str, **detail: Any) -> None:
        emit_event(self.run_log, stage, event, **detail)
        self.logger.debug(f"{stage}: {event} {detail}" if detail else f"{stage}: {event}")

    def warn(
        self,
        code: str,
        stage: str,
        message: str,
        index: int | None = None,
    ) -> None:
        emit_warning(self.run_log, code, stage, message, index)
        self.logger.warning(f"[{code}] {message}")

    def finish(self, success: bool, error: DocstitchError | None = None) -> None:
        """RunLog 마감 + (설정된 경우) 파일 저장."""
        complete_run_log(self.run_log, success, error)
        if self.settings.logs_dir is not None:
            try:
                save_run_log(self.run_log, self.settings.logs_dir)
            except OSError as e:
                self.logger.warning(f"Failed to save run log: {e}")


def create_run_context(
    operation: str,
    settings: PipelineSettings | None = None,
    logger_name: str = "docstitch",
) -> RunContext:
    """새 RunContext 생성."""
    run_log = create_run_log(operation)
    logger = RunLoggerAdapter(
        logging.getLogger(logger_name),
        {"run_id": run_log.run_id},
    )
    return RunContext(
        settings=settings or PipelineSettings(),
        run_log=run_log,
        logger=logger,
    )
