"""
Data schemas for docstitch.

규칙:
- 입력 순서 = 출력 순서 (index 필드로 추적)
- 직렬화는 to_dict() 로 통일
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from docstitch.domain.constants import DEFAULT_HEADING_LEVEL
from docstitch.domain.errors import DocstitchError, PartialBatchFailureError

# merge 입력: 파일 경로 또는 DOCX 바이트
DocumentRef = Path | bytes


# =============================================================================
# Enums
# =============================================================================

class SeparatorKind(str, Enum):
    """문서 사이에 들어가는 구분자 종류."""
    PAGE_BREAK = "page_break"        # run 레벨 페이지 나눔
    SECTION_BREAK = "section_break"  # 다음 페이지 구역 나누기
    BLANK_LINE = "blank_line"        # 빈 단락


class ValueKind(str, Enum):
    """컨텍스트 값의 태그 (scalar | mapping | sequence)."""
    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


# =============================================================================
# Validation
# =============================================================================

@dataclass
class ValidationResult:
    """
    템플릿 검증 결과.

    missing_placeholders 는 required 목록의 순서를 유지한다.
    """
    is_valid: bool
    missing_placeholders: list[str] = field(default_factory=list)
    found_placeholders: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "missing_placeholders": list(self.missing_placeholders),
            "found_placeholders": list(self.found_placeholders),
        }


# =============================================================================
# Batch
# =============================================================================

@dataclass
class BatchItemResult:
    """
    배치 항목 하나의 결과.

    성공: ref(임시 파일 경로) 또는 data(메모리) 중 하나
    실패: error
    """
    index: int
    ref: Path | None = None
    data: bytes | None = None
    error: DocstitchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def document(self) -> DocumentRef:
        """Composer 입력용 참조."""
        if self.error is not None:
            raise ValueError(f"Batch item {self.index} failed: {self.error}")
        if self.ref is not None:
            return self.ref
        assert self.data is not None
        return self.data

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"index": self.index, "ok": self.ok}
        if self.ref is not None:
            result["ref"] = str(self.ref)
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class BatchResult:
    """배치 전체 결과 (index 오름차순)."""
    items: list[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchItemResult]:
        return [item for item in self.items if item.ok]

    @property
    def failures(self) -> list[BatchItemResult]:
        return [item for item in self.items if not item.ok]

    @property
    def failed_indices(self) -> list[int]:
        return [item.index for item in self.failures]

    def raise_for_failures(self) -> None:
        """
        실패 항목이 있으면 집계 에러 발생.

        Raises:
            PartialBatchFailureError
        """
        failures = self.failures
        if failures:
            raise PartialBatchFailureError(
                [(item.index, item.error) for item in failures if item.error],
                total=len(self.items),
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.items),
            "succeeded": len(self.succeeded),
            "failed_indices": self.failed_indices,
            "items": [item.to_dict() for item in self.items],
        }


# =============================================================================
# Merge
# =============================================================================

@dataclass
class MergeOptions:
    """
    Composer 옵션.

    section_titles 가 있으면 각 문서 앞(첫 문서 포함)에 제목 단락을 넣는다.
    """
    add_separators: bool = False
    separator: SeparatorKind = SeparatorKind.PAGE_BREAK
    section_titles: list[str] | None = None
    heading_level: int = DEFAULT_HEADING_LEVEL


@dataclass
class SectionInput:
    """merge_with_sections 입력: 문서 + 제목."""
    doc: DocumentRef
    title: str


# =============================================================================
# Pipeline
# =============================================================================

@dataclass
class PipelineOptions:
    """
    파이프라인 옵션.

    best_effort=False (기본): 한 항목이라도 실패하면 merge 중단 (fail-fast)
    best_effort=True: 성공한 항목만 merge
    """
    merge: MergeOptions = field(default_factory=MergeOptions)
    best_effort: bool = False
    max_workers: int | None = None


@dataclass
class PipelineResult:
    """파이프라인 결과."""
    output_path: Path
    document_count: int
    run_id: str
    skipped_indices: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_path": str(self.output_path),
            "document_count": self.document_count,
            "run_id": self.run_id,
            "skipped_indices": list(self.skipped_indices),
        }


# =============================================================================
# Run Log
# =============================================================================

@dataclass
class WarningLog:
    """경고 이벤트 (실패는 아니지만 결과에 영향)."""
    code: str
    stage: str
    message: str
    index: int | None = None
    level: str = "warning"

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "stage": self.stage,
            "index": self.index,
            "message": self.message,
        }


@dataclass
class EventLog:
    """단계 이벤트 (시작/완료 등)."""
    stage: str
    event: str
    timestamp: str
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "event": self.event,
            "timestamp": self.timestamp,
            "detail": self.detail,
        }


@dataclass
class RunLog:
    """
    실행 로그.

    호출(run) 단위 실행 결과 및 메타데이터.
    """
    run_id: str
    operation: str  # render, render_batch, merge, pipeline, validate
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    events: list[EventLog] = field(default_factory=list)
    warnings: list[WarningLog] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "operation": self.operation,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "events": [e.to_dict() for e in self.events],
            "warnings": [w.to_dict() for w in self.warnings],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
