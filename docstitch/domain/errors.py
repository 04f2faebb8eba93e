"""
Error definitions for docstitch.

규칙:
- 조용한 실패 금지 → 모든 실패는 DocstitchError 하위 타입으로 명시
- 에러는 code + context 로 구성 (어느 입력, 몇 번째, 원인)
- 라이브러리 내부 예외는 `raise ... from e` 로 감싸서 전달
"""

from typing import Any


class DocstitchError(Exception):
    """
    docstitch 공통 에러.

    호출자는 클래스(종류) 또는 code 로 분기한다.

    Usage:
        raise RenderError(ErrorCodes.RENDER_FAILED, index=2, error="...")
    """

    default_code = "DOCSTITCH_ERROR"

    def __init__(self, code: str | None = None, **context: Any) -> None:
        self.code = code or self.default_code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        # kind/code 는 context 로 덮어쓸 수 없음
        return {
            **{k: _jsonable(v) for k, v in self.context.items()},
            "kind": type(self).__name__,
            "code": self.code,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, DocstitchError):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Input ===
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_CORRUPT = "TEMPLATE_CORRUPT"
    TEMPLATE_SYNTAX_ERROR = "TEMPLATE_SYNTAX_ERROR"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    DOCUMENT_CORRUPT = "DOCUMENT_CORRUPT"
    INVALID_OPTION = "INVALID_OPTION"

    # === Render ===
    RENDER_FAILED = "RENDER_FAILED"
    INVALID_CONTEXT = "INVALID_CONTEXT"
    UNSUPPORTED_VALUE = "UNSUPPORTED_VALUE"
    LOOP_REQUIRES_SEQUENCE = "LOOP_REQUIRES_SEQUENCE"

    # === Merge ===
    INSUFFICIENT_INPUT = "INSUFFICIENT_INPUT"
    TITLE_COUNT_MISMATCH = "TITLE_COUNT_MISMATCH"

    # === Batch / Pipeline ===
    PARTIAL_BATCH_FAILURE = "PARTIAL_BATCH_FAILURE"
    PIPELINE_FAILED = "PIPELINE_FAILED"
    NO_CONTEXTS = "NO_CONTEXTS"
    OUTPUT_WRITE_FAILED = "OUTPUT_WRITE_FAILED"

    # === Transient store ===
    TRANSIENT_REF_UNKNOWN = "TRANSIENT_REF_UNKNOWN"
    TRANSIENT_WRITE_FAILED = "TRANSIENT_WRITE_FAILED"

    # === Warnings (run log only) ===
    TRAILING_SECTIONS_DROPPED = "TRAILING_SECTIONS_DROPPED"
    BATCH_ITEM_SKIPPED = "BATCH_ITEM_SKIPPED"
    TRANSIENT_DELETE_FAILED = "TRANSIENT_DELETE_FAILED"


# =============================================================================
# Not found / corrupt input
# =============================================================================

class NotFoundError(DocstitchError):
    """템플릿 또는 문서가 존재하지 않음."""

    default_code = "NOT_FOUND"


class CorruptInputError(DocstitchError):
    """읽을 수 없거나 유효하지 않은 OOXML 패키지."""

    default_code = "CORRUPT_INPUT"


class TemplateNotFoundError(NotFoundError):
    default_code = ErrorCodes.TEMPLATE_NOT_FOUND


class TemplateCorruptError(CorruptInputError):
    default_code = ErrorCodes.TEMPLATE_CORRUPT


class TemplateSyntaxError(CorruptInputError):
    """템플릿 마크업(Jinja) 파싱 실패."""

    default_code = ErrorCodes.TEMPLATE_SYNTAX_ERROR


class InvalidOptionError(DocstitchError):
    """옵션 값이 허용 범위를 벗어남 (예: heading_level, max_workers)."""

    default_code = ErrorCodes.INVALID_OPTION


# =============================================================================
# Render
# =============================================================================

class RenderError(DocstitchError):
    """
    치환 실패.

    예: loop 구문에 sequence 대신 scalar 값이 들어온 경우.
    """

    default_code = ErrorCodes.RENDER_FAILED


# =============================================================================
# Merge
# =============================================================================

class MergeError(DocstitchError):
    """Composer 단계 에러의 공통 부모."""

    default_code = "MERGE_FAILED"


class InsufficientInputError(MergeError):
    """merge 입력이 2개 미만."""

    default_code = ErrorCodes.INSUFFICIENT_INPUT


class TitleCountMismatchError(MergeError):
    default_code = ErrorCodes.TITLE_COUNT_MISMATCH


class DocumentNotFoundError(NotFoundError, MergeError):
    default_code = ErrorCodes.DOCUMENT_NOT_FOUND


class DocumentCorruptError(CorruptInputError, MergeError):
    default_code = ErrorCodes.DOCUMENT_CORRUPT


# =============================================================================
# Batch / Pipeline
# =============================================================================

class PartialBatchFailureError(DocstitchError):
    """
    배치 중 일부 항목 실패 (집계 에러).

    Attributes:
        failures: (index, error) 목록, index 오름차순
    """

    default_code = ErrorCodes.PARTIAL_BATCH_FAILURE

    def __init__(
        self,
        failures: list[tuple[int, DocstitchError]],
        total: int,
    ) -> None:
        self.failures = sorted(failures, key=lambda item: item[0])
        super().__init__(
            failed_indices=[index for index, _ in self.failures],
            total=total,
            causes=[f"{index}: {error}" for index, error in self.failures],
        )

    @property
    def failed_indices(self) -> list[int]:
        return [index for index, _ in self.failures]


class PipelineError(DocstitchError):
    """
    파이프라인 단계 실패.

    cleanup(임시 문서 삭제)이 끝난 뒤에만 발생한다.

    Attributes:
        stage: 실패한 단계 (validate, render, merge, persist)
        cause: 원인 에러
        cleanup_completed: 임시 문서 정리 완료 여부
    """

    default_code = ErrorCodes.PIPELINE_FAILED

    def __init__(
        self,
        stage: str,
        cause: DocstitchError,
        cleanup_completed: bool = True,
        **context: Any,
    ) -> None:
        self.stage = stage
        self.cause = cause
        self.cleanup_completed = cleanup_completed
        super().__init__(
            stage=stage,
            cause=cause,
            cleanup_completed=cleanup_completed,
            **context,
        )

    @property
    def failed_indices(self) -> list[int]:
        if isinstance(self.cause, PartialBatchFailureError):
            return self.cause.failed_indices
        index = self.cause.context.get("index")
        return [index] if isinstance(index, int) else []


class InvariantViolationError(RuntimeError):
    """
    내부 불변식 위반 (예: 배치 결과 순서 불일치).

    타입화된 에러 체계에 속하지 않는다. 잡아서 복구하지 말 것.
    """
