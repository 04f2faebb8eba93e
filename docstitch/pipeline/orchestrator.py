"""
Pipeline: 일괄 렌더링 → 병합 → 저장.

규칙:
- 기본 정책 fail-fast: 한 항목이라도 렌더링 실패 → merge 중단, 실패 index 를 담아 PipelineError
- best_effort=True: 성공 항목만 merge (실패 항목은 경고로 기록)
- 임시 문서는 모든 종료 경로(성공/실패/취소)에서 삭제
- PipelineError 는 임시 문서 정리가 끝난 뒤에 발생
- 실패 시 출력 파일을 만들지 않음 (원자적 쓰기)
"""

from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from docstitch.compose.composer import DocumentComposer
from docstitch.core.config import PipelineSettings
from docstitch.core.logging import RunContext, create_run_context
from docstitch.core.packaging import atomic_write_bytes
from docstitch.core.transient import TransientStore
from docstitch.domain.constants import MAX_HEADING_LEVEL
from docstitch.domain.errors import (
    DocstitchError,
    ErrorCodes,
    InsufficientInputError,
    InvalidOptionError,
    PipelineError,
    TitleCountMismatchError,
)
from docstitch.domain.schemas import (
    BatchItemResult,
    BatchResult,
    PipelineOptions,
    PipelineResult,
)
from docstitch.render.batch import BatchRenderer
from docstitch.render.word import Template, resolve_template


class DocumentPipeline:
    """
    템플릿 + 컨텍스트 N개 → 병합된 DOCX 1개.

    Usage:
        pipeline = DocumentPipeline(template_path, settings)
        result = pipeline.generate_and_merge(contexts, Path("outputs/final.docx"))
    """

    def __init__(
        self,
        template: Template | Path | bytes,
        settings: PipelineSettings | None = None,
    ):
        """
        Args:
            template: Template, DOCX 경로 또는 바이트 (실행 시점에 검증)
            settings: 기본 옵션/경로 설정
        """
        self.template = template
        self.settings = settings or PipelineSettings()

    def generate_and_merge(
        self,
        contexts: Sequence[dict[str, Any] | None],
        output_path: Path,
        temp_dir: Path | None = None,
        options: PipelineOptions | None = None,
        ctx: RunContext | None = None,
    ) -> PipelineResult:
        """
        전체 파이프라인 실행.

        Args:
            contexts: 컨텍스트 목록 (순서 = 병합 순서)
            output_path: 최종 문서 저장 경로
            temp_dir: 중간 문서 디렉토리 (None 이면 settings.temp_dir 또는 전용 임시 디렉토리)
            options: 병합/정책 옵션 (None 이면 settings 기본값)
            ctx: 호출 단위 RunContext (None 이면 새로 생성)

        Returns:
            PipelineResult

        Raises:
            PipelineError: stage(validate, render, merge, persist) + cause
        """
        options = options or self.settings.pipeline_options()
        ctx = ctx or create_run_context("pipeline", self.settings)
        stage = "validate"
        store: TransientStore | None = None

        try:
            template = self._validate(contexts, options)

            stage = "render"
            store = TransientStore(temp_dir or self.settings.temp_dir)
            renderer = BatchRenderer(
                template,
                max_workers=options.max_workers or self.settings.max_workers,
                ctx=ctx,
            )
            batch = renderer.render_batch(contexts, store)
            survivors = self._select(batch, options, ctx)

            stage = "merge"
            data = self._compose(survivors, store, options, ctx)

            stage = "persist"
            self._persist(output_path, data)

        except DocstitchError as e:
            cleanup_completed = self._release(store, ctx)
            store = None
            error = PipelineError(
                stage,
                e,
                cleanup_completed=cleanup_completed,
                run_id=ctx.run_id,
            )
            ctx.logger.error(f"Pipeline failed at {stage}: {e}")
            ctx.finish(False, error)
            raise error from e

        finally:
            # 취소/예상 밖 예외 포함 모든 경로에서 정리
            if store is not None:
                self._release(store, ctx)

        ctx.finish(True)
        return PipelineResult(
            output_path=output_path,
            document_count=len(survivors),
            run_id=ctx.run_id,
            skipped_indices=batch.failed_indices,
        )

    # =========================================================================
    # Stages
    # =========================================================================

    def _validate(
        self,
        contexts: Sequence[dict[str, Any] | None],
        options: PipelineOptions,
    ) -> Template:
        if not contexts:
            raise InsufficientInputError(ErrorCodes.NO_CONTEXTS, count=0, required=1)

        titles = options.merge.section_titles
        if titles is not None and len(titles) != len(contexts):
            raise TitleCountMismatchError(documents=len(contexts), titles=len(titles))

        heading_level = options.merge.heading_level
        if not 1 <= heading_level <= MAX_HEADING_LEVEL:
            raise InvalidOptionError(
                option="heading_level",
                value=heading_level,
                allowed=f"1..{MAX_HEADING_LEVEL}",
            )

        if options.max_workers is not None and options.max_workers < 1:
            raise InvalidOptionError(option="max_workers", value=options.max_workers, allowed=">= 1")

        return resolve_template(self.template)

    @staticmethod
    def _select(
        batch: BatchResult,
        options: PipelineOptions,
        ctx: RunContext,
    ) -> list[BatchItemResult]:
        """
        merge 대상 선택.

        Raises:
            PartialBatchFailureError: fail-fast 이고 실패 항목 있음,
                또는 best-effort 인데 성공 항목이 없음
        """
        if not options.best_effort or not batch.succeeded:
            batch.raise_for_failures()

        for item in batch.failures:
            ctx.warn(
                ErrorCodes.BATCH_ITEM_SKIPPED,
                "render",
                f"Skipped item {item.index}: {item.error}",
                item.index,
            )
        return batch.succeeded

    @staticmethod
    def _compose(
        survivors: list[BatchItemResult],
        store: TransientStore,
        options: PipelineOptions,
        ctx: RunContext,
    ) -> bytes:
        # 문서 1개: merge 불가 → 렌더링 결과 그대로 사용
        if len(survivors) == 1:
            return store.read(survivors[0].document)

        merge_options = options.merge
        if merge_options.section_titles is not None:
            merge_options = replace(
                merge_options,
                section_titles=[merge_options.section_titles[item.index] for item in survivors],
            )

        return DocumentComposer(ctx).merge(
            [item.document for item in survivors],
            merge_options,
        )

    @staticmethod
    def _persist(output_path: Path, data: bytes) -> None:
        try:
            atomic_write_bytes(output_path, data)
        except OSError as e:
            raise DocstitchError(
                ErrorCodes.OUTPUT_WRITE_FAILED,
                path=str(output_path),
                error=str(e),
            ) from e

    @staticmethod
    def _release(store: TransientStore | None, ctx: RunContext) -> bool:
        """임시 문서 삭제. 모두 삭제되면 True."""
        if store is None:
            return True

        leftovers = store.close()
        for ref in leftovers:
            ctx.warn(
                ErrorCodes.TRANSIENT_DELETE_FAILED,
                "cleanup",
                f"Failed to delete transient document {ref}",
            )
        return not leftovers


def generate_and_merge(
    template: Template | Path | bytes,
    contexts: Sequence[dict[str, Any] | None],
    output_path: Path,
    temp_dir: Path | None = None,
    options: PipelineOptions | None = None,
    settings: PipelineSettings | None = None,
) -> PipelineResult:
    """파이프라인 실행 (간편 함수)."""
    return DocumentPipeline(template, settings).generate_and_merge(
        contexts,
        output_path,
        temp_dir=temp_dir,
        options=options,
    )
