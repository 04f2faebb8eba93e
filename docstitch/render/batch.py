"""
Batch 렌더러: 템플릿 1개 × 컨텍스트 N개 → 문서 N개.

규칙:
- 항목 하나의 실패가 나머지 항목을 중단시키지 않음 (항목별 결과로 기록)
- 결과는 항상 입력 순서 (index 오름차순): Composer 가 위치 순서에 의존
- store 가 주어지면 성공 결과를 임시 파일로 저장, 정리는 호출자 책임
- 병렬 처리 시 완료 순서와 무관하게 index 순으로 재정렬
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from docstitch.core.logging import RunContext
from docstitch.core.transient import TransientStore
from docstitch.domain.errors import (
    DocstitchError,
    ErrorCodes,
    InvalidOptionError,
    InvariantViolationError,
    RenderError,
)
from docstitch.domain.schemas import BatchItemResult, BatchResult
from docstitch.render.word import DocxRenderer, Template

logger = logging.getLogger(__name__)

STAGE = "render"


class BatchRenderer:
    """
    N개 컨텍스트 일괄 렌더링.

    Usage:
        batch = BatchRenderer(template, max_workers=4)
        with TransientStore() as store:
            result = batch.render_batch(contexts, store)
            result.raise_for_failures()
    """

    def __init__(
        self,
        template: Template | Path | bytes,
        max_workers: int = 1,
        ctx: RunContext | None = None,
    ):
        """
        Args:
            template: Template, DOCX 경로 또는 바이트
            max_workers: 동시 렌더링 스레드 수 (1 = 순차)
            ctx: 호출 단위 RunContext (이벤트/경고 기록용)

        Raises:
            InvalidOptionError: max_workers < 1
            TemplateNotFoundError, TemplateCorruptError
        """
        if max_workers < 1:
            raise InvalidOptionError(option="max_workers", value=max_workers, allowed=">= 1")

        self.renderer = DocxRenderer(template)
        self.max_workers = max_workers
        self.ctx = ctx

    def render_batch(
        self,
        contexts: Sequence[dict[str, Any] | None],
        store: TransientStore | None = None,
    ) -> BatchResult:
        """
        컨텍스트마다 독립적으로 렌더링.

        템플릿 자체의 문제(마크업 파싱 실패)는 항목별이 아니라 즉시 발생한다.

        Args:
            contexts: 컨텍스트 목록 (순서 = 결과 순서)
            store: 성공 결과를 저장할 임시 저장소 (None 이면 메모리 보관)

        Returns:
            BatchResult (index 오름차순)

        Raises:
            TemplateSyntaxError
        """
        # 템플릿 파싱 1회 (실패 시 모든 항목이 같은 이유로 실패하므로 즉시 중단)
        self.renderer.template.loop_targets()

        total = len(contexts)
        if self.ctx:
            self.ctx.event(STAGE, "started", total=total, max_workers=self.max_workers)

        if self.max_workers == 1 or total <= 1:
            items = [
                self._render_one(index, context, store)
                for index, context in enumerate(contexts)
            ]
        else:
            items = self._render_parallel(contexts, store)

        items.sort(key=lambda item: item.index)
        if [item.index for item in items] != list(range(total)):
            raise InvariantViolationError(
                f"Batch results out of order: {[item.index for item in items]}"
            )

        result = BatchResult(items=items)
        if self.ctx:
            self.ctx.event(
                STAGE,
                "finished",
                succeeded=len(result.succeeded),
                failed_indices=result.failed_indices,
            )
        return result

    def _render_parallel(
        self,
        contexts: Sequence[dict[str, Any] | None],
        store: TransientStore | None,
    ) -> list[BatchItemResult]:
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="docstitch-render",
        )
        items: list[BatchItemResult] = []
        try:
            futures = [
                executor.submit(self._render_one, index, context, store)
                for index, context in enumerate(contexts)
            ]
            for future in as_completed(futures):
                items.append(future.result())
        finally:
            # 중단 시: 대기 중인 항목 취소, 실행 중인 항목은 완료까지 대기
            executor.shutdown(wait=True, cancel_futures=True)
        return items

    def _render_one(
        self,
        index: int,
        context: dict[str, Any] | None,
        store: TransientStore | None,
    ) -> BatchItemResult:
        try:
            data = self.renderer.render_bytes(context)
        except DocstitchError as e:
            self._record_failure(index, e)
            return BatchItemResult(index=index, error=e)

        if store is None:
            return BatchItemResult(index=index, data=data)

        try:
            ref = store.create(data, label=f"item_{index}")
        except OSError as e:
            error = RenderError(
                ErrorCodes.TRANSIENT_WRITE_FAILED,
                index=index,
                error=str(e),
            )
            self._record_failure(index, error)
            return BatchItemResult(index=index, error=error)

        return BatchItemResult(index=index, ref=ref)

    def _record_failure(self, index: int, error: DocstitchError) -> None:
        if self.ctx:
            self.ctx.event(STAGE, "item_failed", index=index, code=error.code)
            self.ctx.logger.info(f"Batch item {index} failed: {error}")
        else:
            logger.info(f"Batch item {index} failed: {error}")


def render_batch(
    template: Template | Path | bytes,
    contexts: Sequence[dict[str, Any] | None],
    store: TransientStore | None = None,
    max_workers: int = 1,
    ctx: RunContext | None = None,
) -> BatchResult:
    """일괄 렌더링 (간편 함수)."""
    return BatchRenderer(template, max_workers=max_workers, ctx=ctx).render_batch(
        contexts, store
    )
