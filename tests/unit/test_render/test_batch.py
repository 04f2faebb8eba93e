"""
test_batch.py - 일괄 렌더링 테스트

검증 항목:
- 항목별 독립 실패 (한 항목 실패가 나머지를 막지 않음)
- 결과 순서 = 입력 순서 (순차/병렬 모두)
- store 사용 시 성공 항목은 임시 파일 ref
- 템플릿 마크업 오류는 즉시 발생
"""

import io
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest
from docx import Document

from docstitch.core.logging import create_run_context
from docstitch.core.transient import TransientStore
from docstitch.domain.errors import (
    ErrorCodes,
    InvalidOptionError,
    PartialBatchFailureError,
    RenderError,
    TemplateSyntaxError,
)
from docstitch.render.batch import BatchRenderer, render_batch
from docstitch.render.word import DocxRenderer


def _first_line(data: bytes) -> str:
    return Document(io.BytesIO(data)).paragraphs[0].text


# =============================================================================
# 순차 렌더링
# =============================================================================


class TestBatchSequential:
    """max_workers=1 (기본)."""

    def test_all_succeed(self, name_date_template: Path, sample_contexts: list[dict]):
        """모두 성공 → 입력 순서대로 데이터."""
        result = BatchRenderer(name_date_template).render_batch(sample_contexts)

        assert [item.index for item in result.items] == [0, 1]
        assert result.failures == []
        assert _first_line(result.items[0].data) == "Name: Alice"
        assert _first_line(result.items[1].data) == "Name: Bob"

    def test_item_failure_is_isolated(self, loop_template: Path):
        """index 1 실패 → 0, 2 는 성공."""
        contexts = [
            {"name": "Alice", "items": [{"label": "pen"}]},
            {"name": "Bob", "items": 42},
            {"name": "Carol", "items": []},
        ]

        result = BatchRenderer(loop_template).render_batch(contexts)

        assert result.failed_indices == [1]
        assert [item.index for item in result.succeeded] == [0, 2]
        assert isinstance(result.items[1].error, RenderError)
        assert result.items[1].error.code == ErrorCodes.LOOP_REQUIRES_SEQUENCE

    def test_raise_for_failures(self, loop_template: Path):
        """실패 집계 → PartialBatchFailureError."""
        result = BatchRenderer(loop_template).render_batch(
            [{"items": "x"}, {"items": []}, {"items": 1.5}]
        )

        with pytest.raises(PartialBatchFailureError) as exc_info:
            result.raise_for_failures()

        assert exc_info.value.failed_indices == [0, 2]
        assert exc_info.value.context["total"] == 3

    def test_raise_for_failures_noop_on_success(
        self, name_date_template: Path, sample_contexts: list[dict]
    ):
        BatchRenderer(name_date_template).render_batch(sample_contexts).raise_for_failures()

    def test_empty_contexts(self, name_date_template: Path):
        """빈 목록 → 빈 결과."""
        result = BatchRenderer(name_date_template).render_batch([])

        assert result.items == []

    def test_matches_single_render(self, name_date_template: Path, sample_contexts: list[dict]):
        """배치 결과 = 단건 렌더링 결과 (바이트 동일)."""
        result = BatchRenderer(name_date_template).render_batch(sample_contexts)

        expected = DocxRenderer(name_date_template).render_bytes(sample_contexts[1])
        assert result.items[1].data == expected

    def test_syntax_error_raised_immediately(self, make_docx: Callable[..., Path]):
        """템플릿 마크업 오류 → 항목별 결과가 아니라 즉시 에러."""
        path = make_docx("broken.docx", ["{% for x in rows %}"])

        with pytest.raises(TemplateSyntaxError):
            BatchRenderer(path).render_batch([{}, {}])

    def test_invalid_max_workers(self, name_date_template: Path):
        with pytest.raises(InvalidOptionError) as exc_info:
            BatchRenderer(name_date_template, max_workers=0)

        assert exc_info.value.context["option"] == "max_workers"


# =============================================================================
# 임시 저장소 연동
# =============================================================================


class TestBatchWithStore:
    """store 가 주어진 경우."""

    def test_success_items_are_refs(
        self, name_date_template: Path, sample_contexts: list[dict], tmp_path: Path
    ):
        """성공 항목은 store 소유 파일 ref."""
        with TransientStore(tmp_path / "transient") as store:
            result = BatchRenderer(name_date_template).render_batch(sample_contexts, store)

            refs = [item.ref for item in result.items]
            assert all(ref is not None and ref.exists() for ref in refs)
            assert store.refs == refs
            assert _first_line(store.read(refs[0])) == "Name: Alice"

        assert not any(ref.exists() for ref in refs)

    def test_failed_items_create_no_file(self, loop_template: Path, tmp_path: Path):
        """실패 항목은 임시 파일을 만들지 않음."""
        with TransientStore(tmp_path / "transient") as store:
            result = BatchRenderer(loop_template).render_batch(
                [{"items": []}, {"items": "bad"}],
                store,
            )

            assert len(store.refs) == 1
            assert result.items[1].ref is None

    def test_store_write_failure_becomes_item_error(
        self,
        name_date_template: Path,
        sample_contexts: list[dict],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """임시 파일 쓰기 실패 → 해당 항목 RenderError."""
        store = TransientStore(tmp_path / "transient")
        original_create = store.create

        def flaky_create(data: bytes, label: str = "doc") -> Path:
            if label == "item_1":
                raise OSError("disk full")
            return original_create(data, label)

        monkeypatch.setattr(store, "create", flaky_create)

        result = BatchRenderer(name_date_template).render_batch(sample_contexts, store)
        store.close()

        assert result.failed_indices == [1]
        assert result.items[1].error.code == ErrorCodes.TRANSIENT_WRITE_FAILED


# =============================================================================
# 병렬 렌더링
# =============================================================================


class TestBatchParallel:
    """max_workers > 1."""

    def test_order_preserved_regardless_of_completion(
        self,
        name_date_template: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """앞 항목이 늦게 끝나도 결과는 index 순."""
        renderer = BatchRenderer(name_date_template, max_workers=4)
        original = renderer.renderer.render_bytes

        def slow_first(context):
            if context["name"] == "P0":
                time.sleep(0.2)
            return original(context)

        monkeypatch.setattr(renderer.renderer, "render_bytes", slow_first)

        contexts = [{"name": f"P{i}", "date": "d"} for i in range(6)]
        result = renderer.render_batch(contexts)

        assert [item.index for item in result.items] == list(range(6))
        assert [_first_line(item.data) for item in result.items] == [
            f"Name: P{i}" for i in range(6)
        ]

    def test_runs_concurrently(self, name_date_template: Path, monkeypatch: pytest.MonkeyPatch):
        """max_workers=2 → 동시에 2개 이상 실행."""
        renderer = BatchRenderer(name_date_template, max_workers=2)
        original = renderer.renderer.render_bytes
        lock = threading.Lock()
        active = 0
        peak = 0

        def tracking(context):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            try:
                return original(context)
            finally:
                with lock:
                    active -= 1

        monkeypatch.setattr(renderer.renderer, "render_bytes", tracking)

        renderer.render_batch([{"name": str(i)} for i in range(4)])

        assert peak == 2

    def test_parallel_failure_isolated(self, loop_template: Path, tmp_path: Path):
        """병렬에서도 실패 index 보고 + 나머지 성공."""
        contexts = [{"items": []} for _ in range(5)]
        contexts[3] = {"items": {"not": "a list"}}

        with TransientStore(tmp_path / "transient") as store:
            result = render_batch(loop_template, contexts, store, max_workers=3)

        assert result.failed_indices == [3]
        assert len(result.succeeded) == 4


# =============================================================================
# RunContext 연동
# =============================================================================


class TestBatchEvents:
    """ctx 이벤트 기록."""

    def test_events_recorded(self, loop_template: Path):
        ctx = create_run_context("render_batch")

        BatchRenderer(loop_template, ctx=ctx).render_batch([{"items": []}, {"items": 1}])

        events = [(e.stage, e.event) for e in ctx.run_log.events]
        assert events[0] == ("render", "started")
        assert ("render", "item_failed") in events
        assert events[-1] == ("render", "finished")
        assert ctx.run_log.events[-1].detail["failed_indices"] == [1]
