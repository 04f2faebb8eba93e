"""
Documents Routes: 렌더링 / 일괄 렌더링 / 병합 / 파이프라인.

- POST /api/render        → 템플릿 1개 + 컨텍스트 1개 → DOCX
- POST /api/render-batch  → 템플릿 1개 + 컨텍스트 N개 → 항목별 결과 (JSON)
- POST /api/merge         → DOCX 2개 이상 → DOCX
- POST /api/pipeline      → 템플릿 + 컨텍스트 N개 → 병합된 DOCX

라우트는 입력 파싱/응답 변환만 담당하고 나머지는 core 에 위임한다.
"""

import json
from dataclasses import replace
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, Response

from docstitch.compose.composer import DocumentComposer
from docstitch.core.config import PipelineSettings
from docstitch.core.ids import output_filename
from docstitch.core.logging import create_run_context
from docstitch.core.packaging import atomic_write_bytes
from docstitch.domain.constants import (
    BATCH_DIR_PREFIX,
    DOCX_MIME_TYPE,
    MERGED_FILENAME_PREFIX,
    PIPELINE_FILENAME_PREFIX,
    RENDERED_FILENAME_PREFIX,
)
from docstitch.domain.errors import DocstitchError
from docstitch.pipeline.orchestrator import DocumentPipeline
from docstitch.render.batch import BatchRenderer
from docstitch.render.word import DocxRenderer, Template

api_router = APIRouter()


# =============================================================================
# Helpers
# =============================================================================


def get_settings(request: Request) -> PipelineSettings:
    settings = getattr(request.app.state, "settings", None)
    return settings or PipelineSettings()


def parse_json_field(raw: str | None, field: str, expected: type, default: Any) -> Any:
    """
    Form 필드 JSON 파싱.

    Raises:
        HTTPException: 400 (JSON 아님 또는 타입 불일치)
    """
    if raw is None or raw == "":
        return default
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=400,
            detail=f"{field} must be valid JSON",
        ) from None
    if not isinstance(value, expected):
        raise HTTPException(
            status_code=400,
            detail=f"{field} must be a JSON {expected.__name__}",
        )
    return value


def parse_contexts(raw: str | None) -> list[dict[str, Any]]:
    contexts = parse_json_field(raw, "contexts", list, [])
    if not contexts:
        raise HTTPException(status_code=400, detail="Invalid contexts array")
    return contexts


def parse_titles(raw: str | None) -> list[str] | None:
    titles = parse_json_field(raw, "section_titles", list, None)
    return [str(title) for title in titles] if titles is not None else None


async def read_template(upload: UploadFile) -> Template:
    data = await upload.read()
    return Template.from_bytes(data, name=upload.filename or "template.docx")


def docx_response(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type=DOCX_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# API Routes
# =============================================================================


@api_router.post("/render")
async def render_document(
    request: Request,
    template: UploadFile = File(...),
    context: str | None = Form(None),
) -> Response:
    """템플릿 1개 렌더링."""
    data = parse_json_field(context, "context", dict, {})
    tpl = await read_template(template)
    run = create_run_context("render", get_settings(request))

    try:
        result = await run_in_threadpool(DocxRenderer(tpl).render_bytes, data)
    except DocstitchError as e:
        run.finish(False, e)
        raise
    run.finish(True)

    return docx_response(result, output_filename(RENDERED_FILENAME_PREFIX, run.run_id))


@api_router.post("/render-batch")
async def render_batch_documents(
    request: Request,
    template: UploadFile = File(...),
    contexts: str | None = Form(None),
) -> dict[str, Any]:
    """
    컨텍스트 N개 일괄 렌더링.

    성공 항목은 output_dir/batch_<run_id>/ 아래에 저장된다.
    """
    items = parse_contexts(contexts)
    tpl = await read_template(template)
    settings = get_settings(request)
    run = create_run_context("render_batch", settings)

    try:
        renderer = BatchRenderer(tpl, max_workers=settings.max_workers, ctx=run)
        batch = await run_in_threadpool(renderer.render_batch, items)
    except DocstitchError as e:
        run.finish(False, e)
        raise

    batch_dir = settings.output_dir / f"{BATCH_DIR_PREFIX}_{run.run_id}"
    documents: list[dict[str, Any]] = []
    for item in batch.items:
        entry = item.to_dict()
        if item.ok and item.data is not None:
            path = atomic_write_bytes(batch_dir / f"doc_{item.index}.docx", item.data)
            entry["path"] = str(path)
        documents.append(entry)

    run.finish(True)
    return {
        "success": not batch.failures,
        "run_id": run.run_id,
        "document_count": len(batch.succeeded),
        "failed_indices": batch.failed_indices,
        "documents": documents,
    }


@api_router.post("/merge")
async def merge_uploaded_documents(
    request: Request,
    documents: list[UploadFile] = File(...),
    add_separators: bool | None = Form(None),
    section_titles: str | None = Form(None),
) -> Response:
    """업로드한 DOCX 병합 (2개 이상)."""
    settings = get_settings(request)
    options = settings.merge_options(parse_titles(section_titles))
    if add_separators is not None:
        options = replace(options, add_separators=add_separators)

    payloads = [await upload.read() for upload in documents]
    run = create_run_context("merge", settings)

    try:
        result = await run_in_threadpool(DocumentComposer(run).merge, payloads, options)
    except DocstitchError as e:
        run.finish(False, e)
        raise
    run.finish(True)

    return docx_response(result, output_filename(MERGED_FILENAME_PREFIX, run.run_id))


@api_router.post("/pipeline")
async def run_pipeline(
    request: Request,
    template: UploadFile = File(...),
    contexts: str | None = Form(None),
    add_separators: bool | None = Form(None),
    best_effort: bool | None = Form(None),
    section_titles: str | None = Form(None),
) -> FileResponse:
    """전체 파이프라인: 렌더링 → 병합 → 다운로드."""
    items = parse_contexts(contexts)
    titles = parse_titles(section_titles)
    tpl = await read_template(template)
    settings = get_settings(request)

    options = settings.pipeline_options(titles)
    if add_separators is not None:
        options = replace(options, merge=replace(options.merge, add_separators=add_separators))
    if best_effort is not None:
        options = replace(options, best_effort=best_effort)

    run = create_run_context("pipeline", settings)
    output_path = settings.output_dir / output_filename(PIPELINE_FILENAME_PREFIX, run.run_id)

    pipeline = DocumentPipeline(tpl, settings)
    result = await run_in_threadpool(
        pipeline.generate_and_merge,
        items,
        output_path,
        None,
        options,
        run,
    )

    return FileResponse(
        path=result.output_path,
        media_type=DOCX_MIME_TYPE,
        filename=result.output_path.name,
        headers={"X-Run-Id": result.run_id},
    )
