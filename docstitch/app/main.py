"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uvicorn docstitch.app.main:app --reload
- 프로덕션: uvicorn docstitch.app.main:app
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docstitch.app.errors import status_for
from docstitch.app.routes import documents, templates
from docstitch.core.config import PipelineSettings, load_config
from docstitch.core.logging import configure_logging
from docstitch.domain.errors import DocstitchError

# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    애플리케이션 생명주기 관리.

    시작 시: 설정 로드, 로깅 설정
    """
    config = load_config()
    settings = PipelineSettings.from_config(config)
    configure_logging(settings.log_level)

    app.state.config = config
    app.state.settings = settings

    yield


# =============================================================================
# App Instance
# =============================================================================

app = FastAPI(
    title="docstitch",
    description="DOCX 템플릿 렌더링 + 문서 병합 API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(DocstitchError)
async def docstitch_error_handler(request: Request, exc: DocstitchError) -> JSONResponse:
    """에러 종류 → HTTP status."""
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": exc.to_dict()},
    )


# =============================================================================
# Routes
# =============================================================================

app.include_router(documents.api_router, prefix="/api", tags=["Documents API"])
app.include_router(templates.api_router, prefix="/api", tags=["Templates API"])


@app.get("/health")
async def health() -> dict[str, Any]:
    """헬스 체크."""
    return {"status": "ok"}


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docstitch.app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
