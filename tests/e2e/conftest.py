"""
E2E (HTTP API) 테스트용 fixture.

- TestClient 는 lifespan 을 실행 (설정 로드)
- 출력 경로는 테스트별 tmp_path 로 교체
"""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docstitch.app.main import app
from docstitch.core.config import PipelineSettings


@pytest.fixture
def outputs_dir(tmp_path: Path) -> Path:
    return tmp_path / "outputs"


@pytest.fixture
def client(outputs_dir: Path) -> Generator[TestClient, None, None]:
    """FastAPI TestClient (출력은 tmp_path 아래)."""
    with TestClient(app) as client:
        app.state.settings = PipelineSettings(output_dir=outputs_dir)
        yield client

