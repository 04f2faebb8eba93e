"""
Pytest fixtures for docstitch tests.

구성:
- DOCX 템플릿/입력 문서 생성 (python-docx)
- 병합 결과 본문을 토큰 목록으로 읽는 헬퍼
"""

import io
from collections.abc import Callable
from pathlib import Path

import pytest
from docx import Document

PAGE = "<PAGE>"
SECTION = "<SECTION>"
BLANK = "<BLANK>"


# =============================================================================
# Document Factories
# =============================================================================

@pytest.fixture
def make_docx(tmp_path: Path) -> Callable[..., Path]:
    """
    단락 목록으로 DOCX 파일 생성.

    Usage:
        path = make_docx("a.docx", ["line 1", "line 2"])
    """
    def _make(name: str, paragraphs: list[str]) -> Path:
        path = tmp_path / name
        doc = Document()
        for text in paragraphs:
            doc.add_paragraph(text)
        doc.save(path)
        return path

    return _make


@pytest.fixture
def name_date_template(make_docx: Callable[..., Path]) -> Path:
    """
    placeholder: {{ name }}, {{ date }}
    """
    return make_docx(
        "template_name_date.docx",
        ["Name: {{ name }}", "Date: {{ date }}"],
    )


@pytest.fixture
def loop_template(make_docx: Callable[..., Path]) -> Path:
    """
    placeholder: {{ name }}, loop 대상: items
    """
    return make_docx(
        "template_loop.docx",
        [
            "Customer: {{ name }}",
            "Items: {% for item in items %}{{ item.label }};{% endfor %}",
        ],
    )


@pytest.fixture
def sample_contexts() -> list[dict]:
    """두 사람 컨텍스트."""
    return [
        {"name": "Alice", "date": "2026-02-13"},
        {"name": "Bob", "date": "2026-02-14"},
    ]


@pytest.fixture
def three_docs(make_docx: Callable[..., Path]) -> list[Path]:
    """병합 입력 문서 3개 (A, B, C)."""
    return [
        make_docx("doc_a.docx", ["Doc A first", "Doc A second"]),
        make_docx("doc_b.docx", ["Doc B first"]),
        make_docx("doc_c.docx", ["Doc C first", "Doc C second"]),
    ]


# =============================================================================
# Readers
# =============================================================================

def read_body_tokens(source: bytes | Path) -> list[str]:
    """
    본문 단락을 토큰으로 변환.

    - 페이지 나눔이 있는 단락 → <PAGE>
    - 구역 나누기(pPr/sectPr) 단락 → <SECTION>
    - 빈 단락 → <BLANK>
    - 그 외 → 단락 텍스트
    """
    doc = Document(io.BytesIO(source) if isinstance(source, bytes) else str(source))
    tokens = []
    for paragraph in doc.paragraphs:
        p = paragraph._p
        if p.xpath('.//w:br[@w:type="page"]'):
            tokens.append(PAGE)
        elif p.xpath("./w:pPr/w:sectPr"):
            tokens.append(SECTION)
        elif not paragraph.text.strip():
            tokens.append(BLANK)
        else:
            tokens.append(paragraph.text)
    return tokens


@pytest.fixture
def body_tokens() -> Callable[[bytes | Path], list[str]]:
    """read_body_tokens 를 fixture 로 제공."""
    return read_body_tokens


@pytest.fixture
def paragraph_styles() -> Callable[[bytes], list[tuple[str, str]]]:
    """(텍스트, 스타일 이름) 목록."""
    def _read(data: bytes) -> list[tuple[str, str]]:
        doc = Document(io.BytesIO(data))
        return [(p.text, p.style.name) for p in doc.paragraphs if p.text.strip()]

    return _read
