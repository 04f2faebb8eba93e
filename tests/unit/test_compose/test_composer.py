"""
test_composer.py - DOCX 병합 테스트

검증 항목:
- 입력 수 검증 (2개 미만 거절)
- 출력 순서 = 입력 순서
- 구분자는 인접 문서 사이에만
- 제목은 각 문서 내용 바로 앞
- 입력 읽기 실패 시 index/path 보고, 부분 결과 없음
- 동일 입력 → 동일 바이트
"""

import io
from pathlib import Path

import pytest
from docx import Document
from docx.enum.section import WD_SECTION

from docstitch.compose.composer import DocumentComposer, merge_documents
from docstitch.core.logging import create_run_context
from docstitch.domain.errors import (
    DocumentCorruptError,
    DocumentNotFoundError,
    ErrorCodes,
    InsufficientInputError,
    InvalidOptionError,
    MergeError,
    NotFoundError,
    TitleCountMismatchError,
)
from docstitch.domain.schemas import MergeOptions, SectionInput, SeparatorKind

PAGE = "<PAGE>"
SECTION = "<SECTION>"
BLANK = "<BLANK>"

A_TOKENS = ["Doc A first", "Doc A second"]
B_TOKENS = ["Doc B first"]
C_TOKENS = ["Doc C first", "Doc C second"]


# =============================================================================
# 입력 검증
# =============================================================================


class TestMergeInputValidation:
    """입력 수/옵션 검증."""

    def test_empty_input(self):
        """0개 → InsufficientInputError."""
        with pytest.raises(InsufficientInputError) as exc_info:
            DocumentComposer().merge([])

        assert exc_info.value.code == ErrorCodes.INSUFFICIENT_INPUT
        assert exc_info.value.context == {"count": 0, "required": 2}

    def test_single_input(self, three_docs: list[Path]):
        """1개 → InsufficientInputError (merge 불가)."""
        with pytest.raises(InsufficientInputError):
            DocumentComposer().merge(three_docs[:1])

    def test_insufficient_is_merge_error(self):
        with pytest.raises(MergeError):
            merge_documents([])

    def test_title_count_mismatch(self, three_docs: list[Path]):
        """제목 수 ≠ 문서 수 → TitleCountMismatchError."""
        options = MergeOptions(section_titles=["Only one"])

        with pytest.raises(TitleCountMismatchError) as exc_info:
            DocumentComposer().merge(three_docs, options)

        assert exc_info.value.context == {"documents": 3, "titles": 1}

    def test_heading_level_out_of_range(self, three_docs: list[Path]):
        with pytest.raises(InvalidOptionError) as exc_info:
            DocumentComposer().merge(three_docs, MergeOptions(heading_level=0))

        assert exc_info.value.code == ErrorCodes.INVALID_OPTION
        assert exc_info.value.context["option"] == "heading_level"


# =============================================================================
# 순서 / 구분자
# =============================================================================


class TestMergeOrderAndSeparators:
    """출력 순서 + 구분자 위치."""

    def test_order_without_separators(self, three_docs: list[Path], body_tokens):
        """구분자 없음 → 내용만 입력 순서로."""
        data = DocumentComposer().merge(three_docs)

        assert body_tokens(data) == A_TOKENS + B_TOKENS + C_TOKENS

    def test_reversed_input_reverses_output(self, three_docs: list[Path], body_tokens):
        data = DocumentComposer().merge(list(reversed(three_docs)))

        assert body_tokens(data) == C_TOKENS + B_TOKENS + A_TOKENS

    def test_page_break_between_adjacent_only(self, three_docs: list[Path], body_tokens):
        """N개 문서 → 구분자 N-1개 (앞/뒤 없음)."""
        data = DocumentComposer().merge(three_docs, MergeOptions(add_separators=True))

        assert body_tokens(data) == A_TOKENS + [PAGE] + B_TOKENS + [PAGE] + C_TOKENS

    def test_blank_line_separator(self, three_docs: list[Path], body_tokens):
        options = MergeOptions(add_separators=True, separator=SeparatorKind.BLANK_LINE)

        data = DocumentComposer().merge(three_docs[:2], options)

        assert body_tokens(data) == A_TOKENS + [BLANK] + B_TOKENS

    def test_section_break_separator(self, three_docs: list[Path], body_tokens):
        """구역 나누기 → 새 구역은 다음 페이지에서 시작."""
        options = MergeOptions(add_separators=True, separator=SeparatorKind.SECTION_BREAK)

        data = DocumentComposer().merge(three_docs, options)

        assert body_tokens(data) == A_TOKENS + [SECTION] + B_TOKENS + [SECTION] + C_TOKENS
        sections = Document(io.BytesIO(data)).sections
        assert len(sections) == 3
        assert sections[1].start_type == WD_SECTION.NEW_PAGE

    def test_bytes_input(self, three_docs: list[Path], body_tokens):
        """경로 대신 바이트 입력도 동일 결과."""
        from_paths = DocumentComposer().merge(three_docs[:2])
        from_bytes = DocumentComposer().merge([p.read_bytes() for p in three_docs[:2]])

        assert body_tokens(from_bytes) == body_tokens(from_paths)

    def test_deterministic(self, three_docs: list[Path]):
        """동일 입력 + 동일 옵션 → 동일 바이트."""
        options = MergeOptions(add_separators=True, section_titles=["A", "B", "C"])

        first = DocumentComposer().merge(three_docs, options)
        second = DocumentComposer().merge(three_docs, options)

        assert first == second


# =============================================================================
# 제목 (section_titles / merge_with_sections)
# =============================================================================


class TestMergeSectionTitles:
    """각 문서 앞 제목 단락."""

    def test_titles_before_each_document(self, three_docs: list[Path], body_tokens):
        """첫 문서 포함, 각 문서 내용 바로 앞."""
        options = MergeOptions(section_titles=["Cover", "Body", "Appendix"])

        data = DocumentComposer().merge(three_docs, options)

        assert body_tokens(data) == (
            ["Cover"] + A_TOKENS + ["Body"] + B_TOKENS + ["Appendix"] + C_TOKENS
        )

    def test_title_follows_separator(self, three_docs: list[Path], body_tokens):
        """구분자 → 제목 → 내용 순."""
        options = MergeOptions(add_separators=True, section_titles=["Cover", "Body"])

        data = DocumentComposer().merge(three_docs[:2], options)

        assert body_tokens(data) == ["Cover"] + A_TOKENS + [PAGE, "Body"] + B_TOKENS

    def test_heading_style(self, three_docs: list[Path], paragraph_styles):
        """제목은 Heading N 스타일."""
        options = MergeOptions(section_titles=["Cover", "Body"], heading_level=2)

        data = DocumentComposer().merge(three_docs[:2], options)

        styles = dict(paragraph_styles(data))
        assert styles["Cover"] == "Heading 2"
        assert styles["Body"] == "Heading 2"
        assert styles["Doc A first"] == "Normal"

    def test_merge_with_sections_accepts_all_forms(self, three_docs: list[Path], body_tokens):
        """SectionInput / dict / tuple 혼용."""
        sections = [
            SectionInput(doc=three_docs[0], title="Cover"),
            {"doc": three_docs[1], "title": "Body"},
            (three_docs[2], "Appendix"),
        ]

        data = DocumentComposer().merge_with_sections(sections)

        assert body_tokens(data) == (
            ["Cover"] + A_TOKENS + ["Body"] + B_TOKENS + ["Appendix"] + C_TOKENS
        )

    def test_merge_with_sections_keeps_separator_option(
        self, three_docs: list[Path], body_tokens
    ):
        sections = [SectionInput(three_docs[0], "Cover"), SectionInput(three_docs[1], "Body")]

        data = DocumentComposer().merge_with_sections(
            sections, MergeOptions(add_separators=True)
        )

        assert body_tokens(data) == ["Cover"] + A_TOKENS + [PAGE, "Body"] + B_TOKENS


# =============================================================================
# 입력 실패
# =============================================================================


class TestMergeInputFailures:
    """읽기 실패 → 전체 중단, index/path 보고."""

    def test_missing_document(self, three_docs: list[Path], tmp_path: Path):
        missing = tmp_path / "missing.docx"

        with pytest.raises(DocumentNotFoundError) as exc_info:
            DocumentComposer().merge([three_docs[0], missing, three_docs[2]])

        assert exc_info.value.context["index"] == 1
        assert exc_info.value.context["path"] == str(missing)
        assert isinstance(exc_info.value, NotFoundError)
        assert isinstance(exc_info.value, MergeError)

    def test_corrupt_document(self, three_docs: list[Path], tmp_path: Path):
        broken = tmp_path / "broken.docx"
        broken.write_bytes(b"this is not a zip")

        with pytest.raises(DocumentCorruptError) as exc_info:
            DocumentComposer().merge([three_docs[0], three_docs[1], broken])

        assert exc_info.value.context["index"] == 2
        assert exc_info.value.code == ErrorCodes.DOCUMENT_CORRUPT

    def test_corrupt_bytes(self, three_docs: list[Path]):
        with pytest.raises(DocumentCorruptError) as exc_info:
            DocumentComposer().merge([b"junk", three_docs[0]])

        assert exc_info.value.context["index"] == 0
        assert exc_info.value.context["path"] == "<bytes #0>"

    def test_merge_to_writes_nothing_on_failure(self, three_docs: list[Path], tmp_path: Path):
        """실패 시 출력 파일 없음."""
        output_path = tmp_path / "out" / "merged.docx"

        with pytest.raises(DocumentNotFoundError):
            DocumentComposer().merge_to([three_docs[0], tmp_path / "nope.docx"], output_path)

        assert not output_path.exists()

    def test_merge_to_success(self, three_docs: list[Path], tmp_path: Path, body_tokens):
        output_path = tmp_path / "out" / "merged.docx"

        result = DocumentComposer().merge_to(three_docs[:2], output_path)

        assert result == output_path
        assert body_tokens(output_path) == A_TOKENS + B_TOKENS


# =============================================================================
# 구역(section) 처리
# =============================================================================


class TestMergeSections:
    """여러 구역을 가진 입력 → 첫 구역만."""

    @pytest.fixture
    def two_section_doc(self, tmp_path: Path) -> Path:
        path = tmp_path / "two_sections.docx"
        doc = Document()
        doc.add_paragraph("Section one")
        doc.add_section(WD_SECTION.NEW_PAGE)
        doc.add_paragraph("Section two")
        doc.save(path)
        return path

    def test_trailing_sections_dropped(
        self, two_section_doc: Path, three_docs: list[Path], body_tokens
    ):
        data = DocumentComposer().merge([two_section_doc, three_docs[1]])

        assert body_tokens(data) == ["Section one"] + B_TOKENS

    def test_trailing_sections_warning(self, two_section_doc: Path, three_docs: list[Path]):
        """잘려나간 내용은 경고로 기록 (index 포함)."""
        ctx = create_run_context("merge")

        DocumentComposer(ctx).merge([three_docs[0], two_section_doc])

        warnings = ctx.run_log.warnings
        assert [w.code for w in warnings] == [ErrorCodes.TRAILING_SECTIONS_DROPPED]
        assert warnings[0].index == 1
        assert warnings[0].stage == "merge"

    def test_single_section_no_warning(self, three_docs: list[Path]):
        ctx = create_run_context("merge")

        DocumentComposer(ctx).merge(three_docs)

        assert ctx.run_log.warnings == []
        assert [e.event for e in ctx.run_log.events] == ["started", "finished"]

