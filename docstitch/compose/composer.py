"""
Document Composer: DOCX 여러 개 → DOCX 1개.

규칙:
- 출력 내용 순서 = 입력 순서
- 구분자는 인접한 두 문서 사이에만 (첫 문서 앞, 마지막 문서 뒤 금지)
- 제목(section_titles)은 각 문서 내용 바로 앞에 (첫 문서 포함)
- 각 입력의 첫 번째 구역(section) 내용만 옮긴다, 서식은 해석하지 않고 그대로 이동
- 입력 하나라도 읽기 실패 → 전체 중단, 부분 결과 저장 없음
- 동일 입력 + 동일 옵션 → 동일 바이트

스타일/번호 매기기/이미지/각주 이동은 docxcompose 에 위임한다.
"""

import copy
import io
import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.section import WD_SECTION_START
from docx.enum.style import WD_STYLE_TYPE
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt
from docxcompose.composer import Composer

from docstitch.core.logging import RunContext
from docstitch.core.packaging import atomic_write_bytes, document_to_bytes
from docstitch.domain.constants import MAX_HEADING_LEVEL
from docstitch.domain.errors import (
    DocumentCorruptError,
    DocumentNotFoundError,
    ErrorCodes,
    InsufficientInputError,
    InvalidOptionError,
    MergeError,
    TitleCountMismatchError,
)
from docstitch.domain.schemas import (
    DocumentRef,
    MergeOptions,
    SectionInput,
    SeparatorKind,
)

logger = logging.getLogger(__name__)

STAGE = "merge"

# heading 스타일이 없는 문서에 추가할 때의 글자 크기 (level 1..)
HEADING_FONT_SIZES = {1: 16, 2: 14, 3: 13}
DEFAULT_HEADING_FONT_SIZE = 12


def _describe(ref: DocumentRef, position: int) -> str:
    if isinstance(ref, (bytes, bytearray)):
        return f"<bytes #{position}>"
    return str(ref)


class DocumentComposer:
    """
    DOCX 병합기.

    Usage:
        composer = DocumentComposer()
        data = composer.merge([path_a, path_b], MergeOptions(add_separators=True))
        composer.merge_to([path_a, path_b], output_path)
    """

    def __init__(self, ctx: RunContext | None = None):
        """
        Args:
            ctx: 호출 단위 RunContext (이벤트/경고 기록용)
        """
        self.ctx = ctx

    # =========================================================================
    # Public API
    # =========================================================================

    def merge(
        self,
        documents: Sequence[DocumentRef],
        options: MergeOptions | None = None,
    ) -> bytes:
        """
        문서 목록을 순서대로 병합.

        Args:
            documents: 파일 경로 또는 DOCX 바이트 목록 (2개 이상)
            options: 구분자/제목 옵션

        Returns:
            병합된 DOCX 바이트

        Raises:
            InsufficientInputError: 입력 2개 미만
            TitleCountMismatchError: 제목 수 ≠ 문서 수
            InvalidOptionError: heading_level 범위 밖
            DocumentNotFoundError: 경로에 파일 없음 (index, path 포함)
            DocumentCorruptError: DOCX 로 열 수 없음 (index, path 포함)
        """
        options = options or MergeOptions()
        self._check_inputs(documents, options)

        # 전부 먼저 연다: 하나라도 실패하면 병합 시작 전에 중단
        loaded = [self._load(ref, position) for position, ref in enumerate(documents)]

        if self.ctx:
            self.ctx.event(STAGE, "started", count=len(loaded))

        titles = options.section_titles
        master = loaded[0]
        self._keep_first_section(master, 0)
        composer = Composer(master)

        if titles:
            heading = self._add_heading(master, titles[0], options.heading_level)
            master.element.body.insert(0, heading)

        for position, doc in enumerate(loaded[1:], start=1):
            self._keep_first_section(doc, position)

            if options.add_separators:
                self._add_separator(master, options.separator)
            if titles:
                self._add_heading(master, titles[position], options.heading_level)

            try:
                composer.append(doc)
            except Exception as e:
                raise DocumentCorruptError(
                    index=position,
                    path=_describe(documents[position], position),
                    error=str(e),
                ) from e

        try:
            data = document_to_bytes(composer.doc)
        except Exception as e:
            raise MergeError(count=len(loaded), error=str(e)) from e

        if self.ctx:
            self.ctx.event(STAGE, "finished", count=len(loaded), size=len(data))
        return data

    def merge_with_sections(
        self,
        sections: Sequence[SectionInput | Mapping[str, Any] | tuple[DocumentRef, str]],
        options: MergeOptions | None = None,
    ) -> bytes:
        """
        제목 붙은 병합: 각 문서 내용 바로 앞에 제목 단락 삽입.

        Args:
            sections: SectionInput, {"doc": ..., "title": ...} 또는 (doc, title)
            options: 구분자 옵션 (section_titles 는 sections 로 대체됨)

        Returns:
            병합된 DOCX 바이트
        """
        normalized = [self._to_section(item) for item in sections]
        options = replace(
            options or MergeOptions(),
            section_titles=[item.title for item in normalized],
        )
        return self.merge([item.doc for item in normalized], options)

    def merge_to(
        self,
        documents: Sequence[DocumentRef],
        output_path: Path,
        options: MergeOptions | None = None,
    ) -> Path:
        """
        병합 결과를 파일로 저장 (원자적, 실패 시 파일 생성 안 함).

        Returns:
            저장된 파일 경로
        """
        data = self.merge(documents, options)
        return atomic_write_bytes(output_path, data)

    # =========================================================================
    # Input handling
    # =========================================================================

    @staticmethod
    def _check_inputs(documents: Sequence[DocumentRef], options: MergeOptions) -> None:
        if len(documents) < 2:
            raise InsufficientInputError(count=len(documents), required=2)

        titles = options.section_titles
        if titles is not None and len(titles) != len(documents):
            raise TitleCountMismatchError(
                documents=len(documents),
                titles=len(titles),
            )

        if not 1 <= options.heading_level <= MAX_HEADING_LEVEL:
            raise InvalidOptionError(
                option="heading_level",
                value=options.heading_level,
                allowed=f"1..{MAX_HEADING_LEVEL}",
            )

    @staticmethod
    def _to_section(item: Any) -> SectionInput:
        if isinstance(item, SectionInput):
            return item
        if isinstance(item, Mapping):
            return SectionInput(doc=item["doc"], title=str(item["title"]))
        doc, title = item
        return SectionInput(doc=doc, title=str(title))

    @staticmethod
    def _load(ref: DocumentRef, position: int) -> DocxDocument:
        """
        Raises:
            DocumentNotFoundError, DocumentCorruptError
        """
        label = _describe(ref, position)

        if isinstance(ref, (bytes, bytearray)):
            source: Any = io.BytesIO(ref)
        else:
            path = Path(ref)
            if not path.is_file():
                raise DocumentNotFoundError(index=position, path=label)
            source = str(path)

        try:
            return Document(source)
        except Exception as e:
            raise DocumentCorruptError(index=position, path=label, error=str(e)) from e

    # =========================================================================
    # Section handling
    # =========================================================================

    def _keep_first_section(self, doc: DocxDocument, position: int) -> None:
        """
        첫 번째 구역 이후 내용 제거.

        첫 구역의 sectPr 는 본문 마지막 sectPr 자리로 옮겨
        페이지 설정을 유지한다.
        """
        body = doc.element.body
        first_break = None
        dropped = 0

        for child in list(body.iterchildren()):
            if first_break is not None:
                if child.tag == qn("w:sectPr"):
                    continue
                body.remove(child)
                dropped += 1
            elif child.tag == qn("w:p"):
                found = child.xpath("./w:pPr/w:sectPr")
                if found:
                    first_break = found[0]

        if first_break is None:
            return

        holder = first_break.getparent().getparent()
        first_break.getparent().remove(first_break)
        # 구역 나누기만 담고 있던 빈 단락은 함께 제거
        if not holder.xpath("./w:r | ./w:hyperlink"):
            body.remove(holder)

        body_sect_pr = body.sectPr
        if body_sect_pr is not None:
            body.replace(body_sect_pr, first_break)
        else:
            body.append(first_break)

        if dropped:
            message = f"Document {position}: {dropped} element(s) after first section dropped"
            if self.ctx:
                self.ctx.warn(ErrorCodes.TRAILING_SECTIONS_DROPPED, STAGE, message, position)
            else:
                logger.warning(message)

    # =========================================================================
    # Separator / heading
    # =========================================================================

    @staticmethod
    def _add_separator(master: DocxDocument, kind: SeparatorKind) -> None:
        """master 끝(본문 sectPr 앞)에 구분자 단락 추가."""
        if kind is SeparatorKind.PAGE_BREAK:
            master.add_page_break()
            return

        paragraph = master.add_paragraph()
        if kind is SeparatorKind.BLANK_LINE:
            return

        body_sect_pr = master.element.body.sectPr
        sect_pr = (
            copy.deepcopy(body_sect_pr)
            if body_sect_pr is not None
            else OxmlElement("w:sectPr")
        )
        sect_pr.start_type = WD_SECTION_START.NEW_PAGE
        paragraph._p.set_sectPr(sect_pr)

    @staticmethod
    def _ensure_heading_style(master: DocxDocument, level: int) -> str:
        name = f"Heading {level}"
        if name in master.styles:
            return name

        style = master.styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
        if "Normal" in master.styles:
            style.base_style = master.styles["Normal"]
        style.font.bold = True
        style.font.size = Pt(HEADING_FONT_SIZES.get(level, DEFAULT_HEADING_FONT_SIZE))
        style.paragraph_format.keep_with_next = True
        return name

    def _add_heading(self, master: DocxDocument, title: str, level: int) -> Any:
        """제목 단락 추가 후 해당 w:p 요소 반환."""
        style_name = self._ensure_heading_style(master, level)
        paragraph = master.add_paragraph(title, style=style_name)
        return paragraph._p


def merge_documents(
    documents: Sequence[DocumentRef],
    options: MergeOptions | None = None,
    ctx: RunContext | None = None,
) -> bytes:
    """문서 병합 (간편 함수)."""
    return DocumentComposer(ctx).merge(documents, options)

