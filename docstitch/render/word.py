"""
Word (DOCX) 렌더러: docxtpl 기반.

- placeholder: {{name}}, {{date}} 등 Jinja2 문법
- loop: {% for row in rows %} ... {% endfor %}
- 동일 (template, context) → 동일 바이트 (생성 시각 등 주입 금지)
"""

import io
import zipfile
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any

import jinja2
from docxtpl import DocxTemplate
from jinja2 import meta, nodes

from docstitch.core.packaging import atomic_write_bytes, document_to_bytes
from docstitch.domain.context import check_loop_targets, normalize_context
from docstitch.domain.errors import (
    DocstitchError,
    ErrorCodes,
    RenderError,
    TemplateCorruptError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)

# =============================================================================
# Template
# =============================================================================


@dataclass(frozen=True)
class Template:
    """
    DOCX 템플릿 리소스 (불변).

    렌더링마다 source 바이트에서 새 DocxTemplate 을 연다.

    Usage:
        template = Template.from_path(Path("invoice.docx"))
        template.placeholders()  # ["date", "name"]
    """
    source: bytes = field(repr=False)
    name: str = "<bytes>"

    @classmethod
    def from_path(cls, path: Path) -> "Template":
        """
        Raises:
            TemplateNotFoundError: 파일 없음/읽기 실패
            TemplateCorruptError: zip 패키지가 아님
        """
        if not path.is_file():
            raise TemplateNotFoundError(path=str(path))

        try:
            data = path.read_bytes()
        except OSError as e:
            raise TemplateNotFoundError(path=str(path), error=str(e)) from e

        return cls.from_bytes(data, name=str(path))

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "<bytes>") -> "Template":
        """
        Raises:
            TemplateCorruptError: zip 패키지가 아님
        """
        if not data or not zipfile.is_zipfile(io.BytesIO(data)):
            raise TemplateCorruptError(template=name, error="not a zip package")
        return cls(source=data, name=name)

    def open(self) -> DocxTemplate:
        """
        새 DocxTemplate 인스턴스 (렌더링 1회용).

        Raises:
            TemplateCorruptError: Word 패키지로 열 수 없음
        """
        doc = DocxTemplate(io.BytesIO(self.source))
        try:
            doc.init_docx()
        except Exception as e:
            raise TemplateCorruptError(template=self.name, error=str(e)) from e
        return doc

    @cached_property
    def _ast(self) -> nodes.Template:
        """본문 + 머리글/바닥글 XML 을 Jinja2 AST 로 파싱."""
        doc = self.open()

        xml = doc.patch_xml(doc.get_xml())
        for uri in (doc.HEADER_URI, doc.FOOTER_URI):
            for _, part in doc.get_headers_footers(uri):
                xml += doc.patch_xml(doc.get_part_xml(part))

        try:
            return jinja2.Environment().parse(xml)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(
                template=self.name,
                line=e.lineno,
                error=e.message,
            ) from e

    def placeholders(self) -> list[str]:
        """
        템플릿에서 사용된 최상위 placeholder 이름 (정렬).

        loop 본문 안에서 참조된 최상위 이름도 포함된다.
        loop 변수 자체(item 등)는 포함되지 않는다.

        Raises:
            TemplateSyntaxError
        """
        return sorted(meta.find_undeclared_variables(self._ast))

    def loop_targets(self) -> set[str]:
        """`{% for x in NAME %}` 의 NAME 중 컨텍스트에서 와야 하는 이름."""
        undeclared = meta.find_undeclared_variables(self._ast)
        return {
            node.iter.name
            for node in self._ast.find_all(nodes.For)
            if isinstance(node.iter, nodes.Name) and node.iter.name in undeclared
        }


def resolve_template(template: "Template | Path | bytes") -> Template:
    """Template / 경로 / 바이트 → Template."""
    if isinstance(template, Template):
        return template
    if isinstance(template, bytes):
        return Template.from_bytes(template)
    return Template.from_path(Path(template))


# =============================================================================
# Renderer
# =============================================================================


class DocxRenderer:
    """
    Word 문서 렌더러.

    Usage:
        renderer = DocxRenderer(template_path)
        data = renderer.render_bytes({"name": "Alice"})
        renderer.render({"name": "Alice"}, output_path)
    """

    def __init__(self, template: Template | Path | bytes):
        """
        Args:
            template: Template, DOCX 경로 또는 DOCX 바이트

        Raises:
            TemplateNotFoundError, TemplateCorruptError
        """
        self.template = resolve_template(template)

    def render_bytes(self, context: dict[str, Any] | None = None) -> bytes:
        """
        템플릿에 컨텍스트를 채워 DOCX 바이트 생성.

        Args:
            context: placeholder 이름 → 값 (None 이면 빈 dict)

        Returns:
            렌더링된 DOCX 바이트

        Raises:
            TemplateSyntaxError: 마크업 파싱 실패
            RenderError: 컨텍스트 형태 오류, 치환 실패
        """
        data = normalize_context(context)
        check_loop_targets(data, self.template.loop_targets())

        doc = self.template.open()
        try:
            doc.render(data, autoescape=True)
            return document_to_bytes(doc)

        except DocstitchError:
            raise
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(
                template=self.template.name,
                line=e.lineno,
                error=e.message,
            ) from e
        except Exception as e:
            raise RenderError(
                ErrorCodes.RENDER_FAILED,
                template=self.template.name,
                error=str(e),
            ) from e

    def render(
        self,
        context: dict[str, Any] | None,
        output_path: Path,
    ) -> Path:
        """
        렌더링 결과를 파일로 저장 (원자적).

        Returns:
            저장된 파일 경로
        """
        data = self.render_bytes(context)
        return atomic_write_bytes(output_path, data)

    def get_placeholders(self) -> list[str]:
        return self.template.placeholders()


def render_docx(
    template: Template | Path | bytes,
    context: dict[str, Any] | None = None,
) -> bytes:
    """
    Word 문서 생성 (간편 함수).

    Returns:
        렌더링된 DOCX 바이트
    """
    return DocxRenderer(template).render_bytes(context)
