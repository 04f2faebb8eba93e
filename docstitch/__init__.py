"""
docstitch: DOCX 템플릿 렌더링 + 문서 병합.

흐름:
- 템플릿 + 컨텍스트 → 렌더링 (render)
- 컨텍스트 N개 → 문서 N개 (render_batch)
- 문서 N개 → 문서 1개 (merge)
- 위 과정을 한 번에 (generate_and_merge)
"""

from docstitch.compose import DocumentComposer, merge_documents
from docstitch.pipeline import DocumentPipeline, generate_and_merge
from docstitch.render import BatchRenderer, DocxRenderer, Template, render_batch, render_docx
from docstitch.templates import TemplateValidator, validate_template

__version__ = "0.1.0"

__all__ = [
    "Template",
    "DocxRenderer",
    "BatchRenderer",
    "DocumentComposer",
    "DocumentPipeline",
    "TemplateValidator",
    "render_docx",
    "render_batch",
    "merge_documents",
    "generate_and_merge",
    "validate_template",
]
