"""
Render layer: DOCX 템플릿 렌더링.

역할:
- 템플릿 + 컨텍스트 → 문서 바이트 (word.py, docxtpl)
- 컨텍스트 N개 일괄 렌더링 (batch.py)
"""

from .batch import BatchRenderer, render_batch
from .word import DocxRenderer, Template, render_docx, resolve_template

__all__ = [
    "Template",
    "DocxRenderer",
    "BatchRenderer",
    "render_docx",
    "render_batch",
    "resolve_template",
]
