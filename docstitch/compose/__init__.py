"""
Compose layer: DOCX 병합 (python-docx + docxcompose).
"""

from .composer import DocumentComposer, merge_documents

__all__ = [
    "DocumentComposer",
    "merge_documents",
]
