"""API 라우트 모듈."""

from . import documents, templates

__all__ = ["documents", "templates"]
