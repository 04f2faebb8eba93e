"""
Templates layer: 템플릿 검증.
"""

from .validator import TemplateValidator, validate_template

__all__ = [
    "TemplateValidator",
    "validate_template",
]
