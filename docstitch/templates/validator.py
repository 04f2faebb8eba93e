"""
템플릿 검증: 필수 placeholder 존재 여부.

정책:
- 템플릿에 추가로 있는 placeholder 는 허용
- loop 본문 안에서만 참조되는 최상위 이름도 "존재"로 본다
- loop 변수(예: {% for item in rows %} 의 item)는 placeholder 가 아님,
  loop 대상(rows)은 placeholder
"""

from collections.abc import Iterable
from pathlib import Path

from docstitch.domain.schemas import ValidationResult
from docstitch.render.word import Template, resolve_template


class TemplateValidator:
    """
    Usage:
        validator = TemplateValidator(template_path)
        result = validator.validate(["name", "date"])
        if not result.is_valid:
            print(result.missing_placeholders)
    """

    def __init__(self, template: Template | Path | bytes):
        """
        Raises:
            TemplateNotFoundError, TemplateCorruptError
        """
        self.template = resolve_template(template)

    def validate(self, required_placeholders: Iterable[str] = ()) -> ValidationResult:
        """
        필수 placeholder 와 템플릿 placeholder 비교.

        Args:
            required_placeholders: 필수 이름 목록 (중복은 첫 등장만 유지)

        Returns:
            ValidationResult (missing 은 required 순서 유지)

        Raises:
            TemplateSyntaxError: 마크업 파싱 실패
        """
        found = self.template.placeholders()
        found_set = set(found)

        missing: list[str] = []
        seen: set[str] = set()
        for name in required_placeholders:
            if name in seen:
                continue
            seen.add(name)
            if name not in found_set:
                missing.append(name)

        return ValidationResult(
            is_valid=not missing,
            missing_placeholders=missing,
            found_placeholders=found,
        )


def validate_template(
    template: Template | Path | bytes,
    required_placeholders: Iterable[str] = (),
) -> ValidationResult:
    """템플릿 검증 (간편 함수)."""
    return TemplateValidator(template).validate(required_placeholders)
