"""
Templates Routes: 템플릿 검증.

- POST /api/validate-template → 필수 placeholder 존재 여부
"""

from typing import Any

from fastapi import APIRouter, File, Form, UploadFile

from docstitch.app.routes.documents import parse_json_field, read_template
from docstitch.templates.validator import TemplateValidator

api_router = APIRouter()


@api_router.post("/validate-template")
async def validate_template_placeholders(
    template: UploadFile = File(...),
    placeholders: str | None = Form(None),
) -> dict[str, Any]:
    """
    템플릿 placeholder 검증.

    Args:
        template: DOCX 템플릿
        placeholders: 필수 이름 JSON 배열 (예: '["name", "date"]')

    Returns:
        {"is_valid", "missing_placeholders", "found_placeholders"}
    """
    required = parse_json_field(placeholders, "placeholders", list, [])
    tpl = await read_template(template)

    result = TemplateValidator(tpl).validate([str(name) for name in required])
    return result.to_dict()
