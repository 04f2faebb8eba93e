"""
Context 값 분류: scalar | mapping | sequence.

임의 JSON 을 그대로 템플릿 엔진에 넘기지 않고 먼저 태그를 붙여
지원하지 않는 형태는 RenderError 로 거절한다.

규칙:
- NaN/Inf → 항상 reject
- mapping 키는 str 만 허용
- set, bytes, 임의 객체 → reject
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from docstitch.domain.errors import ErrorCodes, RenderError
from docstitch.domain.schemas import ValueKind

SCALAR_TYPES = (str, bool, int, float, Decimal, date, datetime, time)


def classify_value(value: Any, path: str = "") -> ValueKind:
    """
    값 하나의 종류 판정 (재귀 검사 없음).

    Args:
        value: 판정할 값
        path: 에러 메시지용 위치 (예: "items[0].name")

    Returns:
        ValueKind

    Raises:
        RenderError: UNSUPPORTED_VALUE
    """
    if value is None:
        return ValueKind.SCALAR

    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            raise RenderError(
                ErrorCodes.UNSUPPORTED_VALUE,
                field=path,
                reason="NaN/Inf not allowed",
            )
        if isinstance(value, Decimal) and not value.is_finite():
            raise RenderError(
                ErrorCodes.UNSUPPORTED_VALUE,
                field=path,
                reason="NaN/Inf not allowed",
            )
        return ValueKind.SCALAR

    if isinstance(value, SCALAR_TYPES):
        return ValueKind.SCALAR

    if isinstance(value, Mapping):
        return ValueKind.MAPPING

    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE

    raise RenderError(
        ErrorCodes.UNSUPPORTED_VALUE,
        field=path,
        type=type(value).__name__,
    )


def validate_value(value: Any, path: str = "") -> ValueKind:
    """값과 하위 값 전체를 재귀 검사."""
    kind = classify_value(value, path)

    if kind is ValueKind.MAPPING:
        for key, child in value.items():
            if not isinstance(key, str):
                raise RenderError(
                    ErrorCodes.UNSUPPORTED_VALUE,
                    field=path,
                    reason=f"mapping key must be str, got {type(key).__name__}",
                )
            validate_value(child, f"{path}.{key}" if path else key)
    elif kind is ValueKind.SEQUENCE:
        for i, child in enumerate(value):
            validate_value(child, f"{path}[{i}]")

    return kind


def normalize_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    렌더링 컨텍스트 검증 + 복사.

    Args:
        context: placeholder 이름 → 값 (None 이면 빈 dict)

    Returns:
        검증된 컨텍스트 (얕은 복사)

    Raises:
        RenderError: INVALID_CONTEXT, UNSUPPORTED_VALUE
    """
    if context is None:
        return {}

    if not isinstance(context, Mapping):
        raise RenderError(
            ErrorCodes.INVALID_CONTEXT,
            type=type(context).__name__,
        )

    validate_value(context)
    return dict(context)


def check_loop_targets(
    context: Mapping[str, Any],
    loop_names: set[str],
) -> None:
    """
    loop 대상 이름에 sequence 가 들어왔는지 확인.

    값이 없으면(undefined) 통과: 빈 loop 로 렌더링된다.

    Raises:
        RenderError: LOOP_REQUIRES_SEQUENCE
    """
    for name in sorted(loop_names):
        if name not in context:
            continue
        kind = classify_value(context[name], name)
        if kind is not ValueKind.SEQUENCE:
            raise RenderError(
                ErrorCodes.LOOP_REQUIRES_SEQUENCE,
                field=name,
                value_kind=kind.value,
            )
