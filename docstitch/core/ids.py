"""
ID 생성: run_id, 출력 파일명.

run_id 는 호출(invocation) 단위로 새로 발급한다.
"""

import uuid
from datetime import UTC, datetime

from docstitch.domain.constants import DOCX_SUFFIX, RUN_ID_PREFIX


def generate_run_id() -> str:
    """
    Run ID 생성.

    고유성 보장: UUID v4
    포맷: RUN-{timestamp}-{uuid[:8]}

    Returns:
        run_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"{RUN_ID_PREFIX}{timestamp}-{unique}"


def output_filename(prefix: str, run_id: str) -> str:
    """출력 파일명: {prefix}_{run_id}.docx"""
    return f"{prefix}_{run_id}{DOCX_SUFFIX}"


def sanitize_label(value: str, max_length: int = 40) -> str:
    """
    파일명에 쓸 수 있도록 문자열 정리.

    - 허용: ASCII 영숫자, '-', '_'
    - 공백 → 밑줄
    - 그 외 문자 제거 (비ASCII 포함)
    """
    sanitized = ""
    for c in value:
        if c.isascii() and (c.isalnum() or c in "-_"):
            sanitized += c
        elif c == " ":
            sanitized += "_"

    while "__" in sanitized:
        sanitized = sanitized.replace("__", "_")

    sanitized = sanitized.strip("_")
    return sanitized[:max_length] if sanitized else "doc"
