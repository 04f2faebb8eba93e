"""
OOXML 패키지 바이트 처리: 결정론적 재패킹 + 원자적 쓰기.

python-docx 는 저장 시 zip 엔트리에 현재 시각을 기록한다.
동일 입력 → 동일 바이트를 보장하려면 저장 후 엔트리 타임스탬프를 고정해야 한다.

파일시스템 안정성 (best-effort):
- 원자적 쓰기: temp → rename + fsync
- fsync 실패 시 경고 남기고 계속 진행
"""

import io
import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import IO, Protocol

from docstitch.domain.constants import FIXED_ZIP_TIMESTAMP

logger = logging.getLogger(__name__)


# =============================================================================
# Deterministic packing
# =============================================================================


def normalize_package(data: bytes) -> bytes:
    """
    zip 엔트리 메타데이터 고정.

    - 엔트리 순서 유지
    - date_time → 1980-01-01
    - 압축: DEFLATED
    - 파일 속성: 0o644

    Args:
        data: DOCX(zip) 바이트

    Returns:
        정규화된 바이트
    """
    source = io.BytesIO(data)
    target = io.BytesIO()

    with zipfile.ZipFile(source) as zin, zipfile.ZipFile(
        target, mode="w", compression=zipfile.ZIP_DEFLATED
    ) as zout:
        for info in zin.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=FIXED_ZIP_TIMESTAMP)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.create_system = 3
            entry.external_attr = 0o644 << 16
            zout.writestr(entry, zin.read(info.filename))

    return target.getvalue()


class SavableDocument(Protocol):
    def save(self, stream: IO[bytes]) -> None: ...


def document_to_bytes(doc: SavableDocument) -> bytes:
    """python-docx Document / DocxTemplate → 정규화된 DOCX 바이트."""
    buffer = io.BytesIO()
    doc.save(buffer)
    return normalize_package(buffer.getvalue())


# =============================================================================
# Atomic write
# =============================================================================


def _fsync_dir(dir_path: Path) -> None:
    """디렉토리 fsync (가능한 환경에서)."""
    try:
        dir_fd = os.open(str(dir_path), os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
    except (OSError, AttributeError) as e:
        # O_DIRECTORY 미지원, 권한 문제 등
        logger.warning(
            f"Directory fsync failed for {dir_path}: {e}. "
            f"Rename durability may not be guaranteed."
        )


def atomic_write_bytes(path: Path, data: bytes) -> Path:
    """
    원자적 바이트 쓰기.

    동작:
    - 중간 상태 없음: temp → rename
    - 실패 시 temp 파일 삭제, 기존 파일 보존

    Args:
        path: 저장할 파일 경로
        data: 저장할 바이트

    Returns:
        저장된 파일 경로
    """
    dir_path = path.parent
    dir_path.mkdir(parents=True, exist_ok=True)

    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=dir_path,
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            f.write(data)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(
                    f"File fsync failed for {path}: {e}. "
                    f"Data may not be durable on power loss."
                )

        os.replace(temp_path, path)
        _fsync_dir(dir_path)
        return path

    except BaseException:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning(f"Failed to remove temp file {temp_path}")
        raise
