"""
Transient store: 한 번의 호출(invocation) 동안만 존재하는 중간 문서.

규칙:
- store 는 자신이 만든 파일만 소유/삭제한다
- release_all() 은 성공/실패/취소 모든 경로에서 호출되어야 한다 (finally)
- root 미지정 시 전용 임시 디렉토리 생성, close() 에서 디렉토리까지 삭제
"""

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from types import TracebackType

from docstitch.core.ids import sanitize_label
from docstitch.core.packaging import atomic_write_bytes
from docstitch.domain.constants import DOCX_SUFFIX, TRANSIENT_DIR_PREFIX
from docstitch.domain.errors import DocstitchError, ErrorCodes, NotFoundError

logger = logging.getLogger(__name__)


class TransientStore:
    """
    파일시스템 기반 임시 문서 저장소.

    Usage:
        with TransientStore() as store:
            ref = store.create(data, label="item_0")
            ...
        # 종료 시 store 가 만든 파일 모두 삭제
    """

    def __init__(self, root: Path | None = None):
        """
        Args:
            root: 임시 파일을 둘 디렉토리 (None 이면 전용 임시 디렉토리 생성)

        Raises:
            DocstitchError: TRANSIENT_WRITE_FAILED (디렉토리 생성 불가)
        """
        try:
            if root is None:
                self.root = Path(tempfile.mkdtemp(prefix=TRANSIENT_DIR_PREFIX))
                self._owns_root = True
            else:
                root.mkdir(parents=True, exist_ok=True)
                self.root = root
                self._owns_root = False
        except OSError as e:
            raise DocstitchError(
                ErrorCodes.TRANSIENT_WRITE_FAILED,
                path=str(root) if root is not None else None,
                error=str(e),
            ) from e

        self._refs: list[Path] = []
        self._lock = threading.Lock()
        self._closed = False

    # -------------------------------------------------------------------------
    # create / read / delete
    # -------------------------------------------------------------------------

    def create(self, data: bytes, label: str = "doc") -> Path:
        """
        바이트를 임시 파일로 저장.

        Args:
            data: 저장할 바이트
            label: 파일명 접두어 (정리됨)

        Returns:
            임시 파일 경로 (ref)
        """
        if self._closed:
            raise RuntimeError("TransientStore is closed")

        fd, name = tempfile.mkstemp(
            prefix=f"{sanitize_label(label)}_",
            suffix=DOCX_SUFFIX,
            dir=self.root,
        )
        os.close(fd)
        ref = Path(name)

        # 경로를 먼저 등록: 쓰기 도중 실패해도 release_all 대상
        with self._lock:
            self._refs.append(ref)

        atomic_write_bytes(ref, data)
        return ref

    def read(self, ref: Path) -> bytes:
        """
        Raises:
            NotFoundError: TRANSIENT_REF_UNKNOWN (store 소유가 아님 또는 삭제됨)
        """
        self._check_owned(ref)
        if not ref.exists():
            raise NotFoundError(ErrorCodes.TRANSIENT_REF_UNKNOWN, path=str(ref))
        return ref.read_bytes()

    def delete(self, ref: Path) -> None:
        """ref 삭제 (이미 없으면 무시)."""
        self._check_owned(ref)
        ref.unlink(missing_ok=True)
        with self._lock:
            if ref in self._refs:
                self._refs.remove(ref)

    def _check_owned(self, ref: Path) -> None:
        with self._lock:
            owned = ref in self._refs
        if not owned:
            raise NotFoundError(ErrorCodes.TRANSIENT_REF_UNKNOWN, path=str(ref))

    @property
    def refs(self) -> list[Path]:
        """현재 살아있는 ref 목록 (생성 순)."""
        with self._lock:
            return list(self._refs)

    # -------------------------------------------------------------------------
    # cleanup
    # -------------------------------------------------------------------------

    def release_all(self) -> list[Path]:
        """
        store 가 만든 파일 전부 삭제.

        개별 삭제 실패는 경고만 남기고 나머지를 계속 삭제한다.

        Returns:
            삭제하지 못한 경로 목록
        """
        with self._lock:
            refs, self._refs = self._refs, []

        leftovers: list[Path] = []
        for ref in refs:
            try:
                ref.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete transient document {ref}: {e}")
                leftovers.append(ref)

        return leftovers

    def close(self) -> list[Path]:
        """release_all + (소유한 경우) 임시 디렉토리 삭제."""
        leftovers = self.release_all()
        if self._owns_root and not self._closed:
            shutil.rmtree(self.root, ignore_errors=True)
        self._closed = True
        return leftovers

    def __enter__(self) -> "TransientStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
