"""
Core layer: 호출 단위 자원 관리.

역할:
- 설정 (config.py), run log / RunContext (logging.py)
- 결정론적 DOCX 패킹, 원자적 쓰기 (packaging.py)
- 임시 문서 수명 관리 (transient.py)
"""

from .config import PipelineSettings, load_config
from .ids import generate_run_id
from .logging import (
    RunContext,
    complete_run_log,
    configure_logging,
    create_run_context,
    create_run_log,
    emit_warning,
    save_run_log,
)
from .packaging import atomic_write_bytes, document_to_bytes, normalize_package
from .transient import TransientStore

__all__ = [
    # config
    "PipelineSettings",
    "load_config",
    # ids
    "generate_run_id",
    # logging
    "RunContext",
    "create_run_context",
    "create_run_log",
    "emit_warning",
    "complete_run_log",
    "save_run_log",
    "configure_logging",
    # packaging
    "atomic_write_bytes",
    "document_to_bytes",
    "normalize_package",
    # transient
    "TransientStore",
]
