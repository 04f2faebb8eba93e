"""
Domain Constants: 전역 상수.

파일명 정책, MIME 타입, 패키징 상수 등.
"""

# =============================================================================
# Output Filenames
# =============================================================================

RENDERED_FILENAME_PREFIX = "rendered"
MERGED_FILENAME_PREFIX = "merged"
PIPELINE_FILENAME_PREFIX = "final"
BATCH_DIR_PREFIX = "batch"
DOCX_SUFFIX = ".docx"

# 임시 디렉토리 prefix (tempfile.mkdtemp)
TRANSIENT_DIR_PREFIX = "docstitch-"

# =============================================================================
# Run Log
# =============================================================================

RUN_ID_PREFIX = "RUN-"
RUN_LOG_FILENAME_PATTERN = "run_{run_id}.json"

# =============================================================================
# OOXML Packaging
# =============================================================================

# zip 엔트리 고정 타임스탬프 (zip 포맷이 허용하는 최소값)
FIXED_ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

# =============================================================================
# Merge
# =============================================================================

DEFAULT_HEADING_LEVEL = 1
MAX_HEADING_LEVEL = 9

# =============================================================================
# MIME Types
# =============================================================================

MIME_TYPES = {
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".json": "application/json",
}
DOCX_MIME_TYPE = MIME_TYPES[".docx"]
