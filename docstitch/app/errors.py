"""
에러 종류 → HTTP status 매핑.
"""

from docstitch.domain.errors import (
    CorruptInputError,
    DocstitchError,
    InsufficientInputError,
    InvalidOptionError,
    NotFoundError,
    PartialBatchFailureError,
    PipelineError,
    RenderError,
    TitleCountMismatchError,
)

STATUS_BY_KIND: list[tuple[type[DocstitchError], int]] = [
    (NotFoundError, 404),
    (InsufficientInputError, 400),
    (TitleCountMismatchError, 400),
    (InvalidOptionError, 400),
    (CorruptInputError, 422),
    (RenderError, 422),
    (PartialBatchFailureError, 422),
]


def status_for(error: DocstitchError) -> int:
    """PipelineError 는 원인(cause) 기준으로 매핑."""
    if isinstance(error, PipelineError):
        return status_for(error.cause)

    for kind, status in STATUS_BY_KIND:
        if isinstance(error, kind):
            return status
    return 500
