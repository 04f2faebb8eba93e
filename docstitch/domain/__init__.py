"""Domain layer: errors, schemas and context value kinds."""

from .errors import (
    CorruptInputError,
    DocstitchError,
    DocumentCorruptError,
    DocumentNotFoundError,
    ErrorCodes,
    InsufficientInputError,
    MergeError,
    NotFoundError,
    PartialBatchFailureError,
    PipelineError,
    RenderError,
    TemplateCorruptError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from .schemas import (
    BatchItemResult,
    BatchResult,
    MergeOptions,
    PipelineOptions,
    PipelineResult,
    SectionInput,
    SeparatorKind,
    ValidationResult,
    ValueKind,
)

__all__ = [
    # errors
    "DocstitchError",
    "ErrorCodes",
    "NotFoundError",
    "CorruptInputError",
    "TemplateNotFoundError",
    "TemplateCorruptError",
    "TemplateSyntaxError",
    "DocumentNotFoundError",
    "DocumentCorruptError",
    "RenderError",
    "MergeError",
    "InsufficientInputError",
    "PartialBatchFailureError",
    "PipelineError",
    # schemas
    "BatchItemResult",
    "BatchResult",
    "MergeOptions",
    "PipelineOptions",
    "PipelineResult",
    "SectionInput",
    "SeparatorKind",
    "ValidationResult",
    "ValueKind",
]
