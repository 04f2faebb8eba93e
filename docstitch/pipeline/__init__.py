"""
Pipeline layer: 일괄 렌더링 → 병합 → 저장 오케스트레이션.
"""

from .orchestrator import DocumentPipeline, generate_and_merge

__all__ = [
    "DocumentPipeline",
    "generate_and_merge",
]
