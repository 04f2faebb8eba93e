"""
설정 로드: default.yaml → PipelineSettings.

우선순위:
1. load_config(path) 인자
2. 환경변수 DOCSTITCH_CONFIG
3. 프로젝트 루트의 default.yaml
파일이 없으면 빈 설정 (모든 값 기본값).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from docstitch.domain.constants import DEFAULT_HEADING_LEVEL, MAX_HEADING_LEVEL
from docstitch.domain.schemas import MergeOptions, PipelineOptions, SeparatorKind

CONFIG_ENV_VAR = "DOCSTITCH_CONFIG"
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "default.yaml"


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """설정 파일 로드."""
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[str, Any] | None = yaml.safe_load(f)
        return data or {}


@dataclass
class PipelineSettings:
    """
    호출 단위 설정.

    프로세스 전역이 아니라 RunContext 를 통해 각 호출에 전달된다.
    """
    max_workers: int = 1
    best_effort: bool = False

    add_separators: bool = True
    separator: SeparatorKind = SeparatorKind.PAGE_BREAK
    heading_level: int = DEFAULT_HEADING_LEVEL

    temp_dir: Path | None = None
    output_dir: Path = Path("outputs")
    logs_dir: Path | None = None

    log_level: str = "INFO"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PipelineSettings":
        pipeline = config.get("pipeline", {}) or {}
        merge = config.get("merge", {}) or {}
        paths = config.get("paths", {}) or {}
        logging_cfg = config.get("logging", {}) or {}

        heading_level = int(merge.get("heading_level", DEFAULT_HEADING_LEVEL))
        if not 1 <= heading_level <= MAX_HEADING_LEVEL:
            raise ValueError(
                f"merge.heading_level must be 1..{MAX_HEADING_LEVEL}, got {heading_level}"
            )

        max_workers = int(pipeline.get("max_workers", 1))
        if max_workers < 1:
            raise ValueError(f"pipeline.max_workers must be >= 1, got {max_workers}")

        temp_dir = paths.get("temp_dir")
        logs_dir = paths.get("logs_dir")

        return cls(
            max_workers=max_workers,
            best_effort=bool(pipeline.get("best_effort", False)),
            add_separators=bool(merge.get("add_separators", True)),
            separator=SeparatorKind(merge.get("separator", SeparatorKind.PAGE_BREAK.value)),
            heading_level=heading_level,
            temp_dir=Path(temp_dir) if temp_dir else None,
            output_dir=Path(paths.get("output_dir", "outputs")),
            logs_dir=Path(logs_dir) if logs_dir else None,
            log_level=str(logging_cfg.get("level", "INFO")).upper(),
        )

    def merge_options(self, section_titles: list[str] | None = None) -> MergeOptions:
        return MergeOptions(
            add_separators=self.add_separators,
            separator=self.separator,
            section_titles=section_titles,
            heading_level=self.heading_level,
        )

    def pipeline_options(self, section_titles: list[str] | None = None) -> PipelineOptions:
        return PipelineOptions(
            merge=self.merge_options(section_titles),
            best_effort=self.best_effort,
            max_workers=self.max_workers,
        )
