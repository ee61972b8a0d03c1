"""
Text detection processing layer built on top of `east_kit`.

`east_kit` owns the EAST runtime (decode, NMS, rendering); this package adds:
- settings (JSON + validation)
- image ingestion
- batch processing with per-image error aggregation
- writing outputs and the run report
- the command-line runner
"""

from __future__ import annotations

from .config import TextDetectionSettings, load_settings, settings_from_dict
from .ingest import SourceImage, collect_sources, iter_image_paths, read_image
from .processor import (
    ImageError,
    ProcessorResponse,
    ResponseStatus,
    TextDetectionProcessor,
    build_pipeline,
)
from .reporting import write_artifacts, write_run_report

__all__ = [
    "TextDetectionSettings",
    "load_settings",
    "settings_from_dict",
    "SourceImage",
    "collect_sources",
    "iter_image_paths",
    "read_image",
    "ImageError",
    "ProcessorResponse",
    "ResponseStatus",
    "TextDetectionProcessor",
    "build_pipeline",
    "write_artifacts",
    "write_run_report",
]
