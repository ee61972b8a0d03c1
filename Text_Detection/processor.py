"""
Batch processing of images through EAST.

Each image is handled independently: a failure is logged and recorded, and the
batch moves on to the next image.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from east_kit.postprocess import EastPostConfig
from east_kit.preprocess import PreprocessConfig
from east_kit.render import OutputArtifact, render
from east_kit.runtime import EastPipeline, load_pipeline

from .config import TextDetectionSettings
from .ingest import SourceImage

logger = logging.getLogger(__name__)


class ResponseStatus(str, Enum):
    OK = "OK"
    ITEM_ERROR = "ITEM_ERROR"


@dataclass(frozen=True)
class ImageError:
    source_id: str
    error: Exception

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass(frozen=True)
class ProcessorResponse:
    status: ResponseStatus
    artifacts: Tuple[OutputArtifact, ...] = ()
    errors: Tuple[ImageError, ...] = ()
    # Source ids the caller should drop (only set when discard_original is on).
    discard: Tuple[str, ...] = ()
    processed: int = 0
    timings_ms: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @property
    def all_failed(self) -> bool:
        return self.processed > 0 and len(self.errors) == self.processed

    def artifacts_for(self, source_id: str) -> List[OutputArtifact]:
        return [a for a in self.artifacts if a.parent == source_id]


def build_pipeline(settings: TextDetectionSettings, *, root: Optional[Path] = None) -> EastPipeline:
    """
    Load the EAST model named in `settings`. Raises if the model cannot be loaded.
    """

    if not settings.east_model:
        raise ValueError("east_model must be set to load a pipeline")
    return load_pipeline(
        settings.east_model,
        backend=settings.backend,
        root=root if root is not None else "auto",
        preprocess_cfg=PreprocessConfig(input_size=settings.input_size, mean=settings.mean),
        post_cfg=EastPostConfig(
            score_threshold=settings.score_threshold,
            nms_threshold=settings.nms_threshold,
            padding=settings.padding,
            max_detections=settings.max_detections,
        ),
    )


class TextDetectionProcessor:
    """
    Runs detection + rendering for every image in a batch.

    The pipeline (and the model inside it) is built once and reused for every call.
    Thresholds and padding come from the pipeline; output mode and discard
    behaviour come from `settings`.
    """

    def __init__(self, pipeline: EastPipeline, settings: TextDetectionSettings = TextDetectionSettings()):
        self.pipeline = pipeline
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: TextDetectionSettings, *, root: Optional[Path] = None) -> "TextDetectionProcessor":
        return cls(build_pipeline(settings, root=root), settings)

    def process_image(self, source: SourceImage) -> Tuple[List[OutputArtifact], Dict[str, float]]:
        image = source.pixels()
        result = self.pipeline.detect(image)
        timings = dict(result.timings_ms)

        if not result.detections:
            logger.debug("No text found in image %s", source.source_id)
            return [], timings

        logger.debug("%d text segments found in image %s", len(result.detections), source.source_id)
        t0 = time.perf_counter()
        artifacts = render(self.settings.output_mode, image, result.detections, source_id=source.source_id)
        timings["output"] = (time.perf_counter() - t0) * 1000.0
        return artifacts, timings

    def process(
        self,
        sources: Iterable[SourceImage],
        *,
        on_image_done: Optional[Callable[[SourceImage], None]] = None,
    ) -> ProcessorResponse:
        artifacts: List[OutputArtifact] = []
        errors: List[ImageError] = []
        discard: List[str] = []
        timings: Dict[str, Dict[str, float]] = {}
        processed = 0

        for source in sources:
            processed += 1
            logger.debug("Processing image %s", source.source_id)
            try:
                produced, image_timings = self.process_image(source)
            except Exception as exc:
                logger.warning("Failed to process image %s: %s", source.source_id, exc, exc_info=True)
                errors.append(ImageError(source_id=source.source_id, error=exc))
            else:
                artifacts.extend(produced)
                timings[source.source_id] = image_timings
                if self.settings.discard_original:
                    logger.debug("Discarding image %s", source.source_id)
                    discard.append(source.source_id)
            finally:
                if on_image_done is not None:
                    on_image_done(source)

        status = ResponseStatus.OK if not errors else ResponseStatus.ITEM_ERROR
        return ProcessorResponse(
            status=status,
            artifacts=tuple(artifacts),
            errors=tuple(errors),
            discard=tuple(discard),
            processed=processed,
            timings_ms=timings,
        )
