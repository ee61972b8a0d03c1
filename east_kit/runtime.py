from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .postprocess import EastPostConfig, EastPostprocessor
from .preprocess import PreprocessConfig, PreprocessResult, make_blob
from .types import ScalingRatio, TextDetection


PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]

logger = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Nearest directory at or above `start` (default: cwd) holding one of `markers`.

    Relative EAST model paths such as `models/frozen_east_text_detection.pb` are
    resolved against it. Falls back to `start` itself when nothing matches.
    """

    here = Path.cwd() if start is None else Path(start)
    here = here.resolve()
    if here.is_file():
        here = here.parent

    return next(
        (d for d in (here, *here.parents) if any((d / m).exists() for m in markers)),
        here,
    )


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """Absolute model path; relative ones are taken from `root` or the project root."""
    target = Path(path)
    if target.is_absolute():
        return target
    base = find_project_root() if root in (None, "auto") else Path(root).resolve()
    return (base / target).resolve()


@dataclass(frozen=True)
class DetectionResult:
    detections: List[TextDetection]
    ratio: ScalingRatio
    orig_size: Tuple[int, int]
    timings_ms: Dict[str, float] = field(default_factory=dict)


class EastPipeline:
    """
    Plug-and-play pipeline: preprocess (blob) -> EAST -> postprocess.

    The pipeline expects 8-bit BGR images (OpenCV-style) as `np.ndarray` and returns
    `TextDetection`s in original image coordinates.

    `infer_fn` wraps a loaded model and is called once per image. The model is
    owned by whoever built the pipeline; use one pipeline per worker thread.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        preprocess_cfg: PreprocessConfig = PreprocessConfig(),
        post_cfg: EastPostConfig = EastPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.preprocess_cfg = preprocess_cfg
        self.post = EastPostprocessor(post_cfg)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        return make_blob(image_bgr, self.preprocess_cfg)

    def detect(self, image_bgr: np.ndarray) -> DetectionResult:
        t0 = time.perf_counter()
        prep = self.preprocess(image_bgr)
        t1 = time.perf_counter()
        scores, geometry = self._infer_fn(prep.blob)
        t2 = time.perf_counter()
        detections = self.post.process(scores, geometry, prep.ratio)
        t3 = time.perf_counter()

        timings = {
            "preprocess": (t1 - t0) * 1000.0,
            "east": (t2 - t1) * 1000.0,
            "decode": (t3 - t2) * 1000.0,
        }
        logger.debug(
            "EAST found %d text segments (preprocess=%.1fms east=%.1fms decode=%.1fms)",
            len(detections),
            timings["preprocess"],
            timings["east"],
            timings["decode"],
        )
        return DetectionResult(detections=detections, ratio=prep.ratio, orig_size=prep.orig_size, timings_ms=timings)

    def __call__(self, image_bgr: np.ndarray) -> List[TextDetection]:
        return self.detect(image_bgr).detections


def load_pipeline(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    preprocess_cfg: PreprocessConfig = PreprocessConfig(),
    post_cfg: EastPostConfig = EastPostConfig(),
    dnn_backend: Optional[int] = None,
    dnn_target: Optional[int] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_channels_last: bool = False,
) -> EastPipeline:
    """
    Create a pipeline for an EAST model on disk.

    Typical usage:
        pipe = load_pipeline("models/frozen_east_text_detection.pb")  # resolves from project root by default

    Args:
        model_path: path to the model file; relative paths resolve against project root by default
        backend: "opencv_dnn" (default for .pb), "onnxruntime" (default for .onnx) or None to infer
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)
    """

    resolved = resolve_path(model_path, root=root)
    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".pb":
            chosen = "opencv_dnn"
        elif suffix == ".onnx":
            chosen = "onnxruntime"
        else:
            raise ValueError(
                f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly."
            )

    chosen = chosen.lower()
    if chosen == "opencv_dnn":
        from .backends.opencv_dnn_backend import OpenCvDnnBackend, OpenCvDnnBackendConfig

        dnn = OpenCvDnnBackend(
            resolved,
            OpenCvDnnBackendConfig(preferable_backend=dnn_backend, preferable_target=dnn_target),
        )
        logger.info("Loaded EAST model %s with OpenCV DNN", resolved)
        return EastPipeline(
            dnn.infer,
            backend=dnn,
            backend_name="opencv_dnn",
            preprocess_cfg=preprocess_cfg,
            post_cfg=post_cfg,
        )

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        ort_backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(
                providers=onnx_providers,
                input_name=onnx_input_name,
                channels_last=onnx_channels_last,
            ),
        )
        logger.info("Loaded EAST model %s with ONNX Runtime %s", resolved, list(ort_backend.providers_in_use))
        return EastPipeline(
            ort_backend.infer,
            backend=ort_backend,
            backend_name="onnxruntime",
            preprocess_cfg=preprocess_cfg,
            post_cfg=post_cfg,
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
