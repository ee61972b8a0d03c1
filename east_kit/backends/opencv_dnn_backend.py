from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np


PathLike = Union[str, Path]

EAST_OUTPUT_LAYERS: Tuple[str, str] = (
    "feature_fusion/Conv_7/Sigmoid",
    "feature_fusion/concat_3",
)


@dataclass(frozen=True)
class OpenCvDnnBackendConfig:
    """
    Configuration for OpenCV DNN inference on the frozen TensorFlow EAST graph.

    - output_layers: (score layer, geometry layer)
    - preferable_backend/preferable_target: e.g. cv2.dnn.DNN_BACKEND_CUDA / cv2.dnn.DNN_TARGET_CUDA
    """

    output_layers: Sequence[str] = EAST_OUTPUT_LAYERS
    preferable_backend: Optional[int] = None
    preferable_target: Optional[int] = None


class OpenCvDnnBackend:
    """
    Loads `frozen_east_text_detection.pb` with `cv2.dnn.readNetFromTensorflow`.

    A `cv2.dnn.Net` keeps per-forward state, so one backend must not be shared
    between threads without a lock.
    """

    def __init__(self, model_path: PathLike, cfg: OpenCvDnnBackendConfig = OpenCvDnnBackendConfig()):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))
        if len(cfg.output_layers) != 2:
            raise ValueError(f"EAST needs exactly 2 output layers, got {list(cfg.output_layers)}")

        try:
            net = cv2.dnn.readNetFromTensorflow(str(self.model_path))
        except cv2.error as e:
            raise RuntimeError(f"Failed to load EAST model: {self.model_path}") from e
        if net.empty():
            raise RuntimeError(f"Failed to load EAST model: {self.model_path}")

        if cfg.preferable_backend is not None:
            net.setPreferableBackend(int(cfg.preferable_backend))
        if cfg.preferable_target is not None:
            net.setPreferableTarget(int(cfg.preferable_target))

        self.net = net
        self.output_layers = list(cfg.output_layers)

    def infer(self, blob: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        self.net.setInput(blob)
        scores, geometry = self.net.forward(self.output_layers)
        return scores, geometry
