from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference of an EAST export.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input name
    - score_output/geometry_output: output names; default to the first two outputs
    - channels_last: the export takes NHWC input and returns NHWC outputs
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    score_output: Optional[str] = None
    geometry_output: Optional[str] = None
    channels_last: bool = False


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the score and
    geometry maps as NCHW NumPy arrays.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        outputs = [o.name for o in self.session.get_outputs()]
        if len(outputs) < 2 and (cfg.score_output is None or cfg.geometry_output is None):
            raise RuntimeError(f"EAST model must expose score and geometry outputs, got {outputs}")

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.score_output = cfg.score_output or outputs[0]
        self.geometry_output = cfg.geometry_output or outputs[1]
        self.channels_last = cfg.channels_last

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> Tuple[np.ndarray, np.ndarray]:
        x = np.transpose(blob, (0, 2, 3, 1)) if self.channels_last else blob
        inputs: Dict[str, Any] = {self.input_name: np.ascontiguousarray(x, dtype=np.float32)}
        if extra_inputs:
            inputs.update(extra_inputs)
        scores, geometry = self.session.run([self.score_output, self.geometry_output], inputs)
        if self.channels_last:
            scores = np.transpose(scores, (0, 3, 1, 2))
            geometry = np.transpose(geometry, (0, 3, 1, 2))
        return scores, geometry
