"""
Inference backends for east_kit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight; ONNX Runtime is only imported when its backend is built.
"""

from __future__ import annotations

__all__ = []
