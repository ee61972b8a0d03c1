from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import cv2
import numpy as np

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp"}


def read_image(path: Path) -> np.ndarray:
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    if img.dtype != np.uint8:
        img = cv2.convertScaleAbs(img, alpha=255.0 / max(float(img.max()), 1.0))
    return img


@dataclass(frozen=True)
class SourceImage:
    """
    One image to process. Pixels are either given directly or read lazily from `path`.
    """

    source_id: str
    image: Optional[np.ndarray] = None
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.image is None and self.path is None:
            raise ValueError("SourceImage needs an image or a path")

    def pixels(self) -> np.ndarray:
        if self.image is not None:
            return self.image
        return read_image(Path(self.path))

    @classmethod
    def from_path(cls, path: Path) -> "SourceImage":
        return cls(source_id=path.stem, path=path)


def iter_image_paths(path: Path) -> Iterator[Path]:
    """Yield `path` itself, or every image file under a directory in sorted order."""
    if path.is_file():
        yield path
        return
    if not path.is_dir():
        raise FileNotFoundError(f"Input not found: {path}")
    for p in sorted(path.rglob("*")):
        if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES:
            yield p


def collect_sources(path: Path) -> List[SourceImage]:
    """
    Source ids are the file stem for a single file, or the path relative to the
    directory (without suffix) so nested files with the same name stay distinct.
    """
    if path.is_file():
        return [SourceImage.from_path(path)]
    return [
        SourceImage(source_id=p.relative_to(path).with_suffix("").as_posix(), path=p)
        for p in iter_image_paths(path)
    ]
