import tempfile
import unittest
from pathlib import Path

import numpy as np

from east_kit.decode import GeometryMap, ScoreMap, decode
from east_kit.nms import NMSConfig, nms_rotated
from east_kit.postprocess import EastPostConfig, EastPostprocessor
from east_kit.preprocess import PreprocessConfig, make_blob
from east_kit.render import OutputMode, render
from east_kit.runtime import EastPipeline, find_project_root, load_pipeline, resolve_path
from east_kit.types import ScalingRatio


def _single_cell_outputs(h: int = 8, w: int = 8):
    scores = np.zeros((1, 1, h, w), dtype=np.float32)
    scores[0, 0, 3, 3] = 0.9
    geometry = np.zeros((1, 5, h, w), dtype=np.float32)
    geometry[0, 0:4] = 4.0
    return scores, geometry


class _FakeEast:
    def __init__(self, outputs):
        self.outputs = outputs
        self.blobs = []

    def __call__(self, blob):
        self.blobs.append(blob)
        return self.outputs


class TestEndToEnd(unittest.TestCase):
    def test_single_cell_scenario(self) -> None:
        scores, geometry = _single_cell_outputs()
        candidates = decode(ScoreMap.from_output(scores), GeometryMap.from_output(geometry), 0.5)
        self.assertEqual(len(candidates), 1)

        for iou in (0.0, 0.4, 1.0):
            keep = nms_rotated([c.box for c in candidates], np.array([c.score for c in candidates]), NMSConfig(iou, 0.5))
            self.assertEqual(keep.tolist(), [0])

        fake = _FakeEast((scores, geometry))
        pipe = EastPipeline(fake, preprocess_cfg=PreprocessConfig(input_size=32))
        img = np.full((32, 32, 3), 128, dtype=np.uint8)
        result = pipe.detect(img)
        self.assertEqual(len(result.detections), 1)
        self.assertEqual(result.ratio.as_tuple(), (1.0, 1.0))
        self.assertEqual(fake.blobs[0].shape, (1, 3, 32, 32))
        self.assertEqual(set(result.timings_ms), {"preprocess", "east", "decode"})

        out = render(OutputMode.MASK, img, result.detections, source_id="gray")
        self.assertEqual(len(out), 1)
        masked = out[0].image
        inside = masked[10:15, 10:15]
        self.assertTrue((inside == 128).all())
        self.assertTrue((masked[0:6, :] == 0).all())
        self.assertTrue((masked[:, 20:] == 0).all())

    def test_extract_crop_uses_scaled_size(self) -> None:
        scores, geometry = _single_cell_outputs()
        pipe = EastPipeline(_FakeEast((scores, geometry)), preprocess_cfg=PreprocessConfig(input_size=32))
        img = np.full((64, 96, 3), 77, dtype=np.uint8)
        result = pipe.detect(img)
        self.assertEqual(result.ratio.as_tuple(), (3.0, 2.0))
        box = result.detections[0].box
        self.assertAlmostEqual(box.width, 24.0)
        self.assertAlmostEqual(box.height, 16.0)

        out = render(OutputMode.EXTRACT, img, result.detections, source_id="wide")
        self.assertEqual(out[0].image.shape, (16, 24, 3))

    def test_padding_after_scaling(self) -> None:
        scores, geometry = _single_cell_outputs()
        post = EastPostprocessor(EastPostConfig(padding=2))
        dets = post.process(scores, geometry, ScalingRatio(3.0, 2.0))
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].box.width, 8.0 * 3.0 + 4.0)
        self.assertAlmostEqual(dets[0].box.height, 8.0 * 2.0 + 4.0)
        self.assertAlmostEqual(dets[0].box.cx, 36.0)
        self.assertAlmostEqual(dets[0].box.cy, 24.0)

    def test_overlapping_cells_are_suppressed(self) -> None:
        scores, geometry = _single_cell_outputs()
        scores[0, 0, 3, 4] = 0.7
        post = EastPostprocessor(EastPostConfig(nms_threshold=0.3))
        dets = post.process(scores, geometry, ScalingRatio(1.0, 1.0))
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].score, 0.9, places=6)

        no_nms = EastPostprocessor(EastPostConfig(apply_nms=False))
        self.assertEqual(len(no_nms.process(scores, geometry, ScalingRatio(1.0, 1.0))), 2)

    def test_empty_output_means_no_text(self) -> None:
        scores = np.zeros((1, 1, 8, 8), dtype=np.float32)
        geometry = np.zeros((1, 5, 8, 8), dtype=np.float32)
        pipe = EastPipeline(_FakeEast((scores, geometry)), preprocess_cfg=PreprocessConfig(input_size=32))
        self.assertEqual(pipe(np.zeros((20, 20, 3), dtype=np.uint8)), [])


class TestPreprocess(unittest.TestCase):
    def test_input_size_must_be_multiple_of_four(self) -> None:
        with self.assertRaises(ValueError):
            PreprocessConfig(input_size=30)

    def test_grayscale_and_fixed_mean(self) -> None:
        img = np.full((10, 20), 100, dtype=np.uint8)
        prep = make_blob(img, PreprocessConfig(input_size=32, mean=(100.0, 100.0, 100.0)))
        self.assertEqual(prep.blob.shape, (1, 3, 32, 32))
        self.assertEqual(prep.orig_size, (20, 10))
        self.assertTrue(np.allclose(prep.blob, 0.0))

    def test_per_image_mean(self) -> None:
        img = np.full((8, 8, 3), 50, dtype=np.uint8)
        prep = make_blob(img, PreprocessConfig(input_size=16))
        self.assertTrue(np.allclose(prep.blob, 0.0))

    def test_rejects_bad_shapes(self) -> None:
        with self.assertRaises(ValueError):
            make_blob(np.zeros((4, 4, 2), dtype=np.uint8))
        with self.assertRaises(TypeError):
            make_blob(None)


class TestLoadPipeline(unittest.TestCase):
    def test_unknown_extension(self) -> None:
        with self.assertRaises(ValueError):
            load_pipeline("/tmp/model.bin")

    def test_missing_model_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                load_pipeline(Path(tmp) / "frozen_east_text_detection.pb")


class TestModelPaths(unittest.TestCase):
    def test_project_root_is_nearest_pyproject(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "pyproject.toml").write_text("", encoding="utf-8")
            nested = root / "models" / "east"
            nested.mkdir(parents=True)
            model = nested / "frozen_east_text_detection.pb"
            model.write_bytes(b"")
            self.assertEqual(find_project_root(nested), root)
            self.assertEqual(find_project_root(model), root)

    def test_requirements_file_is_not_a_marker(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "pyproject.toml").write_text("", encoding="utf-8")
            app = root / "app"
            app.mkdir()
            (app / "requirements.txt").write_text("", encoding="utf-8")
            self.assertEqual(find_project_root(app), root)

    def test_resolve_relative_to_given_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            self.assertEqual(resolve_path("models/east.pb", root=root), root / "models" / "east.pb")
            absolute = root / "east.onnx"
            self.assertEqual(resolve_path(absolute), absolute)


if __name__ == "__main__":
    unittest.main()
