import math
import unittest

import numpy as np

from east_kit.decode import GeometryMap, ScoreMap, decode, decode_outputs


def _maps(h: int = 8, w: int = 8, edge: float = 4.0, angle: float = 0.0):
    scores = np.zeros((h, w), dtype=np.float32)
    geometry = np.zeros((5, h, w), dtype=np.float32)
    geometry[0:4] = edge
    geometry[4] = angle
    return scores, geometry


class TestEastDecode(unittest.TestCase):
    def test_all_below_threshold_is_empty(self) -> None:
        scores, geometry = _maps()
        scores[:] = 0.49
        out = decode(ScoreMap(scores), GeometryMap(geometry), 0.5)
        self.assertEqual(out, [])

    def test_single_axis_aligned_cell(self) -> None:
        scores, geometry = _maps()
        scores[3, 3] = 0.9
        out = decode(ScoreMap(scores), GeometryMap(geometry), 0.5)
        self.assertEqual(len(out), 1)
        box = out[0].box
        self.assertAlmostEqual(box.cx, 12.0)
        self.assertAlmostEqual(box.cy, 12.0)
        self.assertAlmostEqual(box.width, 8.0)
        self.assertAlmostEqual(box.height, 8.0)
        self.assertAlmostEqual(box.angle, 0.0)
        self.assertAlmostEqual(out[0].score, 0.9, places=6)

    def test_rotated_cell(self) -> None:
        scores, geometry = _maps()
        y, x = 1, 2
        scores[y, x] = 0.8
        geometry[:, y, x] = [2.0, 3.0, 4.0, 5.0, math.pi / 2]
        out = decode(ScoreMap(scores), GeometryMap(geometry), 0.5)
        self.assertEqual(len(out), 1)
        box = out[0].box
        # anchor (12, 1); p1 (6, 1); p3 (12, 9)
        self.assertAlmostEqual(box.cx, 9.0, places=4)
        self.assertAlmostEqual(box.cy, 5.0, places=4)
        self.assertAlmostEqual(box.width, 8.0, places=5)
        self.assertAlmostEqual(box.height, 6.0, places=5)
        self.assertAlmostEqual(box.angle, -90.0, places=4)

    def test_threshold_is_inclusive(self) -> None:
        scores, geometry = _maps()
        scores[0, 0] = 0.5
        out = decode(ScoreMap(scores), GeometryMap(geometry), 0.5)
        self.assertEqual(len(out), 1)
        self.assertGreaterEqual(out[0].score, 0.5)

    def test_row_major_order(self) -> None:
        scores, geometry = _maps()
        scores[1, 0] = 0.9
        scores[0, 5] = 0.6
        out = decode(ScoreMap(scores), GeometryMap(geometry), 0.5)
        self.assertEqual(len(out), 2)
        self.assertAlmostEqual(out[0].score, 0.6, places=6)
        self.assertAlmostEqual(out[1].score, 0.9, places=6)

    def test_shape_mismatch_rejected(self) -> None:
        scores = np.zeros((8, 8), dtype=np.float32)
        geometry = np.zeros((5, 8, 9), dtype=np.float32)
        with self.assertRaises(ValueError):
            decode(ScoreMap(scores), GeometryMap(geometry), 0.5)

    def test_raw_network_output_shapes(self) -> None:
        scores, geometry = _maps()
        scores[3, 3] = 0.9
        out = decode_outputs(scores[None, None], geometry[None], 0.5)
        self.assertEqual(len(out), 1)

    def test_geometry_needs_five_channels(self) -> None:
        with self.assertRaises(ValueError):
            GeometryMap(np.zeros((4, 8, 8), dtype=np.float32))

    def test_maps_are_read_only(self) -> None:
        scores, geometry = _maps()
        sm = ScoreMap(scores)
        gm = GeometryMap(geometry)
        self.assertFalse(sm.data.flags.writeable)
        self.assertFalse(gm.data.flags.writeable)
        scores[0, 0] = 1.0
        self.assertEqual(float(sm.data[0, 0]), 0.0)


if __name__ == "__main__":
    unittest.main()
