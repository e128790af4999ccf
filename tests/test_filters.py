import unittest

import numpy as np

from helpers import make_tensor
from voxsight.filters import filter_aspect_ratio
from voxsight.postprocess import PostConfig, Postprocessor
from voxsight.types import BoundingBox


def _box(width: float, height: float, name: str) -> BoundingBox:
    return BoundingBox(x1=0.0, y1=0.0, x2=width, y2=height, confidence=0.9, class_id=0, class_name=name)


class TestAspectRatioFilter(unittest.TestCase):
    def test_currency_band(self) -> None:
        two = _box(0.4, 0.2, "two")
        five = _box(0.5, 0.1, "five")
        self.assertEqual(filter_aspect_ratio([two, five], 0.3, 3.0), [two])

    def test_bounds_are_inclusive(self) -> None:
        low = _box(0.3, 1.0, "low")
        high = _box(0.75, 0.25, "high")
        self.assertEqual(filter_aspect_ratio([low, high], 0.3, 3.0), [low, high])

    def test_unbounded_range_keeps_everything(self) -> None:
        flat = _box(0.5, 0.0, "flat")
        wide = _box(0.9, 0.01, "wide")
        self.assertEqual(filter_aspect_ratio([flat, wide]), [flat, wide])

    def test_zero_height_rejected_by_finite_band(self) -> None:
        self.assertEqual(filter_aspect_ratio([_box(0.5, 0.0, "flat")], 0.3, 3.0), [])

    def test_decoded_box_on_upper_bound_is_kept(self) -> None:
        # 0.3f / 0.1f is 3.0 in float32 but slightly above 3.0 in double.
        edge = _box(float(np.float32(0.3)), float(np.float32(0.1)), "edge")
        self.assertEqual(edge.aspect_ratio, 3.0)
        self.assertEqual(filter_aspect_ratio([edge], 0.3, 3.0), [edge])

    def test_decoded_box_on_lower_bound_is_kept(self) -> None:
        edge = _box(float(np.float32(0.3)), 1.0, "edge")
        self.assertEqual(filter_aspect_ratio([edge], 0.3, 3.0), [edge])

    def test_postprocessor_keeps_box_on_bound(self) -> None:
        cfg = PostConfig(
            num_predictions=1,
            num_channels=7,
            num_classes=2,
            objectness_threshold=0.7,
            confidence_threshold=0.5,
            min_box_area=0.0,
            min_aspect_ratio=0.3,
            max_aspect_ratio=3.0,
        )
        tensor = make_tensor([[0.15, 0.05, 0.3, 0.1, 0.9, 0.8, 0.1]], num_channels=7)
        boxes = Postprocessor(cfg, ("a", "b")).process(tensor)
        self.assertEqual([b.class_name for b in boxes], ["a"])

    def test_inverted_range_rejected(self) -> None:
        with self.assertRaises(ValueError):
            filter_aspect_ratio([], 3.0, 0.3)


if __name__ == "__main__":
    unittest.main()
