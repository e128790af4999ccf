import unittest

import numpy as np

from voxsight.geometry import aspect_ratio, box_area, box_iou, clip_unit, cxcywh_to_xyxy, iou_one_to_many


class TestGeometry(unittest.TestCase):
    def test_identical_boxes_iou_is_one(self) -> None:
        box = (0.1, 0.2, 0.5, 0.6)
        self.assertAlmostEqual(box_iou(box, box), 1.0)

    def test_disjoint_boxes_iou_is_zero(self) -> None:
        self.assertEqual(box_iou((0.0, 0.0, 0.2, 0.2), (0.5, 0.5, 0.9, 0.9)), 0.0)

    def test_touching_edges_do_not_overlap(self) -> None:
        self.assertEqual(box_iou((0.0, 0.0, 0.5, 0.5), (0.5, 0.0, 1.0, 0.5)), 0.0)

    def test_partial_overlap(self) -> None:
        # Intersection 0.5 x 1, union 1 + 1 - 0.5.
        iou = box_iou((0.0, 0.0, 1.0, 1.0), (0.5, 0.0, 1.5, 1.0))
        self.assertAlmostEqual(iou, 0.5 / 1.5)

    def test_zero_area_box_has_zero_iou(self) -> None:
        box = (0.2, 0.2, 0.4, 0.4)
        collapsed = (0.3, 0.3, 0.3, 0.3)
        self.assertEqual(box_iou(box, collapsed), 0.0)
        self.assertEqual(box_iou(collapsed, collapsed), 0.0)

    def test_vectorized_iou_matches_scalar(self) -> None:
        anchor = np.array([0.1, 0.1, 0.5, 0.5], dtype=np.float32)
        others = np.array(
            [
                [0.1, 0.1, 0.5, 0.5],
                [0.3, 0.3, 0.7, 0.7],
                [0.6, 0.6, 0.9, 0.9],
                [0.2, 0.2, 0.2, 0.2],
            ],
            dtype=np.float32,
        )
        iou = iou_one_to_many(anchor, others)
        expected = [box_iou(anchor, o) for o in others]
        self.assertTrue(np.allclose(iou, expected, atol=1e-6))
        self.assertEqual(iou[3], 0.0)

    def test_vectorized_iou_empty(self) -> None:
        iou = iou_one_to_many(np.zeros(4, dtype=np.float32), np.empty((0, 4), dtype=np.float32))
        self.assertEqual(iou.shape, (0,))

    def test_center_to_corners_and_clip(self) -> None:
        boxes = np.array([[0.5, 0.5, 0.2, 0.4], [0.05, 0.95, 0.2, 0.2]], dtype=np.float32)
        xyxy = clip_unit(cxcywh_to_xyxy(boxes))
        self.assertEqual(xyxy.dtype, np.float32)
        self.assertTrue(np.allclose(xyxy[0], [0.4, 0.3, 0.6, 0.7]))
        self.assertTrue(np.allclose(xyxy[1], [0.0, 0.85, 0.15, 1.0]))

    def test_area_and_aspect_ratio(self) -> None:
        self.assertAlmostEqual(box_area((0.0, 0.0, 0.4, 0.2)), 0.08)
        self.assertAlmostEqual(aspect_ratio((0.0, 0.0, 0.4, 0.2)), 2.0)
        self.assertEqual(aspect_ratio((0.1, 0.1, 0.3, 0.1)), float("inf"))


if __name__ == "__main__":
    unittest.main()
