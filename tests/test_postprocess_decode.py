import unittest

import numpy as np

from helpers import make_tensor
from voxsight.errors import TensorShapeError
from voxsight.postprocess import PostConfig, Postprocessor, decode

LABELS = ("a", "b")


def _decode(tensor, num_predictions, **overrides):
    kwargs = dict(
        num_channels=7,
        num_classes=2,
        labels=LABELS,
        objectness_threshold=0.7,
        confidence_threshold=0.5,
        min_box_area=0.0,
    )
    kwargs.update(overrides)
    return decode(tensor, num_predictions, **kwargs)


class TestDecode(unittest.TestCase):
    def test_single_detection_end_to_end(self) -> None:
        tensor = make_tensor(
            [
                [0.5, 0.5, 0.2, 0.2, 0.9, 0.8, 0.1],
                [0.3, 0.3, 0.2, 0.2, 0.1, 0.9, 0.9],
            ],
            num_channels=7,
        )
        boxes = _decode(tensor, 2)
        self.assertEqual(len(boxes), 1)
        box = boxes[0]
        self.assertEqual(box.class_id, 0)
        self.assertEqual(box.class_name, "a")
        self.assertAlmostEqual(box.confidence, 0.72, places=5)
        self.assertTrue(np.allclose(box.as_xyxy(), (0.4, 0.4, 0.6, 0.6), atol=1e-6))

    def test_confidence_is_float32_product(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.9, 0.8, 0.1]], num_channels=7)
        box = _decode(tensor, 1)[0]
        self.assertEqual(box.confidence, float(np.float32(0.9) * np.float32(0.8)))

    def test_objectness_equal_to_threshold_is_skipped(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.7, 1.0, 0.0]], num_channels=7)
        self.assertEqual(_decode(tensor, 1), [])

    def test_confidence_equal_to_threshold_is_rejected(self) -> None:
        # 1.0 * 0.5 == threshold exactly.
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 1.0, 0.5, 0.0]], num_channels=7)
        self.assertEqual(_decode(tensor, 1), [])

    def test_min_box_area(self) -> None:
        tensor = make_tensor(
            [
                [0.5, 0.5, 0.05, 0.05, 0.9, 0.9, 0.0],  # area 0.0025
                [0.5, 0.5, 0.5, 0.5, 0.9, 0.9, 0.0],  # area 0.25
            ],
            num_channels=7,
        )
        boxes = _decode(tensor, 2, min_box_area=0.01)
        self.assertEqual(len(boxes), 1)
        self.assertAlmostEqual(boxes[0].area, 0.25, places=5)

    def test_area_is_measured_after_clamping(self) -> None:
        # Unclamped area 0.04, clamped to a quarter of that.
        tensor = make_tensor([[0.0, 0.0, 0.2, 0.2, 0.9, 0.9, 0.0]], num_channels=7)
        self.assertEqual(_decode(tensor, 1, min_box_area=0.02), [])
        self.assertEqual(len(_decode(tensor, 1, min_box_area=0.005)), 1)

    def test_class_tie_resolves_to_lowest_index(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.9, 0.7, 0.7]], num_channels=7)
        boxes = _decode(tensor, 1)
        self.assertEqual(boxes[0].class_id, 0)

    def test_non_positive_class_scores_have_no_class(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.9, 0.0, 0.0]], num_channels=7)
        self.assertEqual(_decode(tensor, 1, confidence_threshold=0.0), [])

    def test_class_without_label_is_dropped(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.9, 0.1, 0.9]], num_channels=7)
        self.assertEqual(_decode(tensor, 1, labels=("only_first",)), [])

    def test_coordinates_are_clamped(self) -> None:
        tensor = make_tensor(
            [
                [0.0, 0.0, 0.6, 0.6, 0.9, 0.9, 0.0],
                [1.0, 1.0, 0.8, 0.4, 0.9, 0.0, 0.9],
                [1.5, -0.5, 4.0, 4.0, 0.9, 0.9, 0.0],
            ],
            num_channels=7,
        )
        boxes = _decode(tensor, 3)
        self.assertEqual(len(boxes), 3)
        for box in boxes:
            self.assertTrue(0.0 <= box.x1 <= box.x2 <= 1.0)
            self.assertTrue(0.0 <= box.y1 <= box.y2 <= 1.0)
        self.assertEqual(boxes[2].as_xyxy(), (0.0, 0.0, 1.0, 1.0))

    def test_clamping_invariant_on_random_tensor(self) -> None:
        rng = np.random.default_rng(7)
        n = 500
        preds = np.zeros((n, 7), dtype=np.float32)
        preds[:, 0:2] = rng.uniform(-0.5, 1.5, size=(n, 2))
        preds[:, 2:4] = rng.uniform(0.0, 2.0, size=(n, 2))
        preds[:, 4:] = rng.uniform(0.0, 1.0, size=(n, 3))
        boxes = _decode(preds.reshape(-1), n, confidence_threshold=0.0)
        self.assertTrue(boxes)
        for box in boxes:
            self.assertTrue(0.0 <= box.x1 <= box.x2 <= 1.0)
            self.assertTrue(0.0 <= box.y1 <= box.y2 <= 1.0)

    def test_raising_confidence_threshold_never_adds_boxes(self) -> None:
        rng = np.random.default_rng(3)
        n = 300
        preds = rng.uniform(0.0, 1.0, size=(n, 7)).astype(np.float32)
        preds[:, 2:4] *= 0.5
        tensor = preds.reshape(-1)
        counts = [len(_decode(tensor, n, confidence_threshold=t)) for t in np.linspace(0.0, 1.0, 21)]
        self.assertTrue(all(a >= b for a, b in zip(counts, counts[1:])))
        self.assertGreater(counts[0], 0)
        self.assertEqual(counts[-1], 0)

    def test_output_follows_prediction_order(self) -> None:
        tensor = make_tensor(
            [
                [0.2, 0.2, 0.1, 0.1, 0.8, 0.9, 0.0],
                [0.8, 0.8, 0.1, 0.1, 0.99, 0.0, 0.9],
            ],
            num_channels=7,
        )
        boxes = _decode(tensor, 2)
        self.assertEqual([b.class_id for b in boxes], [0, 1])

    def test_zero_predictions(self) -> None:
        self.assertEqual(_decode(np.zeros((0,), dtype=np.float32), 0), [])

    def test_all_below_objectness(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.1, 0.9, 0.0]] * 4, num_channels=7)
        self.assertEqual(_decode(tensor, 4), [])

    def test_batched_shape_is_flattened(self) -> None:
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.2, 0.9, 0.8, 0.1]], num_channels=7).reshape(1, 1, 7)
        self.assertEqual(len(_decode(tensor, 1)), 1)

    def test_short_tensor_rejected(self) -> None:
        with self.assertRaises(TensorShapeError):
            _decode(np.zeros((13,), dtype=np.float32), 2)

    def test_too_few_channels_rejected(self) -> None:
        with self.assertRaises(TensorShapeError):
            _decode(np.zeros((12,), dtype=np.float32), 2, num_channels=6)


class TestPostprocessor(unittest.TestCase):
    def test_process_runs_nms_and_aspect_filter(self) -> None:
        cfg = PostConfig(
            num_predictions=4,
            num_channels=7,
            num_classes=2,
            objectness_threshold=0.5,
            confidence_threshold=0.3,
            min_box_area=0.0,
            iou_threshold=0.5,
            min_aspect_ratio=0.3,
            max_aspect_ratio=3.0,
        )
        tensor = make_tensor(
            [
                [0.5, 0.5, 0.4, 0.2, 0.9, 0.9, 0.0],  # kept, ratio 2
                [0.5, 0.5, 0.4, 0.2, 0.8, 0.0, 0.9],  # duplicate of the first, other class
                [0.2, 0.8, 0.3, 0.05, 0.9, 0.9, 0.0],  # ratio 6, filtered
                [0.8, 0.2, 0.1, 0.1, 0.95, 0.0, 0.8],  # kept, ratio 1
            ],
            num_channels=7,
        )
        boxes = Postprocessor(cfg, LABELS).process(tensor)
        self.assertEqual([b.class_name for b in boxes], ["a", "b"])
        self.assertGreater(boxes[0].confidence, boxes[1].confidence)


if __name__ == "__main__":
    unittest.main()
