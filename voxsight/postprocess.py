from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .errors import TensorShapeError
from .filters import filter_aspect_ratio
from .geometry import clip_unit, cxcywh_to_xyxy
from .nms import suppress
from .types import BoundingBox

# Channel layout per prediction: [xc, yc, w, h, objectness, class_0, ..., class_{C-1}]
BOX_CHANNELS = 4
OBJECTNESS_CHANNEL = 4
CLASS_OFFSET = 5


@dataclass(frozen=True)
class PostConfig:
    """
    Thresholds and tensor shape for one detector's post processing.
    """

    num_predictions: int = 8400
    num_channels: int = 11
    num_classes: int = 6
    objectness_threshold: float = 0.7
    confidence_threshold: float = 0.6
    # Fraction of the image; 0.01 == 1% of the frame.
    min_box_area: float = 0.01
    iou_threshold: float = 0.4
    min_aspect_ratio: float = 0.0
    max_aspect_ratio: float = float("inf")


def _as_prediction_rows(tensor: np.ndarray, num_predictions: int, num_channels: int) -> np.ndarray:
    flat = np.asarray(tensor, dtype=np.float32).reshape(-1)
    needed = num_predictions * num_channels
    if flat.size < needed:
        raise TensorShapeError(
            f"Tensor has {flat.size} values, expected at least {num_predictions} x {num_channels} = {needed}."
        )
    return flat[:needed].reshape(num_predictions, num_channels)


def decode(
    tensor: np.ndarray,
    num_predictions: int,
    num_channels: int,
    num_classes: int,
    labels: Sequence[str],
    objectness_threshold: float,
    confidence_threshold: float,
    min_box_area: float,
) -> List[BoundingBox]:
    """
    Decode a flat prediction tensor into scored, labelled boxes.

    Element `i * num_channels + c` is channel `c` of prediction `i`. Per prediction:
    objectness must be > `objectness_threshold`, the clamped box area must be
    >= `min_box_area`, and objectness * best class score must be
    > `confidence_threshold`. Class ties resolve to the lowest index and a best
    score that is not positive means no class. Boxes whose class id has no label
    are dropped. Output follows prediction order.

    Raises:
        TensorShapeError: the tensor is shorter than num_predictions * num_channels,
            or num_channels cannot hold num_classes scores.
    """

    if num_channels < CLASS_OFFSET + num_classes:
        raise TensorShapeError(
            f"num_channels={num_channels} cannot hold {num_classes} class scores (need {CLASS_OFFSET + num_classes})."
        )
    preds = _as_prediction_rows(tensor, num_predictions, num_channels)
    if num_predictions == 0 or num_classes == 0:
        return []

    objectness = preds[:, OBJECTNESS_CHANNEL]
    keep = objectness > np.float32(objectness_threshold)
    if not keep.any():
        return []

    idx = np.flatnonzero(keep)
    rows = preds[idx]
    objectness = objectness[idx]

    boxes = clip_unit(cxcywh_to_xyxy(rows[:, :BOX_CHANNELS]))
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])

    class_scores = rows[:, CLASS_OFFSET : CLASS_OFFSET + num_classes]
    # np.argmax returns the first maximum.
    class_ids = np.argmax(class_scores, axis=1)
    max_scores = class_scores[np.arange(class_scores.shape[0]), class_ids]
    confidence = objectness * max_scores

    mask = ~(areas < np.float32(min_box_area))
    mask &= max_scores > 0
    mask &= confidence > np.float32(confidence_threshold)
    mask &= class_ids < len(labels)

    return [
        BoundingBox(
            x1=float(x1),
            y1=float(y1),
            x2=float(x2),
            y2=float(y2),
            confidence=float(conf),
            class_id=int(cls_id),
            class_name=labels[int(cls_id)],
        )
        for (x1, y1, x2, y2), conf, cls_id in zip(boxes[mask], confidence[mask], class_ids[mask])
    ]


class Postprocessor:
    """
    decode -> suppress -> aspect-ratio filter for one detector configuration.

    Pure computation over an in-memory tensor; holds only read-only config and labels.
    """

    def __init__(self, cfg: PostConfig, labels: Sequence[str]):
        self.cfg = cfg
        self.labels = tuple(labels)

    def decode(self, tensor: np.ndarray) -> List[BoundingBox]:
        return decode(
            tensor,
            num_predictions=self.cfg.num_predictions,
            num_channels=self.cfg.num_channels,
            num_classes=self.cfg.num_classes,
            labels=self.labels,
            objectness_threshold=self.cfg.objectness_threshold,
            confidence_threshold=self.cfg.confidence_threshold,
            min_box_area=self.cfg.min_box_area,
        )

    def process(self, tensor: np.ndarray) -> List[BoundingBox]:
        candidates = self.decode(tensor)
        if not candidates:
            return []
        kept = suppress(candidates, self.cfg.iou_threshold)
        return filter_aspect_ratio(kept, self.cfg.min_aspect_ratio, self.cfg.max_aspect_ratio)
