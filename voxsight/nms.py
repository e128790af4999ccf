from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .geometry import iou_one_to_many
from .types import BoundingBox


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.4
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig = NMSConfig()) -> np.ndarray:
    """
    Greedy, class-agnostic NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    The sort is stable: equally scored boxes keep their input order, so the
    earlier one becomes the suppression anchor. A box is dropped when its IoU
    with the anchor is >= `cfg.iou_threshold`.
    """

    boxes = np.asarray(boxes, dtype=np.float32)
    scores = np.asarray(scores, dtype=np.float32)
    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        iou = iou_one_to_many(boxes[i], boxes[rest])
        order = rest[iou < np.float32(cfg.iou_threshold)]

    return np.array(keep, dtype=np.int64)


def suppress(boxes: Sequence[BoundingBox], iou_threshold: float = 0.4) -> List[BoundingBox]:
    """
    Run `nms` over BoundingBox objects. Boxes of different classes suppress each other.
    """

    if not boxes:
        return []

    xyxy = np.array([b.as_xyxy() for b in boxes], dtype=np.float32)
    scores = np.array([b.confidence for b in boxes], dtype=np.float32)
    keep = nms(xyxy, scores, NMSConfig(iou_threshold=iou_threshold))
    return [boxes[int(i)] for i in keep]
