"""Bounding-box geometry helpers (xyxy unless stated otherwise)."""
from __future__ import annotations

from typing import Sequence

import numpy as np

BBox = Sequence[float]


def box_area(bbox: BBox) -> float:
    x1, y1, x2, y2 = bbox[:4]
    return float(max(0.0, x2 - x1) * max(0.0, y2 - y1))


def aspect_ratio(bbox: BBox) -> float:
    """Width / height in float32, `inf` when the box has no height."""

    x1, y1, x2, y2 = (np.float32(v) for v in bbox[:4])
    h = y2 - y1
    if h <= 0:
        return float("inf")
    return float((x2 - x1) / h)


def box_iou(a: BBox, b: BBox) -> float:
    """
    Intersection over union of two boxes.

    Returns 0.0 when the union is empty so degenerate boxes never overlap.
    """

    ix1 = max(a[0], b[0])
    iy1 = max(a[1], b[1])
    ix2 = min(a[2], b[2])
    iy2 = min(a[3], b[3])

    inter = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    area_a = (a[2] - a[0]) * (a[3] - a[1])
    area_b = (b[2] - b[0]) * (b[3] - b[1])
    union = area_a + area_b - inter
    return float(inter / union) if union > 0 else 0.0


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized IoU of one (4,) box against (N, 4) boxes, same zero-union rule as `box_iou`.
    """

    boxes = np.asarray(boxes)
    if boxes.size == 0:
        return np.empty((0,), dtype=np.float32)

    xx1 = np.maximum(box[0], boxes[:, 0])
    yy1 = np.maximum(box[1], boxes[:, 1])
    xx2 = np.minimum(box[2], boxes[:, 2])
    yy2 = np.minimum(box[3], boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = area + areas - inter

    iou = np.zeros_like(inter)
    np.divide(inter, union, out=iou, where=union > 0)
    return iou


def cxcywh_to_xyxy(boxes: np.ndarray) -> np.ndarray:
    """(N, 4) center form -> (N, 4) corner form, dtype preserved."""

    boxes = np.asarray(boxes)
    cx, cy, w, h = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]
    half_w = w / 2
    half_h = h / 2
    return np.stack([cx - half_w, cy - half_h, cx + half_w, cy + half_h], axis=1)


def clip_unit(boxes: np.ndarray) -> np.ndarray:
    """Clamp every coordinate to [0, 1]."""

    return np.clip(boxes, 0.0, 1.0).astype(np.asarray(boxes).dtype, copy=False)
