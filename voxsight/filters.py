from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import BoundingBox


def filter_aspect_ratio(
    boxes: Sequence[BoundingBox],
    min_aspect_ratio: float = 0.0,
    max_aspect_ratio: float = float("inf"),
) -> List[BoundingBox]:
    """
    Keep boxes whose width/height ratio lies in [min_aspect_ratio, max_aspect_ratio].

    Run after suppression. Ratio and bounds are compared in float32, the
    precision the boxes were decoded in. The default range is unbounded;
    currency notes use roughly [0.3, 3.0]. Zero-height boxes only pass an
    unbounded range.
    """

    if min_aspect_ratio > max_aspect_ratio:
        raise ValueError(f"min_aspect_ratio ({min_aspect_ratio}) > max_aspect_ratio ({max_aspect_ratio})")

    unbounded = min_aspect_ratio <= 0.0 and max_aspect_ratio == float("inf")
    if unbounded:
        return list(boxes)

    lo = np.float32(min_aspect_ratio)
    hi = np.float32(max_aspect_ratio)
    return [b for b in boxes if lo <= np.float32(b.aspect_ratio) <= hi]
