from __future__ import annotations

from typing import Sequence

import numpy as np


def make_tensor(rows: Sequence[Sequence[float]], num_channels: int) -> np.ndarray:
    """
    Flat float32 tensor with one row per prediction: [xc, yc, w, h, obj, class scores...].
    """

    preds = np.zeros((len(rows), num_channels), dtype=np.float32)
    for i, row in enumerate(rows):
        preds[i, : len(row)] = row
    return preds.reshape(-1)
