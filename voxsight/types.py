from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .geometry import aspect_ratio


@dataclass(frozen=True)
class BoundingBox:
    """
    One detection in normalized [0, 1] image coordinates (xyxy).

    `confidence` is objectness * best class score, `class_name` is the label
    resolved for `class_id` at decode time.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    class_name: str

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        # float32 like the decoder; zero-height boxes never fall inside a finite band.
        return aspect_ratio(self.as_xyxy())

    def to_pixels(self, width: int, height: int) -> Tuple[float, float, float, float]:
        """
        Scale the normalized corners to an image of `width` x `height` pixels.
        """

        return self.x1 * width, self.y1 * height, self.x2 * width, self.y2 * height


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one detector invocation.

    An empty `boxes` tuple is the explicit "no detection" outcome; it is not an
    error. `inference_ms` is whatever the caller measured around the model call.
    """

    boxes: Tuple[BoundingBox, ...] = ()
    inference_ms: Optional[float] = None

    @classmethod
    def empty(cls, inference_ms: Optional[float] = None) -> "DetectionResult":
        return cls(boxes=(), inference_ms=inference_ms)

    @property
    def is_empty(self) -> bool:
        return not self.boxes

    @property
    def top(self) -> Optional[BoundingBox]:
        return self.boxes[0] if self.boxes else None

    def __len__(self) -> int:
        return len(self.boxes)
