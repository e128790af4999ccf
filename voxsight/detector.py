from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional, Protocol, Sequence

import numpy as np

from .config import DetectorConfig
from .labels import resolve_labels
from .postprocess import Postprocessor
from .types import BoundingBox, DetectionResult

logger = logging.getLogger(__name__)


class DetectorState(str, Enum):
    ARMED = "armed"
    DISARMED = "disarmed"


class DetectorListener(Protocol):
    def on_empty_detect(self) -> None:
        ...

    def on_detect(self, boxes: Sequence[BoundingBox], inference_ms: Optional[float]) -> None:
        ...


class Detector:
    """
    One configured detector: labels + post processing + an armed/disarmed switch.

    Starts disarmed; `detect()` is a no-op until `enable()` is called. The
    pipeline itself runs synchronously in the caller's thread, one call at a
    time per instance.
    """

    def __init__(
        self,
        config: DetectorConfig,
        labels: Optional[Sequence[str]] = None,
        listener: Optional[DetectorListener] = None,
    ):
        self.config = config
        if labels is None:
            labels = resolve_labels(config.label_path, config.fallback_labels)
        elif len(labels) == 0:
            logger.warning("Empty label list supplied for %s detector; using defaults", config.kind.value)
            labels = config.fallback_labels
        self.labels = tuple(str(name) for name in labels)
        self.listener = listener
        self.post = Postprocessor(config.post_config(), self.labels)
        self._state = DetectorState.DISARMED
        self._lock = threading.Lock()
        logger.info(
            "%s detector initialized with %d labels (model=%s)",
            config.kind.value.capitalize(),
            len(self.labels),
            config.model_path,
        )

    @property
    def kind(self) -> str:
        return self.config.kind.value

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def is_enabled(self) -> bool:
        return self._state is DetectorState.ARMED

    def enable(self) -> None:
        self._state = DetectorState.ARMED
        logger.info("%s detection enabled", self.kind.capitalize())

    def disable(self) -> None:
        self._state = DetectorState.DISARMED
        logger.info("%s detection disabled", self.kind.capitalize())

    def process(self, tensor: np.ndarray) -> DetectionResult:
        """
        Run decode -> suppress -> filter regardless of the armed state.
        """

        with self._lock:
            boxes = self.post.process(tensor)
        return DetectionResult(boxes=tuple(boxes))

    def detect(self, tensor: np.ndarray, inference_ms: Optional[float] = None) -> Optional[DetectionResult]:
        """
        Post-process one frame's raw output.

        Returns None (and does no work) while disarmed. Otherwise returns a
        DetectionResult, empty when nothing survived, and notifies the listener.
        """

        if not self.is_enabled:
            return None

        result = self.process(tensor)
        result = DetectionResult(boxes=result.boxes, inference_ms=inference_ms)
        self._notify(result)
        return result

    def report_empty(self, inference_ms: Optional[float] = None) -> DetectionResult:
        """
        Report a frame that produced no usable output (e.g. inference failed).
        """

        result = DetectionResult.empty(inference_ms)
        self._notify(result)
        return result

    def _notify(self, result: DetectionResult) -> None:
        if self.listener is None:
            return
        if result.is_empty:
            self.listener.on_empty_detect()
        else:
            self.listener.on_detect(result.boxes, result.inference_ms)

    def close(self) -> None:
        self.disable()

    def __enter__(self) -> "Detector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
