from __future__ import annotations

import json
import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .errors import ConfigError, UnknownDetectorError
from .labels import COCO_LABELS, CURRENCY_LABELS
from .postprocess import CLASS_OFFSET, PostConfig

PathLike = Union[str, Path]


class DetectorKind(str, Enum):
    YOLO = "yolo"
    CURRENCY = "currency"

    @classmethod
    def parse(cls, value: Union[str, "DetectorKind"]) -> "DetectorKind":
        if isinstance(value, DetectorKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownDetectorError(value) from None


@dataclass(frozen=True)
class DetectorConfig:
    """
    Everything one detector needs: model location, tensor shape, thresholds and labels.

    Both detector kinds share the same decode/suppress/filter pipeline and differ
    only in these values.
    """

    kind: DetectorKind
    model_path: str
    label_path: Optional[str] = None
    input_width: int = 640
    input_height: int = 640
    num_channels: int = 11
    num_predictions: int = 8400
    num_classes: int = 6
    objectness_threshold: float = 0.7
    confidence_threshold: float = 0.6
    min_box_area: float = 0.01
    iou_threshold: float = 0.4
    min_aspect_ratio: float = 0.0
    max_aspect_ratio: float = math.inf
    fallback_labels: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.kind, DetectorKind):
            raise ConfigError("kind must be a DetectorKind")
        if not self.model_path:
            raise ConfigError("model_path must not be empty")
        if self.input_width <= 0 or self.input_height <= 0:
            raise ConfigError("input_width and input_height must be > 0")
        if self.num_predictions < 0:
            raise ConfigError("num_predictions must be >= 0")
        if self.num_classes < 1:
            raise ConfigError("num_classes must be >= 1")
        if self.num_channels < CLASS_OFFSET + self.num_classes:
            raise ConfigError(
                f"num_channels must be >= {CLASS_OFFSET} + num_classes ({CLASS_OFFSET + self.num_classes})"
            )
        for name in ("objectness_threshold", "confidence_threshold", "iou_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1]")
        if not 0.0 <= self.min_box_area <= 1.0:
            raise ConfigError("min_box_area must be in [0, 1]")
        if self.min_aspect_ratio < 0:
            raise ConfigError("min_aspect_ratio must be >= 0")
        if self.min_aspect_ratio > self.max_aspect_ratio:
            raise ConfigError("min_aspect_ratio must be <= max_aspect_ratio")

    def post_config(self) -> PostConfig:
        return PostConfig(
            num_predictions=self.num_predictions,
            num_channels=self.num_channels,
            num_classes=self.num_classes,
            objectness_threshold=self.objectness_threshold,
            confidence_threshold=self.confidence_threshold,
            min_box_area=self.min_box_area,
            iou_threshold=self.iou_threshold,
            min_aspect_ratio=self.min_aspect_ratio,
            max_aspect_ratio=self.max_aspect_ratio,
        )


CURRENCY_CONFIG = DetectorConfig(
    kind=DetectorKind.CURRENCY,
    model_path="best_float32.onnx",
    label_path="labels.txt",
    num_channels=11,
    num_predictions=8400,
    num_classes=6,
    objectness_threshold=0.7,
    confidence_threshold=0.6,
    min_box_area=0.01,
    iou_threshold=0.4,
    # Currency notes sit around 2:1.
    min_aspect_ratio=0.3,
    max_aspect_ratio=3.0,
    fallback_labels=CURRENCY_LABELS,
)

YOLO_CONFIG = DetectorConfig(
    kind=DetectorKind.YOLO,
    model_path="yolov10n.onnx",
    label_path=None,
    num_channels=85,
    num_predictions=8400,
    num_classes=80,
    objectness_threshold=0.25,
    confidence_threshold=0.3,
    min_box_area=0.0,
    iou_threshold=0.45,
    fallback_labels=COCO_LABELS,
)

_PRESETS: Dict[DetectorKind, DetectorConfig] = {
    DetectorKind.CURRENCY: CURRENCY_CONFIG,
    DetectorKind.YOLO: YOLO_CONFIG,
}


def preset(kind: Union[str, DetectorKind]) -> DetectorConfig:
    """
    Built-in configuration for a detector kind.

    Raises:
        UnknownDetectorError: `kind` is not a known detector tag.
    """

    return _PRESETS[DetectorKind.parse(kind)]


_INT_KEYS = {"input_width", "input_height", "num_channels", "num_predictions", "num_classes"}
_FLOAT_KEYS = {
    "objectness_threshold",
    "confidence_threshold",
    "min_box_area",
    "iou_threshold",
    "min_aspect_ratio",
    "max_aspect_ratio",
}
_PATH_KEYS = {"model_path", "label_path"}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer")
    return int(value)


def config_from_dict(payload: Dict[str, Any], base_dir: Optional[Path] = None) -> DetectorConfig:
    """
    Build a DetectorConfig from `kind` plus overrides of that kind's preset.

    Relative paths resolve against `base_dir` when given. A `max_aspect_ratio`
    of null means unbounded.
    """

    if not isinstance(payload, dict):
        raise ConfigError("Detector config must be a JSON object")
    if "kind" not in payload:
        raise ConfigError("Missing required key: kind")

    allowed = {f.name for f in fields(DetectorConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ConfigError(f"Unknown detector config keys: {unknown}")

    base = preset(payload["kind"])
    overrides: Dict[str, Any] = {}
    for key in payload:
        if key == "kind":
            continue
        if key in _INT_KEYS:
            overrides[key] = _require_int(payload, key)
        elif key == "max_aspect_ratio" and payload[key] is None:
            overrides[key] = math.inf
        elif key in _FLOAT_KEYS:
            overrides[key] = _require_number(payload, key)
        elif key in _PATH_KEYS:
            value = payload[key]
            if value is None and key == "label_path":
                overrides[key] = None
                continue
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{key} must be a non-empty string")
            path = Path(value)
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            overrides[key] = str(path)
        elif key == "fallback_labels":
            value = payload[key]
            if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
                raise ConfigError("fallback_labels must be a list of non-empty strings")
            overrides[key] = tuple(v.strip() for v in value)

    return replace(base, **overrides)


def load_detector_config(path: PathLike) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid detector config JSON: {path}") from exc
    return config_from_dict(payload, base_dir=path.resolve().parent)
