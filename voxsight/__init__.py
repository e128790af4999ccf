"""
On-device style detection post processing for VoxSight.

Turns a raw YOLO-style prediction tensor into labelled boxes
(decode -> NMS -> aspect-ratio filter). Only NumPy is needed for that part;
OpenCV and ONNX Runtime are imported lazily for preprocessing, drawing and
inference.
"""

from .types import BoundingBox, DetectionResult
from .errors import ConfigError, TensorShapeError, UnknownDetectorError, VoxSightError
from .geometry import box_iou
from .nms import NMSConfig, nms, suppress
from .filters import filter_aspect_ratio
from .postprocess import PostConfig, Postprocessor, decode
from .labels import CURRENCY_LABELS, load_class_names, load_labels, resolve_labels
from .config import DetectorConfig, DetectorKind, load_detector_config, preset
from .detector import Detector, DetectorListener, DetectorState
from .factory import create_detector, create_pipeline
from .runtime import DetectionPipeline, load_pipeline, preprocess
from .commands import Announcer, CameraCommand, DetectionController, DetectionMode, parse_camera_command
from .visualize import draw_detections

__all__ = [
    "BoundingBox",
    "DetectionResult",
    "ConfigError",
    "TensorShapeError",
    "UnknownDetectorError",
    "VoxSightError",
    "box_iou",
    "NMSConfig",
    "nms",
    "suppress",
    "filter_aspect_ratio",
    "PostConfig",
    "Postprocessor",
    "decode",
    "CURRENCY_LABELS",
    "load_class_names",
    "load_labels",
    "resolve_labels",
    "DetectorConfig",
    "DetectorKind",
    "load_detector_config",
    "preset",
    "Detector",
    "DetectorListener",
    "DetectorState",
    "create_detector",
    "create_pipeline",
    "DetectionPipeline",
    "load_pipeline",
    "preprocess",
    "Announcer",
    "CameraCommand",
    "DetectionController",
    "DetectionMode",
    "parse_camera_command",
    "draw_detections",
]
