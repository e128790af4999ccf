from __future__ import annotations

from typing import Optional, Sequence, Union

from .config import DetectorConfig, DetectorKind, preset
from .detector import Detector, DetectorListener
from .errors import ConfigError


def create_detector(
    kind: Union[str, DetectorKind],
    *,
    config: Optional[DetectorConfig] = None,
    labels: Optional[Sequence[str]] = None,
    listener: Optional[DetectorListener] = None,
) -> Detector:
    """
    Build a Detector for a model tag ("yolo" or "currency").

    Raises:
        UnknownDetectorError: unknown tag. Construction errors are not retried.
    """

    detector_kind = DetectorKind.parse(kind)
    if config is None:
        config = preset(detector_kind)
    elif config.kind is not detector_kind:
        raise ConfigError(f"Config is for {config.kind.value!r}, requested {detector_kind.value!r}")
    return Detector(config, labels=labels, listener=listener)


def create_pipeline(
    kind: Union[str, DetectorKind],
    *,
    config: Optional[DetectorConfig] = None,
    labels: Optional[Sequence[str]] = None,
    listener: Optional[DetectorListener] = None,
    root: Optional[str] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
):
    """
    Build a detector and load its model into a DetectionPipeline.
    """

    from .runtime import load_pipeline

    detector = create_detector(kind, config=config, labels=labels, listener=listener)
    return load_pipeline(detector, root=root, onnx_providers=onnx_providers)
