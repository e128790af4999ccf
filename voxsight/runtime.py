from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .detector import Detector
from .errors import ConfigError, TensorShapeError
from .types import DetectionResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery so relative model paths work from any cwd.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root`, or the project root when
      `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]


def preprocess(
    image_bgr: np.ndarray,
    input_width: int,
    input_height: int,
    channels_first: bool = True,
) -> PreprocessResult:
    """
    Resize (no letterbox) to the model input, BGR -> RGB, scale to [0, 1], add a batch axis.

    Returns NCHW when `channels_first`, NHWC otherwise. Boxes decoded from the
    model stay normalized, so no inverse mapping is needed.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocess(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    orig_h, orig_w = image_bgr.shape[:2]
    if (orig_w, orig_h) != (input_width, input_height):
        img = cv2.resize(image_bgr, (input_width, input_height), interpolation=cv2.INTER_NEAREST)
    else:
        img = image_bgr

    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    if channels_first:
        blob = np.transpose(blob, (2, 0, 1))
    blob = np.ascontiguousarray(blob[None, ...])
    return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h))


class DetectionPipeline:
    """
    preprocess -> inference -> detector, one frame per call.

    Frames are skipped entirely while the detector is disarmed. Failures in
    preprocessing or inference are logged and reported as "no detection" so
    the caller can keep feeding frames.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        detector: Detector,
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        channels_first: bool = True,
    ):
        self._infer_fn = infer_fn
        self.detector = detector
        self.backend = backend
        self.backend_name = backend_name
        self.channels_first = channels_first

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        cfg = self.detector.config
        return preprocess(image_bgr, cfg.input_width, cfg.input_height, channels_first=self.channels_first)

    def run_tensor(self, blob: np.ndarray) -> Optional[DetectionResult]:
        """
        Inference + post processing on an already preprocessed blob.
        """

        if not self.detector.is_enabled:
            return None

        start = time.perf_counter()
        try:
            preds = self._infer_fn(blob)
        except Exception:
            logger.exception("Detection error: inference failed")
            return self.detector.report_empty()
        inference_ms = (time.perf_counter() - start) * 1000.0

        try:
            return self.detector.detect(preds, inference_ms=inference_ms)
        except TensorShapeError:
            logger.exception("Detection error: model output does not match detector config")
            return self.detector.report_empty(inference_ms)

    def __call__(self, image_bgr: np.ndarray) -> Optional[DetectionResult]:
        if not self.detector.is_enabled:
            return None

        try:
            prep = self.preprocess(image_bgr)
        except Exception:
            logger.exception("Detection error: could not preprocess frame")
            return self.detector.report_empty()
        return self.run_tensor(prep.blob)

    def close(self) -> None:
        self.detector.close()
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()


def load_pipeline(
    detector: Detector,
    *,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> DetectionPipeline:
    """
    Load the detector's model from disk and wrap it in a DetectionPipeline.

    Typical usage:
        pipe = load_pipeline(create_detector("currency"))
        pipe.detector.enable()
        result = pipe(frame_bgr)

    Raises:
        ConfigError: the model format is not supported, or its output does not
            match the detector config.
        FileNotFoundError: the model file does not exist.
    """

    resolved = resolve_path(detector.config.model_path, root=root)
    suffix = resolved.suffix.lower()
    if suffix != ".onnx":
        raise ConfigError(f"Unsupported model format '{suffix}' for {resolved}; export the model to ONNX.")

    from .backends.onnxruntime_backend import OnnxRuntimeBackend

    ort_backend = OnnxRuntimeBackend(
        resolved,
        detector.config,
        providers=onnx_providers,
        input_name=onnx_input_name,
        output_name=onnx_output_name,
    )
    logger.info("Loaded %s model %s (providers=%s)", detector.kind, resolved, ",".join(ort_backend.providers_in_use))
    return DetectionPipeline(
        ort_backend.infer,
        detector,
        backend=ort_backend,
        backend_name="onnxruntime",
        channels_first=ort_backend.channels_first,
    )
