from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..config import DetectorConfig
from ..errors import ConfigError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Dims = Sequence[object]


def _static_size(dims: Dims) -> Optional[int]:
    # ONNX reports symbolic dims as strings or None.
    size = 1
    for d in dims:
        if not isinstance(d, int) or d <= 0:
            return None
        size *= d
    return size


def is_channels_first(input_dims: Dims) -> bool:
    """(1, 3, H, W) exports are NCHW; TFLite-style (1, H, W, 3) exports are NHWC."""

    return len(input_dims) != 4 or input_dims[1] == 3


def check_output_dims(output_dims: Dims, config: DetectorConfig) -> None:
    """
    Fail at load time when the model's output cannot hold the detector's tensor.

    The decoder reads prediction-major rows, so a multi-dimensional output must
    end in `num_channels`; a transposed `(1, C, P)` export is rejected. Only
    fully static shapes are checked; dynamic exports are validated per frame by
    the decoder instead.
    """

    size = _static_size(output_dims)
    if size is None:
        return
    expected = config.num_predictions * config.num_channels
    rows_last = len(output_dims) < 2 or output_dims[-1] == config.num_channels
    if size != expected or not rows_last:
        raise ConfigError(
            f"Model output {tuple(output_dims)} does not match the {config.kind.value} detector: expected "
            f"{config.num_predictions} predictions x {config.num_channels} channels, prediction-major"
        )


class OnnxRuntimeBackend:
    """
    ONNX Runtime session serving one detector.

    Feeds a float32 batch-of-one blob and returns the detector's output tensor.
    The output shape is checked against the detector config when the session
    is created.
    """

    def __init__(
        self,
        model_path: PathLike,
        config: DetectorConfig,
        *,
        providers: Optional[Sequence[str]] = None,
        input_name: Optional[str] = None,
        output_name: Optional[str] = None,
        num_threads: int = 4,
    ):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        if num_threads > 0:
            sess_opts.intra_op_num_threads = int(num_threads)
        self.session = ort.InferenceSession(
            str(self.model_path),
            sess_options=sess_opts,
            providers=list(providers) if providers is not None else None,
        )

        model_input = self.session.get_inputs()[0]
        model_output = self.session.get_outputs()[0]
        self.input_name = input_name or model_input.name
        self.output_name = output_name or model_output.name
        self.channels_first = is_channels_first(tuple(model_input.shape))

        check_output_dims(tuple(model_output.shape), config)
        logger.debug(
            "ONNX model %s: input %s %s, output %s %s",
            self.model_path.name,
            self.input_name,
            model_input.shape,
            self.output_name,
            model_output.shape,
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        return self.session.run([self.output_name], {self.input_name: blob})[0]
