from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np
from tqdm import tqdm

from voxsight import Detector, preset
from voxsight.postprocess import decode
from voxsight.nms import suppress


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_tensor(
    num_predictions: int,
    num_channels: int,
    positive_fraction: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Random flat tensor in the detector layout with roughly `positive_fraction`
    of predictions above typical objectness thresholds, clustered so NMS has work to do.
    """

    preds = np.zeros((num_predictions, num_channels), dtype=np.float32)
    n_pos = int(num_predictions * positive_fraction)
    centers = rng.uniform(0.2, 0.8, size=(8, 2)).astype(np.float32)
    which = rng.integers(0, len(centers), size=n_pos)
    preds[:n_pos, 0:2] = centers[which] + rng.normal(0.0, 0.01, size=(n_pos, 2)).astype(np.float32)
    preds[:n_pos, 2] = rng.uniform(0.2, 0.4, size=n_pos)
    preds[:n_pos, 3] = rng.uniform(0.1, 0.2, size=n_pos)
    preds[:n_pos, 4] = rng.uniform(0.75, 1.0, size=n_pos)
    preds[:, 5:] = rng.uniform(0.0, 1.0, size=(num_predictions, num_channels - 5))
    preds[n_pos:, 4] = rng.uniform(0.0, 0.5, size=num_predictions - n_pos)
    rng.shuffle(preds, axis=0)
    return preds.reshape(-1)


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode / NMS / full post processing on synthetic tensors.")
    parser.add_argument("--kind", default="currency", choices=["currency", "yolo"], help="Detector preset.")
    parser.add_argument("--positive-fraction", type=float, default=0.02, help="Share of predictions above objectness.")
    parser.add_argument("--iterations", type=int, default=200, help="Recorded iterations.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    parser.add_argument("--seed", type=int, default=0, help="RNG seed.")
    args = parser.parse_args()

    if args.iterations < 1:
        raise ValueError("--iterations must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if not 0.0 <= args.positive_fraction <= 1.0:
        raise ValueError("--positive-fraction must be in [0, 1]")

    cfg = preset(args.kind)
    detector = Detector(cfg)
    rng = np.random.default_rng(args.seed)
    tensor = synthetic_tensor(cfg.num_predictions, cfg.num_channels, args.positive_fraction, rng)

    t_decode: List[float] = []
    t_nms: List[float] = []
    t_full: List[float] = []
    candidates = 0
    kept = 0

    for it in tqdm(range(args.warmup + args.iterations), desc="benchmark", unit="it"):
        t0 = time.perf_counter()
        boxes = decode(
            tensor,
            cfg.num_predictions,
            cfg.num_channels,
            cfg.num_classes,
            detector.labels,
            cfg.objectness_threshold,
            cfg.confidence_threshold,
            cfg.min_box_area,
        )
        t1 = time.perf_counter()
        _ = suppress(boxes, cfg.iou_threshold)
        t2 = time.perf_counter()
        result = detector.process(tensor)
        t3 = time.perf_counter()

        if it < args.warmup:
            continue
        t_decode.append(t1 - t0)
        t_nms.append(t2 - t1)
        t_full.append(t3 - t2)
        candidates = len(boxes)
        kept = len(result)

    print(_format_summary("decode", _summarize_ms(t_decode)))
    print(_format_summary("nms", _summarize_ms(t_nms)))
    print(_format_summary("full_postprocess", _summarize_ms(t_full)))
    print(f"kind={cfg.kind.value} candidates={candidates} kept={kept} warmup={args.warmup}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
