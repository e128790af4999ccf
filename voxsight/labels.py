from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CURRENCY_LABELS: Tuple[str, ...] = (
    "10_rupee",
    "20_rupee",
    "50_rupee",
    "100_rupee",
    "200_rupee",
    "500_rupee",
    "2000_rupee",
)

COCO_LABELS: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog",
    "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella",
    "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball", "kite",
    "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket", "bottle",
    "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich",
    "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote",
    "keyboard", "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator", "book",
    "clock", "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
)


def load_labels(label_path: PathLike) -> Tuple[str, ...]:
    """
    Load a plain-text label file: one class name per line, in class-index order.

    Blank lines are skipped. A missing file yields an empty tuple so callers can
    fall back to a default label set.
    """

    path = Path(label_path)
    if not path.is_file():
        logger.warning("Label file not found: %s", path)
        return ()

    with open(path, "r", encoding="utf-8") as f:
        return tuple(line.strip() for line in f if line.strip())


def load_class_names(metadata_path: PathLike) -> Dict[int, str]:
    """
    Load class names from an exported model's `metadata.yaml`:

        names:
          0: 10_rupee
          1: 20_rupee
          ...

    Parsed by hand; only the `names:` block is read.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def names_to_labels(names: Dict[int, str]) -> Tuple[str, ...]:
    """
    Dense label tuple from an {id: name} mapping. Gaps are filled with the id as text.
    """

    if not names:
        return ()
    return tuple(names.get(i, str(i)) for i in range(max(names) + 1))


def resolve_labels(label_path: Optional[PathLike], fallback: Sequence[str]) -> Tuple[str, ...]:
    """
    Labels from `label_path` (text file or `.yaml` metadata), or `fallback` when
    no path is given or the file is missing or empty.
    """

    labels: Tuple[str, ...] = ()
    if label_path is not None:
        path = Path(label_path)
        if path.suffix.lower() in {".yaml", ".yml"} and path.is_file():
            labels = names_to_labels(load_class_names(path))
        else:
            labels = load_labels(path)

    if labels:
        logger.info("Labels loaded: %d classes", len(labels))
        return labels

    if label_path is not None:
        logger.warning("No labels loaded from %s; using %d default labels", label_path, len(fallback))
    return tuple(fallback)
