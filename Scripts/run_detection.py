import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import cv2

from voxsight import create_detector, draw_detections, load_detector_config, load_pipeline, preset
from voxsight.run_config import apply_run_config, collect_cli_dests, load_run_config
from voxsight.utils.logging import configure_logging

logger = logging.getLogger("run_detection")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the currency / object detector on an image, video or webcam.")
    parser.add_argument("--config", default=None, help="JSON run config; values fill options not given on the CLI.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--kind", default="currency", choices=["currency", "yolo"], help="Detector preset.")
    parser.add_argument("--detector-config", default=None, help="JSON detector config (overrides the preset).")
    parser.add_argument("--model", default=None, help="Override the ONNX model path.")
    parser.add_argument("--labels", default=None, help="Override the label file (one name per line or metadata.yaml).")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the visualization.")
    parser.add_argument("--every", type=int, default=1, help="Process every Nth frame for video/webcam.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    parser.add_argument("--log-file", default=None, help="Optional log file.")
    return parser


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    if args.config:
        argv = sys.argv[1:]
        apply_run_config(
            args=args,
            payload=load_run_config(Path(args.config)),
            cli_dests=collect_cli_dests(parser, argv),
            parser=parser,
        )

    configure_logging(args.log_level, Path(args.log_file) if args.log_file else None)

    if args.every < 1:
        raise ValueError("--every must be >= 1")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    config = load_detector_config(args.detector_config) if args.detector_config else None
    if config is not None or args.model or args.labels:
        config = config or preset(args.kind)
        overrides = {}
        if args.model:
            overrides["model_path"] = args.model
        if args.labels:
            overrides["label_path"] = args.labels
        config = replace(config, **overrides)

    kind = config.kind if config is not None else args.kind
    detector = create_detector(kind, config=config)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(detector, onnx_providers=onnx_providers)
    detector.enable()

    try:
        if args.image is not None:
            return _run_image(pipeline, args)
        return _run_stream(pipeline, args)
    finally:
        pipeline.close()


def _run_image(pipeline, args: argparse.Namespace) -> int:
    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    result = pipeline(img)
    boxes = result.boxes if result is not None else ()
    if not boxes:
        logger.info("No detection")
    for box in boxes:
        print(box.class_name, f"{box.confidence:.3f}", box.as_xyxy())

    vis = draw_detections(img, boxes, show_score=True)
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


def _run_stream(pipeline, args: argparse.Namespace) -> int:
    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    writer = None
    frame_idx = 0
    processed = 0
    last_top = None

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            frame_idx += 1
            if (frame_idx - 1) % args.every != 0:
                continue

            result = pipeline(frame)
            boxes = result.boxes if result is not None else ()
            top = boxes[0].class_name if boxes else None
            if top is not None and top != last_top:
                logger.info("frame=%d %s (%.1f ms)", frame_idx, top, result.inference_ms or 0.0)
            last_top = top

            vis = draw_detections(frame, boxes, show_score=True)

            if args.out and writer is None:
                fps = cap.get(cv2.CAP_PROP_FPS)
                if fps is None or fps <= 0:
                    fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("detections", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            processed += 1
            if args.max_frames and processed >= args.max_frames:
                break

    finally:
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
