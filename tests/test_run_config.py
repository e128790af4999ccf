import argparse
import unittest

from voxsight.errors import ConfigError
from voxsight.run_config import apply_run_config, collect_cli_dests


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default=None)
    parser.add_argument("--kind", default="currency", choices=["currency", "yolo"])
    parser.add_argument("--every", type=int, default=1)
    parser.add_argument("--iou", type=float, default=0.4)
    parser.add_argument("--show", action="store_true")
    return parser


class TestRunConfig(unittest.TestCase):
    def _apply(self, argv, payload) -> argparse.Namespace:
        parser = _parser()
        args = parser.parse_args(argv)
        apply_run_config(args=args, payload=payload, cli_dests=collect_cli_dests(parser, argv), parser=parser)
        return args

    def test_fills_unset_options(self) -> None:
        args = self._apply([], {"kind": "yolo", "every": 3, "iou": 0.5, "show": True})
        self.assertEqual(args.kind, "yolo")
        self.assertEqual(args.every, 3)
        self.assertEqual(args.iou, 0.5)
        self.assertTrue(args.show)

    def test_cli_wins(self) -> None:
        args = self._apply(["--every=2", "--kind", "currency"], {"kind": "yolo", "every": 3})
        self.assertEqual(args.every, 2)
        self.assertEqual(args.kind, "currency")

    def test_rejects_bad_values(self) -> None:
        for payload in ({"every": 1.5}, {"iou": "high"}, {"show": 1}, {"kind": "tflite"}, {"unknown": 1}, {"config": "x"}):
            with self.subTest(payload=payload):
                with self.assertRaises(ConfigError):
                    self._apply([], payload)


if __name__ == "__main__":
    unittest.main()
