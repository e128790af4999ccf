"""
Voice-command handling around the detectors.

Speech recognition and synthesis stay outside this package: commands arrive as
already-recognized text and replies leave through a `speak` callable.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .config import DetectorKind
from .detector import Detector
from .factory import create_detector
from .types import DetectionResult

logger = logging.getLogger(__name__)

SpeakFn = Callable[[str], None]
DetectorFactory = Callable[[DetectorKind], Detector]

READY_TEXT = "Ready for commands. Say object detection or detect currency"
HELP_TEXT = "Available commands: stop detection, start detection, object detection, currency detection, go back"


class CameraCommand(str, Enum):
    STOP = "stop"
    START = "start"
    OBJECT_DETECTION = "object_detection"
    CURRENCY_DETECTION = "currency_detection"
    GO_BACK = "go_back"
    HELP = "help"
    UNKNOWN = "unknown"


class DetectionMode(str, Enum):
    NONE = "none"
    OBJECT = "object"
    CURRENCY = "currency"


_MODE_KINDS = {
    DetectionMode.OBJECT: DetectorKind.YOLO,
    DetectionMode.CURRENCY: DetectorKind.CURRENCY,
}

# Checked in order; the first phrase found in the utterance wins.
_PHRASES = (
    (CameraCommand.STOP, ("stop detection", "detection stop")),
    (CameraCommand.START, ("start detection", "detection start")),
    (CameraCommand.OBJECT_DETECTION, ("object detection",)),
    (CameraCommand.CURRENCY_DETECTION, ("currency detection", "detect currency")),
    (CameraCommand.GO_BACK, ("go back", "return home")),
    (CameraCommand.HELP, ("help",)),
)


def parse_camera_command(text: str) -> CameraCommand:
    command = " ".join(text.lower().split())
    for cmd, phrases in _PHRASES:
        if any(p in command for p in phrases):
            return cmd
    return CameraCommand.UNKNOWN


class Announcer:
    """
    Speaks the top detection's class name, once per change.

    The same class seen on consecutive frames is announced only once; an empty
    frame clears the memory so the next sighting is announced again.
    """

    def __init__(self, speak: Optional[SpeakFn] = None):
        self._speak = speak
        self.last_spoken: Optional[str] = None

    def reset(self) -> None:
        self.last_spoken = None

    def update(self, result: Optional[DetectionResult]) -> Optional[str]:
        """
        Returns the announced text, or None when nothing new was said.
        """

        top = result.top if result is not None else None
        if top is None:
            self.last_spoken = None
            return None
        if top.class_name == self.last_spoken:
            return None
        self.last_spoken = top.class_name
        if self._speak is not None:
            self._speak(top.class_name)
        return top.class_name


class DetectionController:
    """
    Owns the active detector and applies camera voice commands to it.

    Switching modes closes the previous detector, builds the new one through
    `detector_factory` and starts detection right away.
    """

    def __init__(
        self,
        detector_factory: DetectorFactory = create_detector,
        speak: Optional[SpeakFn] = None,
    ):
        self._factory = detector_factory
        self._speak = speak
        self.announcer = Announcer(speak)
        self.mode = DetectionMode.NONE
        self.detector: Optional[Detector] = None
        self.running = False
        self.finished = False

    def _say(self, text: str) -> str:
        if self._speak is not None:
            self._speak(text)
        return text

    def handle(self, text: str) -> Optional[str]:
        """
        Apply one recognized utterance. Returns the reply, None for unrecognized input.
        """

        command = parse_camera_command(text)
        logger.debug("Processing camera voice command: %r -> %s", text, command.value)

        if command is CameraCommand.STOP:
            if not self.running:
                return self._say("Detection is already stopped")
            self.stop()
            return self._say("Detection stopped")

        if command is CameraCommand.START:
            if self.running:
                return self._say("Detection is already running")
            self.start()
            return self._say("Detection started")

        if command is CameraCommand.OBJECT_DETECTION:
            reply = self._say("Switching to object detection")
            self.switch_mode(DetectionMode.OBJECT)
            return reply

        if command is CameraCommand.CURRENCY_DETECTION:
            reply = self._say("Switching to currency detection")
            self.switch_mode(DetectionMode.CURRENCY)
            return reply

        if command is CameraCommand.GO_BACK:
            self.close()
            self.finished = True
            return self._say("Returning to home")

        if command is CameraCommand.HELP:
            return self._say(HELP_TEXT)

        logger.debug("Unrecognized command: %r", text)
        return None

    def start(self) -> None:
        self.running = True
        if self.detector is not None:
            self.detector.enable()
        logger.debug("Detection started")

    def stop(self) -> None:
        self.running = False
        if self.detector is not None:
            self.detector.disable()
        self.announcer.reset()
        logger.debug("Detection stopped")

    def switch_mode(self, mode: DetectionMode) -> None:
        if self.detector is not None:
            self.detector.close()
            self.detector = None
        self.announcer.reset()
        self.mode = mode

        kind = _MODE_KINDS.get(mode)
        if kind is None:
            self.running = False
            logger.info("Detection turned off")
            return

        self.detector = self._factory(kind)
        self.running = True
        self.detector.enable()
        logger.info("Switched to %s detection mode", mode.value)

    def process(self, tensor: np.ndarray, inference_ms: Optional[float] = None) -> Optional[DetectionResult]:
        """
        Feed one frame's raw model output to the active detector and announce the result.

        Returns None when stopped or when no detector is active.
        """

        if not self.running or self.detector is None:
            return None
        result = self.detector.detect(tensor, inference_ms=inference_ms)
        if result is not None:
            self.announcer.update(result)
        return result

    def close(self) -> None:
        if self.detector is not None:
            self.detector.close()
        self.detector = None
        self.mode = DetectionMode.NONE
        self.running = False
        self.announcer.reset()
