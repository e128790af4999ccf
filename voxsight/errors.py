from __future__ import annotations


class VoxSightError(Exception):
    """
    Base class for errors raised by voxsight.
    """


class ConfigError(VoxSightError, ValueError):
    """
    Invalid detector configuration (bad values, unknown keys, unreadable config file).
    """


class UnknownDetectorError(ConfigError):
    """
    Requested detector kind has no configuration. Not retryable.
    """

    def __init__(self, kind: object):
        super().__init__(f"Unknown model type: {kind!r}")
        self.kind = kind


class TensorShapeError(VoxSightError, ValueError):
    """
    Raw prediction tensor does not match the declared (predictions, channels) shape.
    """
