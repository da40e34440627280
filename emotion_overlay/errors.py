"""
Exception taxonomy for the expression overlay.

Only model loading and frame acquisition are fatal. Tick-level failures
are wrapped in DetectionTickError and never leave the controller.
"""

from typing import Optional


class OverlayError(Exception):
    """Base class for all errors raised by this package."""


class ModelLoadError(OverlayError):
    """A required model artifact could not be loaded.

    Attributes:
        artifact: Logical name of the artifact ('face_detector', 'landmarks', ...).
        path: Resolved path that failed to load, if known.
    """

    def __init__(self, message: str, artifact: Optional[str] = None, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.artifact = artifact
        self.path = path


class DetectionTickError(OverlayError):
    """A single detection tick failed. Transient; the poll loop continues."""


class FrameSourceError(OverlayError):
    """The camera could not be opened or has stopped producing frames."""
