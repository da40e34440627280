"""
Webcam frame source.

Responsibility:
    Own a cv2.VideoCapture, keep reading frames on a daemon thread, and
    hand out the most recent frame on demand. The detection loop and the
    display loop both read from here without blocking each other.

Contract (what the detection controller relies on):
    - is_active: True while the capture is open and producing frames.
    - video_width / video_height: native resolution of the last frame.
    - read(): a copy of the latest BGR frame, or None before the first one
      and after the reader gives up on a failing device.

Non-goals:
    - No file or directory sources.
    - No reconnection after the device disappears.
"""

import logging
import threading
from typing import Optional

import cv2
import numpy as np

from emotion_overlay.config import CameraConfig
from emotion_overlay.errors import FrameSourceError

logger = logging.getLogger(__name__)

# Stop reading after this many consecutive failed grabs
_MAX_CONSECUTIVE_FAILURES = 30


class CameraSource:
    """Latest-frame reader over a webcam device.

    Usage:
        camera = CameraSource(config.camera)
        camera.open()
        frame = camera.read()
        camera.release()
    """

    def __init__(self, config: CameraConfig) -> None:
        self._config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self._width = 0
        self._height = 0

    @property
    def is_active(self) -> bool:
        return self._cap is not None and not self._stop_event.is_set()

    @property
    def video_width(self) -> int:
        with self._lock:
            return self._width

    @property
    def video_height(self) -> int:
        with self._lock:
            return self._height

    def open(self) -> None:
        """Open the device and start the reader thread.

        Raises:
            FrameSourceError: If the device cannot be opened.
        """
        if self._cap is not None:
            return

        cap = cv2.VideoCapture(self._config.device)
        if not cap.isOpened():
            cap.release()
            raise FrameSourceError(
                f"Failed to open webcam device {self._config.device}. "
                f"Ensure the camera exists and is not used by another program."
            )

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._config.height)

        self._cap = cap
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="camera-reader", daemon=True)
        self._thread.start()
        logger.info("Camera opened: device=%d", self._config.device)

    def read(self) -> Optional[np.ndarray]:
        """Return a copy of the latest frame, or None if none has arrived."""
        with self._lock:
            if self._frame is None:
                return None
            return self._frame.copy()

    def _run(self) -> None:
        failures = 0
        while not self._stop_event.is_set():
            ok, frame = self._cap.read()

            if not ok or frame is None:
                failures += 1
                if failures >= _MAX_CONSECUTIVE_FAILURES:
                    logger.error(
                        "Webcam produced %d consecutive failed reads. Stopping reader.",
                        _MAX_CONSECUTIVE_FAILURES,
                    )
                    with self._lock:
                        self._frame = None
                        self._width = self._height = 0
                    self._stop_event.set()
                    break
                continue

            failures = 0
            with self._lock:
                self._frame = frame
                self._height, self._width = frame.shape[:2]

    def release(self) -> None:
        """Stop the reader thread and release the device."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera released.")

        with self._lock:
            self._frame = None
            self._width = self._height = 0
