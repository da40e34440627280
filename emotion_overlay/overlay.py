"""
Overlay surface for the expression overlay.

Responsibility:
    Hold a transparent BGRA canvas the size of the camera's native
    resolution, and draw detection boxes and landmarks onto it. The
    display loop composites the canvas over each camera frame.

Non-goals:
    - No window management or display logic.
    - No detection or model logic.
"""

from typing import Iterable

import cv2
import numpy as np

from emotion_overlay.config import VisualizationConfig
from emotion_overlay.detection import FaceDetection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_LANDMARK_RADIUS = 1
_OPAQUE = 255


def _bgra(color) -> tuple:
    return (int(color[0]), int(color[1]), int(color[2]), _OPAQUE)


class OverlaySurface:
    """A transparent drawable layer matched to the frame source size.

    Usage:
        surface = OverlaySurface(config.visualization)
        surface.match_dimensions(640, 480)
        surface.clear()
        surface.draw_detections(faces)
        surface.draw_landmarks(faces)
        shown = surface.composite(frame)
    """

    def __init__(self, config: VisualizationConfig, width: int = 0, height: int = 0) -> None:
        self._config = config
        self._canvas = np.zeros((max(height, 0), max(width, 0), 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._canvas.shape[1]

    @property
    def height(self) -> int:
        return self._canvas.shape[0]

    @property
    def canvas(self) -> np.ndarray:
        """The BGRA canvas. Alpha is 0 wherever nothing was drawn."""
        return self._canvas

    def is_blank(self) -> bool:
        return not self._canvas[..., 3].any()

    def match_dimensions(self, width: int, height: int) -> None:
        """Resize the canvas to (width, height). Resizing discards content."""
        if (width, height) != (self.width, self.height):
            self._canvas = np.zeros((height, width, 4), dtype=np.uint8)

    def clear(self) -> None:
        self._canvas[:] = 0

    def draw_detections(self, faces: Iterable[FaceDetection]) -> None:
        """Draw a box and optional score label for each face."""
        color = _bgra(self._config.box_color)

        for face in faces:
            cv2.rectangle(
                self._canvas,
                (face.x1, face.y1),
                (face.x2, face.y2),
                color=color,
                thickness=self._config.thickness,
            )

            if not self._config.show_confidence:
                continue

            label = f"{face.score:.2f}"
            (text_w, text_h), _ = cv2.getTextSize(label, _FONT, _FONT_SCALE, _FONT_THICKNESS)

            # Label above the box, or below if too close to the top edge
            label_y = face.y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = face.y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                self._canvas,
                (face.x1, label_y - text_h - _LABEL_PADDING),
                (face.x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=color,
                thickness=cv2.FILLED,
            )
            cv2.putText(
                self._canvas,
                label,
                (face.x1 + _LABEL_PADDING // 2, label_y),
                _FONT,
                _FONT_SCALE,
                (0, 0, 0, _OPAQUE),
                _FONT_THICKNESS,
                cv2.LINE_AA,
            )

    def draw_landmarks(self, faces: Iterable[FaceDetection]) -> None:
        """Draw every landmark point. Faces without landmarks are skipped."""
        color = _bgra(self._config.landmark_color)

        for face in faces:
            if face.landmarks is None:
                continue
            for x, y in face.landmarks:
                cv2.circle(
                    self._canvas,
                    (int(round(x)), int(round(y))),
                    _LANDMARK_RADIUS,
                    color,
                    thickness=cv2.FILLED,
                )

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Return a copy of a BGR frame with the canvas blended on top.

        The canvas is stretched to the frame size if they differ.
        """
        annotated = frame.copy()
        if self.width == 0 or self.height == 0:
            return annotated

        canvas = self._canvas
        h, w = frame.shape[:2]
        if (w, h) != (self.width, self.height):
            canvas = cv2.resize(canvas, (w, h), interpolation=cv2.INTER_NEAREST)

        alpha = canvas[..., 3:4].astype(np.float32) / 255.0
        blended = canvas[..., :3].astype(np.float32) * alpha + annotated.astype(np.float32) * (1.0 - alpha)
        return blended.astype(np.uint8)
