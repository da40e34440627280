"""
Face detection data transfer object.

FaceDetection is the per-face output of FaceAnalyzer.detect_all_faces():
a bounding box, the detector score, 68 landmark points and the seven
expression scores. It is frozen and carries no rendering logic.
"""

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from emotion_overlay.emotion import EmotionScore


@dataclass(frozen=True)
class FaceDetection:
    """A single detected face.

    Attributes:
        x1: Top-left x coordinate (absolute pixels).
        y1: Top-left y coordinate (absolute pixels).
        x2: Bottom-right x coordinate (absolute pixels).
        y2: Bottom-right y coordinate (absolute pixels).
        score: Detector confidence in [0.0, 1.0].
        expressions: Expression scores for this face.
        landmarks: (68, 2) float array of landmark points, or None when the
                   landmark model could not fit this face.
        descriptor: 128-d face embedding, only when descriptors are enabled.

    All coordinates are absolute pixels in the frame the detection was
    computed on. Use scaled() to map them to another resolution.
    """

    x1: int
    y1: int
    x2: int
    y2: int
    score: float
    expressions: EmotionScore
    landmarks: Optional[np.ndarray] = None
    descriptor: Optional[np.ndarray] = None

    def scaled(self, sx: float, sy: float) -> "FaceDetection":
        """Return a copy with box and landmarks scaled by (sx, sy)."""
        if sx == 1.0 and sy == 1.0:
            return self

        landmarks = None
        if self.landmarks is not None:
            landmarks = self.landmarks * np.array([sx, sy], dtype=np.float32)

        return replace(
            self,
            x1=int(round(self.x1 * sx)),
            y1=int(round(self.y1 * sy)),
            x2=int(round(self.x2 * sx)),
            y2=int(round(self.y2 * sy)),
            landmarks=landmarks,
        )


def resize_results(detections, from_size, to_size):
    """Map detections computed at from_size=(w, h) onto to_size=(w, h)."""
    fw, fh = from_size
    tw, th = to_size
    if fw <= 0 or fh <= 0:
        raise ValueError(f"Source size must be positive, got {from_size}.")
    sx, sy = tw / fw, th / fh
    return [det.scaled(sx, sy) for det in detections]
