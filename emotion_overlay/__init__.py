"""
Expression Overlay: real-time facial expression scores over a webcam feed.

Public API:
    - ExpressionController: model lifecycle and the detection polling loop.
    - PresentationState: camera/detection toggles and display formatting.
    - LatestResult: single-slot result cell usable as the result callback.
    - DetectionResult, EmotionScore: per-tick output types.
    - ModelLoadError, DetectionTickError: error taxonomy.

Usage:
    from emotion_overlay import ExpressionController, LatestResult

    controller = ExpressionController()
    await controller.initialize()
    latest = LatestResult()
    controller.start(camera, overlay, latest)
"""

from emotion_overlay.controller import ExpressionController, LatestResult
from emotion_overlay.emotion import EMOTION_KEYS, DetectionResult, EmotionScore
from emotion_overlay.errors import DetectionTickError, ModelLoadError
from emotion_overlay.presentation import PresentationState

__all__ = [
    "ExpressionController",
    "LatestResult",
    "PresentationState",
    "DetectionResult",
    "EmotionScore",
    "EMOTION_KEYS",
    "ModelLoadError",
    "DetectionTickError",
]
