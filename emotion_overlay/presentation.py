"""
Presentation state for the demo window.

PresentationState holds the UI booleans (camera on, detecting, face
found) and the last result, exposes the two toggles, and derives a
PresentationView that the display loop paints. The display loop only
reads; every mutation goes through a toggle or a controller callback.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from emotion_overlay.controller import ExpressionController
from emotion_overlay.emotion import (
    EMOTION_KEYS,
    PLACEHOLDER_RESULT,
    DetectionResult,
    EmotionScore,
    get_emotion_emoji,
    get_emotion_label,
)

logger = logging.getLogger(__name__)

SEARCHING_TEXT = "Searching for face"


@dataclass(frozen=True)
class EmotionRow:
    """One entry of the per-emotion score strip."""

    key: str
    label: str
    emoji: str
    percent_text: str
    bar_fraction: float
    highlighted: bool


@dataclass(frozen=True)
class PresentationView:
    """Everything the display loop needs to paint one frame."""

    status_text: str
    status_color: str
    headline_label: Optional[str]
    headline_emoji: Optional[str]
    confidence_text: Optional[str]
    rows: Tuple[EmotionRow, ...]
    hint: Optional[str]
    camera_button: str
    detection_button: str
    detection_enabled: bool
    error: Optional[str]


class ScoreSmoother:
    """Exponential moving average over displayed emotion scores."""

    def __init__(self, alpha: float = 1.0) -> None:
        if not (0.0 < alpha <= 1.0):
            raise ValueError(f"alpha must be in (0.0, 1.0], got {alpha}.")
        self.alpha = float(alpha)
        self.state: Optional[Dict[str, float]] = None

    def update(self, scores: EmotionScore) -> EmotionScore:
        if self.state is None or self.alpha == 1.0:
            self.state = dict(scores.items())
        else:
            self.state = {
                key: self.alpha * value + (1.0 - self.alpha) * self.state[key]
                for key, value in scores.items()
            }
        return EmotionScore.from_mapping(self.state)

    def reset(self) -> None:
        self.state = None


class PresentationState:
    """UI state and toggles around an ExpressionController.

    Args:
        controller: The detection controller to start and stop.
        frame_source: Camera. If it has open()/release() the camera toggle
                      opens and releases it.
        overlay: Surface the controller draws detections onto.
        camera_on: Initial camera state.
        smoothing_alpha: Display EMA weight, 1.0 for none.
    """

    def __init__(
        self,
        controller: ExpressionController,
        frame_source,
        overlay,
        camera_on: bool = True,
        smoothing_alpha: float = 1.0,
    ) -> None:
        self._controller = controller
        self._frame_source = frame_source
        self._overlay = overlay
        self._smoother = ScoreSmoother(smoothing_alpha)
        self._display_result: Optional[DetectionResult] = None

        self.camera_on = camera_on
        self.detecting = False
        self.face_found = False
        self.last_result: Optional[DetectionResult] = None

    # ------------------------------------------------------------------
    # Toggles
    # ------------------------------------------------------------------

    def toggle_camera(self) -> None:
        """Flip the camera. Turning it off also stops detection.

        Raises:
            FrameSourceError: If the camera cannot be opened. The camera
                stays off.
        """
        if self.detecting:
            self._stop_detection()

        if self.camera_on:
            self.camera_on = False
            if hasattr(self._frame_source, "release"):
                self._frame_source.release()
        else:
            if hasattr(self._frame_source, "open"):
                self._frame_source.open()
            self.camera_on = True

        logger.info("Camera %s.", "on" if self.camera_on else "off")

    def toggle_detection(self) -> bool:
        """Start or stop detection.

        Returns:
            True if detection is running afterwards.
        """
        if self.detecting:
            self._stop_detection()
            return False

        if not self.camera_on or not self._controller.loaded:
            logger.info(
                "Detection unavailable (camera_on=%s, models_loaded=%s).",
                self.camera_on, self._controller.loaded,
            )
            return False

        self.detecting = self._controller.start(self._frame_source, self._overlay, self._on_result)
        return self.detecting

    def _stop_detection(self) -> None:
        self._controller.stop()
        self.detecting = False
        self._clear_result()
        self._overlay.clear()

    def _on_result(self, result: Optional[DetectionResult]) -> None:
        self.last_result = result
        self.face_found = result is not None

        if result is None:
            self._smoother.reset()
            self._display_result = None
        else:
            self._display_result = DetectionResult.from_scores(self._smoother.update(result.emotion))

    def _clear_result(self) -> None:
        self.last_result = None
        self.face_found = False
        self._display_result = None
        self._smoother.reset()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def display_result(self) -> Optional[DetectionResult]:
        """Result to show: None when stopped, placeholder until a face appears."""
        if not self.detecting:
            return None
        return self._display_result or PLACEHOLDER_RESULT

    def status(self) -> Tuple[str, str]:
        """(text, color name) of the status badge."""
        if self.detecting and self.face_found:
            return "Face detected", "green"
        if self.detecting:
            return SEARCHING_TEXT, "yellow"
        return "Stopped", "red"

    def confidence_text(self) -> Optional[str]:
        display = self.display_result
        if display is None:
            return None
        if not self.face_found:
            return SEARCHING_TEXT
        return f"{display.confidence * 100:.1f}%"

    def detection_button(self) -> str:
        if self._controller.error is not None:
            return "Models unavailable"
        if not self._controller.loaded:
            return "Loading models..."
        return "Stop detection" if self.detecting else "Start detection"

    def view(self) -> PresentationView:
        display = self.display_result
        status_text, status_color = self.status()

        rows: Tuple[EmotionRow, ...] = ()
        if display is not None:
            rows = tuple(self._row(key, display) for key in EMOTION_KEYS)

        return PresentationView(
            status_text=status_text,
            status_color=status_color,
            headline_label=get_emotion_label(display.dominant_emotion) if display else None,
            headline_emoji=get_emotion_emoji(display.dominant_emotion) if display else None,
            confidence_text=self.confidence_text(),
            rows=rows,
            hint="Waiting for a face to appear" if self.detecting and not self.face_found else None,
            camera_button="Camera on" if self.camera_on else "Camera off",
            detection_button=self.detection_button(),
            detection_enabled=self._controller.loaded and self.camera_on,
            error=self._controller.error,
        )

    def _row(self, key: str, display: DetectionResult) -> EmotionRow:
        score = display.emotion[key]
        if self.face_found:
            percent_text = f"{score * 100:.0f}%"
            bar_fraction = min(max(score, 0.0), 1.0)
        else:
            percent_text = "--%"
            bar_fraction = 1.0 / len(EMOTION_KEYS)

        return EmotionRow(
            key=key,
            label=get_emotion_label(key),
            emoji=get_emotion_emoji(key),
            percent_text=percent_text,
            bar_fraction=bar_fraction,
            highlighted=self.face_found and key == display.dominant_emotion,
        )
