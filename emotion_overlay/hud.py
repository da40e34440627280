"""
Heads-up display for the demo window.

Paints a PresentationView onto a BGR frame: status badge, dominant
emotion headline, the seven-score strip, button hints and the model
error banner. Pure rendering; returns a new frame.

Hershey fonts cannot draw emoji, so only the text labels are shown.
"""

import cv2
import numpy as np

from emotion_overlay.presentation import PresentationView

_FONT = cv2.FONT_HERSHEY_SIMPLEX
_PANEL = (0, 0, 0)
_WHITE = (255, 255, 255)
_GREY = (160, 160, 160)
_BLUE = (230, 130, 60)
_RED_BANNER = (40, 40, 200)

STATUS_COLORS = {
    "green": (80, 220, 80),
    "yellow": (60, 220, 240),
    "red": (80, 80, 230),
}

_STRIP_HEIGHT = 70
_OFF_SCREEN_SIZE = (480, 640, 3)


def blank_frame(message: str = "Camera is off") -> np.ndarray:
    """Black frame shown while the camera is off."""
    frame = np.zeros(_OFF_SCREEN_SIZE, dtype=np.uint8)
    (text_w, _), _ = cv2.getTextSize(message, _FONT, 0.8, 2)
    cv2.putText(
        frame, message,
        ((frame.shape[1] - text_w) // 2, frame.shape[0] // 2),
        _FONT, 0.8, _WHITE, 2, cv2.LINE_AA,
    )
    return frame


def _panel(frame: np.ndarray, x1: int, y1: int, x2: int, y2: int, opacity: float = 0.7) -> None:
    """Darken a rectangle in place."""
    h, w = frame.shape[:2]
    x1, x2 = max(0, x1), min(w, x2)
    y1, y2 = max(0, y1), min(h, y2)
    if x2 <= x1 or y2 <= y1:
        return
    region = frame[y1:y2, x1:x2]
    frame[y1:y2, x1:x2] = (region * (1.0 - opacity)).astype(np.uint8)


def render_view(frame: np.ndarray, view: PresentationView) -> np.ndarray:
    """Return a copy of frame with the HUD painted on top.

    The output is taller than the input by the score strip height when
    rows are present.
    """
    canvas = frame.copy()
    h, w = canvas.shape[:2]

    # Status badge, top right
    (text_w, _), _ = cv2.getTextSize(view.status_text, _FONT, 0.5, 1)
    _panel(canvas, w - text_w - 40, 10, w - 10, 40)
    cv2.circle(canvas, (w - text_w - 28, 25), 5, STATUS_COLORS[view.status_color], cv2.FILLED)
    cv2.putText(canvas, view.status_text, (w - text_w - 16, 30), _FONT, 0.5, _WHITE, 1, cv2.LINE_AA)

    # Dominant emotion, top left
    if view.headline_label is not None:
        _panel(canvas, 10, 10, 230, 64)
        cv2.putText(canvas, view.headline_label, (20, 36), _FONT, 0.7, _WHITE, 2, cv2.LINE_AA)
        cv2.putText(canvas, view.confidence_text or "", (20, 56), _FONT, 0.45, _GREY, 1, cv2.LINE_AA)

    if view.error:
        canvas[max(0, h - 36):h, :] = _RED_BANNER
        cv2.putText(canvas, view.error.splitlines()[0][:80], (10, h - 12), _FONT, 0.5, _WHITE, 1, cv2.LINE_AA)

    hints = f"[c] {view.camera_button}   [d] {view.detection_button}   [q] Quit"
    cv2.putText(canvas, hints, (10, h - 46 if view.error else h - 12), _FONT, 0.45, _WHITE, 1, cv2.LINE_AA)

    if not view.rows:
        return canvas

    strip = np.full((_STRIP_HEIGHT, w, 3), 245, dtype=np.uint8)
    cell_w = w // len(view.rows)
    for i, row in enumerate(view.rows):
        x = i * cell_w
        if row.highlighted:
            cv2.rectangle(strip, (x + 2, 2), (x + cell_w - 2, _STRIP_HEIGHT - 2), _BLUE, 2)
        text_color = _BLUE if row.highlighted else (60, 60, 60)
        cv2.putText(strip, row.label, (x + 6, 20), _FONT, 0.4, text_color, 1, cv2.LINE_AA)
        cv2.putText(strip, row.percent_text, (x + 6, 42), _FONT, 0.5, text_color, 1, cv2.LINE_AA)

        bar_w = cell_w - 12
        cv2.rectangle(strip, (x + 6, 54), (x + 6 + bar_w, 58), (210, 210, 210), cv2.FILLED)
        filled = int(bar_w * row.bar_fraction)
        if filled > 0:
            cv2.rectangle(strip, (x + 6, 54), (x + 6 + filled, 58), text_color, cv2.FILLED)

    if view.hint:
        (hint_w, _), _ = cv2.getTextSize(view.hint, _FONT, 0.4, 1)
        cv2.putText(strip, view.hint, ((w - hint_w) // 2, _STRIP_HEIGHT - 2), _FONT, 0.35, _GREY, 1, cv2.LINE_AA)

    return np.vstack([canvas, strip])
