"""
Tests for the overlay surface and the HUD renderer.
"""

import numpy as np

from emotion_overlay.config import VisualizationConfig
from emotion_overlay.detection import FaceDetection, resize_results
from emotion_overlay.emotion import EmotionScore
from emotion_overlay.hud import blank_frame, render_view
from emotion_overlay.overlay import OverlaySurface
from emotion_overlay.presentation import PresentationState


def make_face(landmarks=True):
    points = np.array([[30.0, 30.0], [40.0, 35.0]], dtype=np.float32) if landmarks else None
    return FaceDetection(
        x1=10, y1=10, x2=60, y2=60, score=0.93,
        expressions=EmotionScore(happy=1.0),
        landmarks=points,
    )


def test_match_dimensions_and_clear():
    surface = OverlaySurface(VisualizationConfig())
    assert surface.is_blank()

    surface.match_dimensions(120, 80)
    surface.draw_detections([make_face()])

    assert surface.canvas.shape == (80, 120, 4)
    assert not surface.is_blank()

    surface.clear()
    assert surface.is_blank()


def test_draw_landmarks():
    config = VisualizationConfig(landmark_color=(1, 2, 3))
    surface = OverlaySurface(config, width=100, height=100)

    surface.draw_landmarks([make_face(), make_face(landmarks=False)])

    assert tuple(surface.canvas[30, 30]) == (1, 2, 3, 255)


def test_composite_blends_only_drawn_pixels():
    surface = OverlaySurface(VisualizationConfig(box_color=(0, 0, 255), show_confidence=False), 100, 100)
    surface.draw_detections([make_face()])
    frame = np.full((100, 100, 3), 50, dtype=np.uint8)

    out = surface.composite(frame)

    assert out.shape == frame.shape
    assert tuple(out[10, 30]) == (0, 0, 255)
    assert tuple(out[90, 90]) == (50, 50, 50)
    assert tuple(frame[10, 30]) == (50, 50, 50)


def test_resize_results_scales_landmarks():
    faces = resize_results([make_face()], (100, 100), (200, 50))

    assert (faces[0].x1, faces[0].y1, faces[0].x2, faces[0].y2) == (20, 5, 120, 30)
    assert faces[0].landmarks[0].tolist() == [60.0, 15.0]


class _Controller:
    loaded = True
    error = None

    def start(self, *args):
        return True

    def stop(self):
        pass


def test_render_view_adds_score_strip_while_detecting():
    state = PresentationState(_Controller(), object(), OverlaySurface(VisualizationConfig()))
    frame = np.zeros((480, 640, 3), dtype=np.uint8)

    idle = render_view(frame, state.view())
    assert idle.shape == frame.shape

    state.toggle_detection()
    detecting = render_view(frame, state.view())
    assert detecting.shape[0] > frame.shape[0]
    assert detecting.shape[1] == frame.shape[1]


def test_blank_frame():
    frame = blank_frame()
    assert frame.shape == (480, 640, 3)
    assert frame.any()
