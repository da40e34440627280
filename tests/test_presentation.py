"""
Tests for PresentationState toggles and view formatting.
"""

import asyncio

import numpy as np
import pytest

from emotion_overlay.config import AppConfig, DetectionConfig, VisualizationConfig
from emotion_overlay.controller import ExpressionController
from emotion_overlay.detection import FaceDetection
from emotion_overlay.emotion import PLACEHOLDER_RESULT, DetectionResult, EmotionScore
from emotion_overlay.overlay import OverlaySurface
from emotion_overlay.presentation import PresentationState, ScoreSmoother

NEUTRAL = DetectionResult.from_scores(EmotionScore.from_mapping({
    "neutral": 0.8, "happy": 0.1, "sad": 0.02, "angry": 0.02,
    "fearful": 0.02, "disgusted": 0.02, "surprised": 0.02,
}))
HAPPY = DetectionResult.from_scores(EmotionScore.from_mapping({
    "neutral": 0.1, "happy": 0.8, "sad": 0.02, "angry": 0.02,
    "fearful": 0.02, "disgusted": 0.02, "surprised": 0.02,
}))


class StubController:
    def __init__(self, loaded=True, error=None):
        self.loaded = loaded
        self.error = error
        self.on_result = None
        self.starts = 0
        self.stops = 0

    def start(self, frame_source, overlay, on_result):
        self.starts += 1
        self.on_result = on_result
        return True

    def stop(self):
        self.stops += 1


class StubCamera:
    def __init__(self):
        self.opened = 0
        self.released = 0

    def open(self):
        self.opened += 1

    def release(self):
        self.released += 1


def make_state(controller=None, camera_on=True, smoothing_alpha=1.0):
    controller = controller or StubController()
    camera = StubCamera()
    overlay = OverlaySurface(VisualizationConfig())
    state = PresentationState(controller, camera, overlay, camera_on=camera_on, smoothing_alpha=smoothing_alpha)
    return state, controller, camera


def test_detection_requires_camera():
    state, controller, _ = make_state(camera_on=False)

    assert state.toggle_detection() is False
    assert controller.starts == 0


def test_detection_requires_loaded_models():
    state, controller, _ = make_state(StubController(loaded=False))

    assert state.toggle_detection() is False
    assert controller.starts == 0
    assert state.view().detection_button == "Loading models..."
    assert state.view().detection_enabled is False


def test_searching_view_uses_placeholder():
    state, _, _ = make_state()
    state.toggle_detection()

    view = state.view()

    assert state.detecting
    assert state.display_result is PLACEHOLDER_RESULT
    assert view.status_text == "Searching for face"
    assert view.status_color == "yellow"
    assert view.confidence_text == "Searching for face"
    assert view.hint is not None
    assert [row.percent_text for row in view.rows] == ["--%"] * 7
    assert all(row.bar_fraction == pytest.approx(1 / 7) for row in view.rows)
    assert not any(row.highlighted for row in view.rows)


def test_result_updates_view():
    state, controller, _ = make_state()
    state.toggle_detection()

    controller.on_result(NEUTRAL)
    view = state.view()

    assert state.face_found
    assert state.last_result is NEUTRAL
    assert view.status_text == "Face detected"
    assert view.status_color == "green"
    assert view.headline_label == "Neutral"
    assert view.confidence_text == "80.0%"
    assert view.rows[0].percent_text == "80%"
    assert view.rows[0].highlighted
    assert not view.rows[1].highlighted
    assert view.detection_button == "Stop detection"


def test_face_lost_returns_to_searching():
    state, controller, _ = make_state()
    state.toggle_detection()
    controller.on_result(NEUTRAL)

    controller.on_result(None)

    assert not state.face_found
    assert state.last_result is None
    assert state.display_result is PLACEHOLDER_RESULT


def test_toggle_detection_off_clears_result():
    state, controller, _ = make_state()
    state.toggle_detection()
    controller.on_result(NEUTRAL)

    assert state.toggle_detection() is False

    assert controller.stops == 1
    assert not state.detecting
    assert not state.face_found
    assert state.last_result is None
    view = state.view()
    assert view.status_text == "Stopped"
    assert view.status_color == "red"
    assert view.rows == ()
    assert view.headline_label is None


def test_camera_off_stops_detection():
    state, controller, camera = make_state()
    state.toggle_detection()
    controller.on_result(NEUTRAL)

    state.toggle_camera()

    assert not state.camera_on
    assert not state.detecting
    assert state.last_result is None
    assert controller.stops == 1
    assert camera.released == 1
    assert state.view().camera_button == "Camera off"

    state.toggle_camera()
    assert state.camera_on
    assert camera.opened == 1


def test_error_is_surfaced():
    state, _, _ = make_state(StubController(loaded=False, error="Model artifact 'landmarks' not found."))

    view = state.view()

    assert view.error.startswith("Model artifact")
    assert view.detection_button == "Models unavailable"


def test_smoothing_affects_display_only():
    state, controller, _ = make_state(smoothing_alpha=0.5)
    state.toggle_detection()

    controller.on_result(NEUTRAL)
    controller.on_result(HAPPY)

    assert state.last_result is HAPPY
    assert state.display_result.emotion.neutral == pytest.approx(0.45)
    assert state.display_result.emotion.happy == pytest.approx(0.45)


def test_smoother_rejects_bad_alpha():
    with pytest.raises(ValueError):
        ScoreSmoother(0.0)


def test_with_real_controller():
    class OneFaceAnalyzer:
        def detect_all_faces(self, frame):
            return [FaceDetection(
                x1=5, y1=5, x2=40, y2=40, score=0.9,
                expressions=HAPPY.emotion,
            )]

    class Source:
        is_active = True
        video_width = 64
        video_height = 48

        def read(self):
            return np.zeros((48, 64, 3), dtype=np.uint8)

    async def loader(model_config):
        return object()

    async def scenario():
        controller = ExpressionController(
            AppConfig(detection=DetectionConfig(interval_ms=10)),
            loader=loader,
            analyzer_factory=lambda models, cfg: OneFaceAnalyzer(),
        )
        await controller.initialize()
        state = PresentationState(controller, Source(), OverlaySurface(VisualizationConfig()))

        assert state.toggle_detection()
        for _ in range(200):
            if state.face_found:
                break
            await asyncio.sleep(0.01)
        view = state.view()
        state.toggle_detection()
        return view, controller

    view, controller = asyncio.run(scenario())

    assert view.headline_label == "Smiling"
    assert view.confidence_text == "80.0%"
    assert not controller.running
