"""
FaceAnalyzer: detect faces with landmarks and expressions in one call.

Public contract:
    FaceAnalyzer.detect_all_faces(frame: np.ndarray) -> list[FaceDetection]

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - Results are in detector order (highest score first). Callers that
      need "the first face" take index 0 and never re-sort.
    - Thread-safety is not guaranteed. The controller calls it from one
      executor job at a time.

Non-goals:
    - No camera access or I/O of any kind.
    - No drawing.
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from emotion_overlay.config import AppConfig, load_config
from emotion_overlay.detection import FaceDetection
from emotion_overlay.model_loader import ModelBundle
from emotion_overlay.postprocessor import FaceBox, parse_expressions, postprocess
from emotion_overlay.preprocessor import (
    crop_face,
    preprocess,
    preprocess_expression,
    preprocess_recognition,
)

logger = logging.getLogger(__name__)


class FaceAnalyzer:
    """Face, landmark and expression analysis on top of a ModelBundle.

    Usage:
        analyzer = FaceAnalyzer(load_models(config.model), config)
        faces = analyzer.detect_all_faces(frame)

    The analyzer owns no loading logic. The bundle is built by
    model_loader (synchronously or on the event loop) and injected here.
    """

    def __init__(self, models: ModelBundle, config: Optional[AppConfig] = None) -> None:
        if config is None:
            config = load_config()

        self._models = models
        self._config = config

        logger.info(
            "FaceAnalyzer initialized (backend=%s, confidence_threshold=%.2f, descriptors=%s)",
            config.model.backend,
            config.detection.confidence_threshold,
            config.detection.with_descriptors,
        )

    def detect_all_faces(self, frame: np.ndarray) -> List[FaceDetection]:
        """Detect every face in a BGR frame and attach landmarks and expressions.

        Args:
            frame: A BGR image with shape (H, W, 3) and dtype uint8.

        Returns:
            FaceDetection list in detector order. Empty if no face passes
            the confidence threshold.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape or is empty.
        """
        self._validate_frame(frame)

        boxes = self._detect_boxes(frame)
        if not boxes:
            return []

        landmarks = self._fit_landmarks(frame, boxes)

        faces = []
        for box, points in zip(boxes, landmarks):
            crop = crop_face(frame, box.x1, box.y1, box.x2, box.y2)
            descriptor = None
            if self._config.detection.with_descriptors:
                descriptor = self._describe(crop)

            faces.append(FaceDetection(
                x1=box.x1,
                y1=box.y1,
                x2=box.x2,
                y2=box.y2,
                score=box.score,
                expressions=self._classify_expression(crop),
                landmarks=points,
                descriptor=descriptor,
            ))

        return faces

    def _detect_boxes(self, frame: np.ndarray) -> List[FaceBox]:
        blob = preprocess(frame, self._config.model)

        net = self._models.face_detector
        net.setInput(blob)
        output = net.forward()

        h, w = frame.shape[:2]
        return postprocess(
            network_output=output,
            frame_width=w,
            frame_height=h,
            confidence_threshold=self._config.detection.confidence_threshold,
        )

    def _fit_landmarks(self, frame: np.ndarray, boxes: List[FaceBox]) -> List[Optional[np.ndarray]]:
        """Fit 68 landmark points per box. Returns None entries if fitting fails."""
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        rects = np.array(
            [(b.x1, b.y1, b.x2 - b.x1, b.y2 - b.y1) for b in boxes], dtype=np.int32
        )

        ok, fitted = self._models.landmarks.fit(gray, rects)
        if not ok or fitted is None or len(fitted) != len(boxes):
            logger.debug("Landmark fitting failed for %d face(s).", len(boxes))
            return [None] * len(boxes)

        return [np.asarray(points, dtype=np.float32).reshape(-1, 2) for points in fitted]

    def _classify_expression(self, crop: np.ndarray):
        blob = preprocess_expression(crop, self._config.model.expression_input_size)

        net = self._models.expressions
        net.setInput(blob)
        logits = net.forward()

        return parse_expressions(logits, self._config.model.expression_labels)

    def _describe(self, crop: np.ndarray) -> np.ndarray:
        net = self._models.recognition
        net.setInput(preprocess_recognition(crop))
        return np.asarray(net.forward(), dtype=np.float32).reshape(-1)

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels."
            )
