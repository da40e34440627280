"""
Preprocessing for the expression analysis pipeline.

Responsibility:
    Convert raw BGR frames and face crops into DNN input blobs for the
    face detector, the expression classifier and the recognition network.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.

Hard-coded:
    - The SSD detector takes BGR input (swapRB=False).
    - FER+ takes a single-channel grayscale crop in raw [0, 255] range.
    - OpenFace takes a 96x96 RGB crop scaled to [0, 1].
"""

import cv2
import numpy as np

from emotion_overlay.config import ModelConfig

_RECOGNITION_INPUT_SIZE = (96, 96)


def _require_frame(frame: np.ndarray) -> None:
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )


def preprocess(frame: np.ndarray, config: ModelConfig) -> np.ndarray:
    """Convert a raw BGR frame into a face detector input blob.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        config: ModelConfig providing input_size, scale_factor, and mean_values.

    Returns:
        A 4D numpy array of shape (1, 3, H, W) with dtype float32.

    Raises:
        ValueError: If the frame is empty.
    """
    _require_frame(frame)

    return cv2.dnn.blobFromImage(
        image=frame,
        scalefactor=config.scale_factor,
        size=config.input_size,
        mean=config.mean_values,
        swapRB=False,
        crop=False,
    )


def downscale(frame: np.ndarray, max_width) -> np.ndarray:
    """Resize frame to max_width if it is wider, preserving aspect ratio."""
    if max_width is None:
        return frame

    h, w = frame.shape[:2]
    if w <= max_width:
        return frame

    scale = max_width / w
    return cv2.resize(frame, (max_width, int(h * scale)), interpolation=cv2.INTER_AREA)


def crop_face(frame: np.ndarray, x1: int, y1: int, x2: int, y2: int) -> np.ndarray:
    """Return the frame region inside the box, clamped to the frame."""
    _require_frame(frame)
    h, w = frame.shape[:2]
    x1, x2 = max(0, x1), min(w, x2)
    y1, y2 = max(0, y1), min(h, y2)
    return frame[y1:y2, x1:x2]


def preprocess_expression(face: np.ndarray, input_size: int) -> np.ndarray:
    """Convert a BGR face crop into an expression classifier blob.

    Returns:
        A float32 array of shape (1, 1, input_size, input_size).
    """
    _require_frame(face)

    gray = face if face.ndim == 2 else cv2.cvtColor(face, cv2.COLOR_BGR2GRAY)
    resized = cv2.resize(gray, (input_size, input_size), interpolation=cv2.INTER_AREA)
    return resized.astype(np.float32)[np.newaxis, np.newaxis, ...]


def preprocess_recognition(face: np.ndarray) -> np.ndarray:
    """Convert a BGR face crop into an OpenFace embedding blob."""
    _require_frame(face)

    return cv2.dnn.blobFromImage(
        image=face,
        scalefactor=1.0 / 255,
        size=_RECOGNITION_INPUT_SIZE,
        mean=(0, 0, 0),
        swapRB=True,
        crop=False,
    )
