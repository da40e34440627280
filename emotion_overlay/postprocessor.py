"""
Postprocessing for the expression analysis pipeline.

Responsibility:
    Parse raw network outputs: SSD detector tensors into face boxes, and
    expression classifier logits into an EmotionScore.

Non-goals:
    - No drawing or display logic.
    - No model loading or inference.

Hard-coded:
    - SSD output tensor layout: [1, 1, N, 7] where each row is
      [batch_id, class_id, confidence, x1, y1, x2, y2] with
      coordinates normalized to [0, 1].
"""

from typing import List, NamedTuple, Sequence

import numpy as np

from emotion_overlay.emotion import EMOTION_KEYS, EmotionScore


class FaceBox(NamedTuple):
    """A detector box before landmarks and expressions are attached."""

    x1: int
    y1: int
    x2: int
    y2: int
    score: float


def postprocess(
    network_output: np.ndarray,
    frame_width: int,
    frame_height: int,
    confidence_threshold: float,
) -> List[FaceBox]:
    """Parse raw SSD output into a list of face boxes.

    Args:
        network_output: Raw output from net.forward(), expected shape
                        (1, 1, N, 7).
        frame_width: Frame width in pixels (for coordinate mapping).
        frame_height: Frame height in pixels (for coordinate mapping).
        confidence_threshold: Minimum confidence to accept a detection.

    Returns:
        List of FaceBox, sorted by score (descending). This is the order
        downstream consumers treat as "first face".
    """
    boxes: List[FaceBox] = []

    raw = network_output[0, 0]  # Shape: (N, 7)

    for i in range(raw.shape[0]):
        confidence = float(raw[i, 2])

        if confidence < confidence_threshold:
            continue

        # Un-normalize coordinates from [0, 1] to absolute pixels
        x1 = int(raw[i, 3] * frame_width)
        y1 = int(raw[i, 4] * frame_height)
        x2 = int(raw[i, 5] * frame_width)
        y2 = int(raw[i, 6] * frame_height)

        # Clamp to frame boundaries
        x1 = max(0, min(x1, frame_width - 1))
        y1 = max(0, min(y1, frame_height - 1))
        x2 = max(0, min(x2, frame_width - 1))
        y2 = max(0, min(y2, frame_height - 1))

        # Skip degenerate boxes
        if x2 <= x1 or y2 <= y1:
            continue

        boxes.append(FaceBox(x1, y1, x2, y2, confidence))

    # Stable sort keeps detector order among equal scores
    boxes.sort(key=lambda b: b.score, reverse=True)

    return boxes


def softmax(logits: np.ndarray) -> np.ndarray:
    """Numerically stable softmax over a 1-D array."""
    shifted = logits - np.max(logits)
    exp = np.exp(shifted)
    return exp / exp.sum()


def parse_expressions(logits: np.ndarray, labels: Sequence[str]) -> EmotionScore:
    """Map classifier logits onto the seven tracked emotions.

    Args:
        logits: Raw classifier output, any shape squeezing to (len(labels),).
        labels: Emotion key for each output position. Positions whose label
                is not a tracked emotion are dropped before normalizing.

    Returns:
        An EmotionScore summing to 1.0.

    Raises:
        ValueError: If the output size does not match the label count.
    """
    flat = np.asarray(logits, dtype=np.float64).reshape(-1)
    if flat.shape[0] != len(labels):
        raise ValueError(
            f"Expression classifier produced {flat.shape[0]} outputs, "
            f"but {len(labels)} labels are configured."
        )

    keep = [i for i, label in enumerate(labels) if label in EMOTION_KEYS]
    probs = softmax(flat[keep])

    return EmotionScore.from_mapping(
        {labels[i]: float(p) for i, p in zip(keep, probs)}
    )
