"""
Tests for the postprocessing module.
"""

import numpy as np
import pytest

from emotion_overlay.config import ModelConfig
from emotion_overlay.postprocessor import parse_expressions, postprocess, softmax


def test_postprocess_valid_detection():
    """Test parsing a valid detection tensor."""
    # [batch, class, conf, x1, y1, x2, y2]
    tensor = np.array([[[[0, 1, 0.95, 0.0, 0.0, 0.5, 0.5]]]], dtype=np.float32)

    boxes = postprocess(
        network_output=tensor,
        frame_width=640,
        frame_height=480,
        confidence_threshold=0.5,
    )

    assert len(boxes) == 1
    box = boxes[0]
    assert box.score == pytest.approx(0.95, abs=1e-5)
    assert (box.x1, box.y1, box.x2, box.y2) == (0, 0, 320, 240)


def test_postprocess_confidence_filtering():
    """Test that low-confidence detections are ignored."""
    tensor = np.array([[[[0, 1, 0.4, 0.0, 0.0, 0.5, 0.5]]]], dtype=np.float32)

    boxes = postprocess(tensor, 640, 480, confidence_threshold=0.5)
    assert boxes == []


def test_postprocess_clamping():
    """Test coordinate clamping to frame boundaries."""
    tensor = np.array([[[[0, 1, 0.9, -0.1, -0.1, 1.2, 1.2]]]], dtype=np.float32)

    boxes = postprocess(tensor, 100, 100, confidence_threshold=0.5)

    assert len(boxes) == 1
    assert (boxes[0].x1, boxes[0].y1, boxes[0].x2, boxes[0].y2) == (0, 0, 99, 99)


def test_postprocess_degenerate_box():
    """Test that zero-area or inverted boxes are skipped."""
    tensor = np.array([[[[0, 1, 0.9, 0.5, 0.5, 0.4, 0.4]]]], dtype=np.float32)

    assert postprocess(tensor, 100, 100, confidence_threshold=0.5) == []


def test_postprocess_orders_by_score():
    tensor = np.array([[[
        [0, 1, 0.6, 0.0, 0.0, 0.2, 0.2],
        [0, 1, 0.9, 0.5, 0.5, 0.8, 0.8],
    ]]], dtype=np.float32)

    boxes = postprocess(tensor, 100, 100, confidence_threshold=0.5)

    assert [b.x1 for b in boxes] == [50, 0]


def test_softmax_sums_to_one():
    probs = softmax(np.array([1000.0, 1000.0, 0.0]))
    assert probs.sum() == pytest.approx(1.0)
    assert probs[0] == pytest.approx(0.5)


def test_parse_expressions_ferplus_order():
    labels = ModelConfig().expression_labels
    # FER+ order: neutral, happy, surprised, sad, angry, disgusted, fearful, contempt
    logits = np.array([[0.0, 0.0, 8.0, 0.0, 0.0, 0.0, 0.0, 20.0]], dtype=np.float32)

    scores = parse_expressions(logits, labels)

    # contempt is dropped before normalizing
    assert scores.total == pytest.approx(1.0)
    assert scores.surprised > 0.99


def test_parse_expressions_size_mismatch():
    with pytest.raises(ValueError, match="outputs"):
        parse_expressions(np.zeros(7), ModelConfig().expression_labels)
