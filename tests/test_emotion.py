"""
Tests for emotion score records and dominant-emotion selection.
"""

import pytest

from emotion_overlay.emotion import (
    EMOTION_KEYS,
    PLACEHOLDER_RESULT,
    DetectionResult,
    EmotionScore,
    dominant_emotion,
    get_emotion_emoji,
)


def test_dominant_emotion_picks_maximum():
    scores = EmotionScore(neutral=0.1, happy=0.05, sad=0.6, angry=0.1, fearful=0.05, disgusted=0.05, surprised=0.05)
    assert dominant_emotion(scores) == "sad"


def test_each_key_can_dominate():
    for key in EMOTION_KEYS:
        scores = EmotionScore.from_mapping({k: (0.9 if k == key else 0.01) for k in EMOTION_KEYS})
        assert dominant_emotion(scores) == key


def test_tie_goes_to_earlier_key():
    scores = EmotionScore(happy=0.4, surprised=0.4, sad=0.2)
    assert dominant_emotion(scores) == "happy"

    uniform = EmotionScore.from_mapping({k: 1 / 7 for k in EMOTION_KEYS})
    assert dominant_emotion(uniform) == "neutral"


def test_detection_result_confidence_matches_dominant_score():
    scores = EmotionScore.from_mapping({
        "neutral": 0.8, "happy": 0.1, "sad": 0.02, "angry": 0.02,
        "fearful": 0.02, "disgusted": 0.02, "surprised": 0.02,
    })
    result = DetectionResult.from_scores(scores)

    assert result.dominant_emotion == "neutral"
    assert result.confidence == 0.8
    assert result.confidence == result.emotion[result.dominant_emotion]


def test_from_mapping_rejects_bad_input():
    with pytest.raises(ValueError, match="Unknown"):
        EmotionScore.from_mapping({"contempt": 0.3})

    with pytest.raises(ValueError, match="non-negative"):
        EmotionScore.from_mapping({"happy": -0.1})


def test_from_mapping_fills_missing_keys():
    scores = EmotionScore.from_mapping({"angry": 1.0})
    assert scores.neutral == 0.0
    assert [key for key, _ in scores.items()] == list(EMOTION_KEYS)


def test_unknown_key_lookup():
    with pytest.raises(KeyError):
        EmotionScore()["contempt"]


def test_placeholder_is_uniform_and_not_confident():
    assert PLACEHOLDER_RESULT.emotion.total == pytest.approx(1.0)
    assert PLACEHOLDER_RESULT.confidence == 0.0
    assert PLACEHOLDER_RESULT.dominant_emotion == "neutral"


def test_emoji_fallback():
    assert get_emotion_emoji("unknown") == get_emotion_emoji("neutral")
