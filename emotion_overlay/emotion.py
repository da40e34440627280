"""
Emotion score records.

This module defines the two value types that flow out of the detection
loop: EmotionScore (seven named scores) and DetectionResult (scores plus
the dominant emotion). Both are frozen.

The seven keys have a fixed order. Every iteration, tie-break and
display row follows EMOTION_KEYS.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Tuple

EMOTION_KEYS: Tuple[str, ...] = (
    "neutral",
    "happy",
    "sad",
    "angry",
    "fearful",
    "disgusted",
    "surprised",
)

EMOTION_LABELS: Dict[str, str] = {
    "neutral": "Neutral",
    "happy": "Smiling",
    "sad": "Sad",
    "angry": "Angry",
    "fearful": "Scared",
    "disgusted": "Disgusted",
    "surprised": "Surprised",
}

EMOTION_EMOJI: Dict[str, str] = {
    "neutral": "\U0001F610",
    "happy": "\U0001F60A",
    "sad": "\U0001F622",
    "angry": "\U0001F620",
    "fearful": "\U0001F628",
    "disgusted": "\U0001F922",
    "surprised": "\U0001F632",
}


def get_emotion_emoji(emotion: str) -> str:
    """Return the emoji for an emotion key, neutral face for unknown keys."""
    return EMOTION_EMOJI.get(emotion, EMOTION_EMOJI["neutral"])


def get_emotion_label(emotion: str) -> str:
    """Return the display label for an emotion key."""
    return EMOTION_LABELS.get(emotion, emotion)


@dataclass(frozen=True, slots=True)
class EmotionScore:
    """Seven expression scores for a single face.

    Values are expected to be non-negative and to sum to roughly 1.0, but
    that is a property of the classifier, not something enforced here.
    """

    neutral: float = 0.0
    happy: float = 0.0
    sad: float = 0.0
    angry: float = 0.0
    fearful: float = 0.0
    disgusted: float = 0.0
    surprised: float = 0.0

    @classmethod
    def from_mapping(cls, scores: Mapping[str, float]) -> "EmotionScore":
        """Build a score record from a mapping. Missing keys score 0.0.

        Raises:
            ValueError: If a key is not one of EMOTION_KEYS or a value is negative.
        """
        unknown = set(scores) - set(EMOTION_KEYS)
        if unknown:
            raise ValueError(
                f"Unknown emotion key(s): {sorted(unknown)}. "
                f"Expected a subset of {EMOTION_KEYS}."
            )

        values = {key: float(scores.get(key, 0.0)) for key in EMOTION_KEYS}
        negative = [key for key, value in values.items() if value < 0.0]
        if negative:
            raise ValueError(f"Emotion scores must be non-negative, got negative {negative}.")

        return cls(**values)

    def __getitem__(self, key: str) -> float:
        if key not in EMOTION_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def items(self) -> Iterator[Tuple[str, float]]:
        """Iterate (key, score) pairs in the fixed emotion order."""
        for key in EMOTION_KEYS:
            yield key, getattr(self, key)

    @property
    def total(self) -> float:
        return sum(value for _, value in self.items())


def dominant_emotion(scores: EmotionScore) -> str:
    """Return the key with the strictly greatest score.

    Exact ties go to the key that comes first in EMOTION_KEYS.
    """
    best_key = EMOTION_KEYS[0]
    best_value = scores[best_key]
    for key, value in scores.items():
        if value > best_value:
            best_key, best_value = key, value
    return best_key


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Outcome of one successful detection tick.

    Attributes:
        emotion: Scores of the first detected face.
        dominant_emotion: Key of the highest score in `emotion`.
        confidence: The score of `dominant_emotion`.
    """

    emotion: EmotionScore
    dominant_emotion: str
    confidence: float

    @classmethod
    def from_scores(cls, scores: EmotionScore) -> "DetectionResult":
        dominant = dominant_emotion(scores)
        return cls(emotion=scores, dominant_emotion=dominant, confidence=scores[dominant])


# Shown while detection runs but no face has been found yet. Not a result:
# confidence is zero and the view never renders it as a percentage.
PLACEHOLDER_RESULT = DetectionResult(
    emotion=EmotionScore(
        neutral=0.14,
        happy=0.14,
        sad=0.14,
        angry=0.14,
        fearful=0.14,
        disgusted=0.15,
        surprised=0.15,
    ),
    dominant_emotion="neutral",
    confidence=0.0,
)
