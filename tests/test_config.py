"""
Tests for the configuration module.
"""

import pytest

from emotion_overlay.config import (
    AppConfig,
    DetectionConfig,
    DisplayConfig,
    ModelConfig,
    load_config,
    validate,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.backend == "cpu"
    assert config.detection.interval_ms == 100
    assert config.detection.confidence_threshold == 0.5
    assert config.display.smoothing_alpha == 1.0


def test_validation_failure():
    """Test fail-fast validation."""
    with pytest.raises(ValueError, match="confidence_threshold"):
        validate(AppConfig(detection=DetectionConfig(confidence_threshold=1.5)))

    with pytest.raises(ValueError, match="backend"):
        validate(AppConfig(model=ModelConfig(backend="invalid")))

    with pytest.raises(ValueError, match="interval_ms"):
        validate(AppConfig(detection=DetectionConfig(interval_ms=0)))

    with pytest.raises(ValueError, match="smoothing_alpha"):
        validate(AppConfig(display=DisplayConfig(smoothing_alpha=0.0)))


def test_expression_labels_must_cover_all_emotions():
    bad = ModelConfig(expression_labels=("neutral", "happy"))
    with pytest.raises(ValueError, match="expression_labels"):
        validate(AppConfig(model=bad))


def test_expression_labels_must_not_repeat():
    labels = ("neutral", "happy", "happy", "sad", "angry", "disgusted", "fearful", "surprised")
    with pytest.raises(ValueError, match=r"duplicates \['happy'\]"):
        validate(AppConfig(model=ModelConfig(expression_labels=labels)))


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("EMOTION_OVERLAY_DETECTION_INTERVAL_MS", "250")
    monkeypatch.setenv("EMOTION_OVERLAY_MODEL_BACKEND", "cuda")
    monkeypatch.setenv("EMOTION_OVERLAY_MODEL_BASE_DIR", "/opt/models")

    config = load_config(None)

    assert config.detection.interval_ms == 250
    assert config.model.backend == "cuda"
    assert config.model.base_dir == "/opt/models"


def test_yaml_file(tmp_path):
    path = tmp_path / "overlay.yaml"
    path.write_text(
        "model:\n"
        "  expression_labels: [neutral, happy, sad, angry, fearful, disgusted, surprised]\n"
        "detection:\n"
        "  resize_width: 320\n"
        "  with_descriptors: true\n"
        "camera:\n"
        "  device: 2\n"
        "  start_on: false\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.expression_labels[-1] == "surprised"
    assert config.detection.resize_width == 320
    assert config.detection.with_descriptors is True
    assert config.camera.device == 2
    assert config.camera.start_on is False


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")
