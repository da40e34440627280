"""
Configuration management for the expression overlay.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The demo MUST start with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from emotion_overlay.emotion import EMOTION_KEYS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: emotion_overlay/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

# FER+ output order. "contempt" has no counterpart among the seven
# displayed emotions and is dropped before renormalizing.
_FERPLUS_LABELS = (
    "neutral", "happy", "surprised", "sad", "angry", "disgusted", "fearful", "contempt",
)


@dataclass(frozen=True)
class ModelConfig:
    """Model artifact locations and inference parameters.

    Attributes:
        base_dir: Directory holding every artifact (relative to project root).
        detector_prototxt: SSD face detector network definition.
        detector_weights: SSD face detector Caffe weights.
        landmark_model: Facemark LBF 68-point model (YAML).
        recognition_model: OpenFace embedding network (Torch .t7).
        expression_model: FER+ expression classifier (ONNX).
        expression_labels: Emotion key for each classifier output, in output
                           order. Entries outside the seven tracked emotions
                           are discarded.
        expression_input_size: Square input side of the expression classifier.
        backend: Compute backend, 'cpu' or 'cuda'.
        input_size: Spatial dimensions (width, height) for the detector blob.
        mean_values: Per-channel mean subtraction for the detector (BGR order).
        scale_factor: Pixel value scale factor for the detector blob.
    """

    base_dir: str = "models/"
    detector_prototxt: str = "deploy.prototxt"
    detector_weights: str = "res10_300x300_ssd_iter_140000.caffemodel"
    landmark_model: str = "lbfmodel.yaml"
    recognition_model: str = "nn4.small2.v1.t7"
    expression_model: str = "emotion-ferplus-8.onnx"
    expression_labels: Tuple[str, ...] = _FERPLUS_LABELS
    expression_input_size: int = 64
    backend: str = "cpu"
    input_size: Tuple[int, int] = (300, 300)
    mean_values: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale_factor: float = 1.0


@dataclass(frozen=True)
class DetectionConfig:
    """Detection loop parameters.

    Attributes:
        interval_ms: Poll period of the detection loop in milliseconds.
        confidence_threshold: Minimum detector score to accept a face.
        resize_width: Optional width to downscale frames before detection.
                      Results are scaled back to the native resolution.
        with_descriptors: Also compute a 128-d face embedding per face.
    """

    interval_ms: int = 100
    confidence_threshold: float = 0.5
    resize_width: Optional[int] = None
    with_descriptors: bool = False


@dataclass(frozen=True)
class CameraConfig:
    """Webcam configuration.

    Attributes:
        device: Integer device index passed to cv2.VideoCapture.
        width: Requested capture width.
        height: Requested capture height.
        start_on: Whether the camera is switched on at startup.
    """

    device: int = 0
    width: int = 640
    height: int = 480
    start_on: bool = True


@dataclass(frozen=True)
class VisualizationConfig:
    """Overlay rendering parameters.

    Attributes:
        box_color: BGR color tuple for bounding boxes.
        landmark_color: BGR color tuple for landmark points.
        thickness: Line thickness in pixels.
        show_confidence: Whether to render the detector score label.
    """

    box_color: Tuple[int, int, int] = (255, 144, 30)
    landmark_color: Tuple[int, int, int] = (0, 255, 255)
    thickness: int = 2
    show_confidence: bool = True


@dataclass(frozen=True)
class DisplayConfig:
    """Presentation parameters.

    Attributes:
        smoothing_alpha: EMA weight of the newest scores in (0, 1].
                         1.0 disables smoothing.
        window_title: Title of the demo window.
    """

    smoothing_alpha: float = 1.0
    window_title: str = "Real-time Expression Analysis"


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}


def validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    labels = config.model.expression_labels
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ValueError(
            f"model.expression_labels must not repeat a label, got duplicates {duplicates}."
        )

    if not set(EMOTION_KEYS) <= set(config.model.expression_labels):
        missing = set(EMOTION_KEYS) - set(config.model.expression_labels)
        raise ValueError(
            f"model.expression_labels must cover every tracked emotion, "
            f"missing {sorted(missing)}."
        )

    if config.model.expression_input_size <= 0:
        raise ValueError(
            f"model.expression_input_size must be positive, "
            f"got {config.model.expression_input_size}."
        )

    if len(config.model.input_size) != 2 or any(d <= 0 for d in config.model.input_size):
        raise ValueError(
            f"model.input_size must be a (width, height) tuple of positive values, "
            f"got {config.model.input_size}."
        )

    if config.model.scale_factor <= 0:
        raise ValueError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if config.detection.interval_ms <= 0:
        raise ValueError(
            f"detection.interval_ms must be positive, "
            f"got {config.detection.interval_ms}."
        )

    if not (0.0 <= config.detection.confidence_threshold <= 1.0):
        raise ValueError(
            f"detection.confidence_threshold must be in [0.0, 1.0], "
            f"got {config.detection.confidence_threshold}."
        )

    if config.detection.resize_width is not None and config.detection.resize_width <= 0:
        raise ValueError(
            f"detection.resize_width must be positive or None, "
            f"got {config.detection.resize_width}."
        )

    if config.camera.device < 0:
        raise ValueError(f"camera.device must be >= 0, got {config.camera.device}.")

    if config.camera.width <= 0 or config.camera.height <= 0:
        raise ValueError(
            f"camera.width and camera.height must be positive, "
            f"got {config.camera.width}x{config.camera.height}."
        )

    if not (0.0 < config.display.smoothing_alpha <= 1.0):
        raise ValueError(
            f"display.smoothing_alpha must be in (0.0, 1.0], "
            f"got {config.display.smoothing_alpha}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Accept YAML booleans and the usual env-var spellings."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    for key in (
        "base_dir",
        "detector_prototxt",
        "detector_weights",
        "landmark_model",
        "recognition_model",
        "expression_model",
    ):
        if key in raw:
            kwargs[key] = str(raw[key])
    if "expression_labels" in raw:
        labels = raw["expression_labels"]
        if isinstance(labels, str):
            labels = labels.split(",")
        kwargs["expression_labels"] = tuple(str(label).strip().lower() for label in labels)
    if "expression_input_size" in raw:
        kwargs["expression_input_size"] = int(raw["expression_input_size"])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "input_size" in raw:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "mean_values" in raw:
        kwargs["mean_values"] = _parse_tuple(raw["mean_values"], 3, float)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "interval_ms" in raw:
        kwargs["interval_ms"] = int(raw["interval_ms"])
    if "confidence_threshold" in raw:
        kwargs["confidence_threshold"] = float(raw["confidence_threshold"])
    if "resize_width" in raw:
        val = raw["resize_width"]
        kwargs["resize_width"] = int(val) if val is not None else None
    if "with_descriptors" in raw:
        kwargs["with_descriptors"] = _parse_bool(raw["with_descriptors"])
    return DetectionConfig(**kwargs)


def _build_camera_config(raw: dict) -> CameraConfig:
    """Build CameraConfig from a raw YAML dict."""
    kwargs = {}
    if "device" in raw:
        kwargs["device"] = int(raw["device"])
    if "width" in raw:
        kwargs["width"] = int(raw["width"])
    if "height" in raw:
        kwargs["height"] = int(raw["height"])
    if "start_on" in raw:
        kwargs["start_on"] = _parse_bool(raw["start_on"])
    return CameraConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "landmark_color" in raw:
        kwargs["landmark_color"] = _parse_tuple(raw["landmark_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_confidence" in raw:
        kwargs["show_confidence"] = _parse_bool(raw["show_confidence"])
    return VisualizationConfig(**kwargs)


def _build_display_config(raw: dict) -> DisplayConfig:
    """Build DisplayConfig from a raw YAML dict."""
    kwargs = {}
    if "smoothing_alpha" in raw:
        kwargs["smoothing_alpha"] = float(raw["smoothing_alpha"])
    if "window_title" in raw:
        kwargs["window_title"] = str(raw["window_title"])
    return DisplayConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "EMOTION_OVERLAY_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        EMOTION_OVERLAY_MODEL_BASE_DIR=/opt/models
        EMOTION_OVERLAY_DETECTION_INTERVAL_MS=200
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_BASE_DIR": ("model", "base_dir"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}DETECTION_INTERVAL_MS": ("detection", "interval_ms"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}DETECTION_RESIZE_WIDTH": ("detection", "resize_width"),
        f"{_ENV_PREFIX}CAMERA_DEVICE": ("camera", "device"),
        f"{_ENV_PREFIX}DISPLAY_SMOOTHING_ALPHA": ("display", "smoothing_alpha"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the demo runs entirely on defaults.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        camera=_build_camera_config(raw.get("camera", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
        display=_build_display_config(raw.get("display", {})),
    )

    # --- Validate ---
    validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
