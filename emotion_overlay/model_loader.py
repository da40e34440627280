"""
Model loading for the expression analysis pipeline.

Responsibility:
    Load the four model artifacts from a configured directory and return
    them as a ModelBundle:

        face_detector   SSD-ResNet10 (Caffe)            cv2.dnn.Net
        landmarks       Facemark LBF, 68 points (YAML)  cv2.face.Facemark
        recognition     OpenFace nn4.small2 (Torch)     cv2.dnn.Net
        expressions     FER+ classifier (ONNX)          cv2.dnn.Net

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No automatic model downloading.
    - No retry and no fallback to alternative models.

Failure behavior:
    - Any artifact that is missing or fails to parse raises ModelLoadError
      naming the artifact and the resolved path. One failure fails the bundle.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict

import cv2

from emotion_overlay.config import ModelConfig, get_project_root
from emotion_overlay.errors import ModelLoadError

logger = logging.getLogger(__name__)


@dataclass
class ModelBundle:
    """The four loaded networks, ready for inference."""

    face_detector: Any
    landmarks: Any
    recognition: Any
    expressions: Any


def resolve_model_path(config: ModelConfig, name: str) -> Path:
    """Resolve an artifact file name against base_dir and the project root."""
    base = Path(config.base_dir)
    if not base.is_absolute():
        base = get_project_root() / base

    path = Path(name)
    if not path.is_absolute():
        path = base / path
    return path


def _require_file(artifact: str, path: Path, config_key: str) -> None:
    """Fail fast with an actionable message if an artifact file is missing."""
    if not path.is_file():
        raise ModelLoadError(
            f"Model artifact '{artifact}' not found.\n"
            f"  Expected: {path}\n"
            f"  Place the file at the path above, or update "
            f"'model.{config_key}' / 'model.base_dir' in your config.",
            artifact=artifact,
            path=str(path),
        )


def _configure_backend(net, backend: str) -> None:
    """Apply the compute backend preference to a cv2.dnn.Net."""
    if backend == "cuda":
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support.\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)


def load_face_detector(config: ModelConfig):
    """Load the SSD face detector."""
    prototxt = resolve_model_path(config, config.detector_prototxt)
    weights = resolve_model_path(config, config.detector_weights)
    _require_file("face_detector", prototxt, "detector_prototxt")
    _require_file("face_detector", weights, "detector_weights")

    logger.info("Loading face detector: prototxt=%s, weights=%s", prototxt, weights)
    net = cv2.dnn.readNetFromCaffe(str(prototxt), str(weights))
    _configure_backend(net, config.backend)
    return net


def load_landmark_model(config: ModelConfig):
    """Load the Facemark LBF 68-point landmark model (needs opencv-contrib)."""
    path = resolve_model_path(config, config.landmark_model)
    _require_file("landmarks", path, "landmark_model")

    if not hasattr(cv2, "face"):
        raise RuntimeError(
            "cv2.face is unavailable. Install opencv-contrib-python "
            "to enable landmark estimation."
        )

    logger.info("Loading landmark model: %s", path)
    facemark = cv2.face.createFacemarkLBF()
    facemark.loadModel(str(path))
    return facemark


def load_recognition_model(config: ModelConfig):
    """Load the OpenFace embedding network."""
    path = resolve_model_path(config, config.recognition_model)
    _require_file("recognition", path, "recognition_model")

    logger.info("Loading recognition model: %s", path)
    net = cv2.dnn.readNetFromTorch(str(path))
    _configure_backend(net, config.backend)
    return net


def load_expression_model(config: ModelConfig):
    """Load the FER+ expression classifier."""
    path = resolve_model_path(config, config.expression_model)
    _require_file("expressions", path, "expression_model")

    logger.info("Loading expression model: %s", path)
    net = cv2.dnn.readNetFromONNX(str(path))
    _configure_backend(net, config.backend)
    return net


_LOADERS: Dict[str, Callable[[ModelConfig], Any]] = {
    "face_detector": load_face_detector,
    "landmarks": load_landmark_model,
    "recognition": load_recognition_model,
    "expressions": load_expression_model,
}


def _load_one(artifact: str, config: ModelConfig):
    """Run one loader, converting every failure into ModelLoadError."""
    try:
        return _LOADERS[artifact](config)
    except ModelLoadError:
        raise
    except (cv2.error, RuntimeError, OSError) as e:
        raise ModelLoadError(
            f"Failed to load model artifact '{artifact}': {e}",
            artifact=artifact,
        ) from e


def load_models(config: ModelConfig) -> ModelBundle:
    """Load all four artifacts sequentially.

    Raises:
        ModelLoadError: If any artifact fails to load.
    """
    loaded = {artifact: _load_one(artifact, config) for artifact in _LOADERS}
    logger.info("All models loaded from %s", resolve_model_path(config, "."))
    return ModelBundle(**loaded)


async def load_models_async(config: ModelConfig) -> ModelBundle:
    """Load all four artifacts concurrently in the loop's executor.

    Every loader is awaited to completion before the first failure is
    re-raised, so no load is left running in the background.

    Raises:
        ModelLoadError: If any artifact fails to load.
    """
    loop = asyncio.get_running_loop()
    artifacts = list(_LOADERS)
    results = await asyncio.gather(
        *(loop.run_in_executor(None, _load_one, artifact, config) for artifact in artifacts),
        return_exceptions=True,
    )

    for result in results:
        if isinstance(result, BaseException):
            raise result

    logger.info("All models loaded from %s", resolve_model_path(config, "."))
    return ModelBundle(**dict(zip(artifacts, results)))
