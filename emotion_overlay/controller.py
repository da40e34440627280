"""
Detection controller: the polling loop between camera, models and overlay.

Lifecycle:
    controller = ExpressionController(config)
    await controller.initialize()          # loads the four model artifacts
    controller.start(camera, overlay, on_result)
    ...
    controller.stop()                      # idempotent
    controller.dispose()

Scheduling:
    Everything runs on one asyncio event loop. Every interval a tick is
    scheduled; the blocking frame read and model inference run in the
    loop's default executor. If the previous tick is still in flight
    the new tick is skipped, so at most one inference job ever runs.

Lost source:
    A tick that finds the frame source inactive clears the overlay and
    delivers None, so a dead camera never keeps showing a stale face.

Cancellation:
    stop() bumps a generation counter. A tick that resolves after stop()
    sees a stale generation and is discarded without touching the overlay
    or calling on_result.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, NamedTuple, Optional, Protocol

import numpy as np

from emotion_overlay.analyzer import FaceAnalyzer
from emotion_overlay.config import AppConfig, ModelConfig, load_config
from emotion_overlay.detection import FaceDetection, resize_results
from emotion_overlay.emotion import DetectionResult
from emotion_overlay.errors import DetectionTickError, ModelLoadError
from emotion_overlay.model_loader import load_models_async
from emotion_overlay.preprocessor import downscale

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Optional[DetectionResult]], None]


class FrameSource(Protocol):
    """What the controller needs from a camera."""

    @property
    def is_active(self) -> bool: ...

    @property
    def video_width(self) -> int: ...

    @property
    def video_height(self) -> int: ...

    def read(self) -> Optional[np.ndarray]: ...


class Surface(Protocol):
    """What the controller needs from an overlay."""

    def match_dimensions(self, width: int, height: int) -> None: ...

    def clear(self) -> None: ...

    def draw_detections(self, faces: List[FaceDetection]) -> None: ...

    def draw_landmarks(self, faces: List[FaceDetection]) -> None: ...


class LatestResult:
    """Single-slot cell holding the most recent tick outcome.

    Usable directly as the on_result callback. `version` increases on
    every delivery, including deliveries of None.
    """

    def __init__(self) -> None:
        self._value: Optional[DetectionResult] = None
        self._version = 0

    def __call__(self, result: Optional[DetectionResult]) -> None:
        self._value = result
        self._version += 1

    def get(self) -> Optional[DetectionResult]:
        return self._value

    @property
    def version(self) -> int:
        return self._version


class _TickOutcome(NamedTuple):
    faces: List[FaceDetection]
    width: int
    height: int


class ExpressionController:
    """Polls a FaceAnalyzer on a fixed cadence while enabled.

    Args:
        config: Application configuration. Defaults are used if None.
        loader: Coroutine function loading a model bundle from a ModelConfig.
        analyzer_factory: Builds the analyzer from (bundle, config).
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        loader: Callable[[ModelConfig], Awaitable[Any]] = load_models_async,
        analyzer_factory: Callable[[Any, AppConfig], Any] = FaceAnalyzer,
    ) -> None:
        if config is None:
            config = load_config()

        self._config = config
        self._loader = loader
        self._analyzer_factory = analyzer_factory
        self._analyzer = None

        self._loaded = False
        self._error: Optional[str] = None
        self._last_result: Optional[DetectionResult] = None

        self._generation = 0
        self._running = False
        self._poll_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

        self.ticks = 0
        self.skipped_ticks = 0
        self.tick_errors = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def running(self) -> bool:
        return self._running

    @property
    def error(self) -> Optional[str]:
        """Message of the last model load failure, None once loaded."""
        return self._error

    @property
    def last_result(self) -> Optional[DetectionResult]:
        return self._last_result

    @property
    def interval(self) -> float:
        return self._config.detection.interval_ms / 1000.0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load every model artifact. Must finish before start().

        Raises:
            ModelLoadError: If any artifact fails. The controller stays
                unloaded until a later initialize() succeeds.
        """
        logger.info("Loading models from %s", self._config.model.base_dir)
        try:
            models = await self._loader(self._config.model)
        except ModelLoadError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = ModelLoadError(f"Failed to load models: {e}")
            self._fail(error)
            raise error from e

        self._analyzer = self._analyzer_factory(models, self._config)
        self._loaded = True
        self._error = None
        logger.info("Models loaded; detection available.")

    def _fail(self, error: ModelLoadError) -> None:
        self._loaded = False
        self._analyzer = None
        self._error = str(error)
        logger.error("Model loading failed: %s", error)

    def start(
        self,
        frame_source: FrameSource,
        overlay: Surface,
        on_result: ResultCallback,
    ) -> bool:
        """Begin polling. Must be called from within the running event loop.

        Returns:
            True if polling started. False (and nothing scheduled) if the
            models are not loaded or the frame source is inactive.
        """
        if not self._loaded:
            logger.warning("Detection start rejected: models are not loaded.")
            return False

        if not frame_source.is_active:
            logger.warning("Detection start rejected: frame source is not active.")
            return False

        if self._running:
            self.stop()

        self._generation += 1
        self._running = True
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll(self._generation, frame_source, overlay, on_result)
        )
        logger.info("Detection started (interval=%dms).", self._config.detection.interval_ms)
        return True

    def stop(self) -> None:
        """Stop polling. Safe to call when not running.

        The last result is kept. An in-flight tick is left to finish in the
        executor and its outcome is discarded.
        """
        if not self._running:
            return

        self._generation += 1
        self._running = False

        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

        logger.info(
            "Detection stopped (ticks=%d, skipped=%d, errors=%d).",
            self.ticks, self.skipped_ticks, self.tick_errors,
        )

    def dispose(self) -> None:
        """Stop polling and drop the loaded models."""
        self.stop()
        self._analyzer = None
        self._loaded = False
        logger.debug("Controller disposed.")

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _is_busy(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    async def _poll(
        self,
        generation: int,
        frame_source: FrameSource,
        overlay: Surface,
        on_result: ResultCallback,
    ) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while generation == self._generation:
            next_tick = max(next_tick + self.interval, loop.time())
            await asyncio.sleep(next_tick - loop.time())

            if generation != self._generation:
                break

            if self._is_busy():
                self.skipped_ticks += 1
                logger.debug("Previous detection still in flight; skipping tick.")
                continue

            self._tick_task = loop.create_task(
                self._tick(generation, frame_source, overlay, on_result)
            )

    async def _tick(
        self,
        generation: int,
        frame_source: FrameSource,
        overlay: Surface,
        on_result: ResultCallback,
    ) -> None:
        self.ticks += 1
        analyzer = self._analyzer
        loop = asyncio.get_running_loop()

        if not frame_source.is_active:
            logger.debug("Frame source is no longer active; reporting no face.")
            self._deliver(_TickOutcome([], 0, 0), overlay, on_result)
            return

        try:
            outcome = await loop.run_in_executor(None, self._analyze, analyzer, frame_source)

            if generation != self._generation:
                logger.debug("Discarding detection that resolved after stop().")
                return

            if outcome is None:
                logger.debug("No frame available yet; tick skipped.")
                return

            self._deliver(outcome, overlay, on_result)
        except Exception as e:
            self.tick_errors += 1
            error = DetectionTickError(f"Detection tick failed: {e}")
            logger.warning("%s", error, exc_info=logger.isEnabledFor(logging.DEBUG))

    def _analyze(self, analyzer, frame_source: FrameSource) -> Optional[_TickOutcome]:
        """Read a frame and run detection. Runs in the executor."""
        if analyzer is None:
            raise DetectionTickError("Analyzer was disposed.")

        frame = frame_source.read()
        if frame is None:
            return None

        frame_h, frame_w = frame.shape[:2]
        width = frame_source.video_width or frame_w
        height = frame_source.video_height or frame_h

        small = downscale(frame, self._config.detection.resize_width)
        faces = analyzer.detect_all_faces(small)

        small_h, small_w = small.shape[:2]
        if (small_w, small_h) != (width, height):
            faces = resize_results(faces, (small_w, small_h), (width, height))

        return _TickOutcome(faces, width, height)

    def _deliver(self, outcome: _TickOutcome, overlay: Surface, on_result: ResultCallback) -> None:
        if outcome.width and outcome.height:
            overlay.match_dimensions(outcome.width, outcome.height)
        overlay.clear()

        if not outcome.faces:
            self._last_result = None
            on_result(None)
            return

        result = DetectionResult.from_scores(outcome.faces[0].expressions)

        overlay.draw_detections(outcome.faces)
        overlay.draw_landmarks(outcome.faces)

        self._last_result = result
        on_result(result)
