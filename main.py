"""
Expression Overlay demo entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire the
    camera, controller, overlay and presentation state together, and run
    the display loop on an asyncio event loop.

Usage:
    python main.py                              # Webcam 0, models in ./models
    python main.py --camera 1 --models /opt/models
    python main.py --config my_config.yaml --verbose

Keys:
    c  toggle camera    d  toggle detection    q / ESC  quit

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import asyncio
import logging
import sys

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

import cv2

from emotion_overlay.camera import CameraSource
from emotion_overlay.config import AppConfig, load_config, validate
from emotion_overlay.controller import ExpressionController
from emotion_overlay.errors import FrameSourceError, ModelLoadError
from emotion_overlay.hud import blank_frame, render_view
from emotion_overlay.overlay import OverlaySurface
from emotion_overlay.presentation import PresentationState

_DISPLAY_FPS = 30


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Real-time facial expression overlay",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--camera",
        type=int,
        help="Webcam device index. Overrides config.",
    )
    parser.add_argument(
        "--models",
        type=str,
        help="Directory holding the model artifacts. Overrides config.",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        help="Detection poll period in milliseconds. Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--smoothing",
        type=float,
        help="Display smoothing weight in (0, 1]; 1 disables. Overrides config.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)


def _apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    # We must use object.__setattr__ because the dataclasses are frozen
    if args.camera is not None:
        object.__setattr__(config.camera, "device", args.camera)

    if args.models is not None:
        object.__setattr__(config.model, "base_dir", args.models)

    if args.interval_ms is not None:
        object.__setattr__(config.detection, "interval_ms", args.interval_ms)

    if args.backend is not None:
        object.__setattr__(config.model, "backend", args.backend)

    if args.smoothing is not None:
        object.__setattr__(config.display, "smoothing_alpha", args.smoothing)


async def _load_models(controller: ExpressionController) -> None:
    """Initialize in the background; a failure is shown as the error banner."""
    try:
        await controller.initialize()
    except ModelLoadError:
        logger.info("Detection disabled until the models are available.")


def _camera_notice(camera_on: bool, camera_active: bool) -> str:
    if not camera_on:
        return "Camera is off"
    if not camera_active:
        return "Camera unavailable"
    return "Starting camera..."


def _toggle_camera(state: PresentationState) -> None:
    try:
        state.toggle_camera()
    except FrameSourceError as e:
        logger.error("%s", e)


async def run(config: AppConfig) -> int:
    """Display loop. Returns the process exit code."""
    controller = ExpressionController(config)
    camera = CameraSource(config.camera)
    overlay = OverlaySurface(config.visualization)
    state = PresentationState(
        controller,
        camera,
        overlay,
        camera_on=False,
        smoothing_alpha=config.display.smoothing_alpha,
    )

    if config.camera.start_on:
        _toggle_camera(state)

    load_task = asyncio.get_running_loop().create_task(_load_models(controller))
    title = config.display.window_title

    try:
        while True:
            frame = camera.read() if state.camera_on else None
            if frame is None:
                shown = blank_frame(_camera_notice(state.camera_on, camera.is_active))
            elif state.detecting:
                shown = overlay.composite(frame)
            else:
                shown = frame

            cv2.imshow(title, render_view(shown, state.view()))
            key = cv2.waitKey(1) & 0xFF

            if key in (ord("q"), 27):
                logger.info("Quit signal received (key press).")
                break
            if key == ord("c"):
                _toggle_camera(state)
            elif key == ord("d"):
                state.toggle_detection()

            await asyncio.sleep(1.0 / _DISPLAY_FPS)
    finally:
        controller.dispose()
        camera.release()
        cv2.destroyAllWindows()
        if not load_task.done():
            load_task.cancel()

    return 0


def main(argv=None) -> int:
    """Load configuration and run the demo."""
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # CLI args > ENV > YAML > Defaults
    try:
        config = load_config(args.config)
        _apply_cli_overrides(config, args)
        validate(config)
        logger.info("Configuration active for this run.")
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 0
    except Exception as e:
        logger.exception("Runtime error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
