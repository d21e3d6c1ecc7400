#!/usr/bin/env python3
"""
Live Composition Demo Script

This script demonstrates the composition engine by:
1. Detecting the primary subject in a photo or webcam feed
2. Evaluating the selected composition rule
3. Drawing the guide overlays and suggestion onto the frame

Usage:
    python demo_inference.py --image path/to/image.jpg
    python demo_inference.py --image path/to/image.jpg --rule symmetry --show
    python demo_inference.py --webcam 0 --config configs/composition_config.json

Webcam keys: q quits, r cycles the rule, e toggles analysis.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import cv2
import numpy as np

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from analysis import (
    CompositionManager,
    CompositionPipeline,
    CompositionResult,
    CompositionType,
    Frame,
    OverlayGenerator
)
from analysis.overlay_generator import (
    CrosshairOverlay,
    GridOverlay,
    SafetyZoneOverlay,
    SymmetryLineOverlay
)
from detection import create_subject_detector
from preprocessing import create_preprocessing_pipeline
from utils import ValidationError, load_config

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _bgr(color) -> tuple:
    r, g, b = color
    return (b, g, r)


def _blend(image: np.ndarray, layer: np.ndarray, opacity: float) -> None:
    cv2.addWeighted(layer, opacity, image, 1.0 - opacity, 0, dst=image)


def draw_overlays(image: np.ndarray, overlays: List[Any]) -> np.ndarray:
    """
    Render overlay descriptors onto a copy of a BGR frame.

    Args:
        image: BGR frame
        overlays: Overlay descriptors from the overlay generator or manager

    Returns:
        Annotated copy of the frame
    """
    canvas = image.copy()
    h, w = canvas.shape[:2]

    for overlay in overlays:
        layer = canvas.copy()
        color = _bgr(overlay.color)
        thickness = max(1, int(round(overlay.stroke_width)))

        if isinstance(overlay, GridOverlay):
            for start, end in overlay.to_pixels(w, h):
                cv2.line(layer, start, end, color, thickness, cv2.LINE_AA)

        elif isinstance(overlay, CrosshairOverlay):
            cx, cy = overlay.to_pixels(w, h)
            half = int(overlay.size / 2)
            cv2.line(layer, (cx - half, cy), (cx + half, cy), color, thickness, cv2.LINE_AA)
            cv2.line(layer, (cx, cy - half), (cx, cy + half), color, thickness, cv2.LINE_AA)

        elif isinstance(overlay, SymmetryLineOverlay):
            start, end = overlay.to_pixels(w, h)
            cv2.line(layer, start, end, color, thickness, cv2.LINE_AA)

        elif isinstance(overlay, SafetyZoneOverlay):
            x, y, zw, zh = overlay.to_pixels(w, h)
            cv2.rectangle(layer, (x, y), (x + zw, y + zh), color, thickness)

        _blend(canvas, layer, overlay.opacity)

    return canvas


def draw_result(image: np.ndarray, result: Optional[CompositionResult]) -> np.ndarray:
    """Write the score, status and suggestion onto the frame."""
    if result is None or not result.suggestion:
        return image

    lines = [
        f"{result.composition_type.display_name}: {result.status.value} ({result.score:.2f})",
        result.suggestion
    ]

    for i, text in enumerate(lines):
        position = (10, 25 + i * 22)
        cv2.putText(image, text, position, cv2.FONT_HERSHEY_SIMPLEX, 0.55, (0, 0, 0), 3, cv2.LINE_AA)
        cv2.putText(image, text, position, cv2.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1, cv2.LINE_AA)

    return image


def run_image(image_path: str, config: dict, show: bool, output: Optional[str]) -> int:
    """Evaluate a single photo and print the JSON result."""
    preprocessor = create_preprocessing_pipeline(config)
    detector = create_subject_detector(config)
    manager = CompositionManager(config)
    overlay_generator = OverlayGenerator()

    try:
        image = preprocessor.load_image(image_path)
    except ValueError as e:
        logger.error(str(e))
        return 1

    frame = Frame(width=image.shape[1], height=image.shape[0])
    observation = detector.detect(image)
    result = manager.evaluate(observation, frame, image)

    if result is None:
        logger.error(f"Could not evaluate {image_path}")
        return 1

    print(result.to_json(include_details=True, indent=2))

    if show or output:
        if result.suggestion:
            overlays = overlay_generator.generate(result, result.context)
        else:
            overlays = manager.get_basic_overlays(frame)

        annotated = draw_result(draw_overlays(image, overlays), result)

        if output:
            cv2.imwrite(output, annotated)
            logger.info(f"Saved annotated image to {output}")

        if show:
            cv2.imshow('Composition', annotated)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


def run_webcam(index: int, config: dict) -> int:
    """Run the live pipeline on a webcam feed until 'q' is pressed."""
    capture = cv2.VideoCapture(index)
    if not capture.isOpened():
        logger.error(f"Could not open webcam {index}")
        return 1

    manager = CompositionManager(config)
    detector = create_subject_detector(config)
    rules = list(CompositionType)

    try:
        with CompositionPipeline(detector, manager, config=config['pipeline']) as pipeline:
            while True:
                ok, image = capture.read()
                if not ok:
                    logger.warning("Webcam frame grab failed, stopping")
                    break

                pipeline.submit(image)
                feedback = pipeline.latest

                if feedback is not None and manager.is_enabled:
                    annotated = draw_result(draw_overlays(image, feedback.overlays), feedback.result)
                else:
                    annotated = draw_overlays(image, manager.get_basic_overlays(
                        Frame(width=image.shape[1], height=image.shape[0])))

                cv2.imshow('Composition', annotated)
                key = cv2.waitKey(1) & 0xFF

                if key == ord('q'):
                    break
                if key == ord('r'):
                    current = rules.index(manager.current_composition_type)
                    manager.switch_to_composition_type(rules[(current + 1) % len(rules)])
                if key == ord('e'):
                    manager.toggle_enabled()

    finally:
        capture.release()
        cv2.destroyAllWindows()

    return 0


def main():
    """Main entry point for the demo script."""
    parser = argparse.ArgumentParser(description='Live Composition Demo')
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--image', type=str, help='Path to input image')
    source.add_argument('--webcam', type=int, help='Webcam device index')
    parser.add_argument('--rule', type=str, default=None,
                        choices=[t.value for t in CompositionType],
                        help='Composition rule to evaluate')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to a JSON configuration file')
    parser.add_argument('--show', action='store_true',
                        help='Display the annotated image')
    parser.add_argument('--output', type=str, default=None,
                        help='Path to save the annotated image')

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ValidationError as e:
        logger.error(f"{e}: {e.errors}")
        return 1

    if args.rule:
        config['default_composition_type'] = args.rule

    if args.image:
        return run_image(args.image, config, args.show, args.output)

    return run_webcam(args.webcam, config)


if __name__ == '__main__':
    sys.exit(main())
