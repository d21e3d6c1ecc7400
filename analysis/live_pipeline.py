#!/usr/bin/env python3
"""
Live Composition Pipeline

Runs detection, context analysis, scoring and overlay generation for camera
frames on a small worker pool. Frames are throttled, each admitted frame
gets a sequence number and only the newest completed evaluation is
published. Nothing is queued for the UI; consumers read the latest
snapshot or subscribe to updates.

"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from utils.config import get_default_config, merge_config

from .composition_manager import CompositionManager
from .composition_types import CompositionResult, Frame
from .overlay_generator import OverlayGenerator, overlays_to_dicts

logger = logging.getLogger(__name__)


class FrameThrottle:
    """
    Admits every n-th camera frame once a warm-up period has passed.

    Frames that arrive during the warm-up are dropped and not counted, so
    the first admitted frame is the n-th frame after the warm-up ends.
    """

    def __init__(self,
                 every_n_frames: int = 3,
                 warmup_seconds: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        if every_n_frames < 1:
            raise ValueError("every_n_frames must be at least 1")

        self.every_n_frames = every_n_frames
        self.warmup_seconds = warmup_seconds
        self._clock = clock
        self._started_at = clock()
        self._frame_count = 0
        self._lock = threading.Lock()

    def should_process(self) -> bool:
        with self._lock:
            if self._clock() - self._started_at < self.warmup_seconds:
                return False

            self._frame_count += 1
            return self._frame_count % self.every_n_frames == 0

    def reset(self) -> None:
        with self._lock:
            self._started_at = self._clock()
            self._frame_count = 0


@dataclass(frozen=True)
class PublishedFeedback:
    """Latest feedback snapshot handed to the UI."""
    sequence: int
    result: CompositionResult
    overlays: List[Any]
    latency_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'result': self.result.to_dict(include_details=True),
            'overlays': overlays_to_dicts(self.overlays),
            'latency_ms': round(self.latency_ms, 2)
        }


FeedbackCallback = Callable[[PublishedFeedback], None]


class CompositionPipeline:
    """

    Frame-to-feedback pipeline for a live camera feed.

    Usage:
        with CompositionPipeline(detector, manager) as pipeline:
            for frame in camera:
                pipeline.submit(frame)
                feedback = pipeline.latest

    """

    def __init__(self,
                 detector: Any,
                 manager: Optional[CompositionManager] = None,
                 overlay_generator: Optional[OverlayGenerator] = None,
                 max_workers: Optional[int] = None,
                 config: Optional[Dict[str, Any]] = None,
                 throttle: Optional[FrameThrottle] = None):
        """
        Initialize the pipeline.

        Args:
            detector: Object with detect(image) -> SubjectObservation
            manager: Composition manager that owns rule state
            overlay_generator: Overlay generator
            max_workers: Worker pool size, defaults to the configured value
            config: 'pipeline' section of the configuration
            throttle: Optional frame throttle override
        """

        self.config = merge_config(self._get_default_config(), config or {})

        self.detector = detector
        self.manager = manager or CompositionManager()
        self.overlay_generator = overlay_generator or OverlayGenerator()
        self.throttle = throttle or FrameThrottle(
            every_n_frames=self.config['every_n_frames'],
            warmup_seconds=self.config['warmup_seconds']
        )
        self.latency_budget_ms = self.config['latency_budget_ms']

        workers = max_workers or self.config['max_workers']
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='composition')

        self._lock = threading.Lock()
        self._next_sequence = 0
        self._latest: Optional[PublishedFeedback] = None
        self._subscribers: List[FeedbackCallback] = []
        self._closed = False

        logger.info(f"CompositionPipeline started with {workers} workers")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default pipeline configuration"""

        return get_default_config('pipeline')

    @property
    def latest(self) -> Optional[PublishedFeedback]:
        with self._lock:
            return self._latest

    def submit(self, image: np.ndarray) -> Optional['Future[Optional[PublishedFeedback]]']:
        """
        Offer a camera frame to the pipeline.

        Args:
            image: Camera frame; copied because camera buffers are reused

        Returns:
            Future resolving to the published feedback (None when it was
            superseded), or None if the frame was throttled
        """

        if self._closed:
            raise RuntimeError("Pipeline is closed")

        if not self.throttle.should_process():
            return None

        sequence = self._take_sequence()
        future = self._executor.submit(self._process, np.array(image, copy=True), sequence)
        future.add_done_callback(self._log_failure)
        return future

    def process_frame(self, image: np.ndarray) -> Optional[PublishedFeedback]:
        """Run one frame through the pipeline synchronously, bypassing the throttle."""

        return self._process(image, self._take_sequence())

    def subscribe(self, callback: FeedbackCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def close(self, wait: bool = True) -> None:
        if self._closed:
            return

        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info("CompositionPipeline stopped")

    def __enter__(self) -> 'CompositionPipeline':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @staticmethod
    def _log_failure(future: 'Future[Optional[PublishedFeedback]]') -> None:
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            logger.error(f"Frame processing failed: {str(error)}", exc_info=error)

    def _take_sequence(self) -> int:
        with self._lock:
            sequence = self._next_sequence
            self._next_sequence += 1
            return sequence

    def _process(self, image: np.ndarray, sequence: int) -> Optional[PublishedFeedback]:
        start = time.perf_counter()

        if image is None or image.ndim not in (2, 3) or image.size == 0:
            logger.warning(f"Frame {sequence} skipped: empty image")
            return None

        frame = Frame(width=image.shape[1], height=image.shape[0])
        observation = self.detector.detect(image)

        result = self.manager.evaluate(observation, frame, image, sequence=sequence)
        if result is None:
            return None

        if result.suggestion:
            overlays = self.overlay_generator.generate(result, result.context)
        else:
            overlays = self.manager.get_basic_overlays(frame)

        latency_ms = (time.perf_counter() - start) * 1000.0
        if latency_ms > self.latency_budget_ms:
            logger.warning(f"Frame {sequence} took {latency_ms:.1f} ms "
                           f"(budget {self.latency_budget_ms:.0f} ms)")

        feedback = PublishedFeedback(sequence=sequence, result=result, overlays=overlays, latency_ms=latency_ms)
        return self._publish(feedback)

    def _publish(self, feedback: PublishedFeedback) -> Optional[PublishedFeedback]:
        with self._lock:
            if self._latest is not None and feedback.sequence < self._latest.sequence:
                logger.debug(f"Discarding stale feedback for frame {feedback.sequence}")
                return None

            self._latest = feedback
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(feedback)
            except Exception as e:
                logger.warning(f"Feedback subscriber failed: {str(e)}")

        return feedback
