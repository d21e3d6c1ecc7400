#!/usr/bin/env python3
"""
Composition Manager

This module provides the CompositionManager class that orchestrates the
composition rule evaluators: it holds the active rule and enabled flag,
dispatches evaluations, publishes the latest result to subscribers and can
recommend the best-scoring rule for a frame.

"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from utils.config import get_default_config, merge_config
from utils.validation import InvalidFrameError, validate_frame

from .composition_types import (
    CompositionContext,
    CompositionFeedback,
    CompositionResult,
    CompositionStatus,
    CompositionType,
    Frame,
    SubjectObservation
)
from .overlay_generator import create_guide_overlay
from .rule_evaluators import BaseRuleEvaluator, create_rule_evaluators

logger = logging.getLogger(__name__)

ResultCallback = Callable[[CompositionResult], None]


@dataclass(frozen=True)
class ManagerState:
    """Read-only snapshot of the manager state."""

    composition_type: CompositionType
    is_enabled: bool
    last_result: Optional[CompositionResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'composition_type': self.composition_type.value,
            'enabled': self.is_enabled,
            'last_result': self.last_result.to_dict() if self.last_result else None
        }


class CompositionManager:
    """

    Orchestrates composition evaluation for the live camera pipeline.

    The manager is the only writer of its state. Readers take snapshots via
    the state property or subscribe to published results. Results are
    last-writer-wins: with sequence numbers, an evaluation that finishes
    after a newer one has been published is discarded.

    """

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 evaluators: Optional[Dict[CompositionType, BaseRuleEvaluator]] = None):
        """
        Initialize the composition manager.

        Args:
            config: Full configuration dictionary
            evaluators: Optional evaluator overrides keyed by CompositionType
        """

        self.config = merge_config(self._get_default_config(), config or {})

        self.rule_evaluators = create_rule_evaluators(self.config)
        if evaluators:
            self.rule_evaluators.update(evaluators)

        self._lock = threading.Lock()
        self._current_type = CompositionType(self.config.get('default_composition_type', 'rule_of_thirds'))
        self._enabled = bool(self.config.get('enabled', True))
        self._last_result: Optional[CompositionResult] = None
        self._last_sequence = -1
        self._subscribers: List[ResultCallback] = []

        logger.info(f"CompositionManager initialized with {self._current_type.value}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration for the manager"""

        return get_default_config()

    @property
    def current_composition_type(self) -> CompositionType:
        return self._current_type

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def last_result(self) -> Optional[CompositionResult]:
        return self._last_result

    @property
    def state(self) -> ManagerState:
        with self._lock:
            return ManagerState(self._current_type, self._enabled, self._last_result)

    @property
    def available_composition_types(self) -> List[CompositionType]:
        return list(CompositionType)

    def evaluate(self,
                 observation: SubjectObservation,
                 frame: Frame,
                 pixel_data: Optional[np.ndarray] = None,
                 sequence: Optional[int] = None) -> Optional[CompositionResult]:
        """
        Evaluate the active composition rule for one frame.

        Args:
            observation: Primary subject observation
            frame: Frame dimensions
            pixel_data: Optional frame pixels, borrowed for this call only
            sequence: Optional frame sequence number for stale-result discarding

        Returns:
            CompositionResult, or None when the frame is invalid or the
            result was superseded by a newer frame
        """

        try:
            validate_frame(frame)
        except InvalidFrameError as e:
            logger.warning(f"Skipping evaluation: {e}")
            return None

        composition_type = self._current_type

        if not self._enabled:
            return self._neutral_result(composition_type)

        if not observation.has_subject:
            result = self._neutral_result(composition_type)
        else:
            result = self._run_evaluator(composition_type, observation, frame, pixel_data)

        return self._publish(result, sequence)

    def switch_to_composition_type(self, composition_type: CompositionType) -> ManagerState:
        """
        Switch to a different composition rule.

        The last result is left as it is; the next evaluation uses the new rule.

        Args:
            composition_type: The new composition type to use

        Returns:
            Snapshot of the updated state
        """

        composition_type = CompositionType(composition_type)

        with self._lock:
            previous = self._current_type
            self._current_type = composition_type

        logger.info(f"Composition type switched from {previous.value} to {composition_type.value}")
        return self.state

    def set_enabled(self, enabled: bool) -> ManagerState:
        """Enable or disable analysis; disabling clears the last result."""

        with self._lock:
            self._enabled = bool(enabled)
            if not self._enabled:
                self._last_result = None

        logger.info(f"Composition analysis {'enabled' if enabled else 'disabled'}")
        return self.state

    def toggle_enabled(self) -> ManagerState:
        return self.set_enabled(not self._enabled)

    def get_best_composition_suggestion(self,
                                        observation: SubjectObservation,
                                        frame: Frame,
                                        pixel_data: Optional[np.ndarray] = None) -> Optional[CompositionType]:
        """
        Find the composition rule that scores best for the current frame.

        Ties go to the earlier rule in priority order: rule of thirds, center
        framing, symmetry.

        Returns:
            Best CompositionType, or None for an invalid frame
        """

        scores = self.get_all_composition_scores(observation, frame, pixel_data)
        if not scores:
            return None

        best_type = None
        best_score = -1.0

        for composition_type in CompositionType:
            score = scores.get(composition_type)
            if score is not None and score > best_score:
                best_type = composition_type
                best_score = score

        return best_type

    def get_all_composition_scores(self,
                                   observation: SubjectObservation,
                                   frame: Frame,
                                   pixel_data: Optional[np.ndarray] = None) -> Dict[CompositionType, float]:
        """
        Score the frame under every composition rule without publishing.

        Returns:
            Scores keyed by CompositionType, empty for an invalid frame
        """

        try:
            validate_frame(frame)
        except InvalidFrameError as e:
            logger.warning(f"Skipping scoring: {e}")
            return {}

        scores = {}

        for composition_type in CompositionType:
            if not observation.has_subject:
                scores[composition_type] = 0.0
                continue

            result = self._run_evaluator(composition_type, observation, frame, pixel_data)
            scores[composition_type] = result.score

        return scores

    def get_basic_overlays(self, frame: Frame) -> List[Any]:
        """
        Static guide overlays for the active rule, shown without a subject.

        Args:
            frame: Frame dimensions

        Returns:
            List of overlay descriptors, empty for an invalid frame
        """

        try:
            validate_frame(frame)
        except InvalidFrameError:
            return []

        return [create_guide_overlay(self._current_type)]

    def subscribe(self, callback: ResultCallback) -> Callable[[], None]:
        """
        Register a callback for every published result.

        Returns:
            Function that removes the subscription
        """

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _run_evaluator(self,
                       composition_type: CompositionType,
                       observation: SubjectObservation,
                       frame: Frame,
                       pixel_data: Optional[np.ndarray]) -> CompositionResult:
        evaluator = self.rule_evaluators[composition_type]

        try:
            return evaluator.evaluate(observation, frame, pixel_data)

        except Exception as e:
            logger.error(f"{evaluator.name} evaluation failed: {str(e)}")
            return self._neutral_result(composition_type, reduced_confidence=True)

    def _publish(self, result: CompositionResult, sequence: Optional[int]) -> Optional[CompositionResult]:
        with self._lock:
            # Analysis may have been disabled while the evaluator was running
            if not self._enabled:
                logger.debug("Analysis disabled during evaluation, result not published")
                return self._neutral_result(result.composition_type)

            if sequence is not None:
                if sequence < self._last_sequence:
                    logger.debug(f"Discarding stale result for frame {sequence} (latest {self._last_sequence})")
                    return None
                self._last_sequence = sequence

            self._last_result = result
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(result)
            except Exception as e:
                logger.warning(f"Result subscriber failed: {str(e)}")

        return result

    @staticmethod
    def _neutral_result(composition_type: CompositionType, reduced_confidence: bool = False) -> CompositionResult:
        """Result carrying no feedback; only the basic guide overlay applies."""

        context = CompositionContext.empty()
        if reduced_confidence:
            context = context.with_reduced_confidence()

        return CompositionResult(
            composition_type=composition_type,
            score=0.0,
            status=CompositionStatus.NEEDS_ADJUSTMENT,
            suggestion='',
            context=context,
            feedback=CompositionFeedback(icon='none', level=4)
        )
