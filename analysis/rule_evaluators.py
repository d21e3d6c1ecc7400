#!/usr/bin/env python3
"""
Rule Evaluators for Live Composition Feedback

This module contains one evaluator per composition rule: rule of thirds,
center framing and symmetry. Each evaluator owns its rule's geometry,
tolerance policy and status thresholds, and produces a CompositionResult
from a subject observation, the frame size and optional pixel data.

"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import numpy as np

from preprocessing.frame_preprocessor import FramePreprocessor
from utils.config import get_default_config, merge_config
from utils.validation import validate_pixel_data

from .composition_types import (
    CompositionContext,
    CompositionResult,
    CompositionStatus,
    CompositionType,
    Frame,
    SubjectObservation,
    SubjectSize
)
from .context_analyzer import ContextAnalyzer
from .suggestion_engine import THIRDS_QUADRANTS, SuggestionEngine, nearest_point

logger = logging.getLogger(__name__)

THIRDS = (1.0 / 3.0, 2.0 / 3.0)
MAX_CENTER_DISTANCE = math.sqrt(0.5 * 0.5 + 0.5 * 0.5)


def analyze_mirror_symmetry(grid: np.ndarray, balance_threshold: float = 0.05) -> Tuple[float, str]:
    """
    Measure left/right mirror symmetry of a luminance grid.

    Each row compares column x with column (width - 1 - x); the mean
    absolute difference is scaled by the largest possible difference.

    Args:
        grid: 2-D luminance array with values in [0, 255]
        balance_threshold: Relative luminance imbalance tolerated as 'balanced'

    Returns:
        Tuple of (similarity in [0, 1], balance label)
    """
    grid = grid.astype(np.float32)
    width = grid.shape[1]
    half = width // 2

    if half == 0:
        return 0.0, 'balanced'

    left = grid[:, :half]
    mirrored_right = grid[:, ::-1][:, :half]

    average_difference = float(np.mean(np.abs(left - mirrored_right)))
    similarity = max(0.0, min(1.0, 1.0 - average_difference / 255.0))

    left_mass = float(left.sum())
    right_mass = float(grid[:, width - half:].sum())
    total_mass = left_mass + right_mass

    if total_mass <= 0:
        return similarity, 'balanced'

    imbalance = (left_mass - right_mass) / total_mass

    if imbalance > balance_threshold:
        balance = 'left-weighted'
    elif imbalance < -balance_threshold:
        balance = 'right-weighted'
    else:
        balance = 'balanced'

    return similarity, balance


class BaseRuleEvaluator(ABC):
    """
    Abstract base class for all rule evaluators.

    Provides the common evaluate interface plus shared scoring helpers.

    """

    composition_type: CompositionType

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 context_analyzer: Optional[ContextAnalyzer] = None,
                 suggestion_engine: Optional[SuggestionEngine] = None,
                 preprocessor: Optional[FramePreprocessor] = None):
        """Initialize the rule evaluator with configuration"""

        self.config = merge_config(get_default_config('rules')[self.composition_type.value], config or {})
        self.context_analyzer = context_analyzer or ContextAnalyzer()
        self.suggestion_engine = suggestion_engine or SuggestionEngine()
        self.preprocessor = preprocessor or FramePreprocessor()

    @property
    def name(self) -> str:
        return self.composition_type.display_name

    @abstractmethod
    def evaluate(self,
                 observation: SubjectObservation,
                 frame: Frame,
                 pixel_data: Optional[np.ndarray] = None) -> CompositionResult:
        """
        Evaluate the composition rule for one frame.

        Args:
            observation: Primary subject observation
            frame: Frame dimensions
            pixel_data: Optional frame pixels, borrowed for this call only

        Returns:
            CompositionResult for this rule

        """

        pass

    def _normalize_score(self, score: float, min_val: float = 0.0, max_val: float = 1.0) -> float:
        """Normalize score to [0, 1] range."""

        return max(0.0, min(1.0, (score - min_val) / (max_val - min_val)))

    def _status_for(self, score: float) -> CompositionStatus:
        if score > self.config['perfect_threshold']:
            return CompositionStatus.PERFECT
        if score > self.config['good_threshold']:
            return CompositionStatus.GOOD
        return CompositionStatus.NEEDS_ADJUSTMENT

    def _build_result(self,
                      score: float,
                      status: CompositionStatus,
                      primary_suggestion: str,
                      context: CompositionContext,
                      direction: Optional[list] = None) -> CompositionResult:
        suggestion = self.suggestion_engine.compose(primary_suggestion, context)
        feedback = self.suggestion_engine.feedback_for(status, suggestion, context, direction)

        return CompositionResult(
            composition_type=self.composition_type,
            score=self._normalize_score(score),
            status=status,
            suggestion=suggestion,
            context=context,
            feedback=feedback
        )


class RuleOfThirdsEvaluator(BaseRuleEvaluator):
    """
    Evaluates placement against the rule of thirds grid.

    The subject center is scored against the four grid intersections and the
    four grid lines. Line alignment is worth less than sitting on an
    intersection.

    """

    composition_type = CompositionType.RULE_OF_THIRDS

    def evaluate(self,
                 observation: SubjectObservation,
                 frame: Frame,
                 pixel_data: Optional[np.ndarray] = None) -> CompositionResult:
        """
        Evaluate rule of thirds compliance.

        Args:
            observation: Primary subject observation
            frame: Frame dimensions
            pixel_data: Unused by this rule

        Returns:
            CompositionResult with the nearest third named in the suggestion
        """

        context = self.context_analyzer.analyze(observation, frame)
        center = observation.bounding_box.center
        tolerance = self.tolerance_for(context.subject_size)

        intersection_score = self._calculate_intersection_score(center, tolerance)
        line_score = self._calculate_line_score(center, tolerance)

        score = self._normalize_score(max(intersection_score, line_score * self.config['line_weight']))
        status = self._status_for(score)

        target = nearest_point(center, THIRDS_QUADRANTS)
        suggestion = self.suggestion_engine.rule_of_thirds_suggestion(status, center, target)
        direction = None
        if status != CompositionStatus.PERFECT:
            direction = self.suggestion_engine.directions(target[0] - center[0], target[1] - center[1])

        logger.debug(
            f"Rule of thirds: intersection={intersection_score:.3f}, line={line_score:.3f}, "
            f"tolerance={tolerance:.3f}, score={score:.3f}"
        )

        return self._build_result(score, status, suggestion, context, direction)

    def tolerance_for(self, size: SubjectSize) -> float:
        """Tolerance band for a subject size class; close-ups get more room."""

        return self.config['tolerances'][size.value]

    def _calculate_intersection_score(self, center: Tuple[float, float], tolerance: float) -> float:
        """Score proximity to the nearest thirds intersection."""

        distance = min(
            math.hypot(center[0] - x, center[1] - y)
            for x in THIRDS for y in THIRDS
        )

        return max(0.0, 1.0 - distance / tolerance)

    def _calculate_line_score(self, center: Tuple[float, float], tolerance: float) -> float:
        """Score proximity to the nearest thirds line, vertical or horizontal."""

        distance = min(
            min(abs(center[0] - line) for line in THIRDS),
            min(abs(center[1] - line) for line in THIRDS)
        )

        return max(0.0, 1.0 - distance / tolerance)


class CenterFramingEvaluator(BaseRuleEvaluator):
    """
    Evaluates centering against the fixed geometric frame center.

    The target never shifts with subject size so feedback stays
    predictable. Inside the tolerance the base score starts at the centered
    floor; outside it falls off toward the frame corner. Pixel symmetry can
    add a bonus only to an already centered subject.

    """

    composition_type = CompositionType.CENTER_FRAMING

    def evaluate(self,
                 observation: SubjectObservation,
                 frame: Frame,
                 pixel_data: Optional[np.ndarray] = None) -> CompositionResult:
        """
        Evaluate center framing.

        Args:
            observation: Primary subject observation
            frame: Frame dimensions
            pixel_data: Optional frame pixels for the symmetry bonus

        Returns:
            CompositionResult with camera-direction guidance
        """

        context = self.context_analyzer.analyze(observation, frame)
        offset_x, offset_y = self._offset(observation)

        distance = math.hypot(offset_x, offset_y)
        centered = distance <= self.config['tolerance']
        score = self.base_score(distance)

        bonus_applied = False
        if centered and validate_pixel_data(pixel_data):
            symmetry_score = self._measure_symmetry(pixel_data)
            if symmetry_score is not None:
                score = min(1.0, score + self.config['symmetry_bonus'] * symmetry_score)
                bonus_applied = symmetry_score >= self.config['symmetry_bonus_threshold']

        if not centered:
            status = CompositionStatus.NEEDS_ADJUSTMENT
        elif bonus_applied:
            status = CompositionStatus.PERFECT
        else:
            status = CompositionStatus.GOOD

        direction = self.suggestion_engine.directions(offset_x, offset_y)
        suggestion = self.suggestion_engine.center_framing_suggestion(centered, bonus_applied, offset_x, offset_y)

        logger.debug(
            f"Center framing: distance={distance:.3f}, centered={centered}, "
            f"bonus={bonus_applied}, score={score:.3f}"
        )

        return self._build_result(score, status, suggestion, context, direction)

    def base_score(self, distance: float) -> float:
        """
        Centering score for a distance from the frame center.

        Args:
            distance: Euclidean distance in normalized frame units

        Returns:
            Score in [floor, 1] inside the tolerance, below the floor outside it
        """

        tolerance = self.config['tolerance']
        floor = self.config['centered_base_score']

        if distance <= tolerance:
            return floor + (1.0 - floor) * (1.0 - distance / tolerance)

        falloff = 1.0 - (distance - tolerance) / (MAX_CENTER_DISTANCE - tolerance)
        return floor * max(0.0, falloff)

    def offset_score(self, observation: SubjectObservation) -> float:
        """Geometry-only centering score for an observation."""

        offset_x, offset_y = self._offset(observation)
        return self.base_score(math.hypot(offset_x, offset_y))

    def _offset(self, observation: SubjectObservation) -> Tuple[float, float]:
        center_x, center_y = observation.bounding_box.center
        return center_x - 0.5, center_y - 0.5

    def _measure_symmetry(self, pixel_data: np.ndarray) -> Optional[float]:
        try:
            grid = self.preprocessor.luminance_grid(pixel_data)
            similarity, _ = analyze_mirror_symmetry(grid)
            return similarity

        except Exception as e:
            logger.warning(f"Symmetry bonus analysis failed: {str(e)}")
            return None


class SymmetryEvaluator(BaseRuleEvaluator):
    """
    Evaluates left/right mirror symmetry of the whole frame.

    Symmetry is a property of the scene rather than the subject, so
    suggestions talk about camera tilt and recentering. Without usable
    pixel data the evaluator falls back to the center framing offset score
    and marks the context as reduced confidence.

    """

    composition_type = CompositionType.SYMMETRY

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 context_analyzer: Optional[ContextAnalyzer] = None,
                 suggestion_engine: Optional[SuggestionEngine] = None,
                 preprocessor: Optional[FramePreprocessor] = None,
                 center_framing: Optional[CenterFramingEvaluator] = None):
        super().__init__(config, context_analyzer, suggestion_engine, preprocessor)

        self.center_framing = center_framing or CenterFramingEvaluator(
            context_analyzer=self.context_analyzer,
            suggestion_engine=self.suggestion_engine,
            preprocessor=self.preprocessor
        )

    def evaluate(self,
                 observation: SubjectObservation,
                 frame: Frame,
                 pixel_data: Optional[np.ndarray] = None) -> CompositionResult:
        """
        Evaluate symmetry in the composition.

        Args:
            observation: Primary subject observation
            frame: Frame dimensions
            pixel_data: Frame pixels; required for the full analysis

        Returns:
            CompositionResult, reduced confidence when pixels were unusable

        """

        context = self.context_analyzer.analyze(observation, frame)

        measurement = None
        if validate_pixel_data(pixel_data):
            measurement = self.measure(pixel_data)
        else:
            logger.debug("Symmetry evaluation without pixel data, using geometry fallback")

        if measurement is None:
            return self._evaluate_geometry_only(observation, context)

        similarity, balance = measurement
        status = self._status_for(similarity)
        suggestion = self.suggestion_engine.symmetry_suggestion(status, balance, reduced_confidence=False)

        logger.debug(f"Symmetry: similarity={similarity:.3f}, balance={balance}")

        return self._build_result(similarity, status, suggestion, context, self._balance_direction(balance))

    def measure(self, pixel_data: np.ndarray) -> Optional[Tuple[float, str]]:
        """
        Run the pixel-level mirror analysis.

        Returns:
            Tuple of (similarity, balance) or None if the analysis failed
        """

        try:
            grid = self.preprocessor.luminance_grid(pixel_data, self.config['sample_size'])
            return analyze_mirror_symmetry(grid, self.config['balance_threshold'])

        except Exception as e:
            logger.warning(f"Pixel symmetry analysis failed, using geometry fallback: {str(e)}")
            return None

    def _evaluate_geometry_only(self,
                                observation: SubjectObservation,
                                context: CompositionContext) -> CompositionResult:
        context = context.with_reduced_confidence()
        score = self.center_framing.offset_score(observation)

        center_x = observation.bounding_box.center[0]
        if center_x < 0.45:
            balance = 'left-weighted'
        elif center_x > 0.55:
            balance = 'right-weighted'
        else:
            balance = 'balanced'

        # Degraded input never earns a perfect rating
        status = self._status_for(score)
        if status == CompositionStatus.PERFECT:
            status = CompositionStatus.GOOD

        suggestion = self.suggestion_engine.symmetry_suggestion(status, balance, reduced_confidence=True)

        return self._build_result(score, status, suggestion, context, self._balance_direction(balance))

    @staticmethod
    def _balance_direction(balance: str) -> Optional[list]:
        if balance == 'left-weighted':
            return ['left']
        if balance == 'right-weighted':
            return ['right']
        return None


RULE_EVALUATORS = {
    CompositionType.RULE_OF_THIRDS: RuleOfThirdsEvaluator,
    CompositionType.CENTER_FRAMING: CenterFramingEvaluator,
    CompositionType.SYMMETRY: SymmetryEvaluator
}


def create_rule_evaluators(config: Optional[Dict[str, Any]] = None,
                           context_analyzer: Optional[ContextAnalyzer] = None,
                           preprocessor: Optional[FramePreprocessor] = None) -> Dict[CompositionType, BaseRuleEvaluator]:
    """
    Build one evaluator per composition rule.

    Args:
        config: Full configuration dictionary
        context_analyzer: Shared context analyzer
        preprocessor: Shared frame preprocessor

    Returns:
        Evaluators keyed by CompositionType, in tie-break priority order
    """

    config = merge_config(get_default_config(), config or {})
    rules = config['rules']
    context_analyzer = context_analyzer or ContextAnalyzer(config['context'])
    preprocessor = preprocessor or FramePreprocessor(
        sample_size=rules['symmetry']['sample_size']
    )
    suggestion_engine = SuggestionEngine(
        direction_threshold=rules['center_framing']['direction_threshold']
    )

    center_framing = CenterFramingEvaluator(rules['center_framing'], context_analyzer, suggestion_engine, preprocessor)

    return {
        CompositionType.RULE_OF_THIRDS: RuleOfThirdsEvaluator(
            rules['rule_of_thirds'], context_analyzer, suggestion_engine, preprocessor
        ),
        CompositionType.CENTER_FRAMING: center_framing,
        CompositionType.SYMMETRY: SymmetryEvaluator(
            rules['symmetry'], context_analyzer, suggestion_engine, preprocessor, center_framing
        )
    }
