#!/usr/bin/env python3
"""
Suggestion Engine for Live Composition Feedback

This module turns rule geometry into short, actionable guidance for the
photographer and maps every suggestion onto a feedback level and icon for
the camera HUD.

Directions for camera moves follow the subject: when the subject sits right
of the frame center the photographer is told to move right.

"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .composition_types import (
    CompositionContext,
    CompositionFeedback,
    CompositionStatus
)

logger = logging.getLogger(__name__)


class FeedbackLevel(Enum):
    """Feedback levels, 1 is best."""
    PERFECT = 1
    GOOD = 2
    ALMOST = 3
    DIRECTIONAL = 4
    DISTANCE = 5
    CRITICAL = 6


THIRDS_QUADRANTS = {
    (1.0 / 3.0, 1.0 / 3.0): 'top-left',
    (2.0 / 3.0, 1.0 / 3.0): 'top-right',
    (1.0 / 3.0, 2.0 / 3.0): 'bottom-left',
    (2.0 / 3.0, 2.0 / 3.0): 'bottom-right'
}

DIRECTION_ICONS = {
    'left': 'arrow-left',
    'right': 'arrow-right',
    'up': 'arrow-up',
    'down': 'arrow-down',
    'left-up': 'arrow-up-left',
    'left-down': 'arrow-down-left',
    'right-up': 'arrow-up-right',
    'right-down': 'arrow-down-right'
}


class SuggestionEngine:
    """
    Generates suggestion text and HUD feedback for each composition rule.

    Wording lives here so the rule evaluators only deal with geometry and
    scoring.
    """

    def __init__(self, direction_threshold: float = 0.05, nudge_threshold: float = 0.02):
        """
        Initialize suggestion engine.

        Args:
            direction_threshold: Minimum offset before a camera direction is named
            nudge_threshold: Minimum offset before a subject nudge is named
        """
        self.direction_threshold = direction_threshold
        self.nudge_threshold = nudge_threshold

    @staticmethod
    def quadrant_name(target: Tuple[float, float]) -> str:
        """Name a rule of thirds intersection, e.g. 'bottom-left'."""
        x, y = target
        horizontal = 'left' if x < 0.5 else 'right'
        vertical = 'top' if y < 0.5 else 'bottom'
        return f"{vertical}-{horizontal}"

    def directions(self, dx: float, dy: float, threshold: Optional[float] = None) -> List[str]:
        """
        Name the axes whose offset exceeds the threshold.

        Positive dx is right and positive dy is down. Horizontal comes first.
        """
        threshold = self.direction_threshold if threshold is None else threshold
        parts = []

        if abs(dx) > threshold:
            parts.append('right' if dx > 0 else 'left')
        if abs(dy) > threshold:
            parts.append('down' if dy > 0 else 'up')

        return parts

    def rule_of_thirds_suggestion(self,
                                  status: CompositionStatus,
                                  subject_center: Tuple[float, float],
                                  target: Tuple[float, float]) -> str:
        """
        Suggestion for the rule of thirds.

        Args:
            status: Status derived from the score
            subject_center: Normalized subject center
            target: Nearest thirds intersection

        Returns:
            Suggestion text naming the nearest third
        """
        quadrant = self.quadrant_name(target)

        if status == CompositionStatus.PERFECT:
            return f"Nailed it! Subject sits on the {quadrant} third."

        if status == CompositionStatus.GOOD:
            # Nudge the subject toward the target
            parts = self.directions(target[0] - subject_center[0],
                                    target[1] - subject_center[1],
                                    self.nudge_threshold)
            if not parts:
                return f"Looking good on the {quadrant} third."
            return f"Move subject slightly {' and '.join(parts)} to align with {quadrant} third."

        return f"Move to {quadrant} third."

    def center_framing_suggestion(self,
                                  centered: bool,
                                  bonus_applied: bool,
                                  offset_x: float,
                                  offset_y: float) -> str:
        """
        Suggestion for center framing.

        The camera follows the subject: a subject right of center yields
        "Move right".
        """
        parts = self.directions(offset_x, offset_y)

        if centered:
            if bonus_applied:
                return "Perfect center!"
            if parts:
                return f"Almost centered. Move {' and '.join(parts)} slightly."
            return "Nice center!"

        if parts:
            return f"Move {' and '.join(parts)}"

        return "Almost there"

    @staticmethod
    def symmetry_suggestion(status: CompositionStatus, balance: str, reduced_confidence: bool) -> str:
        """Suggestion for symmetry, phrased as camera tilt or recentering."""

        if reduced_confidence:
            if balance == 'left-weighted':
                return "Pan the camera left to recenter the scene (limited image data)."
            if balance == 'right-weighted':
                return "Pan the camera right to recenter the scene (limited image data)."
            return "Centered on the subject; symmetry could not be measured."

        if status == CompositionStatus.PERFECT:
            return "So balanced! Hold the camera level."

        if status == CompositionStatus.GOOD:
            if balance == 'balanced':
                return "Well balanced. Fine-tune the camera tilt."
            return f"Good balance, slightly {balance}. Recenter on the axis of symmetry."

        if balance == 'left-weighted':
            return "Pan the camera left to recenter the heavier side."
        if balance == 'right-weighted':
            return "Pan the camera right to recenter the heavier side."

        return "Level the camera and recenter on the axis of symmetry."

    @staticmethod
    def context_hints(context: CompositionContext) -> List[str]:
        """Framing hints that apply to every rule."""

        hints = []
        edges = context.edge_proximity

        if edges.too_close:
            names = ' and '.join(sorted(edges.dangerous_edges))
            hints.append(f"Step back to keep the subject off the {names} edge.")

        if context.headroom.cutoff and 'bottom' not in edges.dangerous_edges:
            hints.append("Subject is cut off at the bottom.")

        if context.headroom.excessive and not edges.too_close:
            hints.append("Get closer to fill the empty space above the subject.")

        return hints

    def compose(self, primary: str, context: CompositionContext) -> str:
        """Append context hints to the rule suggestion."""

        parts = [primary] + self.context_hints(context)
        return ' '.join(part for part in parts if part)

    def feedback_for(self,
                     status: CompositionStatus,
                     suggestion: str,
                     context: CompositionContext,
                     direction: Optional[List[str]] = None) -> CompositionFeedback:
        """
        Map a result onto a HUD icon and feedback level.

        Args:
            status: Result status
            suggestion: Final suggestion text
            context: Composition context of the result
            direction: Camera or subject directions named by the suggestion

        Returns:
            CompositionFeedback for the result
        """
        if not suggestion:
            return CompositionFeedback(icon='none', level=FeedbackLevel.DIRECTIONAL.value)

        if context.headroom.cutoff:
            return CompositionFeedback(icon='person-cutoff', level=FeedbackLevel.CRITICAL.value)

        if context.edge_proximity.too_close:
            return CompositionFeedback(icon='step-back', level=FeedbackLevel.DISTANCE.value)

        if status == CompositionStatus.PERFECT:
            return CompositionFeedback(icon='check-circle', level=FeedbackLevel.PERFECT.value)

        if status == CompositionStatus.GOOD:
            if direction:
                return CompositionFeedback(icon='target', level=FeedbackLevel.ALMOST.value)
            return CompositionFeedback(icon='thumbs-up', level=FeedbackLevel.GOOD.value)

        if direction:
            key = '-'.join(direction)
            return CompositionFeedback(icon=DIRECTION_ICONS.get(key, 'target'),
                                       level=FeedbackLevel.DIRECTIONAL.value)

        return CompositionFeedback(icon='crosshair', level=FeedbackLevel.DIRECTIONAL.value)


def nearest_point(point: Tuple[float, float], candidates: Dict[Tuple[float, float], str]) -> Tuple[float, float]:
    """Return the candidate closest to point (first wins on ties)."""

    return min(candidates, key=lambda c: (c[0] - point[0]) ** 2 + (c[1] - point[1]) ** 2)
